# app/services/bom_errors.py
"""
Errors that abort a BOM generation.

Each class carries a `kind` tag that the HTTP layer returns with the error
body. Validation problems map to 400, mapping misses to 422 and catalog
integrity defects to 500.
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence


class BomGenerationError(RuntimeError):
    """Base class for every failure that aborts a BOM generation."""

    kind = "bom_generation_error"


class BomValidationError(BomGenerationError):
    """Raised when the order configuration is missing required fields."""

    kind = "validation_error"

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__("Invalid order configuration: " + "; ".join(self.problems))


class MappingNotFoundError(BomGenerationError):
    """Raised when a configuration value has no mapping/rule/catalog entry."""

    kind = "mapping_not_found"

    def __init__(self, table: str, key: str, build_number: Optional[str] = None):
        self.table = table
        self.key = key
        self.build_number = build_number
        super().__init__(table, key)

    def __str__(self) -> str:
        # build_number is filled in by the resolver after the lookup fails
        where = f" (build {self.build_number})" if self.build_number else ""
        return f"No {self.table} mapping for {self.key!r}{where}"


class CatalogIntegrityError(BomGenerationError):
    """Base class for defects in the part/assembly catalog itself."""

    kind = "catalog_integrity_error"


class UnknownComponentError(CatalogIntegrityError):
    """Raised when an assembly component link resolves to nothing."""

    kind = "unknown_component"

    def __init__(self, parent_id: str, child_id: Optional[str], link_id: Optional[str] = None):
        self.parent_id = parent_id
        self.child_id = child_id
        self.link_id = link_id
        if child_id:
            detail = f"references {child_id!r}, which is neither a part nor an assembly"
        else:
            detail = f"has a component link ({link_id}) with no child part or assembly"
        super().__init__(f"Broken component link: assembly {parent_id!r} {detail}")


class AmbiguousComponentError(CatalogIntegrityError):
    """Raised when one id exists both as a part and as an assembly."""

    kind = "ambiguous_component"

    def __init__(self, item_id: str, parent_id: Optional[str] = None, reason: Optional[str] = None):
        self.item_id = item_id
        self.parent_id = parent_id
        where = f" (referenced by {parent_id!r})" if parent_id else ""
        reason = reason or "is both a part and an assembly"
        super().__init__(f"Catalog id {item_id!r} {reason}{where}")


class InvalidQuantityError(CatalogIntegrityError):
    """Raised when a component link quantity is not a positive integer."""

    kind = "invalid_quantity"

    def __init__(self, parent_id: str, child_id: Optional[str], quantity: object):
        self.parent_id = parent_id
        self.child_id = child_id
        self.quantity = quantity
        super().__init__(
            f"Assembly {parent_id!r} lists {child_id!r} with invalid quantity {quantity!r}"
        )


class CyclicAssemblyError(CatalogIntegrityError):
    """Raised when expansion revisits an assembly already on the current path."""

    kind = "cyclic_assembly"

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__("Cyclic assembly membership: " + " -> ".join(self.cycle))
