# app/services/assembly_expander.py
"""
Expand root selections into the hierarchical BOM.

The walk is an explicit-stack DFS. Every frame carries the assembly ids on
its own branch, so a shared sub-assembly on two branches is fine while an
assembly that contains itself (directly or not) is reported as a cycle.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from app.services.bom_errors import (
    AmbiguousComponentError,
    CyclicAssemblyError,
    InvalidQuantityError,
    MappingNotFoundError,
    UnknownComponentError,
)
from app.services.catalog import (
    AssemblyCatalogEntry,
    CatalogEntry,
    CatalogSnapshot,
    ComponentLink,
)
from app.services.configuration_resolver import RootSelection

logger = logging.getLogger(__name__)

PART = "PART"
ASSEMBLY = "ASSEMBLY"


@dataclass
class ResolvedBomNode:
    item_id: str
    name: str
    kind: str
    declared_quantity: int
    quantity: int
    depth: int
    parent_id: Optional[str]
    path: Tuple[str, ...]
    source: str
    category: str
    build_number: Optional[str] = None
    requires_tracking: bool = False
    is_outsourced: bool = False
    manufacturer_name: Optional[str] = None
    manufacturer_part_number: Optional[str] = None
    notes: Optional[str] = None
    children: List["ResolvedBomNode"] = field(default_factory=list)

    # Tracking metadata, attached after generation (see app.services.tracking)
    serial_number: Optional[str] = None
    batch_number: Optional[str] = None

    @property
    def is_assembly(self) -> bool:
        return self.kind == ASSEMBLY

    @property
    def is_leaf(self) -> bool:
        return not self.children


def _make_node(
    entry: CatalogEntry,
    declared_quantity: int,
    parent: Optional[ResolvedBomNode],
    root: RootSelection,
    notes: Optional[str] = None,
) -> ResolvedBomNode:
    parent_quantity = parent.quantity if parent is not None else 1
    if isinstance(entry, AssemblyCatalogEntry):
        item_id, kind = entry.assembly_id, ASSEMBLY
        manufacturer_name = manufacturer_part_number = None
    else:
        item_id, kind = entry.part_id, PART
        manufacturer_name = entry.manufacturer_name
        manufacturer_part_number = entry.manufacturer_part_number

    return ResolvedBomNode(
        item_id=item_id,
        name=entry.name,
        kind=kind,
        declared_quantity=declared_quantity,
        quantity=declared_quantity * parent_quantity,
        depth=parent.depth + 1 if parent is not None else 0,
        parent_id=parent.item_id if parent is not None else None,
        path=(parent.path if parent is not None else ()) + (item_id,),
        source=root.source,
        category=root.category,
        build_number=root.build_number,
        requires_tracking=entry.requires_tracking,
        is_outsourced=entry.is_outsourced,
        manufacturer_name=manufacturer_name,
        manufacturer_part_number=manufacturer_part_number,
        notes=notes,
    )


def _resolve_link(catalog: CatalogSnapshot, parent_id: str, link: ComponentLink) -> CatalogEntry:
    if (
        link.child_part_id
        and link.child_assembly_id
        and link.child_part_id != link.child_assembly_id
    ):
        raise AmbiguousComponentError(
            link.child_assembly_id,
            parent_id=parent_id,
            reason=f"shares a component link with part {link.child_part_id!r}",
        )

    child_id = link.child_id
    if not child_id:
        raise UnknownComponentError(parent_id, None, link.link_id)

    quantity = link.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(parent_id, child_id, quantity)

    try:
        catalog.resolve(child_id)
    except AmbiguousComponentError as exc:
        raise AmbiguousComponentError(child_id, parent_id=parent_id) from exc

    # a link only resolves against the table its field names
    if link.child_assembly_id:
        entry = catalog.get_assembly(link.child_assembly_id)
    else:
        entry = catalog.get_part(link.child_part_id)
    if entry is None:
        raise UnknownComponentError(parent_id, child_id, link.link_id)
    return entry


def expand_root(root: RootSelection, catalog: CatalogSnapshot) -> ResolvedBomNode:
    entry = catalog.resolve(root.item_id)
    if entry is None:
        raise MappingNotFoundError("catalog", root.item_id, root.build_number)

    top = _make_node(entry, root.quantity, None, root)
    # frame: (node, assembly ids on this branch)
    stack: List[Tuple[ResolvedBomNode, Tuple[str, ...]]] = []
    if isinstance(entry, AssemblyCatalogEntry):
        stack.append((top, (top.item_id,)))

    while stack:
        node, branch = stack.pop()
        frames = []
        for link in catalog.components(node.item_id):
            child_entry = _resolve_link(catalog, node.item_id, link)
            child = _make_node(child_entry, link.quantity, node, root, link.notes)
            if isinstance(child_entry, AssemblyCatalogEntry):
                if child.item_id in branch:
                    start = branch.index(child.item_id)
                    raise CyclicAssemblyError(branch[start:] + (child.item_id,))
                frames.append((child, branch + (child.item_id,)))
            node.children.append(child)
        # reversed so siblings are expanded in declared order
        stack.extend(reversed(frames))

    return top


def expand_roots(roots: Sequence[RootSelection], catalog: CatalogSnapshot) -> List[ResolvedBomNode]:
    """Expand every root selection; the forest keeps the order of `roots`."""
    forest = [expand_root(root, catalog) for root in roots]
    logger.debug("Expanded %d roots into %d nodes", len(forest), sum(1 for _ in iter_nodes(forest)))
    return forest


def iter_nodes(forest: Iterable[ResolvedBomNode]) -> Iterator[ResolvedBomNode]:
    """Yield every node depth-first, parents before children."""
    stack = list(reversed(list(forest)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def iter_leaves(forest: Iterable[ResolvedBomNode]) -> Iterator[ResolvedBomNode]:
    return (node for node in iter_nodes(forest) if node.is_leaf)
