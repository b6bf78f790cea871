# app/services/catalog.py
"""
Read-only catalog snapshot used by the BOM pipeline.

The snapshot is built once per generation (from the database or from a JSON
catalog file) so that assembly expansion never does a round trip per node.
"""
from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.db.models.catalog import Assembly, AssemblyComponent, Part
from app.services.bom_errors import AmbiguousComponentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartCatalogEntry:
    part_id: str
    name: str
    part_type: str = "COMPONENT"
    requires_tracking: bool = False
    is_outsourced: bool = False
    manufacturer_name: Optional[str] = None
    manufacturer_part_number: Optional[str] = None
    status: str = "ACTIVE"


@dataclass(frozen=True)
class ComponentLink:
    link_id: str
    child_part_id: Optional[str] = None
    child_assembly_id: Optional[str] = None
    quantity: int = 1
    notes: Optional[str] = None

    @property
    def child_id(self) -> Optional[str]:
        return self.child_assembly_id or self.child_part_id


@dataclass(frozen=True)
class AssemblyCatalogEntry:
    assembly_id: str
    name: str
    assembly_type: str = "SIMPLE"
    category_code: Optional[str] = None
    subcategory_code: Optional[str] = None
    requires_tracking: bool = False
    is_outsourced: bool = False
    components: Tuple[ComponentLink, ...] = ()


CatalogEntry = Union[PartCatalogEntry, AssemblyCatalogEntry]


class CatalogSnapshot:
    """In-memory view of parts and assemblies, keyed by catalog id."""

    def __init__(
        self,
        parts: Iterable[PartCatalogEntry] = (),
        assemblies: Iterable[AssemblyCatalogEntry] = (),
    ) -> None:
        self._parts: Dict[str, PartCatalogEntry] = {p.part_id: p for p in parts}
        self._assemblies: Dict[str, AssemblyCatalogEntry] = {
            a.assembly_id: a for a in assemblies
        }

    @property
    def parts(self) -> Mapping[str, PartCatalogEntry]:
        return self._parts

    @property
    def assemblies(self) -> Mapping[str, AssemblyCatalogEntry]:
        return self._assemblies

    def get_part(self, part_id: str) -> Optional[PartCatalogEntry]:
        return self._parts.get(part_id)

    def get_assembly(self, assembly_id: str) -> Optional[AssemblyCatalogEntry]:
        return self._assemblies.get(assembly_id)

    def components(self, assembly_id: str) -> Tuple[ComponentLink, ...]:
        assembly = self._assemblies.get(assembly_id)
        if assembly is None:
            raise KeyError(f"Assembly not found: {assembly_id}")
        return assembly.components

    def resolve(self, item_id: str) -> Optional[CatalogEntry]:
        """
        Return the single entry for item_id, or None if it is unknown.

        Raises AmbiguousComponentError when the id exists in both tables.
        """
        part = self._parts.get(item_id)
        assembly = self._assemblies.get(item_id)
        if part is not None and assembly is not None:
            raise AmbiguousComponentError(item_id)
        return assembly if assembly is not None else part

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._parts or item_id in self._assemblies

    def __len__(self) -> int:
        return len(self._parts) + len(self._assemblies)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_catalog(db: Session) -> CatalogSnapshot:
    """
    Preload the whole catalog in three queries.

    Component links come back ordered by (parent, position, id) so each
    assembly keeps its declared component order.
    """
    parts = db.execute(select(Part)).scalars().all()
    assemblies = db.execute(select(Assembly)).scalars().all()
    links = db.execute(
        select(AssemblyComponent).order_by(
            AssemblyComponent.parent_assembly_id,
            AssemblyComponent.position,
            AssemblyComponent.id,
        )
    ).scalars().all()

    links_by_parent: Dict[str, List[ComponentLink]] = defaultdict(list)
    for row in links:
        links_by_parent[row.parent_assembly_id].append(
            ComponentLink(
                link_id=str(row.id),
                child_part_id=row.child_part_id,
                child_assembly_id=row.child_assembly_id,
                quantity=row.quantity,
                notes=row.notes,
            )
        )

    snapshot = CatalogSnapshot(
        parts=[
            PartCatalogEntry(
                part_id=p.part_id,
                name=p.name,
                part_type=p.part_type,
                requires_tracking=bool(p.requires_serial_tracking),
                is_outsourced=bool(p.is_outsourced),
                manufacturer_name=p.manufacturer_name,
                manufacturer_part_number=p.manufacturer_part_number,
                status=p.status,
            )
            for p in parts
        ],
        assemblies=[
            AssemblyCatalogEntry(
                assembly_id=a.assembly_id,
                name=a.name,
                assembly_type=a.assembly_type,
                category_code=a.category_code,
                subcategory_code=a.subcategory_code,
                requires_tracking=bool(a.requires_serial_tracking),
                is_outsourced=bool(a.is_outsourced),
                components=tuple(links_by_parent.get(a.assembly_id, ())),
            )
            for a in assemblies
        ],
    )
    logger.debug(
        "Loaded catalog snapshot: %d parts, %d assemblies, %d component links",
        len(parts),
        len(assemblies),
        len(links),
    )
    return snapshot


def catalog_from_dict(data: Mapping) -> CatalogSnapshot:
    """
    Build a snapshot from the `{"parts": {...}, "assemblies": {...}}` layout.

    Component entries name their child with either `part_id` or
    `assembly_id`; a missing quantity defaults to 1.
    """
    parts = [
        PartCatalogEntry(
            part_id=part_id,
            name=raw.get("name") or part_id,
            part_type=raw.get("type") or "COMPONENT",
            requires_tracking=bool(raw.get("requires_serial", False)),
            is_outsourced=bool(raw.get("is_outsourced", False)),
            manufacturer_name=raw.get("manufacturer_info"),
            manufacturer_part_number=raw.get("manufacturer_part_number"),
            status=raw.get("status") or "ACTIVE",
        )
        for part_id, raw in (data.get("parts") or {}).items()
    ]

    assemblies = []
    for assembly_id, raw in (data.get("assemblies") or {}).items():
        links = tuple(
            ComponentLink(
                link_id=f"{assembly_id}#{i}",
                child_part_id=comp.get("part_id"),
                child_assembly_id=comp.get("assembly_id"),
                quantity=comp.get("quantity", 1),
                notes=comp.get("notes"),
            )
            for i, comp in enumerate(raw.get("components") or [])
        )
        assemblies.append(
            AssemblyCatalogEntry(
                assembly_id=assembly_id,
                name=raw.get("name") or assembly_id,
                assembly_type=raw.get("type") or "SIMPLE",
                category_code=raw.get("category_code"),
                subcategory_code=raw.get("subcategory_code"),
                requires_tracking=bool(raw.get("requires_serial", False)),
                is_outsourced=bool(raw.get("is_outsourced", False)),
                components=links,
            )
        )

    return CatalogSnapshot(parts=parts, assemblies=assemblies)


def load_catalog_file(path: Path) -> CatalogSnapshot:
    if not path.is_file():
        raise FileNotFoundError(f"Catalog file does not exist: {path}")

    logger.info("Loading catalog from %s", path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    snapshot = catalog_from_dict(data)
    logger.info(
        "Catalog file loaded: %d parts, %d assemblies",
        len(snapshot.parts),
        len(snapshot.assemblies),
    )
    return snapshot


@dataclass
class SeedResult:
    parts_created: int = 0
    parts_updated: int = 0
    assemblies_created: int = 0
    assemblies_updated: int = 0
    components_written: int = 0


def seed_catalog(db: Session, snapshot: CatalogSnapshot) -> SeedResult:
    """
    Upsert every part and assembly of the snapshot into the catalog tables.

    An assembly's component list is replaced wholesale so the stored order
    matches the snapshot. Broken links are stored as-is; run the audit to
    find them.
    """
    result = SeedResult()

    for entry in snapshot.parts.values():
        row = db.get(Part, entry.part_id)
        if row is None:
            row = Part(part_id=entry.part_id)
            db.add(row)
            result.parts_created += 1
        else:
            result.parts_updated += 1
        row.name = entry.name
        row.part_type = entry.part_type
        row.status = entry.status
        row.manufacturer_name = entry.manufacturer_name
        row.manufacturer_part_number = entry.manufacturer_part_number
        row.requires_serial_tracking = entry.requires_tracking
        row.is_outsourced = entry.is_outsourced

    for entry in snapshot.assemblies.values():
        row = db.get(Assembly, entry.assembly_id)
        if row is None:
            row = Assembly(assembly_id=entry.assembly_id)
            db.add(row)
            result.assemblies_created += 1
        else:
            result.assemblies_updated += 1
        row.name = entry.name
        row.assembly_type = entry.assembly_type
        row.category_code = entry.category_code
        row.subcategory_code = entry.subcategory_code
        row.requires_serial_tracking = entry.requires_tracking
        row.is_outsourced = entry.is_outsourced

    db.flush()

    for entry in snapshot.assemblies.values():
        db.execute(
            delete(AssemblyComponent).where(
                AssemblyComponent.parent_assembly_id == entry.assembly_id
            )
        )
        for position, link in enumerate(entry.components):
            db.add(
                AssemblyComponent(
                    parent_assembly_id=entry.assembly_id,
                    position=position,
                    child_part_id=link.child_part_id,
                    child_assembly_id=link.child_assembly_id,
                    quantity=link.quantity,
                    notes=link.notes,
                )
            )
            result.components_written += 1

    db.commit()
    logger.info(
        "Catalog seeded: parts +%d/~%d, assemblies +%d/~%d, %d component links",
        result.parts_created,
        result.parts_updated,
        result.assemblies_created,
        result.assemblies_updated,
        result.components_written,
    )
    return result


# ---------------------------------------------------------------------------
# Integrity audit
# ---------------------------------------------------------------------------

@dataclass
class CatalogAuditReport:
    broken_links: List[Tuple[str, Optional[str]]] = field(default_factory=list)
    ambiguous_ids: List[str] = field(default_factory=list)
    invalid_quantities: List[Tuple[str, Optional[str], object]] = field(default_factory=list)
    empty_assemblies: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        # Empty assemblies are reported but are not defects on their own.
        return not (
            self.broken_links
            or self.ambiguous_ids
            or self.invalid_quantities
            or self.cycles
        )


def audit_catalog(snapshot: CatalogSnapshot) -> CatalogAuditReport:
    """
    Scan the whole catalog for the defects that would abort a BOM generation.

    Unlike the expander this never raises; it collects every finding so
    operators can fix the catalog in one pass.
    """
    report = CatalogAuditReport()
    assemblies = snapshot.assemblies

    report.ambiguous_ids = sorted(set(snapshot.parts) & set(assemblies))

    for assembly_id in sorted(assemblies):
        links = assemblies[assembly_id].components
        if not links:
            report.empty_assemblies.append(assembly_id)
        for link in links:
            if not link.child_part_id and not link.child_assembly_id:
                report.broken_links.append((assembly_id, None))
                continue
            if link.child_assembly_id and link.child_assembly_id not in assemblies:
                report.broken_links.append((assembly_id, link.child_assembly_id))
            if link.child_part_id and link.child_part_id not in snapshot.parts:
                report.broken_links.append((assembly_id, link.child_part_id))
            if isinstance(link.quantity, bool) or not isinstance(link.quantity, int) or link.quantity <= 0:
                report.invalid_quantities.append((assembly_id, link.child_id, link.quantity))

    report.cycles = _find_cycles(snapshot)

    logger.info(
        "Catalog audit: %d broken links, %d ambiguous ids, %d invalid quantities, "
        "%d empty assemblies, %d cycles",
        len(report.broken_links),
        len(report.ambiguous_ids),
        len(report.invalid_quantities),
        len(report.empty_assemblies),
        len(report.cycles),
    )
    return report


def _child_assemblies(snapshot: CatalogSnapshot, assembly_id: str) -> List[str]:
    return [
        link.child_assembly_id
        for link in snapshot.assemblies[assembly_id].components
        if link.child_assembly_id and link.child_assembly_id in snapshot.assemblies
    ]


def _find_cycles(snapshot: CatalogSnapshot) -> List[List[str]]:
    # 1 = on the current DFS path, 2 = fully explored
    state: Dict[str, int] = {}
    cycles: List[List[str]] = []

    for root in sorted(snapshot.assemblies):
        if state.get(root):
            continue
        state[root] = 1
        path = [root]
        stack = [(root, iter(_child_assemblies(snapshot, root)))]
        while stack:
            node, children = stack[-1]
            for child in children:
                child_state = state.get(child, 0)
                if child_state == 1:
                    cycles.append(path[path.index(child):] + [child])
                elif child_state == 0:
                    state[child] = 1
                    path.append(child)
                    stack.append((child, iter(_child_assemblies(snapshot, child))))
                    break
            else:
                stack.pop()
                path.pop()
                state[node] = 2

    return cycles
