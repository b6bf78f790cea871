# app/services/bom_aggregation.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.config import DEFAULT_CATEGORY_PRIORITY
from app.services.assembly_expander import ResolvedBomNode, iter_leaves, iter_nodes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatedRow:
    item_id: str
    name: str
    kind: str
    quantity: int
    category: str
    sources: Tuple[str, ...]
    build_numbers: Tuple[str, ...]
    requires_tracking: bool = False
    is_outsourced: bool = False


class _Group:
    __slots__ = ("first", "quantity", "categories", "sources", "build_numbers")

    def __init__(self, first: ResolvedBomNode):
        self.first = first
        self.quantity = 0
        self.categories: set = set()
        self.sources: set = set()
        self.build_numbers: set = set()


def aggregate(
    forest: Iterable[ResolvedBomNode],
    category_priority: Optional[Sequence[str]] = None,
    leaves_only: bool = True,
) -> List[AggregatedRow]:
    """
    Collapse the hierarchical BOM into one row per catalog id.

    With leaves_only (the default) only nodes without children are counted,
    so each row's quantity equals the sum of that id's leaf quantities in the
    hierarchy. Rows are ordered by category priority (unknown categories
    last), then by id.
    """
    priority = list(category_priority or DEFAULT_CATEGORY_PRIORITY)
    rank = {category: i for i, category in enumerate(priority)}
    unknown_rank = len(priority)

    nodes = iter_leaves(forest) if leaves_only else iter_nodes(forest)
    groups: Dict[str, _Group] = {}
    for node in nodes:
        group = groups.get(node.item_id)
        if group is None:
            group = groups[node.item_id] = _Group(node)
        group.quantity += node.quantity
        group.categories.add(node.category)
        group.sources.add(node.source)
        if node.build_number:
            group.build_numbers.add(node.build_number)

    rows = []
    for item_id, group in groups.items():
        # highest-priority contributor wins; ties between unknown categories by name
        category = min(group.categories, key=lambda c: (rank.get(c, unknown_rank), c))
        rows.append(
            AggregatedRow(
                item_id=item_id,
                name=group.first.name,
                kind=group.first.kind,
                quantity=group.quantity,
                category=category,
                sources=tuple(sorted(group.sources)),
                build_numbers=tuple(sorted(group.build_numbers)),
                requires_tracking=group.first.requires_tracking,
                is_outsourced=group.first.is_outsourced,
            )
        )

    rows.sort(key=lambda r: (rank.get(r.category, unknown_rank), r.category, r.item_id))
    logger.debug("Aggregated %d distinct items (leaves_only=%s)", len(rows), leaves_only)
    return rows
