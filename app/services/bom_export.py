# app/services/bom_export.py
"""
Flatten a resolved BOM for PDF/CSV style exports.

Pure transforms over the resolved tree; nothing here reads the catalog.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app.schemas.bom import ExportData, ExportRow, ExportSummary, OrderInfo
from app.services.assembly_expander import ASSEMBLY, ResolvedBomNode


def _export_order_info(order_info: Optional[OrderInfo]) -> OrderInfo:
    info = order_info or OrderInfo()
    return OrderInfo(
        order_id=info.order_id or "N/A",
        customer_name=info.customer_name or "Unknown Customer",
        order_date=info.order_date or date.today().isoformat(),
        build_numbers=list(info.build_numbers) or ["Unknown"],
        project_name=info.project_name or "CleanStation BOM",
    )


def flatten_for_export(
    hierarchical: Sequence[ResolvedBomNode],
    order_info: Optional[OrderInfo] = None,
) -> ExportData:
    """
    Turn the forest into pre-ordered export rows plus a summary.

    Rows keep their level and parent so a renderer can indent them.
    """
    items: List[ExportRow] = []
    summary = ExportSummary()

    stack: List[Tuple[ResolvedBomNode, Optional[ResolvedBomNode]]] = [
        (node, None) for node in reversed(hierarchical)
    ]
    while stack:
        node, parent = stack.pop()
        level = node.depth
        items.append(
            ExportRow(
                level=level,
                id=node.item_id,
                part_number=node.item_id,
                name=node.name,
                quantity=node.quantity,
                category=node.category,
                kind=node.kind,
                source=node.source,
                build_number=node.build_number,
                parent_id=parent.item_id if parent is not None else None,
                parent_name=parent.name if parent is not None else None,
                manufacturer=node.manufacturer_name or "",
                manufacturer_part_number=node.manufacturer_part_number or "",
                notes=node.notes or "",
                requires_tracking=node.requires_tracking,
                is_outsourced=node.is_outsourced,
                serial_number=node.serial_number,
                batch_number=node.batch_number,
                has_children=bool(node.children),
            )
        )

        summary.total_items += 1
        summary.total_quantity += node.quantity
        summary.max_depth = max(summary.max_depth, level)
        summary.items_by_level[level] = summary.items_by_level.get(level, 0) + 1
        if node.kind == ASSEMBLY:
            summary.assemblies_count += 1
        else:
            summary.parts_count += 1

        stack.extend((child, node) for child in reversed(node.children))

    return ExportData(order_info=_export_order_info(order_info), items=items, summary=summary)


def to_nested(hierarchical: Iterable[ResolvedBomNode]) -> List[Dict[str, Any]]:
    """JSON-ready nested dicts, one per root."""

    def convert(node: ResolvedBomNode) -> Dict[str, Any]:
        return {
            "id": node.item_id,
            "name": node.name,
            "kind": node.kind,
            "quantity": node.quantity,
            "declared_quantity": node.declared_quantity,
            "category": node.category,
            "source": node.source,
            "build_number": node.build_number,
            "requires_tracking": node.requires_tracking,
            "serial_number": node.serial_number,
            "batch_number": node.batch_number,
            "children": [convert(child) for child in node.children],
        }

    # Depth here is bounded by the catalog, which the expander has already
    # checked for cycles.
    return [convert(node) for node in hierarchical]
