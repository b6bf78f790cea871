# app/services/tracking.py
"""
Serial/batch tracking on resolved BOM nodes.

Attaching tracking metadata is the only change allowed to a node after
generation. For stored builds the captured numbers are kept in
bom_item_tracking, keyed by the node's item path, and laid back onto each
freshly generated tree.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models.orders import BomItemTracking
from app.services.assembly_expander import ResolvedBomNode, iter_nodes

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"


class TrackingError(ValueError):
    pass


@dataclass(frozen=True)
class TrackingStatistics:
    total: int
    critical: int
    tracked: int
    untracked_critical: int
    outsourced: int


def attach_tracking(
    node: ResolvedBomNode,
    serial_number: Optional[str] = None,
    batch_number: Optional[str] = None,
) -> ResolvedBomNode:
    serial_number = (serial_number or "").strip() or None
    batch_number = (batch_number or "").strip() or None

    if serial_number is None and batch_number is None:
        raise TrackingError("A serial number or a batch number is required")
    if not node.requires_tracking:
        raise TrackingError(f"{node.item_id} does not require serial/batch tracking")

    if serial_number is not None:
        node.serial_number = serial_number
    if batch_number is not None:
        node.batch_number = batch_number

    logger.info(
        "Tracking attached to %s (build %s): serial=%s batch=%s",
        node.item_id,
        node.build_number,
        node.serial_number,
        node.batch_number,
    )
    return node


def tracking_statistics(forest: Iterable[ResolvedBomNode]) -> TrackingStatistics:
    total = critical = tracked = untracked_critical = outsourced = 0
    for node in iter_nodes(forest):
        total += 1
        is_tracked = bool(node.serial_number or node.batch_number)
        if node.requires_tracking:
            critical += 1
            if not is_tracked:
                untracked_critical += 1
        if is_tracked:
            tracked += 1
        if node.is_outsourced:
            outsourced += 1
    return TrackingStatistics(total, critical, tracked, untracked_critical, outsourced)


# ---------------------------------------------------------------------------
# Stored tracking for configured builds
# ---------------------------------------------------------------------------

def format_item_path(path: Sequence[str]) -> str:
    return PATH_SEPARATOR.join(path)


def parse_item_path(item_path: str) -> Tuple[str, ...]:
    return tuple(p for p in item_path.strip(PATH_SEPARATOR).split(PATH_SEPARATOR) if p)


def find_node(forest: Iterable[ResolvedBomNode], path: Sequence[str]) -> Optional[ResolvedBomNode]:
    """First node (pre-order) whose path from its root equals `path`."""
    path = tuple(path)
    return next((node for node in iter_nodes(forest) if node.path == path), None)


def _get_row(
    db: Session, order_id: str, build_number: str, item_path: str
) -> Optional[BomItemTracking]:
    stmt = select(BomItemTracking).where(
        BomItemTracking.order_id == order_id,
        BomItemTracking.build_number == build_number,
        BomItemTracking.item_path == item_path,
    )
    return db.execute(stmt).scalar_one_or_none()


def record_tracking(
    db: Session,
    order_id: str,
    build_number: str,
    forest: Sequence[ResolvedBomNode],
    path: Sequence[str],
    serial_number: Optional[str] = None,
    batch_number: Optional[str] = None,
) -> Optional[ResolvedBomNode]:
    """
    Attach tracking to the node at `path` and store it for the build.

    Returns None when the build's BOM has no node at `path`. TrackingError
    propagates before anything is written.
    """
    node = find_node(forest, path)
    if node is None:
        logger.warning(
            "No BOM node at %s for order=%s build=%s",
            format_item_path(path),
            order_id,
            build_number,
        )
        return None

    attach_tracking(node, serial_number, batch_number)

    item_path = format_item_path(node.path)
    row = _get_row(db, order_id, build_number, item_path)
    if row is None:
        row = BomItemTracking(order_id=order_id, build_number=build_number, item_path=item_path)
        db.add(row)
    row.serial_number = node.serial_number
    row.batch_number = node.batch_number
    row.updated_at = datetime.utcnow()
    db.commit()
    return node


def apply_stored_tracking(
    db: Session,
    order_id: str,
    build_number: str,
    forest: Sequence[ResolvedBomNode],
) -> int:
    """Lay stored serial/batch numbers onto a generated tree; returns how many applied."""
    stmt = select(BomItemTracking).where(
        BomItemTracking.order_id == order_id,
        BomItemTracking.build_number == build_number,
    )
    rows = db.execute(stmt).scalars().all()
    if not rows:
        return 0

    by_path: Dict[Tuple[str, ...], ResolvedBomNode] = {}
    for node in iter_nodes(forest):
        by_path.setdefault(node.path, node)

    applied = 0
    for row in rows:
        node = by_path.get(parse_item_path(row.item_path))
        if node is None or not node.requires_tracking:
            # the configuration or catalog changed since it was captured
            logger.warning(
                "Stored tracking for %s no longer matches the BOM of order=%s build=%s",
                row.item_path,
                order_id,
                build_number,
            )
            continue
        attach_tracking(node, row.serial_number, row.batch_number)
        applied += 1
    return applied
