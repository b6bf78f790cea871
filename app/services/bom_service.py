# app/services/bom_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.config import get_settings
from app.schemas.configuration import OrderData
from app.services.assembly_expander import ResolvedBomNode, expand_roots, iter_nodes
from app.services.bom_aggregation import AggregatedRow, aggregate
from app.services.bom_cache import bom_cache, configuration_fingerprint
from app.services.catalog import CatalogSnapshot, load_catalog
from app.services.configuration_resolver import resolve_roots
from app.services.configuration_store import get_configuration
from app.services.mapping_tables import MappingTables, get_mapping_tables

logger = logging.getLogger(__name__)


@dataclass
class BomResult:
    hierarchical: List[ResolvedBomNode]
    aggregated: List[AggregatedRow]
    total_items: int
    top_level_items: int


def generate_bom(
    order: OrderData,
    catalog: CatalogSnapshot,
    tables: MappingTables,
    category_priority: Optional[Sequence[str]] = None,
) -> BomResult:
    """
    Resolve, expand and aggregate the BOM of an order.

    Any failure aborts the whole generation; there is no partial result.
    """
    roots = resolve_roots(order, tables)
    hierarchical = expand_roots(roots, catalog)
    aggregated = aggregate(hierarchical, category_priority)
    total_items = sum(1 for _ in iter_nodes(hierarchical))

    logger.info(
        "Generated BOM for builds=%s: %d roots, %d nodes, %d aggregated rows",
        ",".join(order.build_numbers),
        len(hierarchical),
        total_items,
        len(aggregated),
    )
    return BomResult(
        hierarchical=hierarchical,
        aggregated=aggregated,
        total_items=total_items,
        top_level_items=len(hierarchical),
    )


def generate_bom_for_build(
    db: Session,
    order_id: str,
    build_number: str,
    tables: Optional[MappingTables] = None,
) -> Optional[BomResult]:
    """
    Generate (or fetch from cache) the BOM of one stored build.

    Returns None when no configuration is stored for order/build.
    """
    order = get_configuration(db, order_id, build_number)
    if order is None:
        return None

    settings = get_settings()
    fingerprint = configuration_fingerprint(order)
    if settings.bom_cache_enabled:
        cached = bom_cache.get(order_id, build_number, fingerprint)
        if cached is not None:
            logger.debug("BOM cache hit for order=%s build=%s", order_id, build_number)
            return cached

    catalog = load_catalog(db)
    result = generate_bom(
        order,
        catalog,
        tables or get_mapping_tables(),
        settings.category_priority,
    )

    if settings.bom_cache_enabled:
        bom_cache.put(order_id, build_number, fingerprint, result)
    return result
