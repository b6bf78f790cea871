# app/api/routers/bom.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db.session import get_db
from app.schemas.bom import BomExportRequest, BomResponse, ExportData
from app.schemas.configuration import OrderData
from app.services import bom_service
from app.services.bom_export import flatten_for_export
from app.services.catalog import load_catalog
from app.services.mapping_tables import MappingTables, get_mapping_tables

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bom", tags=["bom"])


def to_response(result: bom_service.BomResult) -> BomResponse:
    return BomResponse.model_validate(
        {
            "hierarchical": result.hierarchical,
            "aggregated": result.aggregated,
            "total_items": result.total_items,
            "top_level_items": result.top_level_items,
        },
        from_attributes=True,
    )


@router.post(
    "/generate",
    response_model=BomResponse,
    summary="Generate the BOM for an order configuration",
    description=(
        "Resolve the configuration into root kits, expand them against the "
        "current catalog, and return both the hierarchical and the aggregated BOM."
    ),
)
def generate_bom(
    order: OrderData,
    db: Session = Depends(get_db),
    tables: MappingTables = Depends(get_mapping_tables),
):
    result = bom_service.generate_bom(
        order,
        load_catalog(db),
        tables,
        get_settings().category_priority,
    )
    return to_response(result)


@router.post(
    "/export",
    response_model=ExportData,
    summary="Generate and flatten a BOM for export",
)
def export_bom(
    request: BomExportRequest,
    db: Session = Depends(get_db),
    tables: MappingTables = Depends(get_mapping_tables),
):
    result = bom_service.generate_bom(
        request.order,
        load_catalog(db),
        tables,
        get_settings().category_priority,
    )
    order_info = request.order_info
    if not order_info.build_numbers:
        order_info = order_info.model_copy(update={"build_numbers": request.order.build_numbers})
    export = flatten_for_export(result.hierarchical, order_info)
    logger.debug(
        "Exported BOM order_id=%s rows=%d", export.order_info.order_id, export.summary.total_items
    )
    return export
