# app/api/routers/configurations.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.routers.bom import to_response
from app.db.session import get_db
from app.schemas.bom import (
    BomNodeSchema,
    BomResponse,
    BuildConfigurationPayload,
    BuildConfigurationResponse,
    ExportData,
    OrderInfo,
    TrackingStatisticsSchema,
    TrackingUpdate,
)
from app.services import bom_service, configuration_store, tracking
from app.services.bom_export import flatten_for_export, to_nested
from app.services.mapping_tables import MappingTables, get_mapping_tables

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["configurations"])


def _to_response(row) -> BuildConfigurationResponse:
    return BuildConfigurationResponse(
        order_id=row.order_id,
        build_number=row.build_number,
        customer=row.customer_json or {},
        configuration=row.configuration_json or {},
        accessories=row.accessories_json or [],
        updated_at=row.updated_at,
    )


@router.get("/{order_id}/builds", response_model=list[str], summary="List configured builds")
def list_builds(order_id: str, db: Session = Depends(get_db)):
    return configuration_store.list_builds(db, order_id)


@router.put(
    "/{order_id}/builds/{build_number}/configuration",
    response_model=BuildConfigurationResponse,
    summary="Store the configuration of one build",
)
def put_configuration(
    order_id: str,
    build_number: str,
    payload: BuildConfigurationPayload,
    db: Session = Depends(get_db),
):
    row = configuration_store.save_configuration(
        db,
        order_id,
        build_number,
        payload.customer,
        payload.configuration,
        payload.accessories,
    )
    return _to_response(row)


@router.get(
    "/{order_id}/builds/{build_number}/configuration",
    response_model=BuildConfigurationResponse,
    summary="Get the stored configuration of one build",
)
def get_configuration(order_id: str, build_number: str, db: Session = Depends(get_db)):
    row = configuration_store.get_configuration_row(db, order_id, build_number)
    if row is None:
        logger.warning("Configuration not found: order=%s build=%s", order_id, build_number)
        raise HTTPException(status_code=404, detail="Configuration not found")
    return _to_response(row)


def _build_bom(db: Session, order_id: str, build_number: str, tables: MappingTables):
    """Generate the stored build's BOM with its captured tracking, or 404."""
    result = bom_service.generate_bom_for_build(db, order_id, build_number, tables)
    if result is None:
        logger.warning("Configuration not found: order=%s build=%s", order_id, build_number)
        raise HTTPException(status_code=404, detail="Configuration not found")
    tracking.apply_stored_tracking(db, order_id, build_number, result.hierarchical)
    return result


@router.get(
    "/{order_id}/builds/{build_number}/bom",
    response_model=BomResponse,
    summary="Generate the BOM of a stored build",
)
def get_build_bom(
    order_id: str,
    build_number: str,
    db: Session = Depends(get_db),
    tables: MappingTables = Depends(get_mapping_tables),
):
    return to_response(_build_bom(db, order_id, build_number, tables))


@router.get(
    "/{order_id}/builds/{build_number}/bom/nested",
    response_model=list[dict],
    summary="Stored build BOM as nested JSON",
)
def get_build_bom_nested(
    order_id: str,
    build_number: str,
    db: Session = Depends(get_db),
    tables: MappingTables = Depends(get_mapping_tables),
):
    return to_nested(_build_bom(db, order_id, build_number, tables).hierarchical)


@router.get(
    "/{order_id}/builds/{build_number}/bom/export",
    response_model=ExportData,
    summary="Flatten a stored build's BOM for export",
)
def export_build_bom(
    order_id: str,
    build_number: str,
    db: Session = Depends(get_db),
    tables: MappingTables = Depends(get_mapping_tables),
):
    result = _build_bom(db, order_id, build_number, tables)
    row = configuration_store.get_configuration_row(db, order_id, build_number)
    order_info = OrderInfo(
        order_id=order_id,
        customer_name=(row.customer_json or {}).get("name"),
        build_numbers=[build_number],
    )
    return flatten_for_export(result.hierarchical, order_info)


@router.get(
    "/{order_id}/builds/{build_number}/bom/tracking",
    response_model=TrackingStatisticsSchema,
    summary="Serial/batch tracking progress of a stored build",
)
def get_tracking_statistics(
    order_id: str,
    build_number: str,
    db: Session = Depends(get_db),
    tables: MappingTables = Depends(get_mapping_tables),
):
    result = _build_bom(db, order_id, build_number, tables)
    return TrackingStatisticsSchema.model_validate(
        tracking.tracking_statistics(result.hierarchical)
    )


@router.put(
    "/{order_id}/builds/{build_number}/bom/items/{item_path:path}/tracking",
    response_model=BomNodeSchema,
    summary="Capture the serial or batch number of one BOM item",
    description=(
        "item_path is the chain of item ids from the root kit down to the "
        "item, joined by '/', as returned in each node's `path`."
    ),
)
def put_item_tracking(
    order_id: str,
    build_number: str,
    item_path: str,
    payload: TrackingUpdate,
    db: Session = Depends(get_db),
    tables: MappingTables = Depends(get_mapping_tables),
):
    result = _build_bom(db, order_id, build_number, tables)
    try:
        node = tracking.record_tracking(
            db,
            order_id,
            build_number,
            result.hierarchical,
            tracking.parse_item_path(item_path),
            payload.serial_number,
            payload.batch_number,
        )
    except tracking.TrackingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if node is None:
        raise HTTPException(status_code=404, detail="BOM item not found")
    return BomNodeSchema.model_validate(node)
