# app/services/configuration_store.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models.orders import OrderConfiguration
from app.schemas.configuration import (
    AccessoryItem,
    CustomerInfo,
    OrderData,
    SinkConfiguration,
)
from app.services.bom_cache import bom_cache

logger = logging.getLogger(__name__)


def _get_row(db: Session, order_id: str, build_number: str) -> Optional[OrderConfiguration]:
    stmt = select(OrderConfiguration).where(
        OrderConfiguration.order_id == order_id,
        OrderConfiguration.build_number == build_number,
    )
    return db.execute(stmt).scalar_one_or_none()


def save_configuration(
    db: Session,
    order_id: str,
    build_number: str,
    customer: CustomerInfo,
    configuration: SinkConfiguration,
    accessories: Sequence[AccessoryItem] = (),
) -> OrderConfiguration:
    """
    Create or replace the stored configuration of one build.

    Any cached BOM for the build is dropped, so the next request regenerates it.
    """
    row = _get_row(db, order_id, build_number)
    if row is None:
        row = OrderConfiguration(order_id=order_id, build_number=build_number)
        db.add(row)
        logger.info("Storing configuration for order=%s build=%s", order_id, build_number)
    else:
        logger.info("Replacing configuration for order=%s build=%s", order_id, build_number)

    row.customer_json = customer.model_dump(mode="json")
    row.configuration_json = configuration.model_dump(mode="json")
    row.accessories_json = [a.model_dump(mode="json") for a in accessories]
    row.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(row)

    bom_cache.invalidate(order_id, build_number)
    return row


def row_to_order_data(row: OrderConfiguration) -> OrderData:
    return OrderData(
        customer=CustomerInfo.model_validate(row.customer_json or {}),
        build_numbers=[row.build_number],
        configurations={
            row.build_number: SinkConfiguration.model_validate(row.configuration_json or {})
        },
        accessories={
            row.build_number: [
                AccessoryItem.model_validate(a) for a in (row.accessories_json or [])
            ]
        },
    )


def get_configuration_row(
    db: Session, order_id: str, build_number: str
) -> Optional[OrderConfiguration]:
    return _get_row(db, order_id, build_number)


def get_configuration(db: Session, order_id: str, build_number: str) -> Optional[OrderData]:
    """Return the single-build OrderData stored for order/build, or None."""
    row = _get_row(db, order_id, build_number)
    if row is None:
        logger.debug("No configuration for order=%s build=%s", order_id, build_number)
        return None
    return row_to_order_data(row)


def list_builds(db: Session, order_id: str) -> List[str]:
    stmt = (
        select(OrderConfiguration.build_number)
        .where(OrderConfiguration.order_id == order_id)
        .order_by(OrderConfiguration.build_number)
    )
    return list(db.execute(stmt).scalars().all())
