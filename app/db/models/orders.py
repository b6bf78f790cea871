from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, JSON, String, UniqueConstraint

from app.db.base import Base


class OrderConfiguration(Base):
    __tablename__ = "order_configurations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(64), nullable=False, index=True)
    build_number = Column(String(64), nullable=False)
    customer_json = Column(JSON, nullable=False)  # {"language": "EN", "name": ..., "po_number": ...}
    configuration_json = Column(JSON, nullable=False)  # SinkConfiguration payload
    accessories_json = Column(JSON, nullable=False, default=list)  # [AccessoryItem, ...]
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("order_id", "build_number", name="uq_order_configurations_build"),
    )


class BomItemTracking(Base):
    """Serial/batch numbers captured for one node of a stored build's BOM."""

    __tablename__ = "bom_item_tracking"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(64), nullable=False, index=True)
    build_number = Column(String(64), nullable=False)
    item_path = Column(String(1024), nullable=False)  # root/.../item ids joined by "/"
    serial_number = Column(String(255), nullable=True)
    batch_number = Column(String(255), nullable=True)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "order_id", "build_number", "item_path", name="uq_bom_item_tracking_item"
        ),
    )
