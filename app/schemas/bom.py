from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.configuration import (
    AccessoryItem,
    CustomerInfo,
    OrderData,
    SinkConfiguration,
)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

class OrderInfo(BaseModel):
    order_id: Optional[str] = None
    customer_name: Optional[str] = None
    order_date: Optional[str] = None  # ISO date, defaults to today on export
    build_numbers: List[str] = Field(default_factory=list)
    project_name: Optional[str] = None


class ExportRow(BaseModel):
    level: int
    id: str
    part_number: str
    name: str
    quantity: int
    unit_of_measure: str = "EA"
    category: str
    kind: str
    source: str
    build_number: Optional[str] = None
    parent_id: Optional[str] = None
    parent_name: Optional[str] = None
    manufacturer: str = ""
    manufacturer_part_number: str = ""
    notes: str = ""
    requires_tracking: bool = False
    is_outsourced: bool = False
    serial_number: Optional[str] = None
    batch_number: Optional[str] = None
    has_children: bool = False


class ExportSummary(BaseModel):
    total_items: int = 0
    total_quantity: int = 0
    max_depth: int = 0
    items_by_level: Dict[int, int] = Field(default_factory=dict)
    assemblies_count: int = 0
    parts_count: int = 0


class ExportData(BaseModel):
    order_info: OrderInfo
    items: List[ExportRow]
    summary: ExportSummary


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

class BomNodeSchema(BaseModel):
    item_id: str
    name: str
    kind: str
    declared_quantity: int
    quantity: int
    depth: int
    parent_id: Optional[str] = None
    path: List[str] = Field(default_factory=list)  # item ids from the root down to this node
    source: str
    category: str
    build_number: Optional[str] = None
    requires_tracking: bool = False
    is_outsourced: bool = False
    manufacturer_name: Optional[str] = None
    manufacturer_part_number: Optional[str] = None
    notes: Optional[str] = None
    serial_number: Optional[str] = None
    batch_number: Optional[str] = None
    children: List["BomNodeSchema"] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class AggregatedRowSchema(BaseModel):
    item_id: str
    name: str
    kind: str
    quantity: int
    category: str
    sources: List[str]
    build_numbers: List[str]
    requires_tracking: bool = False
    is_outsourced: bool = False

    model_config = {"from_attributes": True}


class BomResponse(BaseModel):
    hierarchical: List[BomNodeSchema]
    aggregated: List[AggregatedRowSchema]
    total_items: int
    top_level_items: int


class TrackingUpdate(BaseModel):
    serial_number: Optional[str] = None
    batch_number: Optional[str] = None


class TrackingStatisticsSchema(BaseModel):
    total: int
    critical: int
    tracked: int
    untracked_critical: int
    outsourced: int

    model_config = {"from_attributes": True}


class BomExportRequest(BaseModel):
    order: OrderData
    order_info: OrderInfo = Field(default_factory=OrderInfo)


class BuildConfigurationPayload(BaseModel):
    customer: CustomerInfo = Field(default_factory=CustomerInfo)
    configuration: SinkConfiguration
    accessories: List[AccessoryItem] = Field(default_factory=list)


class BuildConfigurationResponse(BuildConfigurationPayload):
    order_id: str
    build_number: str
    updated_at: Optional[datetime] = None


class BomErrorResponse(BaseModel):
    kind: str
    message: str
    problems: List[str] = Field(default_factory=list)
