from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class CustomerInfo(BaseModel):
    language: Literal["EN", "FR", "ES"] = "EN"
    name: Optional[str] = None
    po_number: Optional[str] = None


class BasinConfiguration(BaseModel):
    # Free-form ids: validate_order reports a missing type, the mapping
    # tables reject an unknown one.
    basin_type: Optional[str] = None
    basin_size_part_number: Optional[str] = None
    addon_ids: List[str] = Field(default_factory=list)


class FaucetConfiguration(BaseModel):
    faucet_type_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)


class SprayerConfiguration(BaseModel):
    sprayer_type_id: str = Field(..., min_length=1)
    location: Optional[str] = None


class AccessoryItem(BaseModel):
    assembly_id: str = Field(..., min_length=1)
    quantity: int = 1


class SinkConfiguration(BaseModel):
    sink_model_id: Optional[str] = None
    length: Optional[float] = Field(default=None, gt=0)
    width: Optional[float] = Field(default=None, gt=0)
    legs_type_id: Optional[str] = None
    feet_type_id: Optional[str] = None

    pegboard: bool = False
    pegboard_type: Optional[str] = None
    pegboard_color: Optional[str] = None

    drawers_and_compartments: List[str] = Field(default_factory=list)
    basins: List[BasinConfiguration] = Field(default_factory=list)
    faucets: List[FaucetConfiguration] = Field(default_factory=list)
    sprayers: List[SprayerConfiguration] = Field(default_factory=list)

    control_box_id: Optional[str] = None  # explicit override of the rule table


class OrderData(BaseModel):
    """Everything BOM generation needs for one order (one or more builds)."""

    customer: CustomerInfo = Field(default_factory=CustomerInfo)
    build_numbers: List[str] = Field(default_factory=list)
    configurations: Dict[str, SinkConfiguration] = Field(default_factory=dict)
    accessories: Dict[str, List[AccessoryItem]] = Field(default_factory=dict)
