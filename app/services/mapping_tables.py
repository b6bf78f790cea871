# app/services/mapping_tables.py
"""
Configuration → catalog mapping tables.

The tables are data, loaded from a JSON file at startup (MAPPINGS_PATH), so
that a new leg kit or control box only needs a data change. Every lookup
fails closed with MappingNotFoundError.
"""
from __future__ import annotations

import logging
from collections import Counter
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Literal, Mapping, Optional, Set

from pydantic import BaseModel, Field, model_validator

from app.config import get_settings
from app.services.bom_errors import MappingNotFoundError

logger = logging.getLogger(__name__)


class SinkBodyRange(BaseModel):
    min_length: int
    max_length: int
    assembly_id: str


class PegboardSizeRange(BaseModel):
    min_length: int
    max_length: int
    size: str


class PegboardTables(BaseModel):
    light_kit_id: str
    sizes: List[PegboardSizeRange] = Field(default_factory=list)
    type_codes: Dict[str, str] = Field(default_factory=dict)
    colors: List[str] = Field(default_factory=list)
    kit_template: str = "T2-ADW-PB-{size}-{type_code}-KIT"
    colored_kit_template: str = "T2-ADW-PB-{size}-{color}-{type_code}-KIT"


class ControlBoxRule(BaseModel):
    control_box_id: str
    match: Literal["exact", "fallback"] = "exact"
    composition: Dict[str, int] = Field(default_factory=dict)

    def matches(self, counts: Mapping[str, int]) -> bool:
        if self.match == "exact":
            kinds = set(self.composition) | {k for k, v in counts.items() if v}
            return all(counts.get(k, 0) == self.composition.get(k, 0) for k in kinds)
        # fallback: every listed basin type present at least that many times
        return all(counts.get(k, 0) >= n for k, n in self.composition.items())


class ControlBoxTables(BaseModel):
    count_as: Dict[str, str] = Field(default_factory=dict)
    rules: List[ControlBoxRule] = Field(default_factory=list)


def _in_range(length: float, lo: int, hi: int) -> bool:
    return lo <= length <= hi


class MappingTables(BaseModel):
    manual_kits: Dict[str, str] = Field(default_factory=dict)
    sink_models: Dict[str, int] = Field(default_factory=dict)
    sink_bodies: List[SinkBodyRange] = Field(default_factory=list)
    leg_kits: Dict[str, str] = Field(default_factory=dict)
    feet_kits: Dict[str, str] = Field(default_factory=dict)
    pegboard: PegboardTables
    drawer_kits: Dict[str, str] = Field(default_factory=dict)
    basin_kits: Dict[str, str] = Field(default_factory=dict)
    basin_sizes: Dict[str, str] = Field(default_factory=dict)
    basin_addons: Dict[str, str] = Field(default_factory=dict)
    faucet_kits: Dict[str, str] = Field(default_factory=dict)
    auto_faucets: Dict[str, str] = Field(default_factory=dict)
    sprayer_kits: Dict[str, str] = Field(default_factory=dict)
    control_box: ControlBoxTables = Field(default_factory=ControlBoxTables)

    @model_validator(mode="after")
    def _check_ranges(self) -> "MappingTables":
        for r in [*self.sink_bodies, *self.pegboard.sizes]:
            if r.min_length > r.max_length:
                raise ValueError(
                    f"Length range {r.min_length}-{r.max_length} is inverted"
                )
        return self

    # ------------------------------------------------------------------
    # Simple keyed lookups
    # ------------------------------------------------------------------

    @staticmethod
    def _lookup(table_name: str, table: Mapping[str, str], key: Optional[str]) -> str:
        value = table.get(key) if key is not None else None
        if not value:
            raise MappingNotFoundError(table_name, str(key))
        return value

    def manual_kit(self, language: str) -> str:
        return self._lookup("manual_kits", self.manual_kits, language)

    def expected_basin_count(self, sink_model_id: str) -> int:
        if sink_model_id not in self.sink_models:
            raise MappingNotFoundError("sink_models", sink_model_id)
        return self.sink_models[sink_model_id]

    def leg_kit(self, legs_type_id: str) -> str:
        return self._lookup("leg_kits", self.leg_kits, legs_type_id)

    def feet_kit(self, feet_type_id: str) -> str:
        return self._lookup("feet_kits", self.feet_kits, feet_type_id)

    def drawer_kit(self, drawer_id: str) -> str:
        return self._lookup("drawer_kits", self.drawer_kits, drawer_id)

    def basin_kit(self, basin_type: str) -> str:
        return self._lookup("basin_kits", self.basin_kits, basin_type)

    def basin_size(self, size_part_number: str) -> str:
        return self._lookup("basin_sizes", self.basin_sizes, size_part_number)

    def basin_addon(self, addon_id: str) -> str:
        return self._lookup("basin_addons", self.basin_addons, addon_id)

    def faucet_kit(self, faucet_type_id: str) -> str:
        return self._lookup("faucet_kits", self.faucet_kits, faucet_type_id)

    def sprayer_kit(self, sprayer_type_id: str) -> str:
        return self._lookup("sprayer_kits", self.sprayer_kits, sprayer_type_id)

    # ------------------------------------------------------------------
    # Range / rule driven lookups
    # ------------------------------------------------------------------

    def sink_body(self, length: float) -> str:
        for r in self.sink_bodies:
            if _in_range(length, r.min_length, r.max_length):
                return r.assembly_id
        raise MappingNotFoundError("sink_bodies", f"length={length:g}")

    def pegboard_kit(self, length: float, pegboard_type: str, color: Optional[str] = None) -> str:
        tables = self.pegboard
        size = next(
            (s.size for s in tables.sizes if _in_range(length, s.min_length, s.max_length)),
            None,
        )
        if size is None:
            raise MappingNotFoundError("pegboard_sizes", f"length={length:g}")

        type_code = self._lookup("pegboard_types", tables.type_codes, pegboard_type)

        color = (color or "").strip().upper()
        if not color:
            return tables.kit_template.format(size=size, type_code=type_code)
        if color not in tables.colors:
            raise MappingNotFoundError("pegboard_colors", color)
        return tables.colored_kit_template.format(size=size, color=color, type_code=type_code)

    def basin_counts(self, basin_types: List[str]) -> Dict[str, int]:
        """Count basins per type after folding with count_as."""
        folded = Counter(self.control_box.count_as.get(t, t) for t in basin_types)
        return dict(folded)

    def control_box_for(self, basin_types: List[str]) -> str:
        """
        Pick the control box for a basin composition.

        Exact-composition rules win over fallback rules; within each group the
        table order is the priority order.
        """
        counts = self.basin_counts(basin_types)
        rules = self.control_box.rules
        for group in ("exact", "fallback"):
            for rule in rules:
                if rule.match == group and rule.matches(counts):
                    return rule.control_box_id
        key = ",".join(f"{k}={counts[k]}" for k in sorted(counts))
        raise MappingNotFoundError("control_box", key or "no basins")

    def control_box_ids(self) -> Set[str]:
        return {r.control_box_id for r in self.control_box.rules}


def load_mapping_tables(path: Path) -> MappingTables:
    if not path.is_file():
        raise FileNotFoundError(f"Mapping tables file does not exist: {path}")

    tables = MappingTables.model_validate_json(path.read_text(encoding="utf-8"))
    logger.info(
        "Loaded mapping tables from %s (%d sink bodies, %d control box rules)",
        path,
        len(tables.sink_bodies),
        len(tables.control_box.rules),
    )
    return tables


@lru_cache
def get_mapping_tables() -> MappingTables:
    """Return the mapping tables named by MAPPINGS_PATH, loaded once."""
    return load_mapping_tables(get_settings().resolved_mappings_path())
