# app/services/configuration_resolver.py
"""
Order configuration -> root selections.

This stage only consults the mapping tables; it never touches the catalog.
Each selection names one top-level catalog item (kit or assembly), the
structural role that selected it (source) and the aggregation category.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from app.schemas.configuration import (
    AccessoryItem,
    BasinConfiguration,
    OrderData,
    SinkConfiguration,
)
from app.services.bom_errors import BomValidationError, MappingNotFoundError
from app.services.mapping_tables import MappingTables

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RootSelection:
    item_id: str
    quantity: int
    source: str
    category: str
    build_number: Optional[str] = None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_order(order: OrderData) -> None:
    """
    Check mandatory fields across the whole order.

    All problems are collected and raised together as one BomValidationError.
    """
    problems: List[str] = []

    if not order.build_numbers:
        problems.append("order has no build numbers")

    known = set(order.build_numbers)
    seen: set = set()
    for build_number in order.build_numbers:
        if build_number in seen:
            problems.append(f"build {build_number} is listed more than once")
        seen.add(build_number)
    for build_number in order.configurations:
        if build_number not in known:
            problems.append(f"configuration given for unknown build {build_number!r}")
    for build_number in order.accessories:
        if build_number not in known:
            problems.append(f"accessories given for unknown build {build_number!r}")

    for build_number in dict.fromkeys(order.build_numbers):
        config = order.configurations.get(build_number)
        if config is None:
            problems.append(f"build {build_number}: no configuration")
            continue
        if not config.sink_model_id:
            problems.append(f"build {build_number}: sink model is required")
        if config.length is None:
            problems.append(f"build {build_number}: sink length is required")
        if not config.basins:
            problems.append(f"build {build_number}: at least one basin is required")
        for i, basin in enumerate(config.basins, start=1):
            if not basin.basin_type:
                problems.append(f"build {build_number}: basin {i} has no basin type")
        if config.pegboard and config.pegboard_color and not config.pegboard_type:
            problems.append(f"build {build_number}: pegboard color given without a pegboard type")

        for acc in order.accessories.get(build_number, []):
            if acc.quantity <= 0:
                problems.append(
                    f"build {build_number}: accessory {acc.assembly_id} has quantity {acc.quantity}"
                )

    if problems:
        raise BomValidationError(problems)


# ---------------------------------------------------------------------------
# Control box
# ---------------------------------------------------------------------------

def select_control_box(basins: Sequence[BasinConfiguration], tables: MappingTables) -> str:
    """Return the control box id for the basin composition of one build."""
    return tables.control_box_for([b.basin_type for b in basins if b.basin_type])


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def _count_in_order(values: Sequence[str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    return counts


def _resolve_build(
    build_number: str,
    config: SinkConfiguration,
    accessories: Sequence[AccessoryItem],
    tables: MappingTables,
) -> List[RootSelection]:
    roots: List[RootSelection] = []

    def add(item_id: str, source: str, category: str, quantity: int = 1) -> None:
        roots.append(RootSelection(item_id, quantity, source, category, build_number))

    expected = tables.expected_basin_count(config.sink_model_id)
    if len(config.basins) != expected:
        raise BomValidationError([
            f"build {build_number}: sink model {config.sink_model_id} takes "
            f"{expected} basin(s), {len(config.basins)} configured"
        ])

    add(tables.sink_body(config.length), "SINK_BODY", "SINK")

    if config.legs_type_id:
        add(tables.leg_kit(config.legs_type_id), "LEGS", "LEGS")
    if config.feet_type_id:
        add(tables.feet_kit(config.feet_type_id), "FEET", "FEET")

    if config.pegboard:
        add(tables.pegboard.light_kit_id, "PEGBOARD_MANDATORY", "PEGBOARD")
        if config.pegboard_type:
            kit_id = tables.pegboard_kit(config.length, config.pegboard_type, config.pegboard_color)
            add(kit_id, "PEGBOARD_KIT", "PEGBOARD")

    for drawer_id in config.drawers_and_compartments:
        add(tables.drawer_kit(drawer_id), "DRAWER_COMPARTMENT", "DRAWER")

    basin_types = [b.basin_type for b in config.basins]
    type_counts = _count_in_order(basin_types)
    for basin_type, count in type_counts.items():
        add(tables.basin_kit(basin_type), "BASIN_TYPE_KIT", "BASIN", count)

    for basin in config.basins:
        if basin.basin_size_part_number:
            add(tables.basin_size(basin.basin_size_part_number), "BASIN_SIZE_ASSEMBLY", "BASIN")
        for addon_id in basin.addon_ids:
            add(tables.basin_addon(addon_id), "BASIN_ADDON", "BASIN")

    if config.control_box_id:
        if config.control_box_id not in tables.control_box_ids():
            raise MappingNotFoundError("control_box", config.control_box_id)
        control_box_id = config.control_box_id
    else:
        control_box_id = select_control_box(config.basins, tables)
    add(control_box_id, "CONTROL_BOX", "CONTROL")

    for basin_type, count in type_counts.items():
        faucet_id = tables.auto_faucets.get(basin_type)
        if faucet_id:
            add(faucet_id, "FAUCET_AUTO", "FAUCET", count)

    for faucet in config.faucets:
        add(tables.faucet_kit(faucet.faucet_type_id), "FAUCET_KIT", "FAUCET", faucet.quantity)

    for sprayer in config.sprayers:
        add(tables.sprayer_kit(sprayer.sprayer_type_id), "SPRAYER_KIT", "SPRAYER")

    for acc in accessories:
        add(acc.assembly_id, "ACCESSORY", "ACCESSORY", acc.quantity)

    return roots


def resolve_roots(order: OrderData, tables: MappingTables) -> List[RootSelection]:
    """
    Translate an order into its ordered list of root selections.

    Raises BomValidationError for incomplete input and MappingNotFoundError
    for any configuration value without a table entry.
    """
    validate_order(order)

    roots: List[RootSelection] = [
        RootSelection(
            item_id=tables.manual_kit(order.customer.language),
            quantity=1,
            source="SYSTEM",
            category="SYSTEM",
        )
    ]

    for build_number in order.build_numbers:
        config = order.configurations[build_number]
        try:
            build_roots = _resolve_build(
                build_number,
                config,
                order.accessories.get(build_number, []),
                tables,
            )
        except MappingNotFoundError as exc:
            exc.build_number = build_number
            logger.warning("Mapping lookup failed: %s", exc)
            raise

        for root in build_roots:
            logger.debug(
                "build=%s root=%s qty=%s source=%s",
                build_number,
                root.item_id,
                root.quantity,
                root.source,
            )
        roots.extend(build_roots)

    return roots
