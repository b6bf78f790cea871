import json
from pathlib import Path

import pytest

from app.services.assembly_expander import iter_nodes
from app.services.bom_errors import (
    CatalogIntegrityError,
    CyclicAssemblyError,
    UnknownComponentError,
)
from app.services.bom_service import generate_bom
from app.services.catalog import catalog_from_dict, load_catalog_file

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


def _catalog_with(**assembly_overrides):
    with (FIXTURES_DIR / "catalog.json").open(encoding="utf-8") as f:
        data = json.load(f)
    data["assemblies"].update(assembly_overrides)
    return catalog_from_dict(data)


def test_generate_bom_returns_all_three_views(order, catalog, tables):
    result = generate_bom(order, catalog, tables)

    assert result.top_level_items == 15
    assert result.total_items == 37
    assert result.total_items == sum(1 for _ in iter_nodes(result.hierarchical))
    assert len(result.aggregated) == 17


def test_generate_bom_is_deterministic(order, tables):
    first = generate_bom(order, load_catalog_file(FIXTURES_DIR / "catalog.json"), tables)
    second = generate_bom(order, load_catalog_file(FIXTURES_DIR / "catalog.json"), tables)

    assert repr(first.aggregated) == repr(second.aggregated)


def test_broken_link_aborts_generation(order, tables):
    catalog = _catalog_with(**{
        "T2-BSN-ESK-KIT": {"components": [{"quantity": 1}]},
    })

    with pytest.raises(UnknownComponentError) as exc_info:
        generate_bom(order, catalog, tables)

    assert exc_info.value.parent_id == "T2-BSN-ESK-KIT"
    assert isinstance(exc_info.value, CatalogIntegrityError)


def test_cycle_in_catalog_aborts_generation(order, tables):
    catalog = _catalog_with(**{
        "T2-DL27-LEG-ASSY": {"components": [{"assembly_id": "T2-DL27-KIT", "quantity": 1}]},
    })

    with pytest.raises(CyclicAssemblyError) as exc_info:
        generate_bom(order, catalog, tables)

    assert exc_info.value.cycle == ["T2-DL27-KIT", "T2-DL27-LEG-ASSY", "T2-DL27-KIT"]


def test_custom_category_priority_changes_ordering(order, catalog, tables):
    result = generate_bom(order, catalog, tables, category_priority=["ACCESSORY"])

    assert result.aggregated[0].item_id == "T2-OA-MS-1026"
