import json

from app.schemas.bom import OrderInfo
from app.services.assembly_expander import expand_roots
from app.services.bom_export import flatten_for_export, to_nested
from app.services.catalog import catalog_from_dict
from app.services.configuration_resolver import RootSelection, resolve_roots


def _small_forest():
    catalog = catalog_from_dict({
        "parts": {
            "P": {"name": "Pin", "manufacturer_info": "Acme", "manufacturer_part_number": "AC-1"},
            "Q": {"name": "Plate"},
        },
        "assemblies": {
            "A": {"name": "Frame", "components": [
                {"assembly_id": "B", "quantity": 2},
                {"part_id": "Q", "quantity": 1},
            ]},
            "B": {"name": "Hinge", "components": [{"part_id": "P", "quantity": 3}]},
        },
    })
    return expand_roots([RootSelection("A", 1, "SINK_BODY", "SINK", "B1")], catalog)


def test_rows_are_pre_ordered_with_parent_links():
    export = flatten_for_export(_small_forest(), OrderInfo(order_id="ORD-1"))

    assert [(r.level, r.id, r.quantity, r.parent_id) for r in export.items] == [
        (0, "A", 1, None),
        (1, "B", 2, "A"),
        (2, "P", 6, "B"),
        (1, "Q", 1, "A"),
    ]
    pin = export.items[2]
    assert pin.parent_name == "Hinge"
    assert pin.manufacturer == "Acme"
    assert pin.manufacturer_part_number == "AC-1"
    assert pin.unit_of_measure == "EA"
    assert pin.has_children is False
    assert export.items[0].has_children is True


def test_summary_counts():
    export = flatten_for_export(_small_forest())

    summary = export.summary
    assert summary.total_items == 4
    assert summary.total_quantity == 1 + 2 + 6 + 1
    assert summary.max_depth == 2
    assert summary.items_by_level == {0: 1, 1: 2, 2: 1}
    assert summary.assemblies_count == 2
    assert summary.parts_count == 2


def test_order_info_defaults():
    export = flatten_for_export([], None)

    info = export.order_info
    assert info.order_id == "N/A"
    assert info.customer_name == "Unknown Customer"
    assert info.build_numbers == ["Unknown"]
    assert info.project_name == "CleanStation BOM"
    assert info.order_date
    assert export.items == []


def test_order_info_is_kept():
    info = OrderInfo(
        order_id="ORD-9",
        customer_name="Acme Labs",
        order_date="2026-01-31",
        build_numbers=["B1", "B2"],
        project_name="Lab 4",
    )

    assert flatten_for_export([], info).order_info == info


def test_export_matches_total_items(order, catalog, tables):
    forest = expand_roots(resolve_roots(order, tables), catalog)

    export = flatten_for_export(forest)

    assert export.summary.total_items == 37
    assert sum(1 for r in export.items if r.level == 0) == 15


def test_to_nested_is_json_ready():
    nested = to_nested(_small_forest())

    assert nested[0]["id"] == "A"
    assert [c["id"] for c in nested[0]["children"]] == ["B", "Q"]
    assert nested[0]["children"][0]["children"][0]["quantity"] == 6
    json.dumps(nested)
