import pytest

from app.config import get_settings
from app.schemas.configuration import AccessoryItem, CustomerInfo, SinkConfiguration
from app.services import bom_service
from app.services.assembly_expander import iter_nodes
from app.services.bom_cache import BomCache, bom_cache, configuration_fingerprint
from app.services.catalog import seed_catalog
from app.services.configuration_store import (
    get_configuration,
    list_builds,
    save_configuration,
)
from app.services.tracking import attach_tracking


def _save(db, order, build_number="B1", order_id="ORD-1", **config_overrides):
    config = order.configurations["B1"].model_copy(update=config_overrides)
    return save_configuration(
        db,
        order_id,
        build_number,
        order.customer,
        config,
        order.accessories.get("B1", []),
    )


def test_save_and_get_configuration(db_session, order):
    row = _save(db_session, order)

    assert row.id is not None
    loaded = get_configuration(db_session, "ORD-1", "B1")

    assert loaded.build_numbers == ["B1"]
    assert loaded.customer == order.customer
    assert loaded.configurations["B1"] == order.configurations["B1"]
    assert loaded.accessories["B1"] == [AccessoryItem(assembly_id="T2-OA-MS-1026", quantity=2)]


def test_save_replaces_existing_build(db_session, order):
    first = _save(db_session, order)
    second = _save(db_session, order, legs_type_id="DL14")

    assert first.id == second.id
    assert get_configuration(db_session, "ORD-1", "B1").configurations["B1"].legs_type_id == "DL14"


def test_missing_configuration_is_none(db_session):
    assert get_configuration(db_session, "ORD-404", "B1") is None


def test_list_builds(db_session, order):
    _save(db_session, order, build_number="B2")
    _save(db_session, order, build_number="B1")
    _save(db_session, order, build_number="B9", order_id="ORD-2")

    assert list_builds(db_session, "ORD-1") == ["B1", "B2"]


def test_fingerprint_ignores_key_order_but_not_values():
    a = SinkConfiguration(sink_model_id="T2-B1", length=60)
    b = SinkConfiguration.model_validate({"length": 60, "sink_model_id": "T2-B1"})
    c = SinkConfiguration(sink_model_id="T2-B1", length=61)

    assert configuration_fingerprint(a) == configuration_fingerprint(b)
    assert configuration_fingerprint(a) != configuration_fingerprint(c)
    assert len(configuration_fingerprint(a)) == 64


def test_cache_miss_on_changed_fingerprint():
    cache = BomCache()
    cache.put("ORD-1", "B1", "aaa", "result")

    assert cache.get("ORD-1", "B1", "aaa") == "result"
    assert cache.get("ORD-1", "B1", "bbb") is None
    assert cache.get("ORD-1", "B2", "aaa") is None


def test_cache_invalidate_one_build_or_whole_order():
    cache = BomCache()
    cache.put("ORD-1", "B1", "f", 1)
    cache.put("ORD-1", "B2", "f", 2)
    cache.put("ORD-2", "B1", "f", 3)

    assert cache.invalidate("ORD-1", "B1") == 1
    assert len(cache) == 2
    assert cache.invalidate("ORD-1") == 1
    assert len(cache) == 1


def test_generate_for_build_uses_cache_until_configuration_changes(db_session, order, catalog, tables):
    if not get_settings().bom_cache_enabled:
        pytest.skip("BOM cache disabled by environment")
    seed_catalog(db_session, catalog)
    _save(db_session, order)

    first = bom_service.generate_bom_for_build(db_session, "ORD-1", "B1", tables)
    second = bom_service.generate_bom_for_build(db_session, "ORD-1", "B1", tables)
    assert second is not first
    assert repr(second.aggregated) == repr(first.aggregated)
    assert len(bom_cache) == 1

    _save(db_session, order, legs_type_id="DL27")
    assert len(bom_cache) == 0

    third = bom_service.generate_bom_for_build(db_session, "ORD-1", "B1", tables)
    assert third is not first
    assert repr(third.aggregated) == repr(first.aggregated)


def test_tracking_on_one_result_does_not_reach_the_next_request(db_session, order, catalog, tables):
    if not get_settings().bom_cache_enabled:
        pytest.skip("BOM cache disabled by environment")
    seed_catalog(db_session, catalog)
    _save(db_session, order)

    first = bom_service.generate_bom_for_build(db_session, "ORD-1", "B1", tables)
    pcb = next(n for n in iter_nodes(first.hierarchical) if n.item_id == "CTRL-PCB")
    attach_tracking(pcb, serial_number="SN-X")

    second = bom_service.generate_bom_for_build(db_session, "ORD-1", "B1", tables)
    pcb_again = next(n for n in iter_nodes(second.hierarchical) if n.item_id == "CTRL-PCB")
    assert pcb_again.serial_number is None
    assert pcb_again is not pcb


def test_cache_hands_out_copies():
    cache = BomCache()
    stored = {"rows": [1, 2]}
    cache.put("ORD-1", "B1", "f", stored)
    stored["rows"].append(3)

    got = cache.get("ORD-1", "B1", "f")
    got["rows"].append(4)

    assert cache.get("ORD-1", "B1", "f") == {"rows": [1, 2]}


def test_generate_for_unknown_build_is_none(db_session, tables):
    assert bom_service.generate_bom_for_build(db_session, "ORD-1", "B1", tables) is None


def test_customer_language_is_stored(db_session, order):
    save_configuration(
        db_session,
        "ORD-3",
        "B1",
        CustomerInfo(language="FR"),
        order.configurations["B1"],
    )

    assert get_configuration(db_session, "ORD-3", "B1").customer.language == "FR"
