import pytest

from app.services.assembly_expander import expand_roots, iter_nodes
from app.services.configuration_resolver import resolve_roots
from app.services.tracking import (
    TrackingError,
    apply_stored_tracking,
    attach_tracking,
    find_node,
    parse_item_path,
    record_tracking,
    tracking_statistics,
)


def _forest(order, catalog, tables):
    return expand_roots(resolve_roots(order, tables), catalog)


def _node(forest, item_id):
    return next(n for n in iter_nodes(forest) if n.item_id == item_id)


def test_attach_serial_to_tracked_part(order, catalog, tables):
    forest = _forest(order, catalog, tables)
    pcb = _node(forest, "CTRL-PCB")

    attach_tracking(pcb, serial_number=" SN-0001 ")

    assert pcb.serial_number == "SN-0001"
    assert pcb.batch_number is None


def test_untracked_node_is_rejected(order, catalog, tables):
    forest = _forest(order, catalog, tables)

    with pytest.raises(TrackingError):
        attach_tracking(_node(forest, "HW-SCREW-M6"), batch_number="LOT-7")


def test_empty_values_are_rejected(order, catalog, tables):
    forest = _forest(order, catalog, tables)

    with pytest.raises(TrackingError):
        attach_tracking(_node(forest, "CTRL-PCB"), serial_number="  ")


def test_statistics(order, catalog, tables):
    forest = _forest(order, catalog, tables)
    attach_tracking(_node(forest, "OHL-LIGHT"), batch_number="LOT-1")

    stats = tracking_statistics(forest)

    assert stats.total == 37
    # OHL-LIGHT, BSN-DRAIN-VALVE, CTRL-PCB
    assert stats.critical == 3
    assert stats.tracked == 1
    assert stats.untracked_critical == 2
    assert stats.outsourced == 1


PCB_PATH = ("T2-CTRL-EDR1-ESK1", "CTRL-PCB")


def test_item_path_parsing_ignores_outer_slashes():
    assert parse_item_path("/T2-CTRL-EDR1-ESK1/CTRL-PCB/") == PCB_PATH


def test_find_node_by_path(order, catalog, tables):
    forest = _forest(order, catalog, tables)

    assert find_node(forest, PCB_PATH).item_id == "CTRL-PCB"
    assert find_node(forest, ("T2-CTRL-EDR1-ESK1", "NOPE")) is None


def test_recorded_tracking_is_applied_to_a_fresh_tree(db_session, order, catalog, tables):
    forest = _forest(order, catalog, tables)
    node = record_tracking(db_session, "ORD-1", "B1", forest, PCB_PATH, serial_number="SN-42")
    assert node.serial_number == "SN-42"

    fresh = _forest(order, catalog, tables)
    assert find_node(fresh, PCB_PATH).serial_number is None

    assert apply_stored_tracking(db_session, "ORD-1", "B1", fresh) == 1
    assert find_node(fresh, PCB_PATH).serial_number == "SN-42"
    assert apply_stored_tracking(db_session, "ORD-1", "B2", _forest(order, catalog, tables)) == 0


def test_recording_again_replaces_the_stored_numbers(db_session, order, catalog, tables):
    forest = _forest(order, catalog, tables)
    record_tracking(db_session, "ORD-1", "B1", forest, PCB_PATH, serial_number="SN-1")
    record_tracking(db_session, "ORD-1", "B1", forest, PCB_PATH, batch_number="LOT-9")

    fresh = _forest(order, catalog, tables)
    apply_stored_tracking(db_session, "ORD-1", "B1", fresh)

    pcb = find_node(fresh, PCB_PATH)
    assert (pcb.serial_number, pcb.batch_number) == ("SN-1", "LOT-9")


def test_rejected_tracking_is_not_stored(db_session, order, catalog, tables):
    forest = _forest(order, catalog, tables)
    screw_path = _node(forest, "HW-SCREW-M6").path

    with pytest.raises(TrackingError):
        record_tracking(db_session, "ORD-1", "B1", forest, screw_path, serial_number="SN-1")

    assert apply_stored_tracking(db_session, "ORD-1", "B1", _forest(order, catalog, tables)) == 0


def test_unknown_path_records_nothing(db_session, order, catalog, tables):
    forest = _forest(order, catalog, tables)

    assert record_tracking(db_session, "ORD-1", "B1", forest, ("GHOST",), serial_number="SN-1") is None