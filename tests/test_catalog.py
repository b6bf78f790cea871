import pytest

from app.db.models import Assembly, AssemblyComponent, Part
from app.services.bom_errors import AmbiguousComponentError
from app.services.catalog import (
    AssemblyCatalogEntry,
    PartCatalogEntry,
    audit_catalog,
    catalog_from_dict,
    load_catalog,
    seed_catalog,
)


def test_catalog_file_loads_parts_and_ordered_links(catalog):
    assert "HW-SCREW-M6" in catalog
    assert isinstance(catalog.resolve("T2-BODY-48-60-HA"), AssemblyCatalogEntry)
    assert isinstance(catalog.resolve("OHL-LIGHT"), PartCatalogEntry)
    assert catalog.resolve("NOPE") is None

    links = catalog.components("T2-BODY-48-60-HA")
    assert [(l.child_id, l.quantity) for l in links] == [
        ("BODY-FRAME-48-60", 1),
        ("HW-SCREW-M6", 8),
    ]

    light = catalog.get_part("OHL-LIGHT")
    assert light.requires_tracking is True
    assert light.manufacturer_name == "Acme Lighting"


def test_components_of_unknown_assembly_raises_key_error(catalog):
    with pytest.raises(KeyError):
        catalog.components("OHL-LIGHT")


def test_resolve_rejects_id_in_both_tables():
    snapshot = catalog_from_dict({
        "parts": {"X": {"name": "part"}},
        "assemblies": {"X": {"name": "assembly"}},
    })

    with pytest.raises(AmbiguousComponentError):
        snapshot.resolve("X")


def test_seed_then_load_round_trips_through_the_database(db_session, catalog):
    result = seed_catalog(db_session, catalog)

    assert result.parts_created == len(catalog.parts)
    assert result.assemblies_created == len(catalog.assemblies)
    assert db_session.query(Part).count() == len(catalog.parts)

    loaded = load_catalog(db_session)

    assert set(loaded.parts) == set(catalog.parts)
    assert set(loaded.assemblies) == set(catalog.assemblies)
    assert [
        (l.child_part_id, l.child_assembly_id, l.quantity)
        for l in loaded.components("T2-DL27-KIT")
    ] == [(None, "T2-DL27-LEG-ASSY", 4)]
    assert loaded.get_part("CTRL-PCB").is_outsourced is True


def test_seed_is_idempotent_and_replaces_component_lists(db_session):
    first = catalog_from_dict({
        "parts": {"P": {"name": "P"}, "Q": {"name": "Q"}},
        "assemblies": {"A": {"name": "A", "components": [
            {"part_id": "P", "quantity": 1},
            {"part_id": "Q", "quantity": 2},
        ]}},
    })
    second = catalog_from_dict({
        "parts": {"P": {"name": "P renamed"}, "Q": {"name": "Q"}},
        "assemblies": {"A": {"name": "A", "components": [{"part_id": "Q", "quantity": 5}]}},
    })

    seed_catalog(db_session, first)
    result = seed_catalog(db_session, second)

    assert result.parts_created == 0
    assert result.parts_updated == 2
    assert result.assemblies_updated == 1
    assert db_session.query(AssemblyComponent).count() == 1
    assert db_session.get(Part, "P").name == "P renamed"

    loaded = load_catalog(db_session)
    assert [(l.child_id, l.quantity) for l in loaded.components("A")] == [("Q", 5)]


def test_broken_link_survives_seeding(db_session):
    snapshot = catalog_from_dict({
        "assemblies": {"A": {"name": "A", "components": [{"quantity": 1}]}},
    })

    seed_catalog(db_session, snapshot)
    loaded = load_catalog(db_session)

    (link,) = loaded.components("A")
    assert link.child_id is None
    assert db_session.get(Assembly, "A") is not None


def test_audit_of_clean_catalog_is_ok(catalog):
    report = audit_catalog(catalog)

    assert report.ok
    assert report.broken_links == []
    assert report.cycles == []


def test_audit_collects_every_defect():
    snapshot = catalog_from_dict({
        "parts": {"P": {"name": "P"}, "X": {"name": "X"}},
        "assemblies": {
            "A": {"components": [
                {"quantity": 1},
                {"part_id": "GHOST", "quantity": 1},
                {"part_id": "P", "quantity": 0},
            ]},
            "B": {"components": [{"assembly_id": "C", "quantity": 1}]},
            "C": {"components": [{"assembly_id": "B", "quantity": 1}]},
            "X": {"components": []},
        },
    })

    report = audit_catalog(snapshot)

    assert not report.ok
    assert report.broken_links == [("A", None), ("A", "GHOST")]
    assert report.invalid_quantities == [("A", "P", 0)]
    assert report.ambiguous_ids == ["X"]
    assert report.empty_assemblies == ["X"]
    assert report.cycles == [["B", "C", "B"]]
