from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import RESOURCES_DIR
from app.db.base import Base
from app.db import models  # noqa: F401
from app.schemas.configuration import OrderData
from app.services.bom_cache import bom_cache
from app.services.catalog import load_catalog_file
from app.services.mapping_tables import load_mapping_tables

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def catalog_path():
    return FIXTURES_DIR / "catalog.json"


@pytest.fixture
def catalog(catalog_path):
    return load_catalog_file(catalog_path)


@pytest.fixture
def tables():
    return load_mapping_tables(RESOURCES_DIR / "mappings.json")


@pytest.fixture
def order_payload():
    """Two-basin build that resolves entirely against tests/fixtures/catalog.json."""
    return {
        "customer": {"language": "EN", "name": "Acme Labs", "po_number": "PO-1001"},
        "build_numbers": ["B1"],
        "configurations": {
            "B1": {
                "sink_model_id": "T2-B2",
                "length": 60,
                "legs_type_id": "DL27",
                "feet_type_id": "LEVELING_CASTOR_475",
                "pegboard": True,
                "pegboard_type": "PERFORATED",
                "basins": [
                    {
                        "basin_type": "E_DRAIN",
                        "basin_size_part_number": "T2-ADW-BASIN24X20X8",
                        "addon_ids": ["LIGHT_BUTTON"],
                    },
                    {
                        "basin_type": "E_SINK",
                        "basin_size_part_number": "T2-ADW-BASIN24X20X8",
                    },
                ],
                "faucets": [{"faucet_type_id": "STD_FAUCET_WB", "quantity": 2}],
                "sprayers": [{"sprayer_type_id": "WATERGUN_ROSETTE"}],
            }
        },
        "accessories": {"B1": [{"assembly_id": "T2-OA-MS-1026", "quantity": 2}]},
    }


@pytest.fixture
def order(order_payload):
    return OrderData.model_validate(order_payload)


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False, future=True)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture(autouse=True)
def _clear_bom_cache():
    bom_cache.clear()
    yield
    bom_cache.clear()
