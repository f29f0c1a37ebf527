"""
Pytest fixtures for the asset ledger test suite.

Every test gets its own SQLite file under ``tmp_path``; tables are created
with ``Database.init_models()`` and two categories (NW, PC) are seeded.
Async tests run on the anyio plugin with the asyncio backend.
"""

from datetime import datetime

import pytest

from asset_ledger.core.config import Settings
from asset_ledger.core.db import Database
from asset_ledger.models.assets.category_models import AssetCategory
from asset_ledger.schemas.assets.asset_schemas import (
    AssetMasterCreate,
    AssetRecordCreate,
    AssetSetCreate,
)
from asset_ledger.services.assets.asset_record_service import register_asset_set
from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer

CATEGORIES = (
    ("NW", "Network equipment"),
    ("PC", "Computers"),
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        app_env="development",
        db_type="sqlite",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        ledger_tx_timeout_seconds=30,
    )


async def seed_categories(database: Database) -> None:
    await database.init_models()
    async with database.session() as db:
        for code, name in CATEGORIES:
            db.add(AssetCategory(code=code, name=name))
        await db.commit()


@pytest.fixture
async def database(settings, anyio_backend):
    database = Database(settings)
    await seed_categories(database)
    yield database
    await database.dispose()


@pytest.fixture
async def db(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def issuer() -> EntryIdIssuer:
    return EntryIdIssuer()


def asset_set_payload(
    quantity: int = 10,
    category_code: str = "NW",
    name: str = "Switch",
) -> AssetSetCreate:
    return AssetSetCreate(
        master=AssetMasterCreate(
            category_code=category_code,
            name=name,
            manufacturer="Acme",
            model="SW-24",
        ),
        record=AssetRecordCreate(
            quantity=quantity,
            purchased_at=datetime(2024, 4, 1, 9, 0),
            owner="IT",
            default_location="Rack A",
        ),
    )


@pytest.fixture
def make_asset(db, issuer, settings):
    """Register a master with its first record; returns the AssetSetOut."""

    async def _make(quantity: int = 10, category_code: str = "NW", name: str = "Switch"):
        out = await register_asset_set(
            db,
            asset_set_payload(quantity, category_code, name),
            issuer=issuer,
            settings=settings,
        )
        # close the read transaction so other sessions can take the write lock
        await db.rollback()
        return out

    return _make
