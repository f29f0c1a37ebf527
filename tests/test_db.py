import asyncio

import pytest
from sqlalchemy import func, select

from asset_ledger.constants.error_codes import ErrorCode
from asset_ledger.core.db import ledger_deadline
from asset_ledger.core.exceptions import InternalError
from asset_ledger.models.assets.category_models import AssetCategory

pytestmark = pytest.mark.anyio


async def test_deadline_rolls_back_pending_writes(db):
    with pytest.raises(InternalError) as exc:
        async with ledger_deadline(db, 0.05):
            db.add(AssetCategory(code="TMP", name="Temporary"))
            await db.flush()
            await asyncio.sleep(1)

    assert exc.value.error_code == ErrorCode.DEADLINE_EXCEEDED
    assert await db.scalar(
        select(func.count()).select_from(AssetCategory).where(AssetCategory.code == "TMP")
    ) == 0


async def test_deadline_passes_results_through(db):
    async with ledger_deadline(db, 5):
        count = await db.scalar(select(func.count()).select_from(AssetCategory))
    assert count == 2


async def test_init_models_refused_outside_development(settings):
    from asset_ledger.core.config import Settings
    from asset_ledger.core.db import Database

    staging = Settings(
        app_env="staging", db_type="sqlite", database_url=settings.database_url
    )
    database = Database(staging)
    try:
        with pytest.raises(RuntimeError):
            await database.init_models()
    finally:
        await database.dispose()


def test_models_map_plain_columns_only():
    from sqlalchemy import inspect

    from asset_ledger.models import (
        AssetMaster,
        AssetRecord,
        DisposalEntry,
        LendEntry,
        ReturnEntry,
    )

    for model in (AssetCategory, AssetMaster, AssetRecord, LendEntry, ReturnEntry, DisposalEntry):
        assert not inspect(model).relationships, model.__name__
