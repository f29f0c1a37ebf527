"""Asset records and one-shot asset set registration."""

from datetime import datetime

import pytest
from sqlalchemy import func, select

from asset_ledger.constants.error_codes import ErrorCode
from asset_ledger.core.exceptions import InvalidArgumentError, NotFoundError
from asset_ledger.models.assets.asset_master_models import AssetMaster
from asset_ledger.models.enums.asset_status import AssetStatus
from asset_ledger.schemas.assets.asset_schemas import (
    AssetMasterCreate,
    AssetRecordCreate,
    AssetRecordFilter,
    AssetRecordUpdate,
)
from asset_ledger.services.assets.asset_record_service import (
    add_asset_record,
    get_asset_record,
    get_asset_set,
    list_asset_records,
    list_assets,
    register_asset_set,
    update_asset_record,
)
from asset_ledger.services.assets.identity_service import register_asset_master

from tests.conftest import asset_set_payload

pytestmark = pytest.mark.anyio


def record_payload(**overrides) -> AssetRecordCreate:
    data = {
        "quantity": 3,
        "purchased_at": datetime(2024, 6, 1, 12, 0),
        "owner": "IT",
        "default_location": "Store room",
    }
    data.update(overrides)
    return AssetRecordCreate(**data)


async def test_asset_set_is_finalized_with_first_record(make_asset, settings):
    asset = await make_asset(quantity=4)

    assert asset.master.is_finalized
    assert not asset.master.management_code.startswith(settings.placeholder_code_prefix)
    assert asset.record.asset_master_id == asset.master.id
    assert asset.record.management_code == asset.master.management_code
    assert asset.record.quantity == 4
    assert asset.record.status == AssetStatus.available


async def test_asset_set_with_empty_stock(make_asset):
    asset = await make_asset(quantity=0)
    assert asset.record.status == AssetStatus.zero_stock


async def test_asset_set_failure_writes_nothing(db, issuer, settings):
    payload = asset_set_payload()
    payload.record.owner = ""

    with pytest.raises(InvalidArgumentError):
        await register_asset_set(db, payload, issuer=issuer, settings=settings)

    bad_category = asset_set_payload(category_code="XX")
    with pytest.raises(InvalidArgumentError):
        await register_asset_set(db, bad_category, issuer=issuer, settings=settings)

    assert await db.scalar(select(func.count()).select_from(AssetMaster)) == 0


async def test_add_and_list_records(db, make_asset):
    asset = await make_asset(quantity=2)

    extra = await add_asset_record(db, asset.master.management_code, record_payload(serial="SN-2"))
    assert extra.serial == "SN-2"
    assert extra.quantity == 3

    records = await list_asset_records(db, asset.master.id)
    assert [r.id for r in records] == [asset.record.id, extra.id]


async def test_add_record_validation(db, make_asset):
    asset = await make_asset()

    with pytest.raises(InvalidArgumentError):
        await add_asset_record(db, asset.master.id, record_payload(quantity=-1))

    with pytest.raises(InvalidArgumentError):
        await add_asset_record(db, asset.master.id, record_payload(default_location=" "))

    with pytest.raises(NotFoundError):
        await add_asset_record(db, "PC-20240101-00077", record_payload())


async def test_update_record_metadata(db, make_asset):
    asset = await make_asset()
    await update_asset_record(
        db, asset.record.id, AssetRecordUpdate(location="Desk 4", notes="checked")
    )

    out = await update_asset_record(db, asset.record.id, AssetRecordUpdate(notes=None))
    assert out.location == "Desk 4"
    assert out.notes is None
    assert out.quantity == asset.record.quantity

    with pytest.raises(InvalidArgumentError):
        await update_asset_record(db, asset.record.id, AssetRecordUpdate(owner=None))

    with pytest.raises(InvalidArgumentError):
        await update_asset_record(db, asset.record.id, AssetRecordUpdate(purchased_at=None))


async def test_unknown_record(db):
    with pytest.raises(NotFoundError) as exc:
        await get_asset_record(db, 404)
    assert exc.value.error_code == ErrorCode.ASSET_RECORD_NOT_FOUND

    with pytest.raises(NotFoundError):
        await update_asset_record(db, 404, AssetRecordUpdate(notes="x"))


async def test_list_assets_across_masters(db, make_asset):
    switch = await make_asset(quantity=2, name="Switch")
    laptop = await make_asset(quantity=0, category_code="PC", name="Laptop")
    spare = await add_asset_record(
        db,
        switch.master.id,
        record_payload(serial="SN-77", owner="Ops", location="Rack B"),
    )

    async def ids(**filters):
        page = await list_assets(db, AssetRecordFilter(**filters), page=1, page_size=20)
        return [r.id for r in page.items]

    everything = await list_assets(db, AssetRecordFilter(), page=1, page_size=20)
    assert everything.total == 3
    # newest purchase first
    assert everything.items[0].id == spare.id
    assert everything.items[0].management_code == switch.master.management_code

    assert await ids(category_code="PC") == [laptop.record.id]
    assert await ids(status=AssetStatus.zero_stock) == [laptop.record.id]
    assert await ids(search="sn-77") == [spare.id]
    assert set(await ids(search="switch")) == {switch.record.id, spare.id}
    assert await ids(owner="Ops") == [spare.id]
    assert await ids(location="Rack B") == [spare.id]
    assert set(await ids(management_code=switch.master.management_code)) == {switch.record.id, spare.id}
    assert await ids(asset_master_id=laptop.master.id) == [laptop.record.id]
    assert await ids(purchased_from=datetime(2024, 5, 1)) == [spare.id]
    assert spare.id not in await ids(purchased_to=datetime(2024, 5, 1))

    second = await list_assets(db, AssetRecordFilter(), page=2, page_size=2)
    assert second.total == 3
    assert len(second.items) == 1


async def test_get_asset_set_returns_first_record(db, make_asset, settings):
    asset = await make_asset(quantity=3)
    await add_asset_record(db, asset.master.id, record_payload(serial="SN-2"))

    by_code = await get_asset_set(db, asset.master.management_code, settings=settings)
    assert by_code.master.id == asset.master.id
    assert by_code.record.id == asset.record.id

    by_key = await get_asset_set(db, str(asset.master.id), settings=settings)
    assert by_key.record.id == asset.record.id


async def test_get_asset_set_missing(db, issuer, settings):
    with pytest.raises(NotFoundError) as exc:
        await get_asset_set(db, "NW-20240101-00404", settings=settings)
    assert exc.value.error_code == ErrorCode.ASSET_NOT_FOUND

    bare = await register_asset_master(
        db,
        AssetMasterCreate(category_code="NW", name="Patch panel", manufacturer="Acme"),
        issuer=issuer,
        settings=settings,
    )
    with pytest.raises(NotFoundError) as exc:
        await get_asset_set(db, bare.id, settings=settings)
    assert exc.value.error_code == ErrorCode.ASSET_RECORD_NOT_FOUND
