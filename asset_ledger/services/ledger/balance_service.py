# asset_ledger/services/ledger/balance_service.py
#
# Read-side balance queries. They run on the caller's session, so inside a
# ledger transaction they see the rows that transaction has locked and
# flushed.

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.models.assets.asset_record_models import AssetRecord
from asset_ledger.models.enums.asset_status import AssetStatus
from asset_ledger.models.ledger.lend_models import LendEntry, ReturnEntry
from asset_ledger.schemas.assets.asset_schemas import StockOut
from asset_ledger.services.assets.identity_service import resolve_asset_master
from asset_ledger.utils.store_errors import translate_read_errors


def derive_asset_status(quantity: int, outstanding_lent: int) -> AssetStatus:
    if quantity == 0:
        return AssetStatus.zero_stock
    if outstanding_lent > 0:
        return AssetStatus.lent_out
    return AssetStatus.available


async def returned_total(db: AsyncSession, lend_id: int) -> int:
    total = await db.scalar(
        select(func.coalesce(func.sum(ReturnEntry.quantity), 0)).where(
            ReturnEntry.lend_id == lend_id
        )
    )
    return int(total or 0)


async def outstanding_for_lend(db: AsyncSession, lend_id: int) -> int:
    lent = await db.scalar(
        select(LendEntry.quantity).where(LendEntry.id == lend_id)
    )
    if lent is None:
        return 0
    return lent - await returned_total(db, lend_id)


async def outstanding_for_record(db: AsyncSession, asset_record_id: int) -> int:
    lent = await db.scalar(
        select(func.coalesce(func.sum(LendEntry.quantity), 0)).where(
            LendEntry.asset_record_id == asset_record_id,
            LendEntry.returned.is_(False),
        )
    )
    returned = await db.scalar(
        select(func.coalesce(func.sum(ReturnEntry.quantity), 0))
        .join(LendEntry, LendEntry.id == ReturnEntry.lend_id)
        .where(
            LendEntry.asset_record_id == asset_record_id,
            LendEntry.returned.is_(False),
        )
    )
    return int(lent or 0) - int(returned or 0)


async def outstanding_for_asset(db: AsyncSession, asset_master_id: int) -> int:
    lent = await db.scalar(
        select(func.coalesce(func.sum(LendEntry.quantity), 0)).where(
            LendEntry.asset_master_id == asset_master_id,
            LendEntry.returned.is_(False),
        )
    )
    returned = await db.scalar(
        select(func.coalesce(func.sum(ReturnEntry.quantity), 0))
        .join(LendEntry, LendEntry.id == ReturnEntry.lend_id)
        .where(
            LendEntry.asset_master_id == asset_master_id,
            LendEntry.returned.is_(False),
        )
    )
    return int(lent or 0) - int(returned or 0)


async def stock_for_asset(db: AsyncSession, asset_master_id: int) -> int:
    total = await db.scalar(
        select(func.coalesce(func.sum(AssetRecord.quantity), 0)).where(
            AssetRecord.asset_master_id == asset_master_id
        )
    )
    return int(total or 0)


async def get_stock(db: AsyncSession, asset_key: int | str) -> StockOut:
    async with translate_read_errors(db):
        master = await resolve_asset_master(db, asset_key)

        on_hand = await stock_for_asset(db, master.id)
        outstanding = await outstanding_for_asset(db, master.id)

    return StockOut(
        asset_master_id=master.id,
        management_code=master.management_code,
        on_hand=on_hand,
        outstanding_lent=outstanding,
        status=derive_asset_status(on_hand, outstanding),
    )
