# asset_ledger/services/ledger/stock_ledger.py

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.constants.error_codes import ErrorCode
from asset_ledger.core.exceptions import ConflictError, NotFoundError
from asset_ledger.models.assets.asset_record_models import AssetRecord
from asset_ledger.services.ledger import balance_service

logger = logging.getLogger(__name__)


# =====================================================
# ROW LOCKS
# =====================================================
async def lock_asset_record(db: AsyncSession, asset_master_id: int) -> AssetRecord:
    """Lock the stock row of a master for the rest of the transaction.

    A master may own several records; ledger operations always act on the
    oldest one so concurrent callers queue on the same row.
    """
    record = await db.scalar(
        select(AssetRecord)
        .where(AssetRecord.asset_master_id == asset_master_id)
        .order_by(AssetRecord.id.asc())
        .limit(1)
        .with_for_update()
        .execution_options(populate_existing=True)
    )

    if record is None:
        raise NotFoundError(
            "Asset record not found for asset master",
            ErrorCode.ASSET_RECORD_NOT_FOUND,
        )

    return record


async def lock_asset_record_by_id(db: AsyncSession, asset_record_id: int) -> AssetRecord:
    record = await db.scalar(
        select(AssetRecord)
        .where(AssetRecord.id == asset_record_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )

    if record is None:
        raise NotFoundError(
            "Asset record not found",
            ErrorCode.ASSET_RECORD_NOT_FOUND,
        )

    return record


# =====================================================
# QUANTITY
# =====================================================
def apply_quantity_change(record: AssetRecord, delta: int) -> int:
    """Apply a signed change to a locked record; stock never goes negative."""
    new_quantity = record.quantity + delta

    if new_quantity < 0:
        raise ConflictError(
            "Insufficient stock",
            ErrorCode.INSUFFICIENT_STOCK,
            details={"available": record.quantity, "requested": -delta},
        )

    record.quantity = new_quantity
    return new_quantity


# =====================================================
# DERIVED STATUS (SOFT-FAIL)
# =====================================================
async def refresh_asset_status(db: AsyncSession, record: AssetRecord) -> None:
    """Recompute and persist the record's status inside a savepoint.

    Failures are logged and the savepoint is discarded; the enclosing
    ledger transaction carries on. The next mutation of the record
    recomputes the status again.
    """
    record_id = record.id

    # quantity writes must fail loudly, outside the savepoint
    await db.flush()

    try:
        async with db.begin_nested():
            outstanding = await balance_service.outstanding_for_record(db, record_id)
            status = balance_service.derive_asset_status(record.quantity, outstanding)

            if record.status != status.value:
                record.status = status.value
                await db.flush()

    except SQLAlchemyError:
        logger.warning(
            "Failed to update status of asset record %s; keeping previous status",
            record_id,
            exc_info=True,
        )
