# asset_ledger/services/ledger/disposal_service.py

import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.constants.error_codes import ErrorCode
from asset_ledger.core.config import Settings
from asset_ledger.core.db import ledger_deadline
from asset_ledger.core.exceptions import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
)
from asset_ledger.models.ledger.disposal_models import DisposalEntry
from asset_ledger.schemas.ledger.disposal_schemas import (
    DisposalCreate,
    DisposalFilter,
    DisposalOut,
)
from asset_ledger.services.assets.identity_service import resolve_asset_master
from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer, is_entry_id
from asset_ledger.services.ledger.stock_ledger import (
    apply_quantity_change,
    lock_asset_record,
    refresh_asset_status,
)
from asset_ledger.utils.keys import parse_surrogate_key
from asset_ledger.utils.response import PageData, offset_for
from asset_ledger.utils.store_errors import translate_read_errors, translate_store_errors

logger = logging.getLogger(__name__)


def _map_disposal(disposal: DisposalEntry) -> DisposalOut:
    return DisposalOut(
        id=disposal.id,
        disposal_uid=disposal.disposal_uid,
        asset_master_id=disposal.asset_master_id,
        management_code=disposal.management_code,
        quantity=disposal.quantity,
        reason=disposal.reason,
        processed_by_id=disposal.processed_by_id,
        disposed_at=disposal.disposed_at,
    )


# =====================================================
# DISPOSE
# =====================================================
async def create_disposal(
    db: AsyncSession,
    asset_key: int | str,
    payload: DisposalCreate,
    *,
    issuer: EntryIdIssuer,
    settings: Settings,
) -> DisposalOut:
    if payload.quantity <= 0:
        raise InvalidArgumentError("quantity must be > 0")

    disposal_uid = issuer.new_id()

    async with ledger_deadline(db, settings.ledger_tx_timeout_seconds):
        async with translate_store_errors(
            db,
            on_integrity=ConflictError("Duplicate disposal request", ErrorCode.DUPLICATE_REQUEST),
        ):
            master = await resolve_asset_master(db, asset_key)

            record = await lock_asset_record(db, master.id)
            remaining = apply_quantity_change(record, -payload.quantity)

            disposal = DisposalEntry(
                disposal_uid=disposal_uid,
                asset_master_id=master.id,
                asset_record_id=record.id,
                management_code=master.management_code,
                quantity=payload.quantity,
                reason=payload.reason,
                processed_by_id=payload.processed_by_id,
                request_token=payload.request_token,
            )
            db.add(disposal)
            await db.flush()
            result = _map_disposal(disposal)

            await refresh_asset_status(db, record)

            await db.commit()

    logger.info(
        "Disposal %s: %s x%s (remaining=%s)",
        disposal_uid,
        result.management_code,
        payload.quantity,
        remaining,
    )
    return result


# =====================================================
# READ
# =====================================================
async def get_disposal(db: AsyncSession, identifier: int | str) -> DisposalOut:
    disposal_id = parse_surrogate_key(identifier)
    if disposal_id is not None:
        clause = DisposalEntry.id == disposal_id
    elif isinstance(identifier, str) and is_entry_id(identifier):
        clause = DisposalEntry.disposal_uid == identifier.upper()
    else:
        raise InvalidArgumentError("disposal identifier must be a numeric id or a ULID")

    async with translate_read_errors(db):
        disposal = await db.scalar(select(DisposalEntry).where(clause))
    if not disposal:
        raise NotFoundError("Disposal not found", ErrorCode.DISPOSAL_NOT_FOUND)

    return _map_disposal(disposal)


async def list_disposals(
    db: AsyncSession,
    filters: DisposalFilter,
    *,
    page: int,
    page_size: int,
) -> PageData[DisposalOut]:
    conditions = []

    if filters.asset_master_id is not None:
        conditions.append(DisposalEntry.asset_master_id == filters.asset_master_id)

    if filters.management_code:
        conditions.append(DisposalEntry.management_code == filters.management_code)

    if filters.processed_by_id:
        conditions.append(DisposalEntry.processed_by_id == filters.processed_by_id)

    async with translate_read_errors(db):
        total = await db.scalar(
            select(func.count()).select_from(DisposalEntry).where(*conditions)
        )

        disposals = (
            await db.execute(
                select(DisposalEntry)
                .where(*conditions)
                .order_by(DisposalEntry.disposed_at.desc(), DisposalEntry.id.desc())
                .offset(offset_for(page, page_size))
                .limit(page_size)
            )
        ).scalars().all()

    return PageData[DisposalOut](
        total=total or 0,
        page=page,
        page_size=page_size,
        items=[_map_disposal(d) for d in disposals],
    )
