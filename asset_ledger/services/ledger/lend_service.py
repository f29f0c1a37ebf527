# asset_ledger/services/ledger/lend_service.py

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
from asset_ledger.models.ledger.lend_models import LendEntry, ReturnEntry
from asset_ledger.schemas.ledger.lend_schemas import (
    LendCreate,
    LendFilter,
    LendOut,
    ReturnCreate,
    ReturnFilter,
    ReturnOut,
)
from asset_ledger.services.assets.identity_service import resolve_asset_master
from asset_ledger.services.ledger.balance_service import returned_total
from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer, is_entry_id
from asset_ledger.services.ledger.stock_ledger import (
    apply_quantity_change,
    lock_asset_record,
    lock_asset_record_by_id,
    refresh_asset_status,
)
from asset_ledger.utils.keys import parse_surrogate_key
from asset_ledger.utils.response import PageData, offset_for
from asset_ledger.utils.store_errors import translate_read_errors, translate_store_errors

logger = logging.getLogger(__name__)


# =====================================================
# MAPPERS
# =====================================================
def _map_lend(lend: LendEntry, returned_quantity: int) -> LendOut:
    return LendOut(
        id=lend.id,
        lend_uid=lend.lend_uid,
        asset_master_id=lend.asset_master_id,
        management_code=lend.management_code,
        quantity=lend.quantity,
        borrower_id=lend.borrower_id,
        due_on=lend.due_on,
        lent_by_id=lend.lent_by_id,
        lent_at=lend.lent_at,
        note=lend.note,
        returned=lend.returned,
        returned_quantity=returned_quantity,
        outstanding_quantity=max(lend.quantity - returned_quantity, 0),
    )


def _map_return(ret: ReturnEntry, lend_uid: str) -> ReturnOut:
    return ReturnOut(
        id=ret.id,
        return_uid=ret.return_uid,
        lend_id=ret.lend_id,
        lend_uid=lend_uid,
        quantity=ret.quantity,
        processed_by_id=ret.processed_by_id,
        returned_at=ret.returned_at,
        note=ret.note,
    )


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


# =====================================================
# LOOKUPS (id or ULID)
# =====================================================
def _lend_key_clause(identifier: int | str):
    lend_id = parse_surrogate_key(identifier)
    if lend_id is not None:
        return LendEntry.id == lend_id
    if isinstance(identifier, str) and is_entry_id(identifier):
        return LendEntry.lend_uid == identifier.upper()
    raise InvalidArgumentError("lend identifier must be a numeric id or a ULID")


async def _find_lend(
    db: AsyncSession,
    identifier: int | str,
    *,
    for_update: bool = False,
) -> LendEntry:
    stmt = (
        select(LendEntry)
        .where(_lend_key_clause(identifier))
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    lend = await db.scalar(stmt)
    if not lend:
        raise NotFoundError("Lend not found", ErrorCode.LEND_NOT_FOUND)
    return lend


# =====================================================
# LEND
# =====================================================
async def create_lend(
    db: AsyncSession,
    asset_key: int | str,
    payload: LendCreate,
    *,
    issuer: EntryIdIssuer,
    settings: Settings,
) -> LendOut:
    if payload.quantity <= 0:
        raise InvalidArgumentError("quantity must be > 0")

    borrower_id = (payload.borrower_id or "").strip()
    if not borrower_id:
        raise InvalidArgumentError("borrower_id is required")

    lend_uid = issuer.new_id()

    async with ledger_deadline(db, settings.ledger_tx_timeout_seconds):
        async with translate_store_errors(
            db,
            on_integrity=ConflictError("Duplicate lend request", ErrorCode.DUPLICATE_REQUEST),
        ):
            master = await resolve_asset_master(db, asset_key)

            # ---- lock + validate + decrement ----
            record = await lock_asset_record(db, master.id)
            remaining = apply_quantity_change(record, -payload.quantity)

            # ---- ledger entry (lent_at from the store) ----
            lend = LendEntry(
                lend_uid=lend_uid,
                asset_master_id=master.id,
                asset_record_id=record.id,
                management_code=master.management_code,
                quantity=payload.quantity,
                borrower_id=borrower_id,
                due_on=payload.due_on,
                lent_by_id=_blank_to_none(payload.lent_by_id),
                note=_blank_to_none(payload.note),
                returned=False,
                request_token=payload.request_token,
            )
            db.add(lend)
            await db.flush()

            result = _map_lend(lend, returned_quantity=0)

            # ---- derived status (soft-fail) ----
            await refresh_asset_status(db, record)

            await db.commit()

    logger.info(
        "Lend %s: %s x%s to %s (remaining=%s)",
        lend_uid,
        result.management_code,
        payload.quantity,
        borrower_id,
        remaining,
    )
    return result


# =====================================================
# RETURN
# =====================================================
async def create_return(
    db: AsyncSession,
    lend_identifier: int | str,
    payload: ReturnCreate,
    *,
    issuer: EntryIdIssuer,
    settings: Settings,
) -> ReturnOut:
    if payload.quantity <= 0:
        raise InvalidArgumentError("quantity must be > 0")

    return_uid = issuer.new_id()

    async with ledger_deadline(db, settings.ledger_tx_timeout_seconds):
        async with translate_store_errors(
            db,
            on_integrity=ConflictError("Duplicate return request", ErrorCode.DUPLICATE_REQUEST),
        ):
            # lend row first, then the stock row; lends only ever take the stock row
            lend = await _find_lend(db, lend_identifier, for_update=True)

            outstanding = lend.quantity - await returned_total(db, lend.id)
            if payload.quantity > outstanding:
                raise ConflictError(
                    "Over return",
                    ErrorCode.OVER_RETURN,
                    details={"outstanding": outstanding, "requested": payload.quantity},
                )

            record = await lock_asset_record_by_id(db, lend.asset_record_id)
            apply_quantity_change(record, payload.quantity)

            ret = ReturnEntry(
                return_uid=return_uid,
                lend_id=lend.id,
                quantity=payload.quantity,
                processed_by_id=_blank_to_none(payload.processed_by_id),
                note=_blank_to_none(payload.note),
                request_token=payload.request_token,
            )
            db.add(ret)

            if outstanding - payload.quantity == 0:
                lend.returned = True

            await db.flush()
            result = _map_return(ret, lend.lend_uid)

            await refresh_asset_status(db, record)

            await db.commit()

    logger.info(
        "Return %s against lend %s: x%s (outstanding=%s)",
        return_uid,
        result.lend_uid,
        payload.quantity,
        outstanding - payload.quantity,
    )
    return result


# =====================================================
# READ
# =====================================================
async def get_lend(db: AsyncSession, identifier: int | str) -> LendOut:
    async with translate_read_errors(db):
        lend = await _find_lend(db, identifier)
        return _map_lend(lend, await returned_total(db, lend.id))


def _returned_sums_subquery():
    return (
        select(
            ReturnEntry.lend_id.label("lend_id"),
            func.sum(ReturnEntry.quantity).label("returned_quantity"),
        )
        .group_by(ReturnEntry.lend_id)
        .subquery()
    )


async def list_lends(
    db: AsyncSession,
    filters: LendFilter,
    *,
    page: int,
    page_size: int,
) -> PageData[LendOut]:
    conditions = []

    if filters.borrower_id:
        conditions.append(LendEntry.borrower_id == filters.borrower_id)

    if filters.asset_master_id is not None:
        conditions.append(LendEntry.asset_master_id == filters.asset_master_id)

    if filters.management_code:
        conditions.append(LendEntry.management_code == filters.management_code)

    if filters.returned is not None:
        conditions.append(LendEntry.returned.is_(filters.returned))

    sums = _returned_sums_subquery()

    async with translate_read_errors(db):
        total = await db.scalar(
            select(func.count()).select_from(LendEntry).where(*conditions)
        )

        rows = (
            await db.execute(
                select(LendEntry, func.coalesce(sums.c.returned_quantity, 0))
                .outerjoin(sums, sums.c.lend_id == LendEntry.id)
                .where(*conditions)
                .order_by(LendEntry.lent_at.desc(), LendEntry.id.desc())
                .offset(offset_for(page, page_size))
                .limit(page_size)
            )
        ).all()

    return PageData[LendOut](
        total=total or 0,
        page=page,
        page_size=page_size,
        items=[_map_lend(lend, int(returned)) for lend, returned in rows],
    )


async def list_returns_for_lend(
    db: AsyncSession,
    identifier: int | str,
    *,
    page: int,
    page_size: int,
) -> PageData[ReturnOut]:
    async with translate_read_errors(db):
        lend = await _find_lend(db, identifier)

        total = await db.scalar(
            select(func.count())
            .select_from(ReturnEntry)
            .where(ReturnEntry.lend_id == lend.id)
        )

        returns = (
            await db.execute(
                select(ReturnEntry)
                .where(ReturnEntry.lend_id == lend.id)
                .order_by(ReturnEntry.returned_at.desc(), ReturnEntry.id.desc())
                .offset(offset_for(page, page_size))
                .limit(page_size)
            )
        ).scalars().all()

    return PageData[ReturnOut](
        total=total or 0,
        page=page,
        page_size=page_size,
        items=[_map_return(r, lend.lend_uid) for r in returns],
    )


async def list_returns(
    db: AsyncSession,
    filters: ReturnFilter,
    *,
    page: int,
    page_size: int,
) -> PageData[ReturnOut]:
    conditions = []

    if filters.lend_id is not None:
        conditions.append(ReturnEntry.lend_id == filters.lend_id)

    if filters.borrower_id:
        conditions.append(LendEntry.borrower_id == filters.borrower_id)

    if filters.asset_master_id is not None:
        conditions.append(LendEntry.asset_master_id == filters.asset_master_id)

    if filters.management_code:
        conditions.append(LendEntry.management_code == filters.management_code)

    if filters.processed_by_id:
        conditions.append(ReturnEntry.processed_by_id == filters.processed_by_id)

    async with translate_read_errors(db):
        total = await db.scalar(
            select(func.count())
            .select_from(ReturnEntry)
            .join(LendEntry, LendEntry.id == ReturnEntry.lend_id)
            .where(*conditions)
        )

        rows = (
            await db.execute(
                select(ReturnEntry, LendEntry.lend_uid)
                .join(LendEntry, LendEntry.id == ReturnEntry.lend_id)
                .where(*conditions)
                .order_by(ReturnEntry.returned_at.desc(), ReturnEntry.id.desc())
                .offset(offset_for(page, page_size))
                .limit(page_size)
            )
        ).all()

    return PageData[ReturnOut](
        total=total or 0,
        page=page,
        page_size=page_size,
        items=[_map_return(ret, lend_uid) for ret, lend_uid in rows],
    )


async def get_return(db: AsyncSession, identifier: int | str) -> ReturnOut:
    return_id = parse_surrogate_key(identifier)
    if return_id is not None:
        clause = ReturnEntry.id == return_id
    elif isinstance(identifier, str) and is_entry_id(identifier):
        clause = ReturnEntry.return_uid == identifier.upper()
    else:
        raise InvalidArgumentError("return identifier must be a numeric id or a ULID")

    async with translate_read_errors(db):
        row = (
            await db.execute(
                select(ReturnEntry, LendEntry.lend_uid)
                .join(LendEntry, LendEntry.id == ReturnEntry.lend_id)
                .where(clause)
            )
        ).first()

    if not row:
        raise NotFoundError("Return not found", ErrorCode.RETURN_NOT_FOUND)

    ret, lend_uid = row
    return _map_return(ret, lend_uid)
