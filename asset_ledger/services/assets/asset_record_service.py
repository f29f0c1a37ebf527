# asset_ledger/services/assets/asset_record_service.py

import logging

from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.constants.error_codes import ErrorCode
from asset_ledger.core.config import Settings
from asset_ledger.core.exceptions import (
    AppException,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from asset_ledger.models.assets.asset_master_models import AssetMaster
from asset_ledger.models.assets.category_models import AssetCategory
from asset_ledger.models.assets.asset_record_models import AssetRecord
from asset_ledger.models.enums.asset_status import AssetStatus
from asset_ledger.schemas.assets.asset_schemas import (
    AssetRecordCreate,
    AssetRecordFilter,
    AssetRecordOut,
    AssetRecordUpdate,
    AssetSetCreate,
    AssetSetOut,
)
from asset_ledger.services.assets.identity_service import (
    load_asset_master_out,
    finalize_management_code,
    insert_placeholder_master,
    resolve_asset_master,
)
from asset_ledger.services.ledger.balance_service import derive_asset_status
from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer
from asset_ledger.utils.response import PageData, offset_for
from asset_ledger.utils.store_errors import translate_read_errors

logger = logging.getLogger(__name__)

REQUIRED_RECORD_FIELDS = ("owner", "default_location")


# =====================================================
# MAPPER
# =====================================================
def _map_record(record: AssetRecord, management_code: str) -> AssetRecordOut:
    return AssetRecordOut(
        id=record.id,
        asset_master_id=record.asset_master_id,
        management_code=management_code,
        serial=record.serial,
        quantity=record.quantity,
        status=AssetStatus(record.status),
        owner=record.owner,
        default_location=record.default_location,
        location=record.location,
        purchased_at=record.purchased_at,
        last_checked_at=record.last_checked_at,
        last_checked_by=record.last_checked_by,
        notes=record.notes,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


async def _load_record_out(db: AsyncSession, asset_record_id: int) -> AssetRecordOut:
    async with translate_read_errors(db):
        row = (
            await db.execute(
                select(AssetRecord, AssetMaster.management_code)
                .join(AssetMaster, AssetMaster.id == AssetRecord.asset_master_id)
                .where(AssetRecord.id == asset_record_id)
                .execution_options(populate_existing=True)
            )
        ).first()

    if not row:
        raise NotFoundError("Asset record not found", ErrorCode.ASSET_RECORD_NOT_FOUND)

    record, management_code = row
    return _map_record(record, management_code)


# =====================================================
# VALIDATION
# =====================================================
def _validate_record_payload(payload: AssetRecordCreate) -> None:
    if payload.quantity < 0:
        raise InvalidArgumentError("quantity must be >= 0")

    for field in REQUIRED_RECORD_FIELDS:
        if not (getattr(payload, field) or "").strip():
            raise InvalidArgumentError(f"{field} required")


def _new_record(asset_master_id: int, payload: AssetRecordCreate) -> AssetRecord:
    # a fresh record has no lends, so only its quantity decides the status
    status = derive_asset_status(payload.quantity, 0)

    return AssetRecord(
        asset_master_id=asset_master_id,
        serial=payload.serial,
        quantity=payload.quantity,
        status=status.value,
        owner=payload.owner.strip(),
        default_location=payload.default_location.strip(),
        location=payload.location,
        purchased_at=payload.purchased_at,
        last_checked_at=payload.last_checked_at,
        last_checked_by=payload.last_checked_by,
        notes=payload.notes,
    )


# =====================================================
# CREATE
# =====================================================
async def add_asset_record(
    db: AsyncSession,
    asset_key: int | str,
    payload: AssetRecordCreate,
) -> AssetRecordOut:
    _validate_record_payload(payload)

    async with translate_read_errors(db):
        master = await resolve_asset_master(db, asset_key)
    record = _new_record(master.id, payload)
    db.add(record)

    try:
        await db.flush()
        record_id = record.id
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Store failure while adding asset record")
        raise InternalError() from exc

    logger.info("Added asset record %s to master %s (qty=%s)", record_id, master.id, payload.quantity)
    return await _load_record_out(db, record_id)


async def register_asset_set(
    db: AsyncSession,
    payload: AssetSetCreate,
    *,
    issuer: EntryIdIssuer,
    settings: Settings,
) -> AssetSetOut:
    """Master insert, code finalization and first record in ONE transaction."""
    _validate_record_payload(payload.record)

    try:
        master, placeholder = await insert_placeholder_master(
            db, payload.master, issuer=issuer, settings=settings
        )
        master_id = master.id

        await finalize_management_code(db, master_id, placeholder, settings=settings)

        record = _new_record(master_id, payload.record)
        db.add(record)
        await db.flush()
        record_id = record.id

        await db.commit()
    except AppException:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Store failure while registering asset set")
        raise InternalError() from exc

    logger.info("Registered asset set master=%s record=%s", master_id, record_id)

    return AssetSetOut(
        master=await load_asset_master_out(db, master_id, settings),
        record=await _load_record_out(db, record_id),
    )


# =====================================================
# READ
# =====================================================
async def get_asset_record(db: AsyncSession, asset_record_id: int) -> AssetRecordOut:
    return await _load_record_out(db, asset_record_id)


async def list_asset_records(db: AsyncSession, asset_key: int | str) -> list[AssetRecordOut]:
    async with translate_read_errors(db):
        master = await resolve_asset_master(db, asset_key)

        records = (
            await db.execute(
                select(AssetRecord)
                .where(AssetRecord.asset_master_id == master.id)
                .order_by(AssetRecord.id.asc())
            )
        ).scalars().all()

    return [_map_record(r, master.management_code) for r in records]


async def list_assets(
    db: AsyncSession,
    filters: AssetRecordFilter,
    *,
    page: int,
    page_size: int,
) -> PageData[AssetRecordOut]:
    """Records across every master, newest purchase first."""
    conditions = []

    if filters.search:
        conditions.append(
            or_(
                AssetMaster.name.ilike(f"%{filters.search}%"),
                AssetMaster.manufacturer.ilike(f"%{filters.search}%"),
                AssetRecord.serial.ilike(f"%{filters.search}%"),
            )
        )

    if filters.management_code:
        conditions.append(AssetMaster.management_code == filters.management_code)

    if filters.asset_master_id is not None:
        conditions.append(AssetRecord.asset_master_id == filters.asset_master_id)

    if filters.category_code:
        conditions.append(AssetCategory.code == filters.category_code)

    if filters.status is not None:
        conditions.append(AssetRecord.status == filters.status.value)

    if filters.owner:
        conditions.append(AssetRecord.owner == filters.owner)

    if filters.location:
        conditions.append(AssetRecord.location == filters.location)

    if filters.purchased_from is not None:
        conditions.append(AssetRecord.purchased_at >= filters.purchased_from)

    if filters.purchased_to is not None:
        conditions.append(AssetRecord.purchased_at < filters.purchased_to)

    base = (
        select(AssetRecord, AssetMaster.management_code)
        .join(AssetMaster, AssetMaster.id == AssetRecord.asset_master_id)
        .join(AssetCategory, AssetCategory.id == AssetMaster.category_id)
        .where(*conditions)
    )

    async with translate_read_errors(db):
        total = await db.scalar(
            select(func.count()).select_from(base.subquery())
        )

        rows = (
            await db.execute(
                base.order_by(AssetRecord.purchased_at.desc(), AssetRecord.id.desc())
                .offset(offset_for(page, page_size))
                .limit(page_size)
            )
        ).all()

    return PageData[AssetRecordOut](
        total=total or 0,
        page=page,
        page_size=page_size,
        items=[_map_record(r, code) for r, code in rows],
    )


async def get_asset_set(
    db: AsyncSession,
    asset_key: int | str,
    *,
    settings: Settings,
) -> AssetSetOut:
    """A master together with its first (oldest) record."""
    async with translate_read_errors(db):
        master = await resolve_asset_master(db, asset_key)

        record_id = await db.scalar(
            select(AssetRecord.id)
            .where(AssetRecord.asset_master_id == master.id)
            .order_by(AssetRecord.id.asc())
            .limit(1)
        )
        if record_id is None:
            raise NotFoundError("Asset set not found", ErrorCode.ASSET_RECORD_NOT_FOUND)

        return AssetSetOut(
            master=await load_asset_master_out(db, master.id, settings),
            record=await _load_record_out(db, record_id),
        )


# =====================================================
# UPDATE (METADATA ONLY)
# =====================================================
async def update_asset_record(
    db: AsyncSession,
    asset_record_id: int,
    payload: AssetRecordUpdate,
) -> AssetRecordOut:
    async with translate_read_errors(db):
        exists = await db.scalar(
            select(AssetRecord.id).where(AssetRecord.id == asset_record_id)
        )
    if not exists:
        raise NotFoundError("Asset record not found", ErrorCode.ASSET_RECORD_NOT_FOUND)

    # omitted = unchanged, explicit null = clear, value = set
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise InvalidArgumentError("No changes detected")

    for field in REQUIRED_RECORD_FIELDS:
        if field in updates:
            value = (updates[field] or "").strip()
            if not value:
                raise InvalidArgumentError(f"{field} cannot be cleared")
            updates[field] = value

    if "purchased_at" in updates and updates["purchased_at"] is None:
        raise InvalidArgumentError("purchased_at cannot be cleared")

    try:
        await db.execute(
            update(AssetRecord)
            .where(AssetRecord.id == asset_record_id)
            .values(**updates)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError() from exc

    logger.info("Updated asset record %s fields %s", asset_record_id, sorted(updates))
    return await _load_record_out(db, asset_record_id)
