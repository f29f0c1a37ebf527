# asset_ledger/services/assets/identity_service.py
#
# Asset master identity: a master is inserted under a collision-free
# placeholder code, then rewritten once to
# <category-code>-<creation-date>-<zero-padded id> with an update that is
# conditioned on the placeholder still being in place.

import logging
from datetime import datetime

from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.constants.error_codes import ErrorCode
from asset_ledger.core.config import Settings
from asset_ledger.core.exceptions import (
    AppException,
    ConflictError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from asset_ledger.models.assets.asset_master_models import AssetMaster
from asset_ledger.models.assets.category_models import AssetCategory
from asset_ledger.schemas.assets.asset_schemas import (
    AssetMasterCreate,
    AssetMasterOut,
    AssetMasterUpdate,
)
from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer
from asset_ledger.utils.keys import parse_surrogate_key
from asset_ledger.utils.response import PageData, offset_for
from asset_ledger.utils.store_errors import translate_read_errors

logger = logging.getLogger(__name__)

REQUIRED_MASTER_FIELDS = ("name", "manufacturer")


# =====================================================
# CODE FORMAT
# =====================================================
def build_management_code(
    category_code: str,
    created_at: datetime,
    asset_master_id: int,
    pad_width: int,
) -> str:
    return f"{category_code}-{created_at:%Y%m%d}-{asset_master_id:0{pad_width}d}"


def new_placeholder_code(issuer: EntryIdIssuer, settings: Settings) -> str:
    return f"{settings.placeholder_code_prefix}{issuer.new_id()}"


def is_placeholder_code(code: str, settings: Settings) -> bool:
    return code.startswith(settings.placeholder_code_prefix)


# =====================================================
# MAPPER
# =====================================================
def _map_master(master: AssetMaster, category_code: str, settings: Settings) -> AssetMasterOut:
    return AssetMasterOut(
        id=master.id,
        management_code=master.management_code,
        category_id=master.category_id,
        category_code=category_code,
        name=master.name,
        manufacturer=master.manufacturer,
        model=master.model,
        is_finalized=not is_placeholder_code(master.management_code, settings),
        created_at=master.created_at,
        updated_at=master.updated_at,
    )


async def load_asset_master_out(db: AsyncSession, asset_master_id: int, settings: Settings) -> AssetMasterOut:
    async with translate_read_errors(db):
        row = (
            await db.execute(
                select(AssetMaster, AssetCategory.code)
                .join(AssetCategory, AssetCategory.id == AssetMaster.category_id)
                .where(AssetMaster.id == asset_master_id)
                .execution_options(populate_existing=True)
            )
        ).first()

    if not row:
        raise NotFoundError("Asset master not found", ErrorCode.ASSET_NOT_FOUND)

    master, category_code = row
    return _map_master(master, category_code, settings)


# =====================================================
# RESOLVE
# =====================================================
async def resolve_asset_master(db: AsyncSession, asset_key: int | str) -> AssetMaster:
    """Find a master by surrogate key (int or ASCII-digit string) or management code."""
    master_id = parse_surrogate_key(asset_key)

    if master_id is not None:
        master = await db.scalar(
            select(AssetMaster)
            .where(AssetMaster.id == master_id)
            .execution_options(populate_existing=True)
        )
    elif isinstance(asset_key, int):
        # an int outside the key range cannot name a row
        master = None
    else:
        code = (asset_key or "").strip()
        if not code:
            raise InvalidArgumentError("asset master id or management code is required")
        master = await db.scalar(
            select(AssetMaster)
            .where(AssetMaster.management_code == code)
            .execution_options(populate_existing=True)
        )

    if not master:
        raise NotFoundError("Asset master not found", ErrorCode.ASSET_NOT_FOUND)

    return master


async def _resolve_category(db: AsyncSession, category_code: str) -> AssetCategory:
    code = (category_code or "").strip()
    if not code:
        raise InvalidArgumentError("category_code is required")

    category = await db.scalar(
        select(AssetCategory).where(AssetCategory.code == code)
    )
    if not category:
        raise InvalidArgumentError(
            "Invalid category_code",
            ErrorCode.CATEGORY_INVALID,
        )
    return category


def _validate_master_payload(payload: AssetMasterCreate) -> None:
    missing = [
        field
        for field in REQUIRED_MASTER_FIELDS
        if not (getattr(payload, field) or "").strip()
    ]
    if missing:
        raise InvalidArgumentError(
            f"{', '.join(missing)} required",
            details={"missing": missing},
        )


# =====================================================
# PLACEHOLDER INSERT + CONDITIONAL FINALIZE
# =====================================================
async def insert_placeholder_master(
    db: AsyncSession,
    payload: AssetMasterCreate,
    *,
    issuer: EntryIdIssuer,
    settings: Settings,
) -> tuple[AssetMaster, str]:
    """Step 1: insert under a placeholder code. Does not commit."""
    _validate_master_payload(payload)
    category = await _resolve_category(db, payload.category_code)

    placeholder = new_placeholder_code(issuer, settings)

    master = AssetMaster(
        management_code=placeholder,
        category_id=category.id,
        name=payload.name.strip(),
        manufacturer=payload.manufacturer.strip(),
        model=payload.model,
    )
    db.add(master)

    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        # Tell a vanished category apart from a placeholder collision.
        category_exists = await db.scalar(
            select(AssetCategory.id).where(AssetCategory.id == category.id)
        )
        if not category_exists:
            raise InvalidArgumentError(
                "Invalid category_code",
                ErrorCode.CATEGORY_INVALID,
            ) from exc
        raise ConflictError(
            "management_code already exists",
            ErrorCode.CODE_CONFLICT,
        ) from exc

    return master, placeholder


async def finalize_management_code(
    db: AsyncSession,
    asset_master_id: int,
    placeholder: str,
    *,
    settings: Settings,
) -> str:
    """Steps 2-3: compute the final code and swap it in. Does not commit.

    The update only matches while the row still holds ``placeholder``;
    zero matched rows means someone else changed it and is a Conflict.
    """
    row = (
        await db.execute(
            select(AssetMaster.created_at, AssetCategory.code)
            .join(AssetCategory, AssetCategory.id == AssetMaster.category_id)
            .where(AssetMaster.id == asset_master_id)
        )
    ).first()

    if not row:
        raise ConflictError(
            "Asset master vanished before finalization",
            ErrorCode.CODE_CONFLICT,
        )

    final_code = build_management_code(
        row.code,
        row.created_at,
        asset_master_id,
        settings.management_code_pad_width,
    )

    try:
        updated_id = (
            await db.execute(
                update(AssetMaster)
                .where(
                    AssetMaster.id == asset_master_id,
                    AssetMaster.management_code == placeholder,
                )
                .values(management_code=final_code)
                .returning(AssetMaster.id)
                .execution_options(synchronize_session=False)
            )
        ).scalar_one_or_none()
    except IntegrityError as exc:
        raise ConflictError(
            "Final management_code already taken",
            ErrorCode.CODE_CONFLICT,
        ) from exc

    if updated_id is None:
        raise ConflictError(
            "Conflict while finalizing management_code",
            ErrorCode.CODE_CONFLICT,
        )

    return final_code


# =====================================================
# REGISTER
# =====================================================
async def register_asset_master(
    db: AsyncSession,
    payload: AssetMasterCreate,
    *,
    issuer: EntryIdIssuer,
    settings: Settings,
) -> AssetMasterOut:
    # ---- step 1: placeholder row, committed on its own ----
    try:
        master, placeholder = await insert_placeholder_master(
            db, payload, issuer=issuer, settings=settings
        )
        master_id = master.id
        await db.commit()
    except AppException:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Store failure while inserting asset master")
        raise InternalError() from exc

    # ---- steps 2-3: conditional finalize ----
    # On failure the row stays under its placeholder for an operator to
    # reconcile (see list_unfinalized_masters / finalize_asset_master).
    try:
        final_code = await finalize_management_code(
            db, master_id, placeholder, settings=settings
        )
        await db.commit()
    except ConflictError:
        await db.rollback()
        logger.warning(
            "Asset master %s left unfinalized under %s",
            master_id,
            placeholder,
        )
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Store failure while finalizing asset master %s", master_id)
        raise InternalError() from exc

    logger.info("Registered asset master %s as %s", master_id, final_code)

    # ---- step 4 ----
    return await load_asset_master_out(db, master_id, settings)


async def finalize_asset_master(
    db: AsyncSession,
    asset_key: int | str,
    *,
    settings: Settings,
) -> AssetMasterOut:
    """Operator-driven retry of the finalize step for one unfinalized master."""
    async with translate_read_errors(db):
        master = await resolve_asset_master(db, asset_key)
    master_id = master.id
    placeholder = master.management_code

    if not is_placeholder_code(placeholder, settings):
        raise ConflictError(
            "management_code already finalized",
            ErrorCode.CODE_CONFLICT,
        )

    try:
        final_code = await finalize_management_code(
            db, master_id, placeholder, settings=settings
        )
        await db.commit()
    except AppException:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError() from exc

    logger.info("Finalized asset master %s as %s", master_id, final_code)
    return await load_asset_master_out(db, master_id, settings)


# =====================================================
# READ
# =====================================================
async def get_asset_master(
    db: AsyncSession,
    asset_key: int | str,
    *,
    settings: Settings,
) -> AssetMasterOut:
    async with translate_read_errors(db):
        master = await resolve_asset_master(db, asset_key)
        return await load_asset_master_out(db, master.id, settings)


async def list_asset_masters(
    db: AsyncSession,
    *,
    search: str | None,
    category_code: str | None,
    page: int,
    page_size: int,
    settings: Settings,
) -> PageData[AssetMasterOut]:
    filters = []

    if search:
        filters.append(
            or_(
                AssetMaster.name.ilike(f"%{search}%"),
                AssetMaster.management_code.ilike(f"%{search}%"),
                AssetMaster.manufacturer.ilike(f"%{search}%"),
            )
        )

    if category_code:
        filters.append(AssetCategory.code == category_code)

    base = (
        select(AssetMaster, AssetCategory.code)
        .join(AssetCategory, AssetCategory.id == AssetMaster.category_id)
        .where(*filters)
    )

    async with translate_read_errors(db):
        total = await db.scalar(
            select(func.count()).select_from(base.subquery())
        )

        rows = (
            await db.execute(
                base.order_by(AssetMaster.id.desc())
                .offset(offset_for(page, page_size))
                .limit(page_size)
            )
        ).all()

    return PageData[AssetMasterOut](
        total=total or 0,
        page=page,
        page_size=page_size,
        items=[_map_master(m, code, settings) for m, code in rows],
    )


async def list_unfinalized_masters(
    db: AsyncSession,
    *,
    settings: Settings,
) -> list[AssetMasterOut]:
    async with translate_read_errors(db):
        rows = (
            await db.execute(
                select(AssetMaster, AssetCategory.code)
                .join(AssetCategory, AssetCategory.id == AssetMaster.category_id)
                .where(
                    AssetMaster.management_code.startswith(
                        settings.placeholder_code_prefix, autoescape=True
                    )
                )
                .order_by(AssetMaster.id.asc())
            )
        ).all()

    return [_map_master(m, code, settings) for m, code in rows]


# =====================================================
# UPDATE (METADATA ONLY)
# =====================================================
async def update_asset_master(
    db: AsyncSession,
    asset_key: int | str,
    payload: AssetMasterUpdate,
    *,
    settings: Settings,
) -> AssetMasterOut:
    async with translate_read_errors(db):
        master = await resolve_asset_master(db, asset_key)
    master_id = master.id

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise InvalidArgumentError("No changes detected")

    for field in REQUIRED_MASTER_FIELDS:
        if field in updates:
            value = (updates[field] or "").strip()
            if not value:
                raise InvalidArgumentError(f"{field} cannot be cleared")
            updates[field] = value

    try:
        await db.execute(
            update(AssetMaster)
            .where(AssetMaster.id == master_id)
            .values(**updates)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError() from exc

    logger.info("Updated asset master %s fields %s", master_id, sorted(updates))
    return await load_asset_master_out(db, master_id, settings)
