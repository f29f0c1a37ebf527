# asset_ledger/routers/ledger/lend_router.py

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.core.config import Settings
from asset_ledger.core.db import get_db, get_settings
from asset_ledger.schemas.ledger.lend_schemas import (
    LendCreate,
    LendFilter,
    LendOut,
    ReturnCreate,
    ReturnFilter,
    ReturnOut,
)
from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer
from asset_ledger.services.ledger.lend_service import (
    create_lend,
    create_return,
    get_lend,
    get_return,
    list_lends,
    list_returns,
    list_returns_for_lend,
)
from asset_ledger.utils.dependencies import get_issuer
from asset_ledger.utils.response import APIResponse, PageData, success_response

router = APIRouter(tags=["Lends"])
logger = logging.getLogger(__name__)


# =========================
# LEND
# =========================
@router.post("/assets/{asset_key}/lends", response_model=APIResponse[LendOut], status_code=201)
async def create_lend_api(
    asset_key: str,
    payload: LendCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    issuer: EntryIdIssuer = Depends(get_issuer),
):
    logger.info("Lend %s x%s", asset_key, payload.quantity)
    lend = await create_lend(db, asset_key, payload, issuer=issuer, settings=settings)
    return success_response("Lend recorded successfully", lend)


@router.get("/lends", response_model=APIResponse[PageData[LendOut]])
async def list_lends_api(
    db: AsyncSession = Depends(get_db),
    borrower_id: str | None = Query(None),
    asset_master_id: int | None = Query(None),
    management_code: str | None = Query(None),
    returned: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    filters = LendFilter(
        borrower_id=borrower_id,
        asset_master_id=asset_master_id,
        management_code=management_code,
        returned=returned,
    )
    data = await list_lends(db, filters, page=page, page_size=page_size)
    return success_response("Lends fetched successfully", data)


@router.get("/lends/{identifier}", response_model=APIResponse[LendOut])
async def get_lend_api(
    identifier: str,
    db: AsyncSession = Depends(get_db),
):
    lend = await get_lend(db, identifier)
    return success_response("Lend fetched successfully", lend)


# =========================
# RETURN
# =========================
@router.post("/lends/{identifier}/returns", response_model=APIResponse[ReturnOut], status_code=201)
async def create_return_api(
    identifier: str,
    payload: ReturnCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    issuer: EntryIdIssuer = Depends(get_issuer),
):
    logger.info("Return against lend %s x%s", identifier, payload.quantity)
    ret = await create_return(db, identifier, payload, issuer=issuer, settings=settings)
    return success_response("Return recorded successfully", ret)


@router.get("/lends/{identifier}/returns", response_model=APIResponse[PageData[ReturnOut]])
async def list_returns_for_lend_api(
    identifier: str,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_returns_for_lend(db, identifier, page=page, page_size=page_size)
    return success_response("Returns fetched successfully", data)


@router.get("/returns", response_model=APIResponse[PageData[ReturnOut]])
async def list_returns_api(
    db: AsyncSession = Depends(get_db),
    lend_id: int | None = Query(None),
    borrower_id: str | None = Query(None),
    asset_master_id: int | None = Query(None),
    management_code: str | None = Query(None),
    processed_by_id: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    filters = ReturnFilter(
        lend_id=lend_id,
        borrower_id=borrower_id,
        asset_master_id=asset_master_id,
        management_code=management_code,
        processed_by_id=processed_by_id,
    )
    data = await list_returns(db, filters, page=page, page_size=page_size)
    return success_response("Returns fetched successfully", data)


@router.get("/returns/{identifier}", response_model=APIResponse[ReturnOut])
async def get_return_api(
    identifier: str,
    db: AsyncSession = Depends(get_db),
):
    ret = await get_return(db, identifier)
    return success_response("Return fetched successfully", ret)
