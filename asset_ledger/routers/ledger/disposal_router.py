# asset_ledger/routers/ledger/disposal_router.py

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.core.config import Settings
from asset_ledger.core.db import get_db, get_settings
from asset_ledger.schemas.ledger.disposal_schemas import (
    DisposalCreate,
    DisposalFilter,
    DisposalOut,
)
from asset_ledger.services.ledger.disposal_service import (
    create_disposal,
    get_disposal,
    list_disposals,
)
from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer
from asset_ledger.utils.dependencies import get_issuer
from asset_ledger.utils.response import APIResponse, PageData, success_response

router = APIRouter(tags=["Disposals"])
logger = logging.getLogger(__name__)


@router.post("/assets/{asset_key}/disposals", response_model=APIResponse[DisposalOut], status_code=201)
async def create_disposal_api(
    asset_key: str,
    payload: DisposalCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    issuer: EntryIdIssuer = Depends(get_issuer),
):
    logger.info("Dispose %s x%s", asset_key, payload.quantity)
    disposal = await create_disposal(db, asset_key, payload, issuer=issuer, settings=settings)
    return success_response("Disposal recorded successfully", disposal)


@router.get("/disposals", response_model=APIResponse[PageData[DisposalOut]])
async def list_disposals_api(
    db: AsyncSession = Depends(get_db),
    asset_master_id: int | None = Query(None),
    management_code: str | None = Query(None),
    processed_by_id: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    filters = DisposalFilter(
        asset_master_id=asset_master_id,
        management_code=management_code,
        processed_by_id=processed_by_id,
    )
    data = await list_disposals(db, filters, page=page, page_size=page_size)
    return success_response("Disposals fetched successfully", data)


@router.get("/disposals/{identifier}", response_model=APIResponse[DisposalOut])
async def get_disposal_api(
    identifier: str,
    db: AsyncSession = Depends(get_db),
):
    disposal = await get_disposal(db, identifier)
    return success_response("Disposal fetched successfully", disposal)
