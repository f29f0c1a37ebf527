# asset_ledger/routers/assets/asset_master_router.py

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.core.config import Settings
from asset_ledger.core.db import get_db, get_settings
from asset_ledger.models.enums.asset_status import AssetStatus
from asset_ledger.schemas.assets.asset_schemas import (
    AssetMasterCreate,
    AssetMasterOut,
    AssetMasterUpdate,
    AssetRecordCreate,
    AssetRecordFilter,
    AssetRecordOut,
    AssetSetCreate,
    AssetSetOut,
    StockOut,
)
from asset_ledger.services.assets.identity_service import (
    register_asset_master,
    get_asset_master,
    list_asset_masters,
    list_unfinalized_masters,
    finalize_asset_master,
    update_asset_master,
)
from asset_ledger.services.assets.asset_record_service import (
    add_asset_record,
    get_asset_set,
    list_asset_records,
    list_assets,
    register_asset_set,
)
from asset_ledger.services.ledger.balance_service import get_stock
from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer
from asset_ledger.utils.dependencies import get_issuer
from asset_ledger.utils.response import APIResponse, PageData, success_response

router = APIRouter(prefix="/assets", tags=["Asset Masters"])
logger = logging.getLogger(__name__)


@router.post("/masters", response_model=APIResponse[AssetMasterOut], status_code=201)
async def register_asset_master_api(
    payload: AssetMasterCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    issuer: EntryIdIssuer = Depends(get_issuer),
):
    logger.info("Register asset master (category=%s)", payload.category_code)
    master = await register_asset_master(db, payload, issuer=issuer, settings=settings)
    return success_response("Asset master registered successfully", master)


@router.get("/masters", response_model=APIResponse[PageData[AssetMasterOut]])
async def list_asset_masters_api(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    search: str | None = Query(None, description="Search by name, code or manufacturer"),
    category_code: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_asset_masters(
        db,
        search=search,
        category_code=category_code,
        page=page,
        page_size=page_size,
        settings=settings,
    )
    return success_response("Asset masters fetched successfully", data)


# declared before /masters/{asset_key} so it is not captured as a key
@router.get("/masters/unfinalized", response_model=APIResponse[list[AssetMasterOut]])
async def list_unfinalized_masters_api(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    data = await list_unfinalized_masters(db, settings=settings)
    return success_response("Unfinalized asset masters fetched successfully", data)


@router.get("/masters/{asset_key}", response_model=APIResponse[AssetMasterOut])
async def get_asset_master_api(
    asset_key: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    master = await get_asset_master(db, asset_key, settings=settings)
    return success_response("Asset master fetched successfully", master)


@router.patch("/masters/{asset_key}", response_model=APIResponse[AssetMasterOut])
async def update_asset_master_api(
    asset_key: str,
    payload: AssetMasterUpdate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    master = await update_asset_master(db, asset_key, payload, settings=settings)
    return success_response("Asset master updated successfully", master)


@router.post("/masters/{asset_key}/finalize", response_model=APIResponse[AssetMasterOut])
async def finalize_asset_master_api(
    asset_key: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    logger.info("Finalize asset master %s", asset_key)
    master = await finalize_asset_master(db, asset_key, settings=settings)
    return success_response("Asset master finalized successfully", master)


@router.post("/sets", response_model=APIResponse[AssetSetOut], status_code=201)
async def register_asset_set_api(
    payload: AssetSetCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    issuer: EntryIdIssuer = Depends(get_issuer),
):
    data = await register_asset_set(db, payload, issuer=issuer, settings=settings)
    return success_response("Asset set registered successfully", data)


@router.get("/sets/{asset_key}", response_model=APIResponse[AssetSetOut])
async def get_asset_set_api(
    asset_key: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    data = await get_asset_set(db, asset_key, settings=settings)
    return success_response("Asset set fetched successfully", data)


@router.post(
    "/masters/{asset_key}/records",
    response_model=APIResponse[AssetRecordOut],
    status_code=201,
)
async def add_asset_record_api(
    asset_key: str,
    payload: AssetRecordCreate,
    db: AsyncSession = Depends(get_db),
):
    record = await add_asset_record(db, asset_key, payload)
    return success_response("Asset record added successfully", record)


@router.get("/masters/{asset_key}/records", response_model=APIResponse[list[AssetRecordOut]])
async def list_asset_records_api(
    asset_key: str,
    db: AsyncSession = Depends(get_db),
):
    records = await list_asset_records(db, asset_key)
    return success_response("Asset records fetched successfully", records)


@router.get("/masters/{asset_key}/stock", response_model=APIResponse[StockOut])
async def get_stock_api(
    asset_key: str,
    db: AsyncSession = Depends(get_db),
):
    stock = await get_stock(db, asset_key)
    return success_response("Stock fetched successfully", stock)


@router.get("", response_model=APIResponse[PageData[AssetRecordOut]])
async def list_assets_api(
    db: AsyncSession = Depends(get_db),
    search: str | None = Query(None, description="Search by master name, manufacturer or serial"),
    management_code: str | None = Query(None),
    asset_master_id: int | None = Query(None),
    category_code: str | None = Query(None),
    status: AssetStatus | None = Query(None),
    owner: str | None = Query(None),
    location: str | None = Query(None),
    purchased_from: datetime | None = Query(None),
    purchased_to: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    filters = AssetRecordFilter(
        search=search,
        management_code=management_code,
        asset_master_id=asset_master_id,
        category_code=category_code,
        status=status,
        owner=owner,
        location=location,
        purchased_from=purchased_from,
        purchased_to=purchased_to,
    )
    data = await list_assets(db, filters, page=page, page_size=page_size)
    return success_response("Assets fetched successfully", data)
