# asset_ledger/routers/assets/asset_record_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.core.db import get_db
from asset_ledger.schemas.assets.asset_schemas import AssetRecordOut, AssetRecordUpdate
from asset_ledger.services.assets.asset_record_service import (
    get_asset_record,
    update_asset_record,
)
from asset_ledger.utils.response import APIResponse, success_response

router = APIRouter(prefix="/assets/records", tags=["Asset Records"])


@router.get("/{asset_record_id}", response_model=APIResponse[AssetRecordOut])
async def get_asset_record_api(
    asset_record_id: int,
    db: AsyncSession = Depends(get_db),
):
    record = await get_asset_record(db, asset_record_id)
    return success_response("Asset record fetched successfully", record)


@router.patch("/{asset_record_id}", response_model=APIResponse[AssetRecordOut])
async def update_asset_record_api(
    asset_record_id: int,
    payload: AssetRecordUpdate,
    db: AsyncSession = Depends(get_db),
):
    record = await update_asset_record(db, asset_record_id, payload)
    return success_response("Asset record updated successfully", record)
