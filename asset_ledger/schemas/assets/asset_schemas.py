# asset_ledger/schemas/assets/asset_schemas.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from asset_ledger.models.enums.asset_status import AssetStatus


# =====================================================
# ASSET MASTER
# =====================================================
class AssetMasterCreate(BaseModel):
    category_code: str = Field(..., max_length=16)
    name: str = Field(..., max_length=255)
    manufacturer: str = Field(..., max_length=255)
    model: Optional[str] = Field(None, max_length=255)


class AssetMasterUpdate(BaseModel):
    # omitted = unchanged, null = clear (nullable fields only), value = set
    name: Optional[str] = Field(None, max_length=255)
    manufacturer: Optional[str] = Field(None, max_length=255)
    model: Optional[str] = Field(None, max_length=255)


class AssetMasterOut(BaseModel):
    id: int
    management_code: str
    category_id: int
    category_code: str
    name: str
    manufacturer: str
    model: Optional[str]
    is_finalized: bool
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# ASSET RECORD
# =====================================================
class AssetRecordCreate(BaseModel):
    serial: Optional[str] = Field(None, max_length=255)
    quantity: int = 1
    purchased_at: datetime
    owner: str = Field(..., max_length=255)
    default_location: str = Field(..., max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    last_checked_at: Optional[datetime] = None
    last_checked_by: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)


class AssetRecordUpdate(BaseModel):
    # quantity and status are ledger-owned and not accepted here
    serial: Optional[str] = Field(None, max_length=255)
    owner: Optional[str] = Field(None, max_length=255)
    default_location: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    purchased_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None
    last_checked_by: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)


class AssetRecordOut(BaseModel):
    id: int
    asset_master_id: int
    management_code: str
    serial: Optional[str]
    quantity: int
    status: AssetStatus
    owner: str
    default_location: str
    location: Optional[str]
    purchased_at: datetime
    last_checked_at: Optional[datetime]
    last_checked_by: Optional[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]


class AssetRecordFilter(BaseModel):
    search: Optional[str] = None
    management_code: Optional[str] = None
    asset_master_id: Optional[int] = None
    category_code: Optional[str] = None
    status: Optional[AssetStatus] = None
    owner: Optional[str] = None
    location: Optional[str] = None
    # half-open range: purchased_from <= purchased_at < purchased_to
    purchased_from: Optional[datetime] = None
    purchased_to: Optional[datetime] = None


# =====================================================
# ASSET SET (MASTER + FIRST RECORD)
# =====================================================
class AssetSetCreate(BaseModel):
    master: AssetMasterCreate
    record: AssetRecordCreate


class AssetSetOut(BaseModel):
    master: AssetMasterOut
    record: AssetRecordOut


# =====================================================
# STOCK
# =====================================================
class StockOut(BaseModel):
    asset_master_id: int
    management_code: str
    on_hand: int
    outstanding_lent: int
    status: AssetStatus
