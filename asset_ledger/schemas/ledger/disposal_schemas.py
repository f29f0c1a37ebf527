from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class DisposalCreate(BaseModel):
    quantity: int
    reason: Optional[str] = Field(None, max_length=1000)
    processed_by_id: Optional[str] = Field(None, max_length=255)
    request_token: Optional[str] = Field(None, max_length=64)


class DisposalOut(BaseModel):
    id: int
    disposal_uid: str
    asset_master_id: int
    management_code: str
    quantity: int
    reason: Optional[str]
    processed_by_id: Optional[str]
    disposed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DisposalFilter(BaseModel):
    asset_master_id: Optional[int] = None
    management_code: Optional[str] = None
    processed_by_id: Optional[str] = None
