from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Optional


class LendCreate(BaseModel):
    quantity: int
    borrower_id: str = Field(..., max_length=255)
    due_on: Optional[date] = None
    lent_by_id: Optional[str] = Field(None, max_length=255)
    note: Optional[str] = Field(None, max_length=1000)
    request_token: Optional[str] = Field(None, max_length=64)


class LendOut(BaseModel):
    id: int
    lend_uid: str
    asset_master_id: int
    management_code: str
    quantity: int
    borrower_id: str
    due_on: Optional[date]
    lent_by_id: Optional[str]
    lent_at: datetime
    note: Optional[str]
    returned: bool
    returned_quantity: int
    outstanding_quantity: int


class LendFilter(BaseModel):
    borrower_id: Optional[str] = None
    asset_master_id: Optional[int] = None
    management_code: Optional[str] = None
    returned: Optional[bool] = None


class ReturnCreate(BaseModel):
    quantity: int
    processed_by_id: Optional[str] = Field(None, max_length=255)
    note: Optional[str] = Field(None, max_length=1000)
    request_token: Optional[str] = Field(None, max_length=64)


class ReturnOut(BaseModel):
    id: int
    return_uid: str
    lend_id: int
    lend_uid: str
    quantity: int
    processed_by_id: Optional[str]
    returned_at: datetime
    note: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class ReturnFilter(BaseModel):
    lend_id: Optional[int] = None
    # borrower and asset filters match against the parent lend
    borrower_id: Optional[str] = None
    asset_master_id: Optional[int] = None
    management_code: Optional[str] = None
    processed_by_id: Optional[str] = None
