from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, CheckConstraint, Index, UniqueConstraint
from sqlalchemy.sql import func
from asset_ledger.core.db import Base
from asset_ledger.models.base.mixins import LedgerEntryMixin


class LendEntry(Base, LedgerEntryMixin):
    __tablename__ = "lend_entries"

    id = Column(Integer, primary_key=True)
    lend_uid = Column(String(26), nullable=False, unique=True, index=True)
    asset_master_id = Column(Integer, ForeignKey("asset_masters.id", ondelete="RESTRICT"), nullable=False, index=True)
    asset_record_id = Column(Integer, ForeignKey("asset_records.id", ondelete="RESTRICT"), nullable=False, index=True)
    management_code = Column(String(64), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    borrower_id = Column(String(255), nullable=False, index=True)
    due_on = Column(Date, nullable=True)
    lent_by_id = Column(String(255), nullable=True)
    lent_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    note = Column(String(1000), nullable=True)
    returned = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_lend_entry_quantity_positive"),
        UniqueConstraint("request_token", name="uq_lend_entries_request_token"),
        Index("ix_lend_entry_master_returned", "asset_master_id", "returned"),
    )

    def __repr__(self):
        return f"<LendEntry id={self.id} uid={self.lend_uid} qty={self.quantity} returned={self.returned}>"


class ReturnEntry(Base, LedgerEntryMixin):
    __tablename__ = "return_entries"

    id = Column(Integer, primary_key=True)
    return_uid = Column(String(26), nullable=False, unique=True, index=True)
    lend_id = Column(Integer, ForeignKey("lend_entries.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    processed_by_id = Column(String(255), nullable=True)
    returned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    note = Column(String(1000), nullable=True)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_return_entry_quantity_positive"),
        UniqueConstraint("request_token", name="uq_return_entries_request_token"),
    )

    def __repr__(self):
        return f"<ReturnEntry id={self.id} uid={self.return_uid} lend_id={self.lend_id} qty={self.quantity}>"
