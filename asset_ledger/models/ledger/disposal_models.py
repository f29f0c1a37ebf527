from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.sql import func
from asset_ledger.core.db import Base
from asset_ledger.models.base.mixins import LedgerEntryMixin


class DisposalEntry(Base, LedgerEntryMixin):
    __tablename__ = "disposal_entries"

    id = Column(Integer, primary_key=True)
    disposal_uid = Column(String(26), nullable=False, unique=True, index=True)
    asset_master_id = Column(Integer, ForeignKey("asset_masters.id", ondelete="RESTRICT"), nullable=False, index=True)
    asset_record_id = Column(Integer, ForeignKey("asset_records.id", ondelete="RESTRICT"), nullable=False, index=True)
    management_code = Column(String(64), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    reason = Column(String(1000), nullable=True)
    processed_by_id = Column(String(255), nullable=True)
    disposed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_disposal_entry_quantity_positive"),
        UniqueConstraint("request_token", name="uq_disposal_entries_request_token"),
    )

    def __repr__(self):
        return f"<DisposalEntry id={self.id} uid={self.disposal_uid} qty={self.quantity}>"
