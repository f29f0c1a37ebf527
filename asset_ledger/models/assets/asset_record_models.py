from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint
from asset_ledger.core.db import Base
from asset_ledger.models.base.mixins import TimestampMixin
from asset_ledger.models.enums.asset_status import AssetStatus


class AssetRecord(Base, TimestampMixin):
    __tablename__ = "asset_records"

    id = Column(Integer, primary_key=True)
    asset_master_id = Column(Integer, ForeignKey("asset_masters.id", ondelete="RESTRICT"), nullable=False, index=True)
    serial = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    status = Column(Integer, nullable=False, default=AssetStatus.available.value)
    owner = Column(String(255), nullable=False)
    default_location = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    purchased_at = Column(DateTime(timezone=True), nullable=False)
    last_checked_at = Column(DateTime(timezone=True), nullable=True)
    last_checked_by = Column(String(255), nullable=True)
    notes = Column(String(1000), nullable=True)

    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_asset_record_quantity_non_negative"),)

    def __repr__(self):
        return f"<AssetRecord id={self.id} master_id={self.asset_master_id} qty={self.quantity} status={self.status}>"
