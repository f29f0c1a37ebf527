from sqlalchemy import Column, Integer, String, ForeignKey, Index
from asset_ledger.core.db import Base
from asset_ledger.models.base.mixins import TimestampMixin


class AssetMaster(Base, TimestampMixin):
    __tablename__ = "asset_masters"

    id = Column(Integer, primary_key=True)
    # placeholder until finalized, then <category>-<yyyymmdd>-<padded id>
    management_code = Column(String(64), nullable=False, unique=True, index=True)
    category_id = Column(Integer, ForeignKey("asset_categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    manufacturer = Column(String(255), nullable=False)
    model = Column(String(255), nullable=True)

    __table_args__ = (Index("ix_asset_master_category_name", "category_id", "name"),)

    def __repr__(self):
        return f"<AssetMaster id={self.id} code={self.management_code}>"
