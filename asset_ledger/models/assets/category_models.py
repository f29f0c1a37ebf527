from sqlalchemy import Column, Integer, String
from asset_ledger.core.db import Base


class AssetCategory(Base):
    __tablename__ = "asset_categories"

    id = Column(Integer, primary_key=True)
    code = Column(String(16), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)

    def __repr__(self):
        return f"<AssetCategory id={self.id} code={self.code}>"
