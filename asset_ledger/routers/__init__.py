# asset_ledger/routers/__init__.py

from .assets.asset_master_router import router as asset_master_router
from .assets.asset_record_router import router as asset_record_router

from .ledger.lend_router import router as lend_router
from .ledger.disposal_router import router as disposal_router


__all__ = [
"asset_master_router",
"asset_record_router",

"lend_router",
"disposal_router",
]
