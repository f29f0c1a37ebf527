# Assets
from asset_ledger.models.assets.category_models import AssetCategory
from asset_ledger.models.assets.asset_master_models import AssetMaster
from asset_ledger.models.assets.asset_record_models import AssetRecord

# Ledger
from asset_ledger.models.ledger.lend_models import LendEntry, ReturnEntry
from asset_ledger.models.ledger.disposal_models import DisposalEntry

__all__ = [
    "AssetCategory",
    "AssetMaster",
    "AssetRecord",
    "LendEntry",
    "ReturnEntry",
    "DisposalEntry",
]
