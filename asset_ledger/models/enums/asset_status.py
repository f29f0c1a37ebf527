import enum


class AssetStatus(int, enum.Enum):
    # numeric ids match the status master used by existing clients
    available = 1
    lent_out = 4
    zero_stock = 5
