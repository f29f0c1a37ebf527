# asset_ledger/utils/keys.py

import re

# largest value a signed 64-bit INTEGER column can hold
MAX_SURROGATE_KEY = 2**63 - 1

_NUMERIC_KEY = re.compile(r"[0-9]{1,18}")


def parse_surrogate_key(value: int | str) -> int | None:
    """Surrogate key for an int or a short run of ASCII digits, else None.

    Values outside the store's integer range also give None, so callers
    fall through to their code/ULID lookup instead of handing the driver
    a number it cannot bind.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value if 0 <= value <= MAX_SURROGATE_KEY else None

    if isinstance(value, str) and _NUMERIC_KEY.fullmatch(value):
        return int(value)

    return None
