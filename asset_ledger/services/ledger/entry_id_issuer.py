# asset_ledger/services/ledger/entry_id_issuer.py

import secrets
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from ulid import ULID

from asset_ledger.constants.error_codes import ErrorCode
from asset_ledger.core.exceptions import InternalError

_RANDOM_BITS = 80
_RANDOM_MAX = (1 << _RANDOM_BITS) - 1


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EntryIdIssuer:
    """Issues ULIDs used as the public reference of ledger entries.

    Within one issuer, ids for the same or a later millisecond are strictly
    increasing: the random part is carried over and incremented instead of
    redrawn, so ids issued in a burst still sort in issue order. Different
    issuers never coordinate; 80 random bits keep them collision-free.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_random = 0

    def new_id(self, at: Optional[datetime] = None) -> str:
        moment = at or self._clock()
        ms = int(moment.timestamp() * 1000)

        with self._lock:
            if ms == self._last_ms:
                random = self._last_random + 1
                if random > _RANDOM_MAX:
                    raise InternalError(
                        "Entry id space exhausted for this millisecond",
                        ErrorCode.INTERNAL_ERROR,
                    )
            else:
                random = int.from_bytes(secrets.token_bytes(10), "big")

            if ms >= self._last_ms:
                self._last_ms = ms
                self._last_random = random

        return str(ULID.from_int((ms << _RANDOM_BITS) | random))


def is_entry_id(value: str) -> bool:
    try:
        ULID.from_str(value.upper())
    except ValueError:
        return False
    return True
