from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from ulid import ULID

from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer, is_entry_id

T0 = datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


def test_ids_in_the_same_millisecond_increase():
    issuer = EntryIdIssuer(clock=FixedClock(T0))

    ids = [issuer.new_id() for _ in range(500)]

    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_later_timestamp_sorts_after():
    clock = FixedClock(T0)
    issuer = EntryIdIssuer(clock=clock)

    first = issuer.new_id()
    clock.moment = T0 + timedelta(milliseconds=1)
    second = issuer.new_id()

    assert second > first


def test_timestamp_is_encoded():
    issuer = EntryIdIssuer()
    value = issuer.new_id(T0)

    assert ULID.from_str(value).milliseconds == int(T0.timestamp() * 1000)


def test_earlier_timestamp_does_not_reset_sequence():
    issuer = EntryIdIssuer()
    latest = issuer.new_id(T0)
    issuer.new_id(T0 - timedelta(seconds=5))

    assert issuer.new_id(T0) > latest


def test_unique_under_threads():
    issuer = EntryIdIssuer(clock=FixedClock(T0))

    with ThreadPoolExecutor(max_workers=8) as pool:
        batches = list(pool.map(lambda _: [issuer.new_id() for _ in range(250)], range(8)))

    ids = [i for batch in batches for i in batch]
    assert len(set(ids)) == 2000


def test_is_entry_id():
    value = EntryIdIssuer().new_id()

    assert is_entry_id(value)
    assert is_entry_id(value.lower())
    assert not is_entry_id("not-a-ulid")
    assert not is_entry_id("")
