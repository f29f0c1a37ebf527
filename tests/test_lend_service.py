"""Lend / return ledger behaviour."""

import logging
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.constants.error_codes import ErrorCode
from asset_ledger.core.exceptions import (
    ConflictError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from asset_ledger.models.enums.asset_status import AssetStatus
from asset_ledger.schemas.ledger.lend_schemas import LendCreate, LendFilter, ReturnCreate, ReturnFilter
from asset_ledger.services.assets.asset_record_service import get_asset_record
from asset_ledger.services.ledger import balance_service
from asset_ledger.services.ledger.lend_service import (
    create_lend,
    create_return,
    get_lend,
    get_return,
    list_lends,
    list_returns,
    list_returns_for_lend,
)

pytestmark = pytest.mark.anyio


@pytest.fixture
def lend(db, issuer, settings):
    async def _lend(asset_key, quantity, borrower="u-100", **kwargs):
        return await create_lend(
            db,
            asset_key,
            LendCreate(quantity=quantity, borrower_id=borrower, **kwargs),
            issuer=issuer,
            settings=settings,
        )

    return _lend


@pytest.fixture
def give_back(db, issuer, settings):
    async def _return(lend_key, quantity, **kwargs):
        return await create_return(
            db,
            lend_key,
            ReturnCreate(quantity=quantity, **kwargs),
            issuer=issuer,
            settings=settings,
        )

    return _return


class TestLend:
    async def test_lend_decrements_stock_and_marks_lent_out(self, db, make_asset, lend):
        asset = await make_asset(quantity=10)

        entry = await lend(asset.master.management_code, 3, due_on=date(2024, 5, 1), note="demo")

        assert entry.quantity == 3
        assert entry.outstanding_quantity == 3
        assert entry.returned is False
        assert entry.management_code == asset.master.management_code
        assert entry.lent_at is not None

        record = await get_asset_record(db, asset.record.id)
        assert record.quantity == 7
        assert record.status == AssetStatus.lent_out

    async def test_lend_by_surrogate_key(self, db, make_asset, lend):
        asset = await make_asset(quantity=2)
        entry = await lend(asset.master.id, 1)
        assert entry.asset_master_id == asset.master.id

    async def test_lend_whole_stock_is_zero_stock(self, db, make_asset, lend):
        asset = await make_asset(quantity=2)
        await lend(asset.master.id, 2)

        record = await get_asset_record(db, asset.record.id)
        assert record.quantity == 0
        assert record.status == AssetStatus.zero_stock

    async def test_insufficient_stock(self, db, make_asset, lend):
        asset = await make_asset(quantity=2)

        with pytest.raises(ConflictError) as exc:
            await lend(asset.master.id, 3)

        assert exc.value.error_code == ErrorCode.INSUFFICIENT_STOCK
        assert exc.value.details == {"available": 2, "requested": 3}

        record = await get_asset_record(db, asset.record.id)
        assert record.quantity == 2
        assert record.status == AssetStatus.available

    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_non_positive_quantity(self, make_asset, lend, quantity):
        asset = await make_asset()
        with pytest.raises(InvalidArgumentError):
            await lend(asset.master.id, quantity)

    async def test_blank_borrower(self, make_asset, lend):
        asset = await make_asset()
        with pytest.raises(InvalidArgumentError):
            await lend(asset.master.id, 1, borrower="  ")

    async def test_unknown_asset(self, lend):
        with pytest.raises(NotFoundError) as exc:
            await lend("NW-20240101-00999", 1)
        assert exc.value.error_code == ErrorCode.ASSET_NOT_FOUND

    @pytest.mark.parametrize("asset_key", ["99999999999999999999", "²", 2**63])
    async def test_unusable_numeric_asset_key_is_not_found(self, db, make_asset, lend, asset_key):
        asset = await make_asset(quantity=5)

        with pytest.raises(NotFoundError) as exc:
            await lend(asset_key, 1)
        assert exc.value.error_code == ErrorCode.ASSET_NOT_FOUND

        record = await get_asset_record(db, asset.record.id)
        assert record.quantity == 5

    async def test_duplicate_request_token(self, db, make_asset, lend):
        asset = await make_asset(quantity=5)
        await lend(asset.master.id, 1, request_token="req-1")

        with pytest.raises(ConflictError) as exc:
            await lend(asset.master.id, 1, request_token="req-1")
        assert exc.value.error_code == ErrorCode.DUPLICATE_REQUEST

        # the rejected retry left no trace
        record = await get_asset_record(db, asset.record.id)
        assert record.quantity == 4

    async def test_status_failure_does_not_abort_lend(self, db, make_asset, lend, monkeypatch, caplog):
        asset = await make_asset(quantity=10)

        async def broken(*args, **kwargs):
            raise SQLAlchemyError("status query failed")

        monkeypatch.setattr(balance_service, "outstanding_for_record", broken)

        with caplog.at_level(logging.WARNING):
            entry = await lend(asset.master.id, 4)

        assert entry.quantity == 4
        assert any("Failed to update status" in r.getMessage() for r in caplog.records)

        record = await get_asset_record(db, asset.record.id)
        assert record.quantity == 6
        # status kept its previous value
        assert record.status == AssetStatus.available


class TestReturn:
    async def test_round_trip_restores_stock(self, db, make_asset, lend, give_back):
        asset = await make_asset(quantity=10)
        entry = await lend(asset.master.id, 5)

        ret = await give_back(entry.lend_uid, 5, processed_by_id="clerk")
        assert ret.lend_uid == entry.lend_uid
        assert ret.quantity == 5

        after = await get_lend(db, entry.lend_uid)
        assert after.returned is True
        assert after.outstanding_quantity == 0

        record = await get_asset_record(db, asset.record.id)
        assert record.quantity == 10
        assert record.status == AssetStatus.available

    async def test_partial_returns(self, db, make_asset, lend, give_back):
        asset = await make_asset(quantity=10)
        entry = await lend(asset.master.id, 10)

        await give_back(entry.lend_uid, 4)
        await give_back(entry.id, 3)

        mid = await get_lend(db, entry.id)
        assert mid.outstanding_quantity == 3
        assert mid.returned is False

        record = await get_asset_record(db, asset.record.id)
        assert record.quantity == 7
        assert record.status == AssetStatus.lent_out

        await give_back(entry.lend_uid, 3)

        done = await get_lend(db, entry.lend_uid)
        assert done.outstanding_quantity == 0
        assert done.returned is True

        with pytest.raises(ConflictError) as exc:
            await give_back(entry.lend_uid, 1)
        assert exc.value.error_code == ErrorCode.OVER_RETURN
        assert exc.value.details == {"outstanding": 0, "requested": 1}

    async def test_over_return_in_one_step(self, db, make_asset, lend, give_back):
        asset = await make_asset(quantity=10)
        entry = await lend(asset.master.id, 2)

        with pytest.raises(ConflictError):
            await give_back(entry.lend_uid, 3)

        record = await get_asset_record(db, asset.record.id)
        assert record.quantity == 8

    async def test_unknown_lend(self, issuer, give_back):
        with pytest.raises(NotFoundError) as exc:
            await give_back(issuer.new_id(), 1)
        assert exc.value.error_code == ErrorCode.LEND_NOT_FOUND

        with pytest.raises(NotFoundError):
            await give_back(12345, 1)

    async def test_malformed_lend_identifier(self, give_back):
        with pytest.raises(InvalidArgumentError):
            await give_back("not-a-lend", 1)

    async def test_zero_quantity(self, make_asset, lend, give_back):
        asset = await make_asset()
        entry = await lend(asset.master.id, 1)
        with pytest.raises(InvalidArgumentError):
            await give_back(entry.lend_uid, 0)

    async def test_duplicate_return_token(self, make_asset, lend, give_back):
        asset = await make_asset()
        entry = await lend(asset.master.id, 4)

        await give_back(entry.lend_uid, 1, request_token="ret-1")
        with pytest.raises(ConflictError) as exc:
            await give_back(entry.lend_uid, 1, request_token="ret-1")
        assert exc.value.error_code == ErrorCode.DUPLICATE_REQUEST


class TestReads:
    async def test_get_lend_accepts_lowercase_ulid(self, db, make_asset, lend):
        asset = await make_asset()
        entry = await lend(asset.master.id, 1)

        found = await get_lend(db, entry.lend_uid.lower())
        assert found.id == entry.id

    async def test_list_lends_filters(self, db, make_asset, lend, give_back):
        switch = await make_asset(quantity=10, name="Switch")
        laptop = await make_asset(quantity=10, category_code="PC", name="Laptop")

        first = await lend(switch.master.id, 2, borrower="alice")
        await lend(switch.master.id, 1, borrower="bob")
        await lend(laptop.master.id, 1, borrower="alice")
        await give_back(first.lend_uid, 2)

        alice = await list_lends(db, LendFilter(borrower_id="alice"), page=1, page_size=20)
        assert alice.total == 2

        open_switch = await list_lends(
            db,
            LendFilter(asset_master_id=switch.master.id, returned=False),
            page=1,
            page_size=20,
        )
        assert [entry.borrower_id for entry in open_switch.items] == ["bob"]

        returned = await list_lends(db, LendFilter(returned=True), page=1, page_size=20)
        assert returned.total == 1
        assert returned.items[0].returned_quantity == 2
        assert returned.items[0].outstanding_quantity == 0

        by_code = await list_lends(
            db, LendFilter(management_code=laptop.master.management_code), page=1, page_size=20
        )
        assert by_code.total == 1

        newest_first = await list_lends(db, LendFilter(), page=1, page_size=2)
        assert newest_first.total == 3
        assert len(newest_first.items) == 2
        assert newest_first.items[0].id > newest_first.items[1].id

    async def test_returns_for_lend_and_get_return(self, db, make_asset, lend, give_back):
        asset = await make_asset(quantity=10)
        entry = await lend(asset.master.id, 6)
        r1 = await give_back(entry.lend_uid, 2, note="first")
        r2 = await give_back(entry.lend_uid, 1)

        page = await list_returns_for_lend(db, entry.lend_uid, page=1, page_size=20)
        assert page.total == 2
        assert {r.id for r in page.items} == {r1.id, r2.id}

        found = await get_return(db, r1.return_uid)
        assert found.note == "first"
        assert found.lend_uid == entry.lend_uid

        assert (await get_return(db, str(r2.id))).quantity == 1

        with pytest.raises(NotFoundError) as exc:
            await get_return(db, "999")
        assert exc.value.error_code == ErrorCode.RETURN_NOT_FOUND

    @pytest.mark.parametrize("identifier", ["²", "99999999999999999999", 2**63])
    async def test_unusable_numeric_lend_key(self, db, identifier):
        with pytest.raises(InvalidArgumentError):
            await get_lend(db, identifier)

    async def test_list_returns_filters(self, db, make_asset, lend, give_back):
        switch = await make_asset(quantity=10, name="Switch")
        laptop = await make_asset(quantity=10, category_code="PC", name="Laptop")

        to_alice = await lend(switch.master.id, 4, borrower="alice")
        to_bob = await lend(laptop.master.id, 2, borrower="bob")
        await give_back(to_alice.lend_uid, 1, processed_by_id="clerk-1")
        await give_back(to_alice.lend_uid, 2, processed_by_id="clerk-2")
        await give_back(to_bob.lend_uid, 2, processed_by_id="clerk-1")

        everything = await list_returns(db, ReturnFilter(), page=1, page_size=20)
        assert everything.total == 3
        assert everything.items[0].id > everything.items[-1].id

        alice = await list_returns(db, ReturnFilter(borrower_id="alice"), page=1, page_size=20)
        assert alice.total == 2
        assert {r.lend_uid for r in alice.items} == {to_alice.lend_uid}

        clerk = await list_returns(db, ReturnFilter(processed_by_id="clerk-1"), page=1, page_size=20)
        assert clerk.total == 2

        laptop_returns = await list_returns(
            db,
            ReturnFilter(management_code=laptop.master.management_code),
            page=1,
            page_size=20,
        )
        assert [r.quantity for r in laptop_returns.items] == [2]

        by_lend = await list_returns(db, ReturnFilter(lend_id=to_alice.id), page=1, page_size=1)
        assert by_lend.total == 2
        assert len(by_lend.items) == 1

        by_master = await list_returns(
            db, ReturnFilter(asset_master_id=switch.master.id), page=1, page_size=20
        )
        assert by_master.total == 2

    async def test_store_failure_on_read_is_internal(self, db, make_asset, lend, monkeypatch):
        asset = await make_asset()
        entry = await lend(asset.master.id, 1)

        async def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AsyncSession, "scalar", broken)
        monkeypatch.setattr(AsyncSession, "execute", broken)

        with pytest.raises(InternalError):
            await get_lend(db, entry.lend_uid)
        with pytest.raises(InternalError):
            await list_lends(db, LendFilter(), page=1, page_size=20)
        with pytest.raises(InternalError):
            await list_returns(db, ReturnFilter(), page=1, page_size=20)
        with pytest.raises(InternalError):
            await get_return(db, "1")
