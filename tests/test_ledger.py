"""
Tests for ledger queries.

These tests verify:
  - Per-card listings include transfers in both directions, newest first
  - Per-user listings cover every owned card and nothing else
  - Single transfers are only visible to the owner of the cards involved
  - The admin listing covers the whole ledger and can filter by card
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from cardledger.exceptions import (
    CardAccessForbiddenError,
    CardNotFoundError,
    TransferNotFoundError,
)
from cardledger.models.transfer import Transfer
from cardledger.services import ledger_service, transfer_service


@pytest.fixture
async def three_cards(db_session, owner, make_card):
    return (
        await make_card(owner, balance="100.00"),
        await make_card(owner, balance="100.00"),
        await make_card(owner, balance="100.00"),
    )


class TestCardTransfers:

    async def test_both_directions_newest_first(self, db_session, owner, three_cards):
        card_a, card_b, card_c = three_cards
        first = await transfer_service.transfer(db_session, owner.id, card_a.id, card_b.id, "1.00")
        second = await transfer_service.transfer(db_session, owner.id, card_b.id, card_a.id, "2.00")
        await transfer_service.transfer(db_session, owner.id, card_b.id, card_c.id, "3.00")

        # Pin timestamps so the ordering doesn't depend on clock resolution
        base = datetime.now(timezone.utc)
        await db_session.execute(
            update(Transfer).where(Transfer.id == first.id).values(timestamp=base - timedelta(minutes=5))
        )
        await db_session.execute(
            update(Transfer).where(Transfer.id == second.id).values(timestamp=base)
        )
        await db_session.commit()

        transfers = await ledger_service.list_card_transfers(db_session, card_a.id, owner.id)
        assert [t.id for t in transfers] == [second.id, first.id]

    async def test_pagination(self, db_session, owner, three_cards):
        card_a, card_b, _ = three_cards
        for _ in range(3):
            await transfer_service.transfer(db_session, owner.id, card_a.id, card_b.id, "1.00")

        page = await ledger_service.list_card_transfers(db_session, card_a.id, owner.id, limit=2)
        rest = await ledger_service.list_card_transfers(db_session, card_a.id, owner.id, limit=2, offset=2)
        assert len(page) == 2
        assert len(rest) == 1

    async def test_foreign_card(self, db_session, owner, other_owner, three_cards):
        with pytest.raises(CardAccessForbiddenError):
            await ledger_service.list_card_transfers(db_session, three_cards[0].id, other_owner.id)

    async def test_unknown_card(self, db_session, owner):
        with pytest.raises(CardNotFoundError):
            await ledger_service.list_card_transfers(db_session, uuid.uuid4(), owner.id)


class TestUserTransfers:

    async def test_only_own_transfers(self, db_session, owner, other_owner, three_cards, make_card):
        card_a, card_b, _ = three_cards
        mine = await transfer_service.transfer(db_session, owner.id, card_a.id, card_b.id, "1.00")

        other_a = await make_card(other_owner, balance="10.00")
        other_b = await make_card(other_owner)
        await transfer_service.transfer(db_session, other_owner.id, other_a.id, other_b.id, "1.00")

        transfers = await ledger_service.list_user_transfers(db_session, owner.id)
        assert [t.id for t in transfers] == [mine.id]

    async def test_get_transfer_scoped_to_owner(self, db_session, owner, other_owner, three_cards):
        card_a, card_b, _ = three_cards
        record = await transfer_service.transfer(db_session, owner.id, card_a.id, card_b.id, "1.00")

        assert (await ledger_service.get_transfer(db_session, record.id, owner.id)).id == record.id
        with pytest.raises(TransferNotFoundError):
            await ledger_service.get_transfer(db_session, record.id, other_owner.id)
        with pytest.raises(TransferNotFoundError):
            await ledger_service.get_transfer(db_session, uuid.uuid4(), owner.id)


class TestAdminTransfers:

    async def test_whole_ledger_and_card_filter(self, db_session, owner, three_cards):
        card_a, card_b, card_c = three_cards
        await transfer_service.transfer(db_session, owner.id, card_a.id, card_b.id, "1.00")
        await transfer_service.transfer(db_session, owner.id, card_b.id, card_c.id, "1.00")

        everything = await ledger_service.admin_list_transfers(db_session)
        assert len(everything) == 2

        only_c = await ledger_service.admin_list_transfers(db_session, card_id=card_c.id)
        assert len(only_c) == 1
        assert only_c[0].to_card_id == card_c.id

    async def test_unknown_card_filter(self, db_session):
        with pytest.raises(CardNotFoundError):
            await ledger_service.admin_list_transfers(db_session, card_id=uuid.uuid4())
