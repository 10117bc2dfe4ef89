"""
Transfer service — moves money between two cards of the same owner.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Atomic two-card transfers (debit + credit + ledger row)
  - Explicit card funding (admin deposits)
  - Balance enforcement (no negative balances, ever)

Transfer checks, in order (the first failure wins):
  1. Both cards exist and belong to the caller (source first)
  2. Source and destination differ
  3. Source is ACTIVE and not expired, then the destination
  4. Source balance covers the amount
Nothing is written until every check has passed.

Atomicity:
  The debit, the credit and the ledger row are flushed in one database
  transaction and committed together. Any exception in between rolls the
  whole transaction back: money is never debited without being credited.
  Rejected transfers persist nothing.

Serialization:
  Both cards are locked (CardLockRegistry) in sorted id order before the
  balances are read, and stay locked until the commit finishes. The rows
  are read with SELECT ... FOR UPDATE in the same order for deployments
  with several worker processes. Two transfers that share a card run one
  after the other; transfers over disjoint cards don't wait on each other.

  Because the lock must outlive the commit, these functions commit the
  session themselves instead of leaving it to get_db().

No retries:
  A failed transfer is reported to the caller and forgotten. Resubmitting
  is the caller's decision.
"""

import logging
import uuid
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.exceptions import (
    BankAPIError,
    CardNotFoundError,
    InsufficientFundsError,
    SelfTransferError,
)
from cardledger.models.card import Card
from cardledger.models.transfer import Transfer
from cardledger.money import from_cents, to_cents
from cardledger.services import ledger_service
from cardledger.services.card_locks import CardLockRegistry, card_locks
from cardledger.services.card_service import assert_card_active, ensure_owned, find_card

logger = logging.getLogger(__name__)


async def _load_locked(db: AsyncSession, *card_ids: uuid.UUID) -> dict[uuid.UUID, Card | None]:
    """Read cards FOR UPDATE in sorted id order (consistent with the lock registry)."""
    cards = {}
    for card_id in sorted(set(card_ids)):
        cards[card_id] = await find_card(db, card_id, for_update=True)
    return cards


async def transfer(
    db: AsyncSession,
    owner_id: uuid.UUID,
    from_card_id: uuid.UUID,
    to_card_id: uuid.UUID,
    amount: Decimal | str,
    locks: CardLockRegistry | None = None,
) -> Transfer:
    """
    Transfer `amount` from one of the owner's cards to another.

    Args:
        db: Database session. Committed on success, rolled back if the
            mutation phase fails.
        owner_id: The authenticated user; must own both cards.
        from_card_id: Card to debit.
        to_card_id: Card to credit.
        amount: Positive amount with at most two decimal places.
        locks: Lock registry; defaults to the process-wide one.

    Returns:
        The persisted COMPLETED Transfer.

    Raises:
        InvalidAmountError: If the amount is not a positive 2-place value.
        CardNotFoundError / CardAccessForbiddenError: From the ownership check.
        SelfTransferError: If both ids are the same card.
        CardNotActiveError / CardExpiredError: If either card can't move money.
        InsufficientFundsError: If the source balance is below the amount.
    """
    if locks is None:
        locks = card_locks

    try:
        amount_cents = to_cents(amount)

        async with locks.hold(from_card_id, to_card_id):
            cards = await _load_locked(db, from_card_id, to_card_id)
            from_card = ensure_owned(cards[from_card_id], from_card_id, owner_id)
            to_card = ensure_owned(cards[to_card_id], to_card_id, owner_id)

            if from_card_id == to_card_id:
                raise SelfTransferError(from_card_id)

            assert_card_active(from_card)
            assert_card_active(to_card)

            if from_card.balance_cents < amount_cents:
                raise InsufficientFundsError(
                    card_id=from_card_id,
                    available=from_card.balance,
                    requested=from_cents(amount_cents),
                )

            try:
                from_card.balance_cents -= amount_cents
                to_card.balance_cents += amount_cents
                record = await ledger_service.record_transfer(
                    db, from_card, to_card, amount_cents
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
    except BankAPIError as exc:
        logger.warning(
            "Transfer %s -> %s rejected for user %s: %s",
            from_card_id, to_card_id, owner_id, exc.error_type,
        )
        raise

    logger.info(
        "Transfer %s completed: %s from card %s to card %s",
        record.id, record.amount, from_card_id, to_card_id,
    )
    return record


async def fund_card(
    db: AsyncSession,
    card_id: uuid.UUID,
    amount: Decimal | str,
    locks: CardLockRegistry | None = None,
) -> Card:
    """
    [ADMIN ONLY] Credit money onto a card from outside the system.

    Funding takes the same card lock as transfers, so a deposit can't race
    a debit on the same card.

    Raises:
        InvalidAmountError: If the amount is not a positive 2-place value.
        CardNotFoundError: If the card doesn't exist.
        CardNotActiveError / CardExpiredError: If the card can't receive money.
    """
    if locks is None:
        locks = card_locks
    amount_cents = to_cents(amount)

    async with locks.hold(card_id):
        card = await find_card(db, card_id, for_update=True)
        if card is None:
            raise CardNotFoundError(card_id)
        assert_card_active(card)

        try:
            card.balance_cents += amount_cents
            await db.flush()
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info("Card %s funded with %s", card_id, from_cents(amount_cents))
    return card
