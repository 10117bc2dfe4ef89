"""
Card service — card issuance, ownership checks and status transitions.

When a card is issued:
  1. A 16-digit number is generated from a secure random source
  2. Its keyed fingerprint is checked for collisions (retry if taken)
  3. The number is encrypted (AES-GCM) and masked ("**** **** **** 1234")
  4. The plaintext is dropped; only the ciphertext, fingerprint and mask
     are stored
  5. The card starts ACTIVE with a zero balance

Ownership:
  `get_owned_card` is the only way member-facing code reaches a card. It
  raises CardNotFoundError for unknown ids and CardAccessForbiddenError for
  someone else's card. The transfer engine goes through the same check.

Status machine:
  ACTIVE <-> BLOCKED via block_card / activate_card. A card whose
  expiration date has passed is treated as expired wherever activity is
  checked; its stored status is never rewritten to EXPIRED.

Admin functions:
  Functions prefixed with `admin_` skip ownership scoping. The router layer
  restricts them to ADMIN users.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.config import settings
from cardledger.exceptions import (
    CardAccessForbiddenError,
    CardAlreadyActiveError,
    CardAlreadyBlockedError,
    CardExpiredError,
    CardHasBalanceError,
    CardInUseError,
    CardNotActiveError,
    CardNotFoundError,
    CardNumberUnavailableError,
    InvalidCardDataError,
    OwnerNotFoundError,
)
from cardledger.models.card import Card, CardStatus
from cardledger.models.transfer import Transfer
from cardledger.models.user import User
from cardledger.security import CardNumberCipher, card_cipher
from cardledger.services.card_locks import CardLockRegistry, card_locks
from cardledger.services.card_numbers import CardNumberGenerator, mask_card_number

logger = logging.getLogger(__name__)

HOLDER_NAME_MIN_LENGTH = 2
HOLDER_NAME_MAX_LENGTH = 100
MAX_NUMBER_ATTEMPTS = 10

_default_generator = CardNumberGenerator()


# ---------------------------------------------------------------------------
# Card store
# ---------------------------------------------------------------------------

async def find_card(
    db: AsyncSession,
    card_id: uuid.UUID,
    for_update: bool = False,
) -> Card | None:
    """
    Load a card by id, always re-reading its columns from the database.

    With for_update=True the row is locked until the transaction ends
    (SELECT ... FOR UPDATE on PostgreSQL, a no-op on SQLite).
    """
    query = (
        select(Card)
        .where(Card.id == card_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def card_exists(db: AsyncSession, card_id: uuid.UUID) -> bool:
    result = await db.execute(select(Card.id).where(Card.id == card_id))
    return result.scalar_one_or_none() is not None


async def save_card(db: AsyncSession, card: Card) -> Card:
    """
    Insert a new card or flush changes to one loaded in this session.

    Only new cards and cards already attached to `db` are accepted. A
    detached copy of an existing row would be inserted again and fail on the
    primary key; reload it with `find_card` and change that instance instead.
    """
    db.add(card)
    await db.flush()
    return card


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def validate_card_data(
    holder_name: str | None,
    expiration_date: date | None,
    today: date | None = None,
) -> str:
    """
    Check creation input and return the normalized holder name.

    Raises:
        InvalidCardDataError: If the name is blank, too short or too long, or
            the expiration date is not strictly in the future.
    """
    today = today or date.today()
    name = (holder_name or "").strip()
    if not name:
        raise InvalidCardDataError("Card holder name is required")
    if not HOLDER_NAME_MIN_LENGTH <= len(name) <= HOLDER_NAME_MAX_LENGTH:
        raise InvalidCardDataError(
            f"Card holder name must be between {HOLDER_NAME_MIN_LENGTH} "
            f"and {HOLDER_NAME_MAX_LENGTH} characters"
        )
    if expiration_date is None:
        raise InvalidCardDataError("Expiration date is required")
    if expiration_date <= today:
        raise InvalidCardDataError("Expiration date must be in the future")
    return name


async def _fresh_card_number(
    db: AsyncSession,
    cipher: CardNumberCipher,
    generator: CardNumberGenerator,
) -> tuple[str, str]:
    """Generate a number whose fingerprint isn't taken yet. Returns (number, fingerprint)."""
    for _ in range(MAX_NUMBER_ATTEMPTS):
        number = generator.generate_with_prefix(settings.CARD_NUMBER_PREFIX)
        fingerprint = cipher.fingerprint(number)
        existing = await db.execute(
            select(Card.id).where(Card.number_fingerprint == fingerprint)
        )
        if existing.scalar_one_or_none() is None:
            return number, fingerprint
    logger.error("No free card number after %d attempts", MAX_NUMBER_ATTEMPTS)
    raise CardNumberUnavailableError(MAX_NUMBER_ATTEMPTS)


async def create_card(
    db: AsyncSession,
    owner_id: uuid.UUID,
    holder_name: str,
    expiration_date: date,
    cipher: CardNumberCipher | None = None,
    generator: CardNumberGenerator | None = None,
) -> Card:
    """
    Issue a new card for an existing user.

    Args:
        db: Database session.
        owner_id: The user who will own the card.
        holder_name: Name printed on the card (2-100 characters).
        expiration_date: Must be strictly after today.
        cipher: Card number cipher; defaults to the application cipher.
        generator: Number generator; defaults to a SystemRandom-backed one.

    Returns:
        The persisted Card: ACTIVE, balance 0.

    Raises:
        OwnerNotFoundError: If the owner doesn't exist.
        InvalidCardDataError: If holder name or expiration date are invalid.
    """
    cipher = cipher or card_cipher
    generator = generator or _default_generator

    if await db.get(User, owner_id) is None:
        raise OwnerNotFoundError(owner_id)

    name = validate_card_data(holder_name, expiration_date)
    number, fingerprint = await _fresh_card_number(db, cipher, generator)

    card = Card(
        owner_id=owner_id,
        number_encrypted=cipher.encrypt(number),
        number_fingerprint=fingerprint,
        masked_number=mask_card_number(number),
        holder_name=name,
        expiration_date=expiration_date,
        status=CardStatus.ACTIVE,
        balance_cents=0,
    )
    await save_card(db, card)
    logger.info("Issued card %s (%s) for user %s", card.id, card.masked_number, owner_id)
    return card


# ---------------------------------------------------------------------------
# Ownership and activity checks
# ---------------------------------------------------------------------------

def ensure_owned(card: Card | None, card_id: uuid.UUID, owner_id: uuid.UUID) -> Card:
    """
    Assert that a looked-up card exists and belongs to `owner_id`.

    Raises:
        CardNotFoundError: If `card` is None.
        CardAccessForbiddenError: If the card belongs to someone else.
    """
    if card is None:
        raise CardNotFoundError(card_id)
    if card.owner_id != owner_id:
        logger.warning("User %s denied access to card %s", owner_id, card_id)
        raise CardAccessForbiddenError(card_id)
    return card


async def get_owned_card(
    db: AsyncSession,
    card_id: uuid.UUID,
    owner_id: uuid.UUID,
    for_update: bool = False,
) -> Card:
    """Fetch a card and verify it belongs to `owner_id`."""
    card = await find_card(db, card_id, for_update=for_update)
    return ensure_owned(card, card_id, owner_id)


def assert_card_active(card: Card, today: date | None = None) -> None:
    """
    Precondition gate for money movement. Never mutates the card.

    Raises:
        CardNotActiveError: If the status isn't ACTIVE.
        CardExpiredError: If the expiration date has passed.
    """
    today = today or date.today()
    if card.status != CardStatus.ACTIVE:
        raise CardNotActiveError(card.id, card.status.value)
    if card.is_expired_on(today):
        raise CardExpiredError(card.id)


# ---------------------------------------------------------------------------
# Member operations
# ---------------------------------------------------------------------------

async def list_cards(
    db: AsyncSession,
    owner_id: uuid.UUID,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Card]:
    """
    List a user's cards, newest first.

    `search` matches anywhere in the masked number, so "1234" finds the card
    ending in 1234.

    Raises:
        OwnerNotFoundError: If the user doesn't exist.
    """
    if await db.get(User, owner_id) is None:
        raise OwnerNotFoundError(owner_id)

    query = (
        select(Card)
        .where(Card.owner_id == owner_id)
        .order_by(Card.created_at.desc(), Card.id)
        .limit(limit)
        .offset(offset)
    )
    if search and search.strip():
        query = query.where(Card.masked_number.contains(search.strip(), autoescape=True))

    result = await db.execute(query)
    return list(result.scalars().all())


async def block_card(
    db: AsyncSession,
    card_id: uuid.UUID,
    owner_id: uuid.UUID,
) -> Card:
    """
    Block one of the user's cards.

    Raises:
        CardNotFoundError / CardAccessForbiddenError: From the ownership check.
        CardAlreadyBlockedError: If the card is already blocked.
    """
    card = await get_owned_card(db, card_id, owner_id, for_update=True)
    if card.status == CardStatus.BLOCKED:
        raise CardAlreadyBlockedError(card_id)

    card.status = CardStatus.BLOCKED
    await save_card(db, card)
    logger.info("Card %s blocked by owner %s", card_id, owner_id)
    return card


async def activate_card(
    db: AsyncSession,
    card_id: uuid.UUID,
    owner_id: uuid.UUID,
) -> Card:
    """
    Re-activate one of the user's blocked cards.

    Raises:
        CardNotFoundError / CardAccessForbiddenError: From the ownership check.
        CardAlreadyActiveError: If the card is already active.
        CardExpiredError: If the card's expiration date has passed.
    """
    card = await get_owned_card(db, card_id, owner_id, for_update=True)
    if card.status == CardStatus.ACTIVE:
        raise CardAlreadyActiveError(card_id)
    if card.is_expired:
        raise CardExpiredError(card_id)

    card.status = CardStatus.ACTIVE
    await save_card(db, card)
    logger.info("Card %s activated by owner %s", card_id, owner_id)
    return card


async def get_card_balance(
    db: AsyncSession,
    card_id: uuid.UUID,
    owner_id: uuid.UUID,
) -> Decimal:
    """Balance of one of the user's cards, via the ownership check."""
    card = await get_owned_card(db, card_id, owner_id)
    return card.balance


# ---------------------------------------------------------------------------
# Admin functions
# ---------------------------------------------------------------------------

async def admin_list_cards(
    db: AsyncSession,
    search: str | None = None,
    owner_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Card]:
    """[ADMIN ONLY] List cards across all users, optionally for one owner."""
    if owner_id is not None:
        return await list_cards(db, owner_id, search=search, limit=limit, offset=offset)

    query = (
        select(Card)
        .order_by(Card.created_at.desc(), Card.id)
        .limit(limit)
        .offset(offset)
    )
    if search and search.strip():
        query = query.where(Card.masked_number.contains(search.strip(), autoescape=True))

    result = await db.execute(query)
    return list(result.scalars().all())


async def admin_get_card(db: AsyncSession, card_id: uuid.UUID) -> Card:
    """[ADMIN ONLY] Get any card without an ownership check."""
    card = await find_card(db, card_id)
    if card is None:
        raise CardNotFoundError(card_id)
    return card


async def admin_set_card_status(
    db: AsyncSession,
    card_id: uuid.UUID,
    status: CardStatus,
) -> Card:
    """
    [ADMIN ONLY] Force a card's status to ACTIVE or BLOCKED.

    Unlike the owner transitions, setting the current status again is a
    no-op rather than an error.

    Raises:
        CardNotFoundError: If the card doesn't exist.
        InvalidCardDataError: If `status` is EXPIRED (expiry is date-driven).
        CardExpiredError: If activating a card past its expiration date.
    """
    if status not in (CardStatus.ACTIVE, CardStatus.BLOCKED):
        raise InvalidCardDataError("Status can only be changed to ACTIVE or BLOCKED")

    card = await find_card(db, card_id, for_update=True)
    if card is None:
        raise CardNotFoundError(card_id)
    if status == CardStatus.ACTIVE and card.is_expired:
        raise CardExpiredError(card_id)

    if card.status != status:
        card.status = status
        await save_card(db, card)
        logger.info("Admin set card %s status to %s", card_id, status.value)
    return card


async def admin_delete_card(
    db: AsyncSession,
    card_id: uuid.UUID,
    locks: CardLockRegistry | None = None,
) -> None:
    """
    [ADMIN ONLY] Delete an empty card that never took part in a transfer.

    The card lock is held until the delete is committed, so no transfer or
    funding can land on the card between the checks and the delete. Like
    the transfer engine, this commits the session itself.

    Raises:
        CardNotFoundError: If the card doesn't exist.
        CardHasBalanceError: If the card still holds money.
        CardInUseError: If the ledger references the card.
    """
    if locks is None:
        locks = card_locks

    async with locks.hold(card_id):
        card = await find_card(db, card_id, for_update=True)
        if card is None:
            raise CardNotFoundError(card_id)
        if card.balance_cents > 0:
            raise CardHasBalanceError(card_id, card.balance)

        referenced = await db.execute(
            select(func.count())
            .select_from(Transfer)
            .where(or_(Transfer.from_card_id == card_id, Transfer.to_card_id == card_id))
        )
        if referenced.scalar_one() > 0:
            raise CardInUseError(card_id)

        try:
            await db.delete(card)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info("Admin deleted card %s", card_id)


async def admin_create_card(
    db: AsyncSession,
    owner_id: uuid.UUID,
    holder_name: str,
    expiration_date: date,
) -> Card:
    """[ADMIN ONLY] Issue a card on behalf of any existing user."""
    card = await create_card(db, owner_id, holder_name, expiration_date)
    logger.info("Admin issued card %s for user %s", card.id, owner_id)
    return card
