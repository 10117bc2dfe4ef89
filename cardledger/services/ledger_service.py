"""
Ledger service — the append-only record of completed transfers.

`record_transfer` is the only writer and is called by the transfer engine
inside its transaction, right after both balances move. Everything else
here is a read.

Scoping:
  Member queries check ownership through the card service, so a user only
  ever sees transfers touching their own cards. A transfer that exists but
  isn't the caller's is reported as not found.
"""

import uuid

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.exceptions import CardNotFoundError, TransferNotFoundError
from cardledger.models.card import Card
from cardledger.models.transfer import Transfer, TransferStatus
from cardledger.services.card_service import find_card, get_owned_card


async def record_transfer(
    db: AsyncSession,
    from_card: Card,
    to_card: Card,
    amount_cents: int,
) -> Transfer:
    """Append one COMPLETED transfer. The caller owns the transaction."""
    transfer = Transfer(
        from_card_id=from_card.id,
        to_card_id=to_card.id,
        amount_cents=amount_cents,
        status=TransferStatus.COMPLETED,
    )
    db.add(transfer)
    await db.flush()
    return transfer


def _touching(card_id: uuid.UUID):
    return or_(Transfer.from_card_id == card_id, Transfer.to_card_id == card_id)


async def list_card_transfers(
    db: AsyncSession,
    card_id: uuid.UUID,
    owner_id: uuid.UUID,
    limit: int = 50,
    offset: int = 0,
) -> list[Transfer]:
    """
    List transfers into or out of one of the user's cards, newest first.

    Raises:
        CardNotFoundError / CardAccessForbiddenError: From the ownership check.
    """
    await get_owned_card(db, card_id, owner_id)

    result = await db.execute(
        select(Transfer)
        .where(_touching(card_id))
        .order_by(Transfer.timestamp.desc(), Transfer.id)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def list_user_transfers(
    db: AsyncSession,
    owner_id: uuid.UUID,
    limit: int = 50,
    offset: int = 0,
) -> list[Transfer]:
    """List every transfer touching any of the user's cards, newest first."""
    owned_cards = select(Card.id).where(Card.owner_id == owner_id)

    result = await db.execute(
        select(Transfer)
        .where(
            or_(
                Transfer.from_card_id.in_(owned_cards),
                Transfer.to_card_id.in_(owned_cards),
            )
        )
        .order_by(Transfer.timestamp.desc(), Transfer.id)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def get_transfer(
    db: AsyncSession,
    transfer_id: uuid.UUID,
    owner_id: uuid.UUID,
) -> Transfer:
    """
    Get a single transfer the user took part in.

    Raises:
        TransferNotFoundError: If it doesn't exist or touches none of the
            user's cards.
    """
    transfer = await db.get(Transfer, transfer_id)
    if transfer is None:
        raise TransferNotFoundError(transfer_id)

    for card_id in (transfer.from_card_id, transfer.to_card_id):
        card = await find_card(db, card_id)
        if card is not None and card.owner_id == owner_id:
            return transfer

    raise TransferNotFoundError(transfer_id)


# ---------------------------------------------------------------------------
# Admin read-only functions
# ---------------------------------------------------------------------------

async def admin_list_transfers(
    db: AsyncSession,
    card_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transfer]:
    """[ADMIN ONLY] List the whole ledger, or one card's transfers."""
    query = (
        select(Transfer)
        .order_by(Transfer.timestamp.desc(), Transfer.id)
        .limit(limit)
        .offset(offset)
    )
    if card_id is not None:
        if await find_card(db, card_id) is None:
            raise CardNotFoundError(card_id)
        query = query.where(_touching(card_id))

    result = await db.execute(query)
    return list(result.scalars().all())
