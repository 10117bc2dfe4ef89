"""
Cards router — a card holder's own cards.

Endpoints:
  GET  /cards                       — List my cards (search by masked number)
  POST /cards                       — Issue a new card for myself
  GET  /cards/{card_id}             — Get one of my cards
  POST /cards/{card_id}/block       — Block one of my cards
  POST /cards/{card_id}/activate    — Re-activate one of my cards
  GET  /cards/{card_id}/balance     — Get a card's balance
  GET  /cards/{card_id}/transfers   — List transfers into/out of a card

Every endpoint is scoped to the authenticated user. Touching someone
else's card returns 403, an unknown card 404.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.config import settings
from cardledger.database import get_db
from cardledger.dependencies import require_user
from cardledger.models.user import User
from cardledger.schemas.card import BalanceResponse, CardCreateRequest, CardResponse
from cardledger.schemas.transfer import TransferResponse
from cardledger.services import card_service, ledger_service

router = APIRouter()


@router.get(
    "",
    response_model=list[CardResponse],
    summary="List my cards",
)
async def list_my_cards(
    search: str | None = Query(None, description="Match against the masked number, e.g. 1234"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """List the authenticated user's cards, newest first."""
    return await card_service.list_cards(
        db=db,
        owner_id=user.id,
        search=search,
        limit=limit,
        offset=offset,
    )


@router.post(
    "",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a new card",
)
async def create_card(
    request: CardCreateRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Issue a new card for the authenticated user.

    - The number is generated server-side, encrypted at rest and only
      ever shown masked
    - The card starts ACTIVE with a zero balance
    - **expiration_date** must be in the future
    """
    return await card_service.create_card(
        db=db,
        owner_id=user.id,
        holder_name=request.holder_name,
        expiration_date=request.expiration_date,
    )


@router.get(
    "/{card_id}",
    response_model=CardResponse,
    summary="Get one of my cards",
)
async def get_card(
    card_id: uuid.UUID,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await card_service.get_owned_card(db, card_id, user.id)


@router.post(
    "/{card_id}/block",
    response_model=CardResponse,
    summary="Block a card",
)
async def block_card(
    card_id: uuid.UUID,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Move a card to BLOCKED. Blocking a blocked card returns 409."""
    return await card_service.block_card(db, card_id, user.id)


@router.post(
    "/{card_id}/activate",
    response_model=CardResponse,
    summary="Activate a card",
)
async def activate_card(
    card_id: uuid.UUID,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Move a blocked card back to ACTIVE.

    Returns 409 if the card is already active and 422 if it has expired.
    """
    return await card_service.activate_card(db, card_id, user.id)


@router.get(
    "/{card_id}/balance",
    response_model=BalanceResponse,
    summary="Get a card's balance",
)
async def get_balance(
    card_id: uuid.UUID,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    balance = await card_service.get_card_balance(db, card_id, user.id)
    return BalanceResponse(card_id=card_id, balance=balance)


@router.get(
    "/{card_id}/transfers",
    response_model=list[TransferResponse],
    summary="List a card's transfers",
)
async def list_card_transfers(
    card_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Transfers into or out of the card, newest first."""
    return await ledger_service.list_card_transfers(
        db=db,
        card_id=card_id,
        owner_id=user.id,
        limit=limit,
        offset=offset,
    )
