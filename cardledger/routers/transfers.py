"""
Transfers router — moving money between a user's own cards.

Endpoints:
  POST /transfers                — Transfer money between two of my cards
  GET  /transfers                — List all transfers touching my cards
  GET  /transfers/{transfer_id}  — Get one of my transfers

A transfer debits one card and credits the other in a single atomic
operation and appends one COMPLETED record to the ledger. Both cards must
belong to the authenticated user. A rejected transfer changes nothing and
is not recorded.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.database import get_db
from cardledger.dependencies import require_user
from cardledger.models.user import User
from cardledger.schemas.transfer import TransferRequest, TransferResponse
from cardledger.services import ledger_service, transfer_service

router = APIRouter()


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer money between my cards",
)
async def create_transfer(
    request: TransferRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Transfer money from one of my cards to another.

    - **from_card_id** / **to_card_id**: Both must be mine and different
    - **amount**: At least 0.01, at most two decimal places
    - Both cards must be ACTIVE and not expired
    - Fails with 422 `insufficient_funds` if the source can't cover it
    """
    return await transfer_service.transfer(
        db=db,
        owner_id=user.id,
        from_card_id=request.from_card_id,
        to_card_id=request.to_card_id,
        amount=request.amount,
    )


@router.get(
    "",
    response_model=list[TransferResponse],
    summary="List my transfers",
)
async def list_my_transfers(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await ledger_service.list_user_transfers(
        db=db,
        owner_id=user.id,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{transfer_id}",
    response_model=TransferResponse,
    summary="Get one of my transfers",
)
async def get_transfer(
    transfer_id: uuid.UUID,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await ledger_service.get_transfer(db, transfer_id, user.id)
