"""
Admin router — organization-wide card and user management.

All endpoints require the ADMIN role. Admins manage cards for any user and
read the whole ledger, but never initiate transfers.

Endpoints:
  GET    /admin/users                     — List users (search by email)
  GET    /admin/users/{user_id}           — Get any user
  PATCH  /admin/users/{user_id}/role      — Change a user's role
  PATCH  /admin/users/{user_id}/active    — Deactivate or reactivate a user
  DELETE /admin/users/{user_id}           — Delete a user without cards
  GET    /admin/cards                     — List all cards
  POST   /admin/cards                     — Issue a card for any user
  GET    /admin/cards/{card_id}           — Get any card
  PATCH  /admin/cards/{card_id}/status    — Force ACTIVE / BLOCKED
  POST   /admin/cards/{card_id}/fund      — Credit money onto a card
  DELETE /admin/cards/{card_id}           — Delete an empty card with no transfers
  GET    /admin/transfers                 — List the whole ledger

By consolidating all admin routes in one router, we avoid route-ordering
conflicts that arise when multiple routers share a prefix and have
overlapping parameterized paths.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.database import get_db
from cardledger.dependencies import require_admin
from cardledger.models.card import CardStatus
from cardledger.models.user import User, UserRole
from cardledger.schemas.card import (
    AdminCardCreateRequest,
    CardResponse,
    CardStatusUpdateRequest,
    FundCardRequest,
)
from cardledger.schemas.transfer import TransferResponse
from cardledger.schemas.user import RoleUpdateRequest, UserActiveUpdateRequest, UserResponse
from cardledger.services import card_service, ledger_service, transfer_service, user_service

router = APIRouter()


# ---------------------------------------------------------------------------
# User admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="[Admin] List users",
)
async def admin_list_users(
    search: str | None = Query(None, description="Match against the email"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users(db, search=search, limit=limit, offset=offset)


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="[Admin] Get any user",
)
async def admin_get_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user(db, user_id)


@router.patch(
    "/users/{user_id}/role",
    response_model=UserResponse,
    summary="[Admin] Change a user's role",
)
async def admin_update_role(
    user_id: uuid.UUID,
    request: RoleUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Promote a user to ADMIN or demote them to USER.

    An ADMIN can no longer reach the card holder endpoints, so promote
    with care.
    """
    return await user_service.update_user_role(db, user_id, UserRole(request.role))


@router.patch(
    "/users/{user_id}/active",
    response_model=UserResponse,
    summary="[Admin] Deactivate or reactivate a user",
)
async def admin_set_user_active(
    user_id: uuid.UUID,
    request: UserActiveUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    A deactivated user can't log in, and tokens already issued to them stop
    working. Their cards and balances are kept.
    """
    return await user_service.set_user_active(db, user_id, request.is_active)


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a user",
)
async def admin_delete_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a user. Users who still own cards return 409."""
    await user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Card admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/cards",
    response_model=list[CardResponse],
    summary="[Admin] List all cards",
)
async def admin_list_cards(
    search: str | None = Query(None, description="Match against the masked number"),
    owner_id: uuid.UUID | None = Query(None, description="Only this user's cards"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await card_service.admin_list_cards(
        db=db,
        search=search,
        owner_id=owner_id,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/cards",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Issue a card for any user",
)
async def admin_create_card(
    request: AdminCardCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Issue a new ACTIVE, zero-balance card owned by **owner_id**."""
    return await card_service.admin_create_card(
        db=db,
        owner_id=request.owner_id,
        holder_name=request.holder_name,
        expiration_date=request.expiration_date,
    )


@router.get(
    "/cards/{card_id}",
    response_model=CardResponse,
    summary="[Admin] Get any card",
)
async def admin_get_card(
    card_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await card_service.admin_get_card(db, card_id)


@router.patch(
    "/cards/{card_id}/status",
    response_model=CardResponse,
    summary="[Admin] Set a card's status",
)
async def admin_set_card_status(
    card_id: uuid.UUID,
    request: CardStatusUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Force a card to ACTIVE or BLOCKED.

    Setting the status a card already has is accepted and changes nothing.
    An expired card can't be activated.
    """
    return await card_service.admin_set_card_status(db, card_id, CardStatus(request.status))


@router.post(
    "/cards/{card_id}/fund",
    response_model=CardResponse,
    summary="[Admin] Credit money onto a card",
)
async def admin_fund_card(
    card_id: uuid.UUID,
    request: FundCardRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Deposit **amount** onto an active card.

    This is the only way money enters the system; transfers only move it.
    """
    return await transfer_service.fund_card(db, card_id, request.amount)


@router.delete(
    "/cards/{card_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a card",
)
async def admin_delete_card(
    card_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a card. Cards that still hold money or appear in the ledger return 409."""
    await card_service.admin_delete_card(db, card_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Ledger admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/transfers",
    response_model=list[TransferResponse],
    summary="[Admin] List the whole ledger",
)
async def admin_list_transfers(
    card_id: uuid.UUID | None = Query(None, description="Only transfers touching this card"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ledger_service.admin_list_transfers(
        db=db,
        card_id=card_id,
        limit=limit,
        offset=offset,
    )
