"""
User administration — read, re-role, deactivate and delete users.

All functions here are [ADMIN ONLY]; the router enforces the role.
Promoting a user to ADMIN takes them off the card self-service endpoints.
A deactivated user can no longer log in or use an existing token. Only
users without cards can be deleted, so ledger rows always point at cards
whose owner still exists.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.exceptions import OwnerNotFoundError, UserHasCardsError
from cardledger.models.card import Card
from cardledger.models.user import User, UserRole

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise OwnerNotFoundError(user_id)
    return user


async def list_users(
    db: AsyncSession,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[User]:
    """List users, oldest first, optionally filtered by an email substring."""
    query = (
        select(User)
        .order_by(User.created_at, User.id)
        .limit(limit)
        .offset(offset)
    )
    if search and search.strip():
        query = query.where(User.email.contains(search.strip(), autoescape=True))

    result = await db.execute(query)
    return list(result.scalars().all())


async def update_user_role(
    db: AsyncSession,
    user_id: uuid.UUID,
    role: UserRole,
) -> User:
    user = await get_user(db, user_id)
    user.role = role
    await db.flush()
    logger.info("User %s role set to %s", user_id, role.value)
    return user


async def set_user_active(
    db: AsyncSession,
    user_id: uuid.UUID,
    is_active: bool,
) -> User:
    user = await get_user(db, user_id)
    user.is_active = is_active
    await db.flush()
    logger.info("User %s %s", user_id, "reactivated" if is_active else "deactivated")
    return user


async def delete_user(db: AsyncSession, user_id: uuid.UUID) -> None:
    """
    Delete a user who owns no cards.

    Raises:
        OwnerNotFoundError: If the user doesn't exist.
        UserHasCardsError: If any card still belongs to the user.
    """
    user = await get_user(db, user_id)

    owned = await db.execute(
        select(func.count()).select_from(Card).where(Card.owner_id == user_id)
    )
    if owned.scalar_one() > 0:
        raise UserHasCardsError(user_id)

    await db.delete(user)
    await db.flush()
    logger.info("User %s deleted", user_id)
