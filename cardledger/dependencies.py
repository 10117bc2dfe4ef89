"""
FastAPI dependencies for authentication and authorization.

Dependencies form a chain that enforces both authentication and role:

  get_current_user (JWT -> User)
      ├── require_user   (User -> User)  [USER role]
      └── require_admin  (User -> User)  [ADMIN role]

Roles decide which API surface a caller can reach. They are never the
ownership check: card services re-verify that every card belongs to the
caller, whatever the route.

  - USER: Manages their own cards and moves money between them.
  - ADMIN: Issues, funds, blocks and deletes cards for anyone and reads the
    whole ledger, but cannot use the card self-service endpoints or
    initiate transfers.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.database import get_db
from cardledger.models.user import User, UserRole
from cardledger.security import decode_access_token


# Reads the "Authorization: Bearer <token>" header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT, then return the corresponding User.

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't exist
            or is deactivated.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception
        user_id = uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise credentials_exception

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def require_user(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require a card holder (USER role).

    Admins are blocked here so they can't accidentally move money through
    the member endpoints; they use /admin/* instead.

    Raises:
        HTTPException 403: If the user is an admin.
    """
    if user.role != UserRole.USER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin accounts cannot use card holder endpoints. "
                   "Use /admin/* endpoints instead.",
        )
    return user


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the ADMIN role.

    Raises:
        HTTPException 403: If the user is not an admin.
    """
    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
