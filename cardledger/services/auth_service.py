"""
Authentication service — signup and login business logic.

The router calls these functions and translates the results into HTTP
responses, so the logic can be tested without spinning up a web server.

Signup flow:
  1. Check if the email is already registered
  2. Hash the password with Argon2id
  3. Create the User with the USER role
  4. Return a JWT so the user is immediately logged in

Login flow:
  1. Look up the user by email
  2. Verify the password against the stored hash
  3. Return a JWT

Login returns the same error for "wrong password", "unknown email" and
"deactivated user" to prevent user enumeration.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cardledger.exceptions import DuplicateEmailError, InvalidCredentialsError
from cardledger.models.user import User, UserRole
from cardledger.security import hash_password, verify_password, create_access_token

logger = logging.getLogger(__name__)


async def signup(
    db: AsyncSession,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Register a new user.

    Returns:
        Tuple of (User instance, JWT token string).

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise DuplicateEmailError(email)

    user = User(
        email=email,
        hashed_password=hash_password(password),
        role=UserRole.USER,
    )
    db.add(user)
    await db.flush()
    logger.info("Registered user %s", user.id)

    token = create_access_token(data={"sub": str(user.id)})
    return user, token


async def login(
    db: AsyncSession,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Raises:
        InvalidCredentialsError: If the email is unknown, the password is
            wrong, or the user is deactivated.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user:
        raise InvalidCredentialsError()

    if not verify_password(password, user.hashed_password):
        raise InvalidCredentialsError()

    if not user.is_active:
        raise InvalidCredentialsError()

    token = create_access_token(data={"sub": str(user.id)})
    return user, token
