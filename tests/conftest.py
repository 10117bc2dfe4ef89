"""
Test fixtures for the Card Ledger test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - client: Async HTTP test client (unauthenticated)
  - user_headers / second_user_headers / admin_headers: Bearer headers for
    users registered through the real signup endpoint
  - authenticated_client / admin_client: The client with those headers set
  - owner / other_owner / make_card: Service-level helpers that insert
    users and cards straight into db_session

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database.
  - We override FastAPI's get_db dependency to inject a session on the test
    engine, so the application code works exactly as it does in production.
  - Admins are created by signing up normally and then updating the role in
    the DB, the way an operator would provision them.
  - Cross-user tests pass headers per request instead of sharing mutable
    client headers.
"""

import os

# Required settings must exist before cardledger.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("CARD_ENCRYPTION_KEY", "0123456789abcdef0123456789abcdef")

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from cardledger.database import Base, get_db
from cardledger.main import app
from cardledger.models.card import Card, CardStatus
from cardledger.models.user import User, UserRole
from cardledger.security import card_cipher
from cardledger.services.card_numbers import CardNumberGenerator, mask_card_number


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

FUTURE = date.today() + timedelta(days=365)
YESTERDAY = date.today() - timedelta(days=1)


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_engine):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def signup(client, email: str, password: str = "SecurePass123!") -> dict:
    """Register through the API and return a Bearer header dict."""
    response = await client.post(
        "/auth/signup",
        json={"email": email, "password": password},
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest_asyncio.fixture
async def user_headers(client):
    return await signup(client, "testuser@example.com")


@pytest_asyncio.fixture
async def second_user_headers(client):
    return await signup(client, "seconduser@example.com", "SecurePass456!")


@pytest_asyncio.fixture
async def admin_headers(client, db_engine):
    """
    Bearer header for an ADMIN user.

    Signs up a normal user, promotes them directly in the database, then
    logs in again.
    """
    signup_response = await client.post(
        "/auth/signup",
        json={"email": "admin@example.com", "password": "AdminPass123!"},
    )
    assert signup_response.status_code == 201
    user_id = uuid.UUID(signup_response.json()["user_id"])

    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False,
    )
    async with async_session() as session:
        await session.execute(
            update(User)
            .where(User.id == user_id)
            .values(role=UserRole.ADMIN)
        )
        await session.commit()

    login_response = await client.post(
        "/auth/login",
        json={"email": "admin@example.com", "password": "AdminPass123!"},
    )
    return {"Authorization": f"Bearer {login_response.json()['token']}"}


@pytest_asyncio.fixture
async def authenticated_client(client, user_headers):
    """Test client acting as a registered card holder."""
    client.headers.update(user_headers)
    return client


@pytest_asyncio.fixture
async def admin_client(client, admin_headers):
    """Test client acting as an ADMIN."""
    client.headers.update(admin_headers)
    return client


# ---------------------------------------------------------------------------
# Service-level helpers
# ---------------------------------------------------------------------------

async def insert_user(session: AsyncSession, email: str) -> User:
    user = User(
        email=email,
        hashed_password="not-a-real-hash",
        role=UserRole.USER,
    )
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def owner(db_session):
    return await insert_user(db_session, "owner@example.com")


@pytest_asyncio.fixture
async def other_owner(db_session):
    return await insert_user(db_session, "other@example.com")


def build_card(
    owner_id: uuid.UUID,
    balance: str = "0.00",
    expiration_date: date | None = None,
    status: CardStatus = CardStatus.ACTIVE,
    holder_name: str = "Test Holder",
) -> Card:
    """Build a Card row directly, bypassing creation-time date validation."""
    number = CardNumberGenerator().generate()
    return Card(
        owner_id=owner_id,
        number_encrypted=card_cipher.encrypt(number),
        number_fingerprint=card_cipher.fingerprint(number),
        masked_number=mask_card_number(number),
        holder_name=holder_name,
        expiration_date=expiration_date or FUTURE,
        status=status,
        balance_cents=int(Decimal(balance) * 100),
    )


@pytest.fixture
def make_card(db_session):
    """Factory fixture: insert and commit a card for an owner."""

    async def _make(owner, balance="0.00", expiration_date=None, status=CardStatus.ACTIVE):
        card = build_card(owner.id, balance, expiration_date, status)
        db_session.add(card)
        await db_session.commit()
        return card

    return _make
