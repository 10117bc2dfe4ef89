"""
User model — the authentication identity and card owner.

Each User is a login credential (email + hashed password) with a role.
Cards reference their owner through `cards.owner_id`; a card's owner never
changes after issuance.

User roles:
  - USER: Card holder. Manages their own cards and moves money between them.
  - ADMIN: Operator. Issues cards for any user, changes card status, funds
    cards and reads the whole ledger, but never initiates transfers.

All signups are USER; admins are promoted by an existing admin.

The password is stored as an Argon2id hash, never in plaintext.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cardledger.database import Base


class UserRole(str, enum.Enum):
    """
    Role a user holds in the system.

    Inherits from str so the value serializes naturally to JSON.
    """
    USER = "USER"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Login identifier: unique and indexed for fast lookups
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.USER,
        nullable=False,
    )

    # Soft-disable: deactivated users can't log in but their cards are preserved
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    cards: Mapped[list["Card"]] = relationship(
        back_populates="owner",
    )
