"""
Card model — one bank card account with its own balance.

Encryption strategy:
  - number_encrypted: Full 16-digit number, AES-GCM encrypted (random nonce)
  - number_fingerprint: Keyed HMAC of the number; UNIQUE, so two cards can
    never share a number even though their ciphertexts always differ
  - masked_number: "**** **** **** 1234", derived once at creation

The plaintext number is never stored and never re-derived; the masked form
is the only readable trace of it.

Write-once fields:
  owner_id, number_encrypted, number_fingerprint, masked_number and
  expiration_date can be set exactly once. Reassigning any of them raises
  ValueError before anything reaches the database.

Status and expiry:
  `status` is ACTIVE or BLOCKED in practice. EXPIRED exists in the enum but
  nothing ever writes it: expiry is derived from `expiration_date` at the
  moment a check needs it (see `is_expired`), so the date stays the single
  source of truth.

Balance:
  Stored in integer cents with a CHECK constraint forbidding negative
  values. Only the transfer engine and the explicit funding operation
  change it.
"""

import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, BigInteger, Date, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from cardledger.database import Base
from cardledger.money import from_cents


class CardStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"
    EXPIRED = "EXPIRED"


WRITE_ONCE_FIELDS = (
    "owner_id",
    "number_encrypted",
    "number_fingerprint",
    "masked_number",
    "expiration_date",
)


class Card(Base):
    __tablename__ = "cards"

    # Database-level constraint: balance can never be negative
    __table_args__ = (
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_cards_non_negative_balance",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # base64(nonce || ciphertext || tag)
    number_encrypted: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    number_fingerprint: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )

    masked_number: Mapped[str] = mapped_column(
        String(19),
        nullable=False,
    )

    holder_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    expiration_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    status: Mapped[CardStatus] = mapped_column(
        Enum(CardStatus),
        default=CardStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    balance_cents: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
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
    owner: Mapped["User"] = relationship(
        back_populates="cards",
    )

    @validates(*WRITE_ONCE_FIELDS)
    def _validate_write_once(self, key, value):
        current = self.__dict__.get(key)
        if current is not None and current != value:
            raise ValueError(f"Card.{key} cannot be changed once set")
        return value

    @property
    def balance(self) -> Decimal:
        """Balance as a Decimal with two fractional digits."""
        return from_cents(self.balance_cents or 0)

    def is_expired_on(self, today: date) -> bool:
        """A card is expired once its expiration date is strictly before `today`."""
        return self.expiration_date < today

    @property
    def is_expired(self) -> bool:
        return self.is_expired_on(date.today())
