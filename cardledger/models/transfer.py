"""
Transfer model — the append-only ledger of completed money movements.

One row per completed transfer, written in the same database transaction as
the debit and credit it describes. Rows are never updated or deleted.

Only COMPLETED is ever written: a rejected transfer raises before anything
is persisted, so there are no failed rows to audit. FAILED and CANCELLED are
kept in the enum so stored values stay compatible if that ever changes.

Cards are referenced by id only. A card with ledger rows cannot be deleted.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cardledger.database import Base
from cardledger.money import from_cents


class TransferStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Transfer(Base):
    __tablename__ = "transfers"

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_transfers_positive_amount"),
        CheckConstraint("from_card_id <> to_card_id", name="ck_transfers_distinct_cards"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    from_card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cards.id"),
        nullable=False,
        index=True,
    )

    to_card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cards.id"),
        nullable=False,
        index=True,
    )

    # Always positive
    amount_cents: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    status: Mapped[TransferStatus] = mapped_column(
        Enum(TransferStatus),
        default=TransferStatus.COMPLETED,
        nullable=False,
    )

    # Indexed for newest-first listings
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)
