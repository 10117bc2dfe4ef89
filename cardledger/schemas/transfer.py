"""
Pydantic schemas for Transfer endpoints.

Amounts are Decimal with at most two fractional digits (e.g. "10.50").
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from cardledger.models.transfer import TransferStatus


class TransferRequest(BaseModel):
    """Request body for POST /transfers."""
    from_card_id: uuid.UUID
    to_card_id: uuid.UUID
    amount: Decimal = Field(
        gt=0,
        max_digits=15,
        decimal_places=2,
        description="Amount to move (minimum 0.01)",
    )


class TransferResponse(BaseModel):
    """Public representation of a completed transfer."""
    id: uuid.UUID
    from_card_id: uuid.UUID
    to_card_id: uuid.UUID
    amount: Decimal
    status: TransferStatus
    timestamp: datetime

    model_config = {"from_attributes": True}
