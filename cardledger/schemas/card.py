"""
Pydantic schemas for Card endpoints.

Card numbers are NEVER returned in API responses, neither in plaintext nor
encrypted. Only the masked form ("**** **** **** 1234") is exposed.

Amounts are Decimal with at most two fractional digits and serialize as
strings ("150.00") so clients never round-trip money through floats.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from cardledger.models.card import CardStatus


class CardCreateRequest(BaseModel):
    """Request body for POST /cards."""
    holder_name: str = Field(min_length=2, max_length=100)
    expiration_date: date

    @field_validator("holder_name")
    @classmethod
    def holder_name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Card holder name is required")
        return value.strip()

    @field_validator("expiration_date")
    @classmethod
    def expiration_in_future(cls, value: date) -> date:
        if value <= date.today():
            raise ValueError("Expiration date must be in the future")
        return value


class AdminCardCreateRequest(CardCreateRequest):
    """Request body for POST /admin/cards — issue a card for any user."""
    owner_id: uuid.UUID


class CardResponse(BaseModel):
    """Public representation of a card (masked number only)."""
    id: uuid.UUID
    owner_id: uuid.UUID
    masked_number: str
    holder_name: str
    expiration_date: date
    status: CardStatus
    is_expired: bool
    balance: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    card_id: uuid.UUID
    balance: Decimal


class CardStatusUpdateRequest(BaseModel):
    """Request body for PATCH /admin/cards/{id}/status. EXPIRED is never settable."""
    status: Literal["ACTIVE", "BLOCKED"]


class FundCardRequest(BaseModel):
    """Request body for POST /admin/cards/{id}/fund."""
    amount: Decimal = Field(gt=0, max_digits=15, decimal_places=2)
