"""
Custom exception classes and the FastAPI exception handler.

Why custom exceptions?
  The service layer raises domain-specific errors (like InsufficientFundsError)
  without importing HTTP concepts. The handler registered here translates
  them into HTTP responses, so service code stays testable without HTTP and
  error responses are consistent across all endpoints.

Every domain error declares its own `status_code` and a stable `error_type`
string. Clients should branch on `error_type`, never on the `detail` text.

Exception hierarchy:
    BankAPIError (base)
    ├── OwnerNotFoundError        — referenced user does not exist
    ├── CardNotFoundError         — referenced card does not exist
    ├── TransferNotFoundError     — referenced transfer does not exist
    ├── CardAccessForbiddenError  — card exists but belongs to another user
    ├── CardAlreadyBlockedError   — block requested on a blocked card
    ├── CardAlreadyActiveError    — activate requested on an active card
    ├── CardExpiredError          — expiration date has passed
    ├── CardNotActiveError        — operation requires ACTIVE status
    ├── CardInUseError            — card is referenced by the ledger
    ├── CardHasBalanceError       — card still holds money
    ├── CardNumberUnavailableError — no free card number could be drawn
    ├── UserHasCardsError         — user still owns cards
    ├── SelfTransferError         — source and destination are the same card
    ├── InsufficientFundsError    — debit would make a balance negative
    ├── InvalidCardDataError      — malformed card creation input
    ├── InvalidAmountError        — non-positive or over-precise amount
    ├── DuplicateEmailError       — signup with a registered email
    ├── InvalidCredentialsError   — bad login
    └── CryptoError
        ├── InvalidKeyError       — key is not 16, 24 or 32 bytes
        └── DecryptionError       — ciphertext malformed or tampered
"""

import uuid
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BankAPIError(Exception):
    """Base exception for all Card Ledger domain errors."""

    status_code = 400
    error_type = "bank_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def extra_content(self) -> dict:
        """Additional JSON fields included in the error response."""
        return {}


# ---------------------------------------------------------------------------
# Lookup and ownership
# ---------------------------------------------------------------------------

class OwnerNotFoundError(BankAPIError):
    """Raised when a referenced user does not exist."""

    status_code = 404
    error_type = "owner_not_found"

    def __init__(self, owner_id: uuid.UUID):
        self.owner_id = owner_id
        super().__init__(f"User {owner_id} not found")


class CardNotFoundError(BankAPIError):
    """Raised when a requested card does not exist."""

    status_code = 404
    error_type = "card_not_found"

    def __init__(self, card_id: uuid.UUID):
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found")


class TransferNotFoundError(BankAPIError):
    status_code = 404
    error_type = "transfer_not_found"

    def __init__(self, transfer_id: uuid.UUID):
        self.transfer_id = transfer_id
        super().__init__(f"Transfer {transfer_id} not found")


class CardAccessForbiddenError(BankAPIError):
    """Raised when a user touches a card they don't own."""

    status_code = 403
    error_type = "forbidden"

    def __init__(self, card_id: uuid.UUID):
        self.card_id = card_id
        super().__init__("You do not have access to this card")


# ---------------------------------------------------------------------------
# Card state
# ---------------------------------------------------------------------------

class CardAlreadyBlockedError(BankAPIError):
    status_code = 409
    error_type = "already_blocked"

    def __init__(self, card_id: uuid.UUID):
        self.card_id = card_id
        super().__init__(f"Card {card_id} is already blocked")


class CardAlreadyActiveError(BankAPIError):
    status_code = 409
    error_type = "already_active"

    def __init__(self, card_id: uuid.UUID):
        self.card_id = card_id
        super().__init__(f"Card {card_id} is already active")


class CardExpiredError(BankAPIError):
    """Raised when an operation needs a card whose expiration date has passed."""

    status_code = 422
    error_type = "card_expired"

    def __init__(self, card_id: uuid.UUID):
        self.card_id = card_id
        super().__init__(f"Card {card_id} has expired")


class CardNotActiveError(BankAPIError):
    """Raised when an operation requires an ACTIVE card."""

    status_code = 422
    error_type = "card_not_active"

    def __init__(self, card_id: uuid.UUID, status: str):
        self.card_id = card_id
        self.status = status
        super().__init__(f"Card {card_id} is not active (status: {status})")


class CardInUseError(BankAPIError):
    """Raised when deleting a card that completed transfers still reference."""

    status_code = 409
    error_type = "card_in_use"

    def __init__(self, card_id: uuid.UUID):
        self.card_id = card_id
        super().__init__(f"Card {card_id} has recorded transfers and cannot be deleted")


class CardHasBalanceError(BankAPIError):
    """Raised when deleting a card whose balance is not zero."""

    status_code = 409
    error_type = "card_has_balance"

    def __init__(self, card_id: uuid.UUID, balance: Decimal):
        self.card_id = card_id
        self.balance = balance
        super().__init__(f"Card {card_id} still holds {balance} and cannot be deleted")

    def extra_content(self) -> dict:
        return {"card_id": str(self.card_id), "balance": str(self.balance)}


class UserHasCardsError(BankAPIError):
    """Raised when deleting a user who still owns cards."""

    status_code = 409
    error_type = "user_has_cards"

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__(f"User {user_id} still owns cards and cannot be deleted")


# ---------------------------------------------------------------------------
# Money movement
# ---------------------------------------------------------------------------

class SelfTransferError(BankAPIError):
    status_code = 422
    error_type = "self_transfer"

    def __init__(self, card_id: uuid.UUID):
        self.card_id = card_id
        super().__init__("Cannot transfer money to the same card")


class InsufficientFundsError(BankAPIError):
    """
    Raised when a transfer would cause a negative balance.

    Attributes:
        card_id: The card that lacks sufficient funds.
        available: The current balance of the card.
        requested: The amount the user tried to move.
    """

    status_code = 422
    error_type = "insufficient_funds"

    def __init__(self, card_id: uuid.UUID, available: Decimal, requested: Decimal):
        self.card_id = card_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient funds on card {card_id}: "
            f"available {available}, requested {requested}"
        )

    def extra_content(self) -> dict:
        return {
            "card_id": str(self.card_id),
            "available": str(self.available),
            "requested": str(self.requested),
        }


class InvalidAmountError(BankAPIError):
    status_code = 422
    error_type = "invalid_amount"

    def __init__(self, detail: str = "Amount must be positive with at most 2 decimal places"):
        super().__init__(detail)


class InvalidCardDataError(BankAPIError):
    status_code = 422
    error_type = "invalid_card_data"


class CardNumberUnavailableError(BankAPIError):
    """Raised when every generated card number collided with an existing one."""

    status_code = 503
    error_type = "card_number_unavailable"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Could not generate a unique card number after {attempts} attempts"
        )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class DuplicateEmailError(BankAPIError):
    """Raised when attempting to register with an email that's already in use."""

    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(BankAPIError):
    status_code = 401
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


# ---------------------------------------------------------------------------
# Crypto boundary
# ---------------------------------------------------------------------------

class CryptoError(BankAPIError):
    """Base for card-number cipher failures. Never exposes details over HTTP."""

    status_code = 500
    error_type = "crypto_failure"


class InvalidKeyError(CryptoError):
    def __init__(self, length: int):
        self.length = length
        super().__init__(f"Card encryption key must be 16, 24 or 32 bytes, got {length}")


class DecryptionError(CryptoError):
    def __init__(self, detail: str = "Card number ciphertext is malformed or has been tampered with"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handler
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the domain exception handler with the FastAPI application.

    Every BankAPIError is rendered as:
        {"detail": "...", "error_type": "...", ...extra fields}

    This is called once during app startup in main.py.
    """

    @app.exception_handler(BankAPIError)
    async def bank_api_error_handler(
        request: Request, exc: BankAPIError
    ) -> JSONResponse:
        if isinstance(exc, CryptoError):
            # Never echo key or ciphertext details back to a client
            content = {"detail": "Internal card data error", "error_type": exc.error_type}
        else:
            content = {"detail": exc.detail, "error_type": exc.error_type}
            content.update(exc.extra_content())
        return JSONResponse(status_code=exc.status_code, content=content)
