"""
Money helpers — conversion between Decimal amounts and integer cents.

Balances and transfer amounts are stored as integer cents (e.g. 150.25 is
stored as 15025). Integer arithmetic is exact, so repeated transfers never
drift the way binary floating point would.

The API speaks Decimal with two fractional digits. `to_cents` is the single
gate from the outside world into cents; `from_cents` converts back for
responses and error messages.
"""

from decimal import Decimal, InvalidOperation

from cardledger.exceptions import InvalidAmountError

CENT = Decimal("0.01")


def to_cents(amount: Decimal | str | int) -> int:
    """
    Convert a positive monetary amount into integer cents.

    Args:
        amount: A Decimal, numeric string, or int (whole units).

    Returns:
        The amount in cents, always > 0.

    Raises:
        InvalidAmountError: If the amount is not a finite number, is zero or
            negative, or has more than two fractional digits.
    """
    if isinstance(amount, float):
        # floats can't represent most cent values exactly
        raise InvalidAmountError("Amount must be a Decimal or string, not float")
    try:
        value = Decimal(amount) if not isinstance(amount, Decimal) else amount
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"Invalid amount: {amount!r}")

    if not value.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if value <= 0:
        raise InvalidAmountError("Amount must be greater than 0")
    try:
        quantized = value.quantize(CENT)
    except InvalidOperation:
        raise InvalidAmountError(f"Amount is too large: {amount!r}")
    if value != quantized:
        raise InvalidAmountError("Amount must have at most 2 decimal places")

    return int(quantized * 100)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents into a Decimal with exactly two fractional digits."""
    return Decimal(cents).scaleb(-2)
