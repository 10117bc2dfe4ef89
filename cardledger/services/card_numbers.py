"""
Card number generation and masking.

Card numbers are 16 random digits drawn from a cryptographically secure
source. The generator takes its random source as a constructor argument so
tests can inject a seeded one; production code uses `secrets.SystemRandom`.

Masking turns a full number into its display form, "**** **** **** 1234".
The masked form is computed once, at card creation, from the plaintext that
is then encrypted and discarded.
"""

import random
import secrets

CARD_NUMBER_LENGTH = 16


class CardNumberGenerator:
    """Produces 16-digit card numbers from an injected random source."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng if rng is not None else secrets.SystemRandom()

    def _digits(self, count: int) -> str:
        return "".join(str(self._rng.randrange(10)) for _ in range(count))

    def generate(self) -> str:
        """Return a random 16-digit number. The leading digit may be 0."""
        return self._digits(CARD_NUMBER_LENGTH)

    def generate_with_prefix(self, prefix: str | None) -> str:
        """
        Return a 16-digit number starting with `prefix`.

        An empty (or None) prefix behaves like `generate()`.

        Raises:
            ValueError: If the prefix has non-digit characters or is 16+ digits.
        """
        if not prefix:
            return self.generate()
        if not prefix.isdigit() or not prefix.isascii():
            raise ValueError("Card number prefix must contain only digits")
        if len(prefix) >= CARD_NUMBER_LENGTH:
            raise ValueError(
                f"Card number prefix must be shorter than {CARD_NUMBER_LENGTH} digits"
            )
        return prefix + self._digits(CARD_NUMBER_LENGTH - len(prefix))


def mask_card_number(card_number: str | None, mask_char: str = "*", separator: str = " ") -> str:
    """
    Mask all but the last four digits, e.g. "**** **** **** 3456".

    Inputs shorter than four characters are fully masked.
    """
    if card_number is None or len(card_number) < 4:
        return mask_char * 4
    group = mask_char * 4
    return separator.join([group, group, group, card_number[-4:]])
