"""Tests for card number generation."""

import random

import pytest

from cardledger.services.card_numbers import CARD_NUMBER_LENGTH, CardNumberGenerator


class TestCardNumberGenerator:

    def test_generates_sixteen_digits(self):
        generator = CardNumberGenerator()
        for _ in range(100):
            number = generator.generate()
            assert len(number) == CARD_NUMBER_LENGTH
            assert number.isdigit()

    def test_seeded_source_is_reproducible(self):
        """The random source is injected, so a seeded one gives fixed output."""
        first = CardNumberGenerator(random.Random(42)).generate()
        second = CardNumberGenerator(random.Random(42)).generate()
        assert first == second

    def test_prefix(self):
        number = CardNumberGenerator().generate_with_prefix("4000")
        assert number.startswith("4000")
        assert len(number) == CARD_NUMBER_LENGTH
        assert number.isdigit()

    @pytest.mark.parametrize("prefix", ["", None])
    def test_empty_prefix_is_plain_generate(self, prefix):
        number = CardNumberGenerator().generate_with_prefix(prefix)
        assert len(number) == CARD_NUMBER_LENGTH

    @pytest.mark.parametrize("prefix", ["40a0", "1" * 16, "1" * 20])
    def test_bad_prefix_rejected(self, prefix):
        with pytest.raises(ValueError):
            CardNumberGenerator().generate_with_prefix(prefix)
