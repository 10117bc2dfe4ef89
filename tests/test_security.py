"""
Tests for card-number encryption, fingerprints and masking.

These tests verify:
  - Encrypt/decrypt returns the original number
  - The same number encrypts differently every time
  - Only 16, 24 and 32 byte keys are accepted
  - Tampered, truncated or foreign ciphertext raises DecryptionError
  - Fingerprints are deterministic and key-dependent
  - Masking keeps only the last four digits
"""

import base64

import pytest

from cardledger.exceptions import DecryptionError, InvalidKeyError
from cardledger.security import (
    CardNumberCipher,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from cardledger.services.card_numbers import CardNumberGenerator, mask_card_number

KEY = "0123456789abcdef0123456789abcdef"
NUMBER = "4111111111111111"


class TestCardNumberCipher:

    def test_round_trip(self):
        cipher = CardNumberCipher(KEY)
        assert cipher.decrypt(cipher.encrypt(NUMBER)) == NUMBER

    def test_round_trip_many_generated_numbers(self):
        cipher = CardNumberCipher(KEY)
        generator = CardNumberGenerator()
        for _ in range(50):
            number = generator.generate()
            assert cipher.decrypt(cipher.encrypt(number)) == number

    def test_ciphertext_is_randomized(self):
        """Equal numbers must not produce equal ciphertexts."""
        cipher = CardNumberCipher(KEY)
        assert cipher.encrypt(NUMBER) != cipher.encrypt(NUMBER)

    def test_ciphertext_does_not_contain_plaintext(self):
        cipher = CardNumberCipher(KEY)
        assert NUMBER not in cipher.encrypt(NUMBER)

    @pytest.mark.parametrize("length", [16, 24, 32])
    def test_valid_key_lengths(self, length):
        cipher = CardNumberCipher("k" * length)
        assert cipher.decrypt(cipher.encrypt(NUMBER)) == NUMBER

    def test_bytes_key_accepted(self):
        cipher = CardNumberCipher(b"\x00" * 32)
        assert cipher.decrypt(cipher.encrypt(NUMBER)) == NUMBER

    @pytest.mark.parametrize("length", [0, 8, 15, 17, 31, 33, 64])
    def test_invalid_key_lengths(self, length):
        with pytest.raises(InvalidKeyError):
            CardNumberCipher("k" * length)

    def test_tampered_ciphertext_rejected(self):
        cipher = CardNumberCipher(KEY)
        raw = bytearray(base64.b64decode(cipher.encrypt(NUMBER)))
        raw[-1] ^= 0x01
        with pytest.raises(DecryptionError):
            cipher.decrypt(base64.b64encode(bytes(raw)).decode("ascii"))

    def test_wrong_key_rejected(self):
        sealed = CardNumberCipher(KEY).encrypt(NUMBER)
        with pytest.raises(DecryptionError):
            CardNumberCipher("f" * 32).decrypt(sealed)

    def test_malformed_base64_rejected(self):
        with pytest.raises(DecryptionError):
            CardNumberCipher(KEY).decrypt("not base64 at all!")

    def test_truncated_ciphertext_rejected(self):
        short = base64.b64encode(b"\x00" * 10).decode("ascii")
        with pytest.raises(DecryptionError):
            CardNumberCipher(KEY).decrypt(short)

    def test_fingerprint_deterministic_and_keyed(self):
        cipher = CardNumberCipher(KEY)
        assert cipher.fingerprint(NUMBER) == cipher.fingerprint(NUMBER)
        assert cipher.fingerprint(NUMBER) != cipher.fingerprint("4111111111111112")
        assert cipher.fingerprint(NUMBER) != CardNumberCipher("f" * 32).fingerprint(NUMBER)
        assert len(cipher.fingerprint(NUMBER)) == 64


class TestMasking:

    def test_mask_keeps_last_four(self):
        assert mask_card_number("1234567890123456") == "**** **** **** 3456"

    def test_mask_generated_numbers(self):
        generator = CardNumberGenerator()
        for _ in range(20):
            number = generator.generate()
            masked = mask_card_number(number)
            assert masked.endswith(number[-4:])
            assert masked.startswith("**** **** **** ")
            assert number[:12] not in masked

    @pytest.mark.parametrize("value", [None, "", "123"])
    def test_short_input_fully_masked(self, value):
        assert mask_card_number(value) == "****"

    def test_custom_mask_and_separator(self):
        assert mask_card_number("1234567890123456", "#", "-") == "####-####-####-3456"


class TestPasswordsAndTokens:

    def test_password_hash_verifies(self):
        hashed = hash_password("SecurePass123!")
        assert hashed != "SecurePass123!"
        assert verify_password("SecurePass123!", hashed)
        assert not verify_password("wrong", hashed)

    def test_token_round_trip(self):
        token = create_access_token({"sub": "abc"})
        assert decode_access_token(token)["sub"] == "abc"
