"""
Security utilities: password hashing, JWT tokens, and card-number encryption.

This module centralizes all cryptographic operations so they're easy to
audit and update. Three concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext wraps Argon2id and handles future scheme
     migrations ("deprecated='auto'")

2. JWT TOKENS (JSON Web Tokens)
   - After login, the user receives a signed JWT containing their user ID
   - The token is signed with SECRET_KEY using HS256 (HMAC-SHA256)
   - Tokens expire after ACCESS_TOKEN_EXPIRE_MINUTES (default: 30 min)

3. CARD NUMBER ENCRYPTION (AES-GCM)
   - The real card number is encrypted before it touches the database
   - The key is a raw 16, 24 or 32 byte secret (AES-128/192/256)
   - Every encryption draws a fresh 96-bit nonce, so encrypting the same
     number twice yields different ciphertexts and equal numbers can't be
     spotted in the table
   - GCM authenticates the ciphertext: a flipped bit fails decryption
     instead of producing a different number
   - A keyed HMAC fingerprint of the number backs the uniqueness check,
     since randomized ciphertexts can't be compared directly
"""

import base64
import binascii
import hashlib
import hmac
import os
from datetime import datetime, timedelta, timezone

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from jose import jwt
from passlib.context import CryptContext

from cardledger.config import settings
from cardledger.exceptions import DecryptionError, InvalidKeyError


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password using Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored Argon2 hash (constant time)."""
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


# ---------------------------------------------------------------------------
# 3. Card Number Encryption (AES-GCM)
# ---------------------------------------------------------------------------

VALID_KEY_LENGTHS = (16, 24, 32)
NONCE_SIZE = 12


class CardNumberCipher:
    """
    Authenticated encryption for card numbers.

    Ciphertexts are ``base64(nonce || ciphertext || tag)`` strings so they
    fit a plain text column.

    Args:
        key: The raw secret, as text (UTF-8 encoded) or bytes.

    Raises:
        InvalidKeyError: If the key is not 16, 24 or 32 bytes long.
    """

    def __init__(self, key: str | bytes):
        key_bytes = key.encode("utf-8") if isinstance(key, str) else bytes(key)
        if len(key_bytes) not in VALID_KEY_LENGTHS:
            raise InvalidKeyError(len(key_bytes))
        self._aesgcm = AESGCM(key_bytes)
        # Separate subkey so fingerprints never reuse the encryption key directly
        self._fingerprint_key = hashlib.sha256(b"card-fingerprint:" + key_bytes).digest()

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a card number. Two calls with the same input never match."""
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a value produced by `encrypt`.

        Raises:
            DecryptionError: If the input isn't valid base64, is too short,
                was tampered with, or was sealed under another key.
        """
        try:
            raw = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise DecryptionError("Card number ciphertext is not valid base64")

        # nonce + 16-byte GCM tag is the minimum for an empty plaintext
        if len(raw) < NONCE_SIZE + 16:
            raise DecryptionError("Card number ciphertext is truncated")

        nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            plaintext = self._aesgcm.decrypt(nonce, sealed, None)
        except InvalidTag:
            raise DecryptionError()
        return plaintext.decode("utf-8")

    def fingerprint(self, plaintext: str) -> str:
        """Deterministic keyed HMAC-SHA256 of a card number, hex encoded."""
        return hmac.new(
            self._fingerprint_key, plaintext.encode("utf-8"), hashlib.sha256
        ).hexdigest()


# Built once at import: a bad key stops the app from starting
card_cipher = CardNumberCipher(settings.CARD_ENCRYPTION_KEY)
