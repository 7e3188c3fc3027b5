"""Field-level envelope encryption (AES-256-GCM).

Every sensitive column in the ledger is stored as a self-contained envelope:

    base64( iv[16] || tag[16] || ciphertext )

A fresh random IV is drawn for every call, so encrypting the same plaintext
twice yields different envelopes. Decryption fails closed with
:class:`~ledger_ingest.errors.DecryptionFailed` on tampering, a wrong key, or
input that is not an envelope at all. The byte layout is part of the storage
format and must not change, or previously stored values become unreadable.

The process-wide key is installed once with :func:`init_key` and is read-only
afterwards. The keyed primitives :func:`encrypt` and :func:`decrypt` take an
explicit key and are what the key-bound helpers delegate to.
"""

from __future__ import annotations

import base64
import binascii
import os
from decimal import Decimal, InvalidOperation

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import DecryptionFailed, InvalidKeyLength, KeyNotInitialized

KEY_LENGTH = 32
IV_LENGTH = 16
AUTH_TAG_LENGTH = 16

_AEAD: AESGCM | None = None


# ----------------------------------------------------------------------------
# Keyed primitives
# ----------------------------------------------------------------------------


def _check_key(key: bytes) -> bytes:
    if len(key) != KEY_LENGTH:
        raise InvalidKeyLength(f"got {len(key)} bytes")
    return key


def encrypt(plaintext: str, key: bytes) -> str:
    """Encrypt ``plaintext`` under ``key`` and return the base64 envelope."""

    return _seal(AESGCM(_check_key(key)), plaintext)


def decrypt(ciphertext: str, key: bytes) -> str:
    """Open a base64 envelope produced by :func:`encrypt`."""

    return _open(AESGCM(_check_key(key)), ciphertext)


def _seal(aead: AESGCM, plaintext: str) -> str:
    iv = os.urandom(IV_LENGTH)
    sealed = aead.encrypt(iv, plaintext.encode("utf-8"), None)
    # AESGCM appends the tag; the envelope stores it ahead of the payload.
    body, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return base64.b64encode(iv + tag + body).decode("ascii")


def _open(aead: AESGCM, ciphertext: str) -> str:
    try:
        data = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise DecryptionFailed("value is not a base64 envelope") from exc
    if len(data) < IV_LENGTH + AUTH_TAG_LENGTH:
        raise DecryptionFailed("envelope is too short")

    iv = data[:IV_LENGTH]
    tag = data[IV_LENGTH : IV_LENGTH + AUTH_TAG_LENGTH]
    body = data[IV_LENGTH + AUTH_TAG_LENGTH :]
    try:
        raw = aead.decrypt(iv, body + tag, None)
    except InvalidTag as exc:
        raise DecryptionFailed("authentication tag did not verify") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptionFailed("decrypted payload is not UTF-8 text") from exc


# ----------------------------------------------------------------------------
# Process-wide key
# ----------------------------------------------------------------------------


def init_key(key_hex: str) -> None:
    """Install the process-wide key from a 64-character hex string."""

    global _AEAD
    try:
        key = bytes.fromhex(key_hex.strip())
    except ValueError as exc:
        raise InvalidKeyLength("value is not valid hex") from exc
    _AEAD = AESGCM(_check_key(key))


def key_initialized() -> bool:
    return _AEAD is not None


def _aead() -> AESGCM:
    if _AEAD is None:
        raise KeyNotInitialized()
    return _AEAD


def encrypt_field(plaintext: str) -> str:
    return _seal(_aead(), plaintext)


def decrypt_field(ciphertext: str) -> str:
    return _open(_aead(), ciphertext)


def encrypt_number(value: Decimal | int | float) -> str:
    """Encrypt a number as its canonical decimal string.

    No rounding is applied; ``Decimal("1.50")`` and ``1.5`` produce different
    plaintexts but decrypt to numerically equal values.
    """

    if isinstance(value, bool):
        raise TypeError("booleans are not amounts")
    if not Decimal(str(value)).is_finite():
        raise ValueError(f"cannot encrypt non-finite amount: {value!r}")
    return encrypt_field(str(value))


def decrypt_number(ciphertext: str) -> Decimal:
    text = decrypt_field(ciphertext)
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise DecryptionFailed("decrypted payload is not a number") from exc
    if not value.is_finite():
        raise DecryptionFailed("decrypted payload is not a finite number")
    return value


def encrypt_optional_field(value: str | None) -> str | None:
    if value is None:
        return None
    return encrypt_field(value)


def decrypt_optional_field(ciphertext: str | None) -> str | None:
    if ciphertext is None:
        return None
    return decrypt_field(ciphertext)


def encrypt_optional_number(value: Decimal | int | float | None) -> str | None:
    if value is None:
        return None
    return encrypt_number(value)


def decrypt_optional_number(ciphertext: str | None) -> Decimal | None:
    if ciphertext is None:
        return None
    return decrypt_number(ciphertext)


def is_encrypted(value: str) -> bool:
    """Return True when ``value`` opens under the process-wide key.

    Uses decryption failure as the signal, so any value that is not an
    envelope sealed with the current key reads as plaintext.
    """

    try:
        decrypt_field(value)
    except DecryptionFailed:
        return False
    return True


__all__ = [
    "KEY_LENGTH",
    "IV_LENGTH",
    "AUTH_TAG_LENGTH",
    "encrypt",
    "decrypt",
    "init_key",
    "key_initialized",
    "encrypt_field",
    "decrypt_field",
    "encrypt_number",
    "decrypt_number",
    "encrypt_optional_field",
    "decrypt_optional_field",
    "encrypt_optional_number",
    "decrypt_optional_number",
    "is_encrypted",
]
