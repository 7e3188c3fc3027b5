"""Deterministic deduplication fingerprint over plaintext transaction fields.

The fingerprint must be computed before encryption: envelopes are randomized,
so hashing ciphertext would make every re-import look new. Category and notes
are deliberately excluded; two rows differing only there are duplicates.
"""

from __future__ import annotations

import hashlib
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

# Not expected inside any normalized field.
SEPARATOR = "|"


def _normalize_date(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def _normalize_amount(value: Decimal | int | float | str) -> str:
    d = value if isinstance(value, Decimal) else Decimal(str(value))
    if not d.is_finite():
        raise ValueError(f"amount must be finite, got {value!r}")
    q = d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{q:.2f}"


def compute_dedupe_hash(
    account_id: str,
    date: date | datetime,
    description: str,
    amount: Decimal | int | float | str,
) -> str:
    """Return the SHA-256 hex digest identifying a transaction within an account.

    Normalization: date as ``YYYY-MM-DD``; description trimmed and
    lower-cased; amount rounded half-up to exactly two decimals.
    """

    payload = SEPARATOR.join(
        (
            account_id,
            _normalize_date(date),
            description.strip().lower(),
            _normalize_amount(amount),
        )
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


__all__ = ["SEPARATOR", "compute_dedupe_hash"]
