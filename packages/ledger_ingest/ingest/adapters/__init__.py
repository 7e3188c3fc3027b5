"""One adapter per supported export format.

Each adapter exposes ``format_id`` and ``parse(content) -> list[RawParsedRow]``
and is pure: no I/O, no global state, and row-level problems drop the row
instead of raising.
"""

from __future__ import annotations

from .amex_hys import AmexHysParser
from .chase_checking import ChaseCheckingParser
from .chase_credit import ChaseCreditParser
from .fidelity_401k import Fidelity401kParser
from .robinhood import RobinhoodParser

__all__ = [
    "AmexHysParser",
    "ChaseCheckingParser",
    "ChaseCreditParser",
    "Fidelity401kParser",
    "RobinhoodParser",
]
