"""Identifiers of the supported bank and brokerage export formats."""

from __future__ import annotations

from enum import StrEnum


class FormatId(StrEnum):
    CHASE_CHECKING = "chase-checking"
    CHASE_CREDIT = "chase-credit"
    AMEX_HYS = "amex-hys"
    FIDELITY_401K = "fidelity-401k"
    ROBINHOOD = "robinhood"


__all__ = ["FormatId"]
