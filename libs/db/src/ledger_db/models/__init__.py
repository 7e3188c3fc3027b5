"""Shared SQLAlchemy models registry for the ledger database.

Currently includes the transaction ledger and category rule tables used by
``ledger_ingest``.
"""

from .ledger import Base, CategoryRuleRow, LedgerTransaction

__all__ = [
    "Base",
    "CategoryRuleRow",
    "LedgerTransaction",
]
