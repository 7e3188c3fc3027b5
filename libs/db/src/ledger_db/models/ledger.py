from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    CHAR,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: ledger_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    # Envelope ciphertext (base64 of iv || tag || payload). Never plaintext once
    # written by the pipeline; see ledger_ingest.cipher.
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # Ciphertext of the canonical decimal string of the amount.
    amount: Mapped[str] = mapped_column(Text, nullable=False)
    # Plaintext: used for server-side filtering and aggregation.
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # SHA-256 over plaintext fields, computed before encryption. Nullable for
    # rows entered directly without a fingerprint.
    dedupe_hash: Mapped[str | None] = mapped_column(CHAR(64), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        # The source of truth for duplicate prevention across racing imports.
        UniqueConstraint("account_id", "dedupe_hash", name="uq_ledger_tx_account_dedupe"),
        Index("ix_ledger_tx_account_date", "account_id", "date"),
    )


# ---------------------------
# Reference: category_rules
# ---------------------------


class CategoryRuleRow(Base):
    __tablename__ = "category_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pattern: Mapped[str] = mapped_column(Text, nullable=False)
    match_type: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        CheckConstraint("match_type in ('exact','contains')", name="ck_category_rules_match_type"),
        Index("ix_category_rules_priority", "priority"),
    )


__all__ = [
    "Base",
    "LedgerTransaction",
    "CategoryRuleRow",
]
