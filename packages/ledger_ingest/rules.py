"""First-match-wins category rule engine.

Rules are evaluated in the order given; callers supply them sorted by
ascending ``priority`` (see :func:`sort_rules` and
:func:`ledger_ingest.rule_store.list_rules`). The first rule whose pattern
matches the lower-cased description decides the category. There is no scoring
and no backtracking: users set priorities precisely to control tie-breaks.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class MatchType(StrEnum):
    EXACT = "exact"
    CONTAINS = "contains"


_DEFAULT_PRIORITY: dict[MatchType, int] = {
    MatchType.EXACT: 0,
    MatchType.CONTAINS: 100,
}


def default_priority(match_type: MatchType | str) -> int:
    """Exact rules sort ahead of contains rules unless reprioritized."""

    return _DEFAULT_PRIORITY[MatchType(match_type)]


class CategoryRule(BaseModel):
    """A persisted categorization rule.

    ``priority`` may be omitted on construction and then defaults by
    ``match_type`` (0 for exact, 100 for contains).
    """

    model_config = ConfigDict(frozen=True, extra="forbid", from_attributes=True)

    id: int | None = None
    pattern: str
    match_type: MatchType
    category: str
    priority: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_default_priority(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("priority") is None:
            mt = data.get("match_type")
            if mt is not None:
                try:
                    data = {**data, "priority": default_priority(mt)}
                except ValueError:
                    # Leave it to field validation to report the bad match_type.
                    pass
        return data

    @field_validator("pattern", "category")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must be non-empty")
        return v


class Categorizable(Protocol):
    description: str
    bank_category: str | None


def rule_matches(rule: CategoryRule, description: str) -> bool:
    desc = description.lower()
    pattern = rule.pattern.lower()
    if rule.match_type is MatchType.EXACT:
        return desc == pattern
    return pattern in desc


def categorize(row: Categorizable, rules: Iterable[CategoryRule]) -> str | None:
    """Return the category of the first matching rule, else the bank category."""

    for rule in rules:
        if rule_matches(rule, row.description):
            return rule.category
    return row.bank_category or None


def sort_rules(rules: Iterable[CategoryRule]) -> list[CategoryRule]:
    """Stable sort by ascending priority (ties keep their given order)."""

    return sorted(rules, key=lambda r: r.priority)


__all__ = [
    "MatchType",
    "CategoryRule",
    "Categorizable",
    "default_priority",
    "rule_matches",
    "categorize",
    "sort_rules",
]
