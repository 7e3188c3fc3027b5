from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from ledger_ingest.models import RawParsedRow
from ledger_ingest.rules import (
    CategoryRule,
    MatchType,
    categorize,
    default_priority,
    rule_matches,
    sort_rules,
)


def _row(description: str, bank_category: str | None = None) -> RawParsedRow:
    return RawParsedRow(date(2026, 1, 1), description, Decimal("-1"), bank_category)


def _rule(pattern: str, match_type: str, category: str, priority: int | None = None) -> CategoryRule:
    return CategoryRule(pattern=pattern, match_type=match_type, category=category, priority=priority)


def test_priority_defaults_by_match_type():
    assert _rule("a", "exact", "X").priority == 0
    assert _rule("a", "contains", "X").priority == 100
    assert _rule("a", "contains", "X", priority=5).priority == 5
    assert default_priority(MatchType.EXACT) == 0
    assert default_priority("contains") == 100


def test_rule_validation():
    with pytest.raises(ValidationError):
        _rule("a", "regex", "X")
    with pytest.raises(ValidationError):
        _rule("   ", "exact", "X")
    with pytest.raises(ValidationError):
        _rule("a", "exact", "")


def test_matching_is_case_insensitive():
    assert rule_matches(_rule("starbucks", "contains", "Coffee"), "STARBUCKS #123 SEATTLE")
    assert rule_matches(_rule("Netflix.com", "exact", "Subs"), "NETFLIX.COM")
    assert not rule_matches(_rule("netflix", "exact", "Subs"), "NETFLIX.COM")


def test_first_match_in_priority_order_wins():
    rules = sort_rules(
        [
            _rule("starbucks", "contains", "Coffee", priority=1),
            _rule("starbucks reserve", "contains", "Treats", priority=0),
        ]
    )
    assert categorize(_row("STARBUCKS RESERVE ROASTERY"), rules) == "Treats"
    assert categorize(_row("STARBUCKS #123"), rules) == "Coffee"


def test_falls_back_to_bank_category_then_none():
    rules = [_rule("uber", "contains", "Rides")]
    assert categorize(_row("AMAZON", bank_category="Shopping"), rules) == "Shopping"
    assert categorize(_row("AMAZON"), rules) is None
    assert categorize(_row("AMAZON", bank_category=""), rules) is None
    assert categorize(_row("UBER TRIP", bank_category="Travel"), rules) == "Rides"


def test_sort_is_stable_for_equal_priorities():
    first = _rule("a", "contains", "First", priority=10)
    second = _rule("a", "contains", "Second", priority=10)
    assert [r.category for r in sort_rules([first, second])] == ["First", "Second"]
    assert categorize(_row("a"), sort_rules([first, second])) == "First"
