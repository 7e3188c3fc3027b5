"""CRUD for persisted category rules.

Functions take an open session and do not commit; wrap calls in
:func:`ledger_db.client.session_scope`. :func:`list_rules` returns rules in
evaluation order, ready for :func:`ledger_ingest.rules.categorize`.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_db.models import CategoryRuleRow

from .rules import CategoryRule, MatchType


def _to_rule(row: CategoryRuleRow) -> CategoryRule:
    return CategoryRule.model_validate(row)


def list_rules(session: Session) -> list[CategoryRule]:
    """All rules by ascending priority; equal priorities keep creation order."""

    stmt = select(CategoryRuleRow).order_by(CategoryRuleRow.priority.asc(), CategoryRuleRow.id.asc())
    return [_to_rule(r) for r in session.scalars(stmt)]


def get_rule(session: Session, rule_id: int) -> CategoryRule | None:
    row = session.get(CategoryRuleRow, rule_id)
    return _to_rule(row) if row is not None else None


def create_rule(
    session: Session,
    *,
    pattern: str,
    match_type: MatchType | str,
    category: str,
    priority: int | None = None,
) -> CategoryRule:
    """Persist a new rule; ``priority`` defaults by match type (exact 0, contains 100)."""

    # Validate before touching the session.
    draft = CategoryRule(
        pattern=pattern, match_type=match_type, category=category, priority=priority
    )
    row = CategoryRuleRow(
        pattern=draft.pattern,
        match_type=draft.match_type.value,
        category=draft.category,
        priority=draft.priority,
    )
    session.add(row)
    session.flush()
    session.refresh(row)
    return _to_rule(row)


def update_rule(
    session: Session,
    rule_id: int,
    *,
    pattern: str | None = None,
    match_type: MatchType | str | None = None,
    category: str | None = None,
    priority: int | None = None,
) -> CategoryRule | None:
    """Change the given fields of a rule; ``None`` arguments are left as-is.

    Returns ``None`` when no rule has ``rule_id``.
    """

    row = session.get(CategoryRuleRow, rule_id)
    if row is None:
        return None

    current = _to_rule(row)
    changes: dict[str, object] = {}
    if pattern is not None:
        changes["pattern"] = pattern
    if match_type is not None:
        changes["match_type"] = match_type
    if category is not None:
        changes["category"] = category
    if priority is not None:
        changes["priority"] = priority
    if not changes:
        return current

    # Re-validate the merged rule so an update cannot store what create rejects.
    merged = CategoryRule.model_validate({**current.model_dump(), **changes})
    row.pattern = merged.pattern
    row.match_type = merged.match_type.value
    row.category = merged.category
    row.priority = merged.priority
    session.flush()
    session.refresh(row)
    return _to_rule(row)


def delete_rule(session: Session, rule_id: int) -> bool:
    row = session.get(CategoryRuleRow, rule_id)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    return True


__all__ = ["list_rules", "get_rule", "create_rule", "update_rule", "delete_rule"]
