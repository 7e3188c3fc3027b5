from __future__ import annotations

import pytest

from ledger_ingest.ingest import FormatId, ParserRegistry, default_registry
from ledger_ingest.ingest.adapters import ChaseCheckingParser, RobinhoodParser
from ledger_ingest.models import RawParsedRow


def test_default_registry_lists_every_format_in_order():
    assert default_registry().list_parser_ids() == [
        "chase-checking",
        "chase-credit",
        "amex-hys",
        "fidelity-401k",
        "robinhood",
    ]


def test_lookup_by_string_or_enum():
    registry = default_registry()
    assert registry.get_parser("robinhood").format_id is FormatId.ROBINHOOD
    assert registry.get_parser(FormatId.AMEX_HYS).format_id is FormatId.AMEX_HYS
    assert "chase-credit" in registry


def test_unknown_format_is_absent_not_an_error():
    registry = default_registry()
    assert registry.get_parser("wells-fargo") is None
    assert "wells-fargo" not in registry


def test_duplicate_registration_rejected():
    with pytest.raises(ValueError, match="duplicate"):
        ParserRegistry([ChaseCheckingParser(), ChaseCheckingParser()])


def test_custom_registry_holds_only_given_parsers():
    registry = ParserRegistry([RobinhoodParser()])
    assert registry.list_parser_ids() == ["robinhood"]
    assert registry.get_parser("chase-checking") is None
    assert len(registry) == 1


def test_any_object_with_format_id_and_parse_can_register():
    class Stub:
        format_id = FormatId.CHASE_CHECKING

        def parse(self, content: str) -> list[RawParsedRow]:
            return []

    registry = ParserRegistry([Stub()])
    assert registry.get_parser("chase-checking").parse("anything") == []
