"""Lookup table from format identifier to row parser.

The table is built once at construction and never mutated. Supporting a new
export means writing one adapter module, adding one :class:`FormatId` member
and listing the adapter in :func:`default_registry`; existing adapters are
untouched.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from ..models import RawParsedRow
from .adapters import (
    AmexHysParser,
    ChaseCheckingParser,
    ChaseCreditParser,
    Fidelity401kParser,
    RobinhoodParser,
)
from .formats import FormatId


@runtime_checkable
class RowParser(Protocol):
    format_id: FormatId

    def parse(self, content: str) -> list[RawParsedRow]: ...


class ParserRegistry:
    def __init__(self, parsers: Iterable[RowParser]) -> None:
        table: dict[FormatId, RowParser] = {}
        for parser in parsers:
            key = FormatId(parser.format_id)
            if key in table:
                raise ValueError(f"duplicate parser registration for {key.value!r}")
            table[key] = parser
        self._parsers = table

    def get_parser(self, format_id: str | FormatId) -> RowParser | None:
        """Return the parser for ``format_id``, or ``None`` when unknown."""

        try:
            key = FormatId(format_id)
        except ValueError:
            return None
        return self._parsers.get(key)

    def list_parser_ids(self) -> list[str]:
        return [key.value for key in self._parsers]

    def __contains__(self, format_id: object) -> bool:
        return isinstance(format_id, str) and self.get_parser(format_id) is not None

    def __len__(self) -> int:
        return len(self._parsers)


def default_registry() -> ParserRegistry:
    """Registry holding every built-in adapter."""

    return ParserRegistry(
        [
            ChaseCheckingParser(),
            ChaseCreditParser(),
            AmexHysParser(),
            Fidelity401kParser(),
            RobinhoodParser(),
        ]
    )


__all__ = ["FormatId", "RowParser", "ParserRegistry", "default_registry"]
