"""Export parsing: tokenizers, per-format adapters and the parser registry."""

from __future__ import annotations

from .formats import FormatId
from .registry import ParserRegistry, RowParser, default_registry

__all__ = ["FormatId", "ParserRegistry", "RowParser", "default_registry"]
