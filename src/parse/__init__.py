"""Parsing utilities for JavaScript/TypeScript sources."""

from parse.treesitter_declarations import (
    Declarations,
    ParseError,
    extract_declarations,
    grammar_for_path,
)

__all__ = [
    "Declarations",
    "ParseError",
    "extract_declarations",
    "grammar_for_path",
]
