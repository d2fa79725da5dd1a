"""Source-level models produced by the scanner.

This module contains models for the import/export declarations found in a
single source file and the per-file warnings raised while reading it.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ImportKind = Literal["import", "reexport", "require", "dynamic"]

# Symbol placeholders used in ImportSpecifier.symbols.
DEFAULT_SYMBOL = "default"
NAMESPACE_SYMBOL = "*"


class ImportSpecifier(BaseModel):
    """A single literal module reference found in a source file."""

    model_config = ConfigDict(frozen=True)

    specifier: str
    symbols: tuple[str, ...] = Field(
        default=(),
        description=(
            "Imported names; 'default', '*' for namespaces, empty for side effects"
        ),
    )
    kind: ImportKind = "import"
    reexport_all: bool = False
    type_only: bool = False
    line: int
    column: int


class SourceFile(BaseModel):
    """A scanned source file with its extracted declarations."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="POSIX path relative to the project root")
    absolute_path: str
    text: str = Field(repr=False)
    imports: tuple[ImportSpecifier, ...] = ()
    exports: tuple[str, ...] = ()

    def line_text(self, line: int) -> str | None:
        """Return the 1-based source line, or None when out of range.

        Only line feeds end a line, matching how parse positions are counted.
        """
        lines = self.text.split("\n")
        if 1 <= line <= len(lines):
            return lines[line - 1].removesuffix("\r")
        return None


class ParseWarning(BaseModel):
    """A recoverable per-file problem; the file is left out of the graph."""

    model_config = ConfigDict(frozen=True)

    path: str
    message: str
    line: int | None = None

    def location(self) -> str:
        if self.line is None:
            return self.path
        return f"{self.path}:{self.line}"

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "line": self.line,
            "message": self.message,
        }


__all__ = [
    "DEFAULT_SYMBOL",
    "NAMESPACE_SYMBOL",
    "ImportKind",
    "ImportSpecifier",
    "ParseWarning",
    "SourceFile",
]
