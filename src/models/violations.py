"""Rule violation and report summary models."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from models.graph import ImportEdge  # noqa: TC001

Severity = Literal["error", "warning"]

SEVERITY_RANKS: dict[str, int] = {"warning": 0, "error": 1}


class ViolationKind(str, Enum):
    """The architectural rule a violation breaks."""

    LAYER_DIRECTION = "LayerDirection"
    DEEP_IMPORT = "DeepImport"
    CYCLE = "Cycle"


class Violation(BaseModel):
    """A single located rule violation."""

    model_config = ConfigDict(frozen=True)

    kind: ViolationKind
    severity: Severity = "error"
    from_module: str
    to_module: str
    file: str
    line: int
    column: int
    message: str
    symbols: tuple[str, ...] = ()
    modules: tuple[str, ...] = ()
    edges: tuple[ImportEdge, ...] = ()

    def sort_key(self) -> tuple[str, int, int, str, str]:
        return (self.file, self.line, self.column, self.kind.value, self.message)

    def location(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "severity": self.severity,
            "fromModule": self.from_module,
            "toModule": self.to_module,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "symbols": list(self.symbols),
            "modules": list(self.modules),
            "edges": [edge.to_dict() for edge in self.edges],
        }


class Summary(BaseModel):
    """Per-kind counts and the overall pass/fail verdict."""

    model_config = ConfigDict(frozen=True)

    counts: dict[str, int] = Field(default_factory=dict)
    errors: int = 0
    warnings: int = 0
    files_scanned: int = 0
    modules: int = 0
    parse_warnings: int = 0
    passed: bool = True

    def to_dict(self) -> dict[str, object]:
        return {
            "counts": dict(sorted(self.counts.items())),
            "errors": self.errors,
            "warnings": self.warnings,
            "filesScanned": self.files_scanned,
            "modules": self.modules,
            "parseWarnings": self.parse_warnings,
            "passed": self.passed,
        }


def severity_at_least(severity: str, threshold: str) -> bool:
    return SEVERITY_RANKS[severity] >= SEVERITY_RANKS[threshold]


__all__ = [
    "SEVERITY_RANKS",
    "Severity",
    "Summary",
    "Violation",
    "ViolationKind",
    "severity_at_least",
]
