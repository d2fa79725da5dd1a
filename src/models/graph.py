"""Dependency graph models.

ImportEdges keep one record per import statement so diagnostics can point at
the exact line; ModuleEdges group them per module pair for graph algorithms.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict

from models.source import ImportKind  # noqa: TC001

if TYPE_CHECKING:
    from models.modules import Module

ExternalReason = Literal["package", "unresolved", "unscanned", "unassigned"]


class ImportEdge(BaseModel):
    """One resolved import statement crossing a module boundary."""

    model_config = ConfigDict(frozen=True)

    from_module: str
    to_module: str
    symbols: tuple[str, ...] = ()
    file: str
    line: int
    column: int
    specifier: str
    target_file: str
    kind: ImportKind = "import"

    def sort_key(self) -> tuple[str, int, int, str]:
        return (self.file, self.line, self.column, self.specifier)

    def to_dict(self) -> dict[str, object]:
        return {
            "fromModule": self.from_module,
            "toModule": self.to_module,
            "symbols": list(self.symbols),
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "specifier": self.specifier,
            "targetFile": self.target_file,
        }


class ExternalEdge(BaseModel):
    """An import that does not land in an assigned module of the project."""

    model_config = ConfigDict(frozen=True)

    from_module: str
    specifier: str
    file: str
    line: int
    column: int
    reason: ExternalReason

    def to_dict(self) -> dict[str, object]:
        return {
            "fromModule": self.from_module,
            "specifier": self.specifier,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "reason": self.reason,
        }


class ModuleEdge(BaseModel):
    """A deduplicated module-to-module dependency."""

    model_config = ConfigDict(frozen=True)

    from_module: str
    to_module: str
    imports: tuple[ImportEdge, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        return (self.from_module, self.to_module)

    @property
    def first_import(self) -> ImportEdge:
        return self.imports[0]


@dataclass(frozen=True)
class DependencyGraph:
    """Modules, their deduplicated edges and an index-based adjacency arena.

    ``adjacency[i]`` lists the node indices that ``modules[i]`` depends on,
    sorted ascending. The graph may contain cycles.
    """

    modules: tuple[Module, ...]
    edges: tuple[ModuleEdge, ...]
    external: tuple[ExternalEdge, ...] = ()
    node_index: dict[str, int] = field(default_factory=dict)
    adjacency: tuple[tuple[int, ...], ...] = ()

    def module(self, module_id: str) -> Module:
        return self.modules[self.node_index[module_id]]


__all__ = [
    "DependencyGraph",
    "ExternalEdge",
    "ExternalReason",
    "ImportEdge",
    "ModuleEdge",
]
