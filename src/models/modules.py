"""Module identity models.

A module is the unit the layering rules talk about: a directory subtree
assigned to one architectural layer, with an optional barrel file that
declares its public surface.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Layer(str, Enum):
    """Architectural layer kinds, ordered from most to least foundational."""

    SHARED = "shared"
    CORE = "core"
    FEATURE = "feature"
    ROUTE = "route"

    @property
    def rank(self) -> int:
        return _LAYER_RANKS[self]


_LAYER_RANKS = {
    Layer.SHARED: 0,
    Layer.CORE: 1,
    Layer.FEATURE: 2,
    Layer.ROUTE: 3,
}


class Module(BaseModel):
    """A logical module and the files that belong to it."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        description=(
            "Module root directory for a split layer (e.g. 'modules/auth'), "
            "otherwise the layer name (e.g. 'core')"
        )
    )
    name: str = Field(description="Display name, e.g. 'auth'")
    layer: Layer
    layer_name: str
    files: tuple[str, ...] = ()
    barrel: str | None = None
    unparsable_barrel: str | None = Field(
        default=None,
        description="Barrel candidate that was found but produced a parse warning",
    )
    public_surface: tuple[str, ...] = ()

    def exposes(self, symbol: str) -> bool:
        return symbol in self.public_surface


class UnassignedFile(BaseModel):
    """A scanned file that matched no layer and is excluded from rule checks."""

    model_config = ConfigDict(frozen=True)

    path: str
    reason: str

    def to_dict(self) -> dict[str, object]:
        return {"path": self.path, "line": None, "message": self.reason}


__all__ = ["Layer", "Module", "UnassignedFile"]
