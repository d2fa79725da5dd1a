"""Layer classification and allowed-dependency rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from models.modules import Layer
from rules.config import ConfigurationError

if TYPE_CHECKING:
    from rules.config import LayerDef, LayerGuardConfig


@dataclass(frozen=True)
class LayerMatch:
    """Where a file path lands in the layer map."""

    layer: LayerDef
    prefix: str
    module_id: str | None
    module_name: str | None
    module_dirs: tuple[str, ...] = ()


def classify_layer(path: str, config: LayerGuardConfig) -> LayerMatch | None:
    """Classify a relative POSIX path into its layer and module.

    A non-split layer is one module, whatever prefix matched, identified by
    the layer name. A split layer has one module per directory under the
    matched prefix. Within one layer the longest matching prefix wins. A path
    matched by prefixes of two different layers is an ambiguous layer map and
    raises ConfigurationError. Returns None when no layer matches.
    """
    matches: list[tuple[LayerDef, str]] = []
    for layer_def in config.layers:
        best: str | None = None
        for prefix in layer_def.normalized_prefixes():
            if path.startswith(prefix) and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is not None:
            matches.append((layer_def, best))

    if not matches:
        return None

    if len(matches) > 1:
        names = ", ".join(f"'{layer.name}' ({prefix})" for layer, prefix in matches)
        msg = f"Ambiguous layer map: {path} matches layers {names}"
        raise ConfigurationError(msg)

    layer_def, prefix = matches[0]
    if not layer_def.splits_modules:
        dirs = tuple(p.rstrip("/") for p in layer_def.normalized_prefixes())
        return LayerMatch(layer_def, prefix, layer_def.name, layer_def.name, dirs)

    remainder = path[len(prefix) :]
    segment, sep, _rest = remainder.partition("/")
    if not sep:
        # A file directly under a split prefix has no module directory.
        return LayerMatch(layer_def, prefix, None, None)
    module_dir = f"{prefix}{segment}"
    return LayerMatch(layer_def, prefix, module_dir, segment, (module_dir,))


def default_allowed_layers(layer_def: LayerDef, config: LayerGuardConfig) -> set[str]:
    """The documented order: shared < core < feature < route.

    Shared imports nothing, core imports shared, feature imports shared,
    core and other features, route imports every lower layer. Routes are
    a terminal sink: no module, not even another route, may import one
    unless a layer opts in through may_import.
    """
    own = layer_def.kind
    allowed: set[str] = set()
    for other in config.layers:
        if other.kind.rank < own.rank:
            allowed.add(other.name)
        elif other.kind is own and own is Layer.FEATURE:
            allowed.add(other.name)
    return allowed


def build_allowed_deps(config: LayerGuardConfig) -> dict[str, set[str]]:
    """Build a mapping of layer name -> set of layer names it may import."""
    allowed: dict[str, set[str]] = {}
    for layer_def in config.layers:
        if layer_def.may_import is None:
            allowed[layer_def.name] = default_allowed_layers(layer_def, config)
        else:
            allowed[layer_def.name] = set(layer_def.may_import)
    return allowed


def is_violation(
    from_layer: str,
    to_layer: str,
    allowed_deps: dict[str, set[str]],
) -> bool:
    """Check if a dependency from one layer to another breaks the order."""
    return to_layer not in allowed_deps.get(from_layer, set())


__all__ = [
    "LayerMatch",
    "build_allowed_deps",
    "classify_layer",
    "default_allowed_layers",
    "is_violation",
]
