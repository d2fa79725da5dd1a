"""Configuration and architectural rules for layerguard."""

from rules.config import (
    ConfigurationError,
    LayerDef,
    LayerGuardConfig,
    load_config,
)
from rules.engine import evaluate
from rules.layers import build_allowed_deps, classify_layer, is_violation

__all__ = [
    "ConfigurationError",
    "LayerDef",
    "LayerGuardConfig",
    "build_allowed_deps",
    "classify_layer",
    "evaluate",
    "is_violation",
    "load_config",
]
