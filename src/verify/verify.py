"""Determinism verification for layerguard reports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pipeline import analyze
from report.render import render_json
from rules.config import CacheConfig, load_config

if TYPE_CHECKING:
    from pathlib import Path

    from rules.config import LayerGuardConfig

# Fixed seed so a failing verification can be reproduced.
SHUFFLE_SEED = 20240229


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    first: str
    second: str

    def first_difference(self) -> int | None:
        """Line number (1-based) of the first differing report line."""
        if self.ok:
            return None
        first_lines = self.first.splitlines()
        second_lines = self.second.splitlines()
        for index, (a, b) in enumerate(zip(first_lines, second_lines), start=1):
            if a != b:
                return index
        return min(len(first_lines), len(second_lines)) + 1


def verify_determinism(
    *,
    root: Path,
    config: LayerGuardConfig | None = None,
    seed: int = SHUFFLE_SEED,
) -> DeterminismResult:
    """Verify that the JSON report does not depend on scan order.

    Analyzes ``root`` twice, the second time handing files to the scanner
    in a shuffled order, and compares the rendered reports byte-for-byte.
    The declaration cache is disabled for both runs so each run parses
    every file itself.

    Raises:
        ConfigurationError: If the configuration is unusable.
    """
    if config is None:
        config = load_config(root)
    config = config.model_copy(update={"cache": CacheConfig(enabled=False)})

    first = render_json(analyze(root, config))
    second = render_json(analyze(root, config, shuffle_seed=seed))
    return DeterminismResult(ok=first == second, first=first, second=second)


__all__ = ["DeterminismResult", "SHUFFLE_SEED", "verify_determinism"]
