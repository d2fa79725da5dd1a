"""Orchestrator: scan -> resolve -> graph -> rules -> summary."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from graph.builder import build_dependency_graph
from report.render import summarize
from resolve.aliases import SpecifierResolver, build_alias_rules
from resolve.modules import resolve_modules
from rules.config import ConfigurationError, load_config, resolve_within_root
from rules.engine import evaluate
from scan.cache import ScanCache
from scan.scanner import scan_project

if TYPE_CHECKING:
    from pathlib import Path

    from models.graph import DependencyGraph
    from models.violations import Summary, Violation
    from resolve.modules import ModuleMap
    from rules.config import LayerGuardConfig
    from scan.scanner import ScanResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    """Everything one analysis run produced."""

    root: Path
    config: LayerGuardConfig
    scan: ScanResult
    module_map: ModuleMap
    graph: DependencyGraph
    violations: tuple[Violation, ...]
    summary: Summary

    @property
    def passed(self) -> bool:
        return self.summary.passed


def _open_cache(root: Path, config: LayerGuardConfig) -> ScanCache | None:
    if not config.cache.enabled:
        return None
    cache_path = resolve_within_root(root, config.cache.path, what="cache.path")
    cache = ScanCache.load(cache_path)
    logger.debug("Loaded declaration cache %s with %d entries", cache_path, len(cache))
    return cache


def _update_cache(cache: ScanCache, scan: ScanResult) -> None:
    for path, declarations in scan.fresh.items():
        cache.store(path, scan.digests[path], declarations)
    cache.prune(set(scan.digests))
    try:
        cache.save()
    except OSError as exc:
        logger.warning("Could not write declaration cache %s: %s", cache.path, exc)


def analyze(
    root: Path,
    config: LayerGuardConfig | None = None,
    *,
    shuffle_seed: int | None = None,
) -> AnalysisResult:
    """Run the full analysis pipeline over a project tree.

    Args:
        root: Root directory of the project to analyze
        config: Optional configuration; loaded from layerguard.toml when omitted
        shuffle_seed: Permute the scan order (used by determinism checks)

    Returns:
        AnalysisResult with the graph, violations and summary.

    Raises:
        ConfigurationError: If the layer map or alias table is unusable.
            Nothing is analyzed in that case.
    """
    if not root.is_dir():
        msg = f"Project root is not a directory: {root}"
        raise ConfigurationError(msg)

    if config is None:
        config = load_config(root)

    # Fail on an unusable alias table before any file is read.
    build_alias_rules(root, config.aliases)

    cache = _open_cache(root, config)
    scan = scan_project(root, config, cache=cache, shuffle_seed=shuffle_seed)

    specifiers = SpecifierResolver(
        root,
        config.aliases,
        extensions=config.extensions,
        source_paths=scan.paths,
        barrel=config.barrel,
    )
    module_map = resolve_modules(scan, config, specifiers)
    graph = build_dependency_graph(module_map, specifiers)
    violations = tuple(evaluate(graph, config))

    summary = summarize(
        violations,
        fail_on=config.fail_on,
        files_scanned=len(scan.files),
        modules=len(graph.modules),
        parse_warnings=len(scan.warnings),
    )

    if cache is not None:
        _update_cache(cache, scan)

    logger.debug(
        "Analyzed %d files in %d modules: %d violations",
        len(scan.files),
        len(graph.modules),
        len(violations),
    )
    return AnalysisResult(
        root=root,
        config=config,
        scan=scan,
        module_map=module_map,
        graph=graph,
        violations=violations,
        summary=summary,
    )


__all__ = ["AnalysisResult", "analyze"]
