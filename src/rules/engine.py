"""Architectural rule evaluation over the dependency graph.

Three independent checks run against the graph: layer direction, deep
imports and feature-module cycles. Each only produces violations; none of
them raises or stops another from running.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from graph.algos import find_cycles, shortest_cycle
from models.modules import Layer
from models.source import NAMESPACE_SYMBOL
from models.violations import Violation, ViolationKind
from rules.layers import build_allowed_deps, is_violation

if TYPE_CHECKING:
    from models.graph import DependencyGraph, ImportEdge, ModuleEdge
    from rules.config import LayerGuardConfig

logger = logging.getLogger(__name__)


def check_layer_direction(
    graph: DependencyGraph,
    config: LayerGuardConfig,
) -> list[Violation]:
    """One violation per module edge that goes against the layer order."""
    allowed_deps = build_allowed_deps(config)
    severity = config.severity_for(ViolationKind.LAYER_DIRECTION.value)
    violations: list[Violation] = []

    for edge in graph.edges:
        source = graph.module(edge.from_module)
        target = graph.module(edge.to_module)
        if not is_violation(source.layer_name, target.layer_name, allowed_deps):
            continue
        first = edge.first_import
        allowed_names = sorted(allowed_deps.get(source.layer_name, set()))
        allowed = ", ".join(allowed_names) or "nothing"
        message = (
            f"{source.layer_name} module '{source.name}' must not import from "
            f"{target.layer_name} module '{target.name}' "
            f"({source.layer_name} may import: {allowed})"
        )
        violations.append(
            Violation(
                kind=ViolationKind.LAYER_DIRECTION,
                severity=severity,
                from_module=source.id,
                to_module=target.id,
                file=first.file,
                line=first.line,
                column=first.column,
                message=message,
                edges=edge.imports,
            )
        )
    return violations


def _deep_import_symbols(edge: ImportEdge, graph: DependencyGraph) -> list[str] | None:
    """Symbols that bypass the target's public surface, or None if compliant.

    Named symbols are checked against the surface regardless of the file
    they are imported from. Imports without a named symbol (side effects,
    namespaces, require, dynamic import, 'export *') are compliant only
    when they go through the barrel file itself.
    """
    target = graph.module(edge.to_module)
    named = [s for s in edge.symbols if s != NAMESPACE_SYMBOL]
    missing = [s for s in named if not target.exposes(s)]
    whole_module = not edge.symbols or NAMESPACE_SYMBOL in edge.symbols
    if whole_module and edge.target_file != target.barrel:
        missing.append(NAMESPACE_SYMBOL)
    return missing or None


def check_deep_imports(
    graph: DependencyGraph,
    config: LayerGuardConfig,
) -> list[Violation]:
    """One violation per import into a feature module that bypasses its surface."""
    severity = config.severity_for(ViolationKind.DEEP_IMPORT.value)
    violations: list[Violation] = []

    for edge in graph.edges:
        target = graph.module(edge.to_module)
        if target.layer is not Layer.FEATURE:
            continue
        for imp in edge.imports:
            missing = _deep_import_symbols(imp, graph)
            if missing is None:
                continue
            names = [s for s in missing if s != NAMESPACE_SYMBOL]
            if target.unparsable_barrel:
                reason = (
                    f"barrel {target.unparsable_barrel} could not be parsed, "
                    "see its parse warning"
                )
            elif not target.barrel:
                reason = f"module '{target.name}' has no barrel file"
            elif names:
                reason = f"not exported by {target.barrel}"
            else:
                reason = f"bypasses {target.barrel}"
            if names:
                what = ", ".join(f"'{s}'" for s in names)
            else:
                what = f"'{imp.specifier}'"
            if names and NAMESPACE_SYMBOL in missing:
                what = f"{what} and the module '{imp.specifier}'"
            message = (
                f"Deep import of {what} from feature module '{target.name}' ({reason})"
            )
            violations.append(
                Violation(
                    kind=ViolationKind.DEEP_IMPORT,
                    severity=severity,
                    from_module=imp.from_module,
                    to_module=imp.to_module,
                    file=imp.file,
                    line=imp.line,
                    column=imp.column,
                    message=message,
                    symbols=tuple(missing),
                    edges=(imp,),
                )
            )
    return violations


def check_cycles(
    graph: DependencyGraph,
    config: LayerGuardConfig,
) -> list[Violation]:
    """One violation per strongly connected set of feature modules.

    The search runs over the feature-only subgraph. Each violation lists
    every participating module and one representative import for each hop
    of a shortest cycle through the component.
    """
    severity = config.severity_for(ViolationKind.CYCLE.value)
    modules = graph.modules
    is_feature = [module.layer is Layer.FEATURE for module in modules]
    edge_map: dict[tuple[str, str], ModuleEdge] = {
        edge.key: edge for edge in graph.edges
    }

    # Non-feature nodes keep their index but lose every edge.
    adjacency = [
        [t for t in successors if is_feature[t]] if is_feature[i] else []
        for i, successors in enumerate(graph.adjacency)
    ]

    violations: list[Violation] = []
    for component in find_cycles(adjacency):
        cycle = shortest_cycle(adjacency, component)
        hops = list(zip(cycle, cycle[1:] + cycle[:1]))
        representatives = tuple(
            edge_map[(modules[a].id, modules[b].id)].first_import for a, b in hops
        )
        participants = tuple(modules[i].id for i in component)
        names = ", ".join(modules[i].name for i in component)
        path = " -> ".join(modules[i].name for i in [*cycle, cycle[0]])
        first = representatives[0]
        message = f"Dependency cycle between feature modules {names} ({path})"
        violations.append(
            Violation(
                kind=ViolationKind.CYCLE,
                severity=severity,
                from_module=first.from_module,
                to_module=first.to_module,
                file=first.file,
                line=first.line,
                column=first.column,
                message=message,
                modules=participants,
                edges=representatives,
            )
        )
    return violations


def evaluate(graph: DependencyGraph, config: LayerGuardConfig) -> list[Violation]:
    """Run every check and return all violations in report order."""
    violations = [
        *check_layer_direction(graph, config),
        *check_deep_imports(graph, config),
        *check_cycles(graph, config),
    ]
    violations.sort(key=Violation.sort_key)
    logger.debug("Rule evaluation produced %d violations", len(violations))
    return violations


__all__ = [
    "check_cycles",
    "check_deep_imports",
    "check_layer_direction",
    "evaluate",
]
