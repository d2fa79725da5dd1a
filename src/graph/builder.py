"""Dependency graph construction from resolved modules."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING

from models.graph import DependencyGraph, ExternalEdge, ImportEdge, ModuleEdge

if TYPE_CHECKING:
    from resolve.aliases import SpecifierResolver
    from resolve.modules import ModuleMap

logger = logging.getLogger(__name__)


def _collect_edges(
    module_map: ModuleMap,
    specifiers: SpecifierResolver,
) -> tuple[list[ImportEdge], list[ExternalEdge]]:
    """One ImportEdge per cross-module import; everything else is external."""
    imports: list[ImportEdge] = []
    external: list[ExternalEdge] = []
    same_module = 0

    for module in module_map.modules:
        for path in module.files:
            source = module_map.sources[path]
            for spec in source.imports:
                resolved = specifiers.resolve(spec.specifier, path)
                target_module = (
                    module_map.module_of(resolved.path) if resolved.path else None
                )
                if resolved.path is None or target_module is None:
                    external.append(
                        ExternalEdge(
                            from_module=module.id,
                            specifier=spec.specifier,
                            file=path,
                            line=spec.line,
                            column=spec.column,
                            reason=resolved.reason or "unassigned",
                        )
                    )
                    continue
                if target_module.id == module.id:
                    same_module += 1
                    continue
                imports.append(
                    ImportEdge(
                        from_module=module.id,
                        to_module=target_module.id,
                        symbols=spec.symbols,
                        file=path,
                        line=spec.line,
                        column=spec.column,
                        specifier=spec.specifier,
                        target_file=resolved.path,
                        kind=spec.kind,
                    )
                )

    logger.debug(
        "Resolved %d cross-module imports, %d external, %d same-module dropped",
        len(imports),
        len(external),
        same_module,
    )
    return imports, external


def build_dependency_graph(
    module_map: ModuleMap,
    specifiers: SpecifierResolver,
) -> DependencyGraph:
    """Build the module dependency graph.

    ImportEdges sharing a (from_module, to_module) pair are grouped into one
    ModuleEdge that keeps every contributing import, sorted by location.
    The adjacency arena indexes modules in id order.

    Args:
        module_map: Output of the module resolver
        specifiers: Resolver for import specifiers

    Returns:
        The dependency graph; it may contain cycles.
    """
    imports, external = _collect_edges(module_map, specifiers)

    grouped: dict[tuple[str, str], list[ImportEdge]] = defaultdict(list)
    for edge in imports:
        grouped[(edge.from_module, edge.to_module)].append(edge)

    edges = tuple(
        ModuleEdge(
            from_module=source,
            to_module=target,
            imports=tuple(sorted(grouped[(source, target)], key=ImportEdge.sort_key)),
        )
        for source, target in sorted(grouped)
    )

    modules = tuple(sorted(module_map.modules, key=lambda m: m.id))
    node_index = {module.id: index for index, module in enumerate(modules)}
    successors: list[set[int]] = [set() for _ in modules]
    for edge in edges:
        successors[node_index[edge.from_module]].add(node_index[edge.to_module])

    external.sort(key=lambda e: (e.file, e.line, e.column, e.specifier))

    return DependencyGraph(
        modules=modules,
        edges=edges,
        external=tuple(external),
        node_index=node_index,
        adjacency=tuple(tuple(sorted(s)) for s in successors),
    )


__all__ = ["build_dependency_graph"]
