"""Dependency graph construction and algorithms."""

from graph.algos import find_cycles, shortest_cycle, strongly_connected_components
from graph.builder import build_dependency_graph

__all__ = [
    "build_dependency_graph",
    "find_cycles",
    "shortest_cycle",
    "strongly_connected_components",
]
