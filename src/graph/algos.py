"""Graph algorithms over index-based adjacency lists.

Nodes are integers ``0..n-1`` and ``adjacency[i]`` lists the successors of
node ``i``. Traversal order follows ascending node indices, so results are
deterministic for a given adjacency.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class _TarjanState:
    """Mutable state container for Tarjan's SCC algorithm."""

    def __init__(self, size: int) -> None:
        self.index = 0
        self.indices: list[int] = [-1] * size
        self.low_link: list[int] = [0] * size
        self.on_stack: list[bool] = [False] * size
        self.stack: list[int] = []
        self.sccs: list[list[int]] = []


def _extract_scc(state: _TarjanState, root: int) -> list[int]:
    """Pop a strongly connected component off the stack."""
    scc: list[int] = []
    while state.stack:
        w = state.stack.pop()
        state.on_stack[w] = False
        scc.append(w)
        if w == root:
            break
    if root not in scc:
        msg = (
            f"Tarjan algorithm invariant violated: root node {root!r} "
            "not found in stack during SCC extraction."
        )
        raise RuntimeError(msg)
    return sorted(scc)


def _visit(state: _TarjanState, node: int) -> None:
    state.indices[node] = state.index
    state.low_link[node] = state.index
    state.index += 1
    state.stack.append(node)
    state.on_stack[node] = True


def _strongconnect(
    start: int, adjacency: Sequence[Sequence[int]], state: _TarjanState
) -> None:
    """Process a node in Tarjan's algorithm, iteratively.

    An explicit work stack of (node, next-successor position) frames
    replaces recursion so deep dependency chains cannot hit the
    interpreter's recursion limit.
    """
    _visit(state, start)
    work: list[tuple[int, int]] = [(start, 0)]

    while work:
        node, position = work[-1]
        successors = adjacency[node]
        if position < len(successors):
            work[-1] = (node, position + 1)
            neighbor = successors[position]
            if state.indices[neighbor] == -1:
                _visit(state, neighbor)
                work.append((neighbor, 0))
            elif state.on_stack[neighbor]:
                state.low_link[node] = min(
                    state.low_link[node], state.indices[neighbor]
                )
            continue

        work.pop()
        if work:
            parent = work[-1][0]
            state.low_link[parent] = min(state.low_link[parent], state.low_link[node])
        if state.low_link[node] == state.indices[node]:
            state.sccs.append(_extract_scc(state, node))


def strongly_connected_components(
    adjacency: Sequence[Sequence[int]],
) -> list[list[int]]:
    """All strongly connected components, each sorted, in discovery order."""
    state = _TarjanState(len(adjacency))
    for node in range(len(adjacency)):
        if state.indices[node] == -1:
            _strongconnect(node, adjacency, state)
    return state.sccs


def find_cycles(adjacency: Sequence[Sequence[int]]) -> list[list[int]]:
    """Components that contain a cycle between distinct nodes.

    Single-node components are never returned, even with a self-loop.
    The result is sorted by each component's smallest node.
    """
    cycles = [scc for scc in strongly_connected_components(adjacency) if len(scc) > 1]
    cycles.sort()
    return cycles


def shortest_cycle(
    adjacency: Sequence[Sequence[int]],
    component: Sequence[int],
) -> list[int]:
    """A minimal cycle inside ``component`` as a node list (closing edge implied).

    Runs a breadth-first search from every member, restricted to the
    component, and keeps the shortest cycle; ties go to the cycle through
    the smallest start node. The returned list starts at that node.
    """
    members = set(component)
    best: list[int] = []
    for start in sorted(members):
        parents: dict[int, int] = {start: start}
        queue: deque[int] = deque([start])
        found: list[int] | None = None
        while queue and found is None:
            node = queue.popleft()
            for neighbor in adjacency[node]:
                if neighbor not in members:
                    continue
                if neighbor == start and node != start:
                    path = [node]
                    while path[-1] != start:
                        path.append(parents[path[-1]])
                    found = path[::-1]
                    break
                if neighbor not in parents:
                    parents[neighbor] = node
                    queue.append(neighbor)
        if found is not None and (not best or len(found) < len(best)):
            best = found
            if len(best) == 2:
                break
    return best


__all__ = [
    "_TarjanState",
    "_extract_scc",
    "_strongconnect",
    "find_cycles",
    "shortest_cycle",
    "strongly_connected_components",
]
