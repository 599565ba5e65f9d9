"""Parameter dependency graph.

Parameters are nodes keyed ``form.parameter``; every registered dependency is
a directed edge from its source to its target. The graph is used at
registration time for cycle detection and by callers for impact analysis.
"""

from typing import Final

import rustworkx as rx

from ._models import ParameterDependency

__all__ = ["ParameterGraph"]


class ParameterGraph:
    """Directed multigraph of parameter dependencies backed by rustworkx."""

    __slots__: Final = ("_graph", "_indices")

    _graph: rx.PyDiGraph[str, ParameterDependency]
    _indices: dict[str, int]

    def __init__(self) -> None:
        """Initialize an empty graph."""
        self._graph = rx.PyDiGraph(check_cycle=False, multigraph=True)
        self._indices = {}

    def __contains__(self, key: object) -> bool:
        return key in self._indices

    def _node(self, key: str) -> int:
        index = self._indices.get(key)
        if index is None:
            index = self._graph.add_node(key)
            self._indices[key] = index
        return index

    def add_dependency(self, dependency: ParameterDependency) -> None:
        """Add the edge for a dependency, creating nodes as needed."""
        source = self._node(dependency.source_key)
        target = self._node(dependency.target_key)
        _ = self._graph.add_edge(source, target, dependency)

    def cycle_through(self, dependency: ParameterDependency) -> tuple[str, ...]:
        """Return the cycle that adding `dependency` would close.

        Args:
            dependency: A dependency not yet in the graph.

        Returns:
            Parameter keys of the cycle starting and ending at the source, or
            an empty tuple when the dependency keeps the graph acyclic.
        """
        source_key = dependency.source_key
        target_key = dependency.target_key
        if source_key == target_key:
            return (source_key, target_key)
        if source_key not in self._indices or target_key not in self._indices:
            return ()

        source = self._indices[source_key]
        paths = rx.digraph_dijkstra_shortest_paths(
            self._graph, self._indices[target_key], target=source
        )
        if source not in paths:
            return ()
        return (source_key, *(self._graph[index] for index in paths[source]))

    def find_cycle(self) -> tuple[str, ...]:
        """Return any cycle in the graph as a closed key path, or ``()``."""
        cycle_edges = rx.digraph_find_cycle(self._graph)
        if not cycle_edges:
            return ()
        # cycle_edges is a list of (source, target) index tuples
        cycle_ids = [self._graph[source] for source, _ in cycle_edges]
        _, last_target = cycle_edges[-1]
        cycle_ids.append(self._graph[last_target])
        return tuple(cycle_ids)

    def topological_order(self) -> list[str] | None:
        """Return parameter keys in dependency order, or None if cyclic."""
        try:
            return [self._graph[index] for index in rx.topological_sort(self._graph)]
        except rx.DAGHasCycle:
            return None

    def downstream(self, key: str) -> set[str]:
        """Return keys of every parameter transitively driven by `key`."""
        index = self._indices.get(key)
        if index is None:
            return set()
        return {self._graph[i] for i in rx.descendants(self._graph, index)}

    def upstream(self, key: str) -> set[str]:
        """Return keys of every parameter transitively driving `key`."""
        index = self._indices.get(key)
        if index is None:
            return set()
        return {self._graph[i] for i in rx.ancestors(self._graph, index)}

    def incoming_sources(self, key: str) -> set[str]:
        """Return keys of the parameters with an edge into `key`."""
        index = self._indices.get(key)
        if index is None:
            return set()
        return {self._graph[i] for i in self._graph.predecessor_indices(index)}
