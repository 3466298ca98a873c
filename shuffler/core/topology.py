"""
Constraint Graph
================

Directed "must come before" graph over the sections of a registry.

REPRESENTATION:
===============
Nodes are the registry's integer arena indices, never Section objects.
Edges run from `before` to `after`. The graph wraps a NetworkX DiGraph;
section identifiers are translated to indices at the boundary so callers
only ever see identifiers.

ALLOWED:
- Edge insertion/removal with explicit error states
- Cycle detection (three-state depth-first traversal)
- Ready-set computation for the shuffle engine

FORBIDDEN:
- Any ordering preference between sections (no weights, no ranking)
"""

from __future__ import annotations
from enum import Enum, auto
from typing import AbstractSet, FrozenSet, Iterable, List, Optional, Tuple
import networkx as nx

from ..contracts.base import Error, ErrorCode, Result
from ..contracts.sections import Constraint
from .registry import SectionRegistry


class _Visit(Enum):
    UNVISITED = auto()
    IN_PROGRESS = auto()
    DONE = auto()


class ConstraintGraph:
    """
    Precedence constraints between registered sections.

    Mutable while the caller assembles it; the validator freezes a copy
    before handing it to the shuffle engine.
    """

    def __init__(self, registry: SectionRegistry):
        self._registry = registry
        self._graph = nx.DiGraph()
        self._graph.add_nodes_from(range(len(registry)))

    @staticmethod
    def build(registry: SectionRegistry, constraints: Iterable[Constraint]) -> Result:
        """Build a graph from a constraint list, stopping at the first bad constraint."""
        graph = ConstraintGraph(registry)
        for constraint in constraints:
            result = graph.add_constraint(constraint.before, constraint.after)
            if result.is_failure:
                return result
        return Result.success(graph)

    @property
    def registry(self) -> SectionRegistry:
        return self._registry

    @property
    def is_frozen(self) -> bool:
        return nx.is_frozen(self._graph)

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add_constraint(self, before: int, after: int) -> Result:
        """
        Require `before` to precede `after`.

        Fails with UNKNOWN_SECTION or SELF_CONSTRAINT; inserting an edge
        that already exists is a no-op.
        """
        if self.is_frozen:
            raise RuntimeError("Cannot add constraints to a frozen constraint graph")

        for section_id in (before, after):
            if section_id not in self._registry:
                return Result.failure(Error(
                    code=ErrorCode.UNKNOWN_SECTION,
                    message=f"Constraint references unknown section §{section_id}",
                    context=(
                        ("section_id", str(section_id)),
                        ("constraint", f"{before}->{after}"),
                    )
                ))

        if before == after:
            return Result.failure(Error(
                code=ErrorCode.SELF_CONSTRAINT,
                message=f"Section §{before} cannot come before itself",
                context=(("section_id", str(before)),)
            ))

        self._graph.add_edge(
            self._registry.index_of(before),
            self._registry.index_of(after)
        )
        return Result.success(Constraint(before=before, after=after))

    def remove_constraint(self, before: int, after: int) -> None:
        """Remove the edge if present; no-op otherwise."""
        if self.is_frozen:
            raise RuntimeError("Cannot remove constraints from a frozen constraint graph")
        if before not in self._registry or after not in self._registry:
            return
        source = self._registry.index_of(before)
        target = self._registry.index_of(after)
        if self._graph.has_edge(source, target):
            self._graph.remove_edge(source, target)

    def frozen_copy(self) -> ConstraintGraph:
        """Independent, immutable copy of this graph."""
        copy = ConstraintGraph.__new__(ConstraintGraph)
        copy._registry = self._registry
        copy._graph = nx.freeze(self._graph.copy())
        return copy

    # =========================================================================
    # QUERIES
    # =========================================================================

    def has_constraint(self, before: int, after: int) -> bool:
        if before not in self._registry or after not in self._registry:
            return False
        return self._graph.has_edge(
            self._registry.index_of(before),
            self._registry.index_of(after)
        )

    def constraints(self) -> Tuple[Constraint, ...]:
        """All constraints, ordered by arena index of their endpoints."""
        return tuple(
            Constraint(before=self._id(source), after=self._id(target))
            for source, target in sorted(self._graph.edges())
        )

    def predecessors(self, section_id: int) -> FrozenSet[int]:
        index = self._registry.index_of(section_id)
        return frozenset(self._id(p) for p in self._graph.predecessors(index))

    def successors(self, section_id: int) -> FrozenSet[int]:
        index = self._registry.index_of(section_id)
        return frozenset(self._id(s) for s in self._graph.successors(index))

    def has_cycle(self) -> bool:
        """
        Depth-first traversal tracking {unvisited, in-progress, done}.

        An edge into an in-progress node closes a cycle. Iterative, so
        long constraint chains cannot exhaust the interpreter stack.
        """
        state = {node: _Visit.UNVISITED for node in self._graph}

        for root in self._graph:
            if state[root] is not _Visit.UNVISITED:
                continue
            state[root] = _Visit.IN_PROGRESS
            stack = [(root, iter(self._graph.successors(root)))]

            while stack:
                node, children = stack[-1]
                for child in children:
                    if state[child] is _Visit.IN_PROGRESS:
                        return True
                    if state[child] is _Visit.UNVISITED:
                        state[child] = _Visit.IN_PROGRESS
                        stack.append((child, iter(self._graph.successors(child))))
                        break
                else:
                    state[node] = _Visit.DONE
                    stack.pop()

        return False

    def find_cycle(self) -> Optional[Tuple[int, ...]]:
        """
        One witness cycle as a closed path of section identifiers,
        e.g. (1, 2, 1). None if the graph is acyclic.
        """
        try:
            edges = nx.find_cycle(self._graph)
        except nx.NetworkXNoCycle:
            return None
        path: List[int] = [self._id(source) for source, _ in edges]
        path.append(path[0])
        return tuple(path)

    def topological_candidates(self, assigned: AbstractSet[int]) -> FrozenSet[int]:
        """
        Ready set: unassigned sections whose predecessors are all assigned.
        """
        ready = set()
        for index in self._graph:
            section_id = self._id(index)
            if section_id in assigned:
                continue
            if all(self._id(p) in assigned for p in self._graph.predecessors(index)):
                ready.add(section_id)
        return frozenset(ready)

    def topological_order(self) -> Tuple[int, ...]:
        """
        Deterministic topological order (ties broken by arena index).

        Only meaningful on an acyclic graph; raises NetworkXUnfeasible otherwise.
        """
        return tuple(
            self._id(index)
            for index in nx.lexicographical_topological_sort(self._graph)
        )

    def _id(self, index: int) -> int:
        return self._registry.section_at(index).section_id
