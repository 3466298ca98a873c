"""
Constraint Validator
====================

Proves that a constraint graph admits at least one valid order before the
shuffle engine is allowed to touch it.

CHECKS (in order, first failure wins):
======================================
1. Acyclicity                     -> CYCLE_DETECTED
2. Fixed positions in range       -> FIXED_POSITION_OUT_OF_RANGE
   Fixed positions distinct       -> DUPLICATE_FIXED_POSITION
3. Constraints between two fixed sections point forward
4. A constraint cannot end at slot 0 or start at the last slot
5. Every section keeps a non-empty position window
6. Earliest-deadline-first completion of the whole order succeeds
   (3-6)                          -> FIXED_POSITION_CONFLICT

Validation is read-only. On success it returns a ValidatedGraph, the only
input the shuffle engine accepts. Only this module can create one.
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import AbstractSet, Dict, List, Mapping, Optional, Tuple
import heapq

from ..contracts.base import Error, ErrorCode, Result
from .registry import SectionRegistry
from .topology import ConstraintGraph


_SEAL = object()


@dataclass(frozen=True)
class PositionWindow:
    """Inclusive range of output positions a section can occupy."""
    earliest: int
    latest: int

    @property
    def is_empty(self) -> bool:
        return self.earliest > self.latest

    def __contains__(self, position: object) -> bool:
        return isinstance(position, int) and self.earliest <= position <= self.latest


class ValidatedGraph:
    """
    Frozen constraint graph that passed validation.

    Carries everything the shuffle engine needs: the graph, the registry,
    the fixed-slot table and each section's position window.
    """

    def __init__(
        self,
        graph: ConstraintGraph,
        windows: Mapping[int, PositionWindow],
        fixed_slots: Mapping[int, int],
        _seal: object = None
    ):
        if _seal is not _SEAL:
            raise TypeError("ValidatedGraph instances are issued only by ConstraintValidator")
        self._graph = graph
        self._windows = dict(windows)
        self._fixed_slots = dict(fixed_slots)
        self._fixed_ids = frozenset(self._fixed_slots.values())

    @property
    def graph(self) -> ConstraintGraph:
        return self._graph

    @property
    def registry(self) -> SectionRegistry:
        return self._graph.registry

    @property
    def section_count(self) -> int:
        return len(self._graph.registry)

    @property
    def fixed_slots(self) -> Mapping[int, int]:
        """Position -> identifier of the section fixed there."""
        return MappingProxyType(self._fixed_slots)

    def is_fixed(self, section_id: int) -> bool:
        return section_id in self._fixed_ids

    def window(self, section_id: int) -> PositionWindow:
        return self._windows[section_id]

    def windows(self) -> Dict[int, PositionWindow]:
        return dict(self._windows)

    def can_complete(self, placed: AbstractSet[int], next_position: int) -> bool:
        """
        Whether the order can be finished from `next_position` onwards,
        given that exactly the sections in `placed` fill the earlier slots.

        Fills free slots earliest-deadline-first (deadline = latest window
        position, ties by arena index) and fixed slots with their section.
        Exact for unit-length slots with precedence and deadlines.
        """
        graph = self._graph
        registry = graph.registry
        pending: Dict[int, int] = {}
        ready: List[Tuple[int, int, int]] = []

        for section in registry:
            section_id = section.section_id
            if section_id in placed:
                continue
            waiting = sum(1 for p in graph.predecessors(section_id) if p not in placed)
            pending[section_id] = waiting
            if waiting == 0 and section_id not in self._fixed_ids:
                heapq.heappush(ready, self._deadline_key(section_id))

        for position in range(next_position, self.section_count):
            claimant = self._fixed_slots.get(position)
            if claimant is not None:
                if claimant in placed:
                    continue
                if pending[claimant]:
                    return False
                current = claimant
            else:
                if not ready:
                    return False
                latest, _, current = heapq.heappop(ready)
                if latest < position:
                    return False

            for successor in graph.successors(current):
                if successor not in pending:
                    continue
                pending[successor] -= 1
                if pending[successor] == 0 and successor not in self._fixed_ids:
                    heapq.heappush(ready, self._deadline_key(successor))

        return True

    def _deadline_key(self, section_id: int) -> Tuple[int, int, int]:
        return (
            self._windows[section_id].latest,
            self.registry.index_of(section_id),
            section_id
        )


class ConstraintValidator:
    """
    Read-only satisfiability checks over a constraint graph.

    Never mutates the graph or registry it is given; the returned handle
    holds a frozen copy.
    """

    def validate(self, graph: ConstraintGraph) -> Result:
        registry = graph.registry
        count = len(registry)

        error = self._check_acyclic(graph)
        if error:
            return Result.failure(error)

        fixed_slots: Dict[int, int] = {}
        for section in registry.fixed_sections():
            position = section.fixed_position
            if not 0 <= position < count:
                return Result.failure(Error(
                    code=ErrorCode.FIXED_POSITION_OUT_OF_RANGE,
                    message=(
                        f"Section §{section.section_id} is fixed at position {position}, "
                        f"outside 0..{count - 1}"
                    ),
                    context=(
                        ("section_id", str(section.section_id)),
                        ("position", str(position)),
                    )
                ))
            if position in fixed_slots:
                return Result.failure(Error(
                    code=ErrorCode.DUPLICATE_FIXED_POSITION,
                    message=(
                        f"Sections §{fixed_slots[position]} and §{section.section_id} "
                        f"are both fixed at position {position}"
                    ),
                    context=(
                        ("section_id", str(section.section_id)),
                        ("other_section_id", str(fixed_slots[position])),
                        ("position", str(position)),
                    )
                ))
            fixed_slots[position] = section.section_id

        error = self._check_fixed_endpoints(graph, count)
        if error:
            return Result.failure(error)

        fixed_positions = {section_id: position for position, section_id in fixed_slots.items()}
        windows = self._compute_windows(graph, fixed_positions)
        for section_id in graph.topological_order():
            window = windows[section_id]
            if window.is_empty:
                return Result.failure(Error(
                    code=ErrorCode.FIXED_POSITION_CONFLICT,
                    message=(
                        f"No position satisfies §{section_id}: its constraints require "
                        f"a position from {window.earliest} to {window.latest}"
                    ),
                    context=(
                        ("section_id", str(section_id)),
                        ("earliest", str(window.earliest)),
                        ("latest", str(window.latest)),
                    )
                ))

        validated = ValidatedGraph(graph.frozen_copy(), windows, fixed_slots, _seal=_SEAL)
        if not validated.can_complete(frozenset(), 0):
            return Result.failure(Error(
                code=ErrorCode.FIXED_POSITION_CONFLICT,
                message=(
                    "The fixed sections leave no room to place the remaining "
                    "sections in constraint order"
                ),
                context=(("fixed_count", str(len(fixed_slots))),)
            ))

        return Result.success(validated)

    def _check_acyclic(self, graph: ConstraintGraph) -> Optional[Error]:
        if not graph.has_cycle():
            return None
        cycle = graph.find_cycle() or ()
        steps = ", ".join(
            f"§{before} must come before §{after}"
            for before, after in zip(cycle, cycle[1:])
        )
        return Error(
            code=ErrorCode.CYCLE_DETECTED,
            message=f"Paradox detected: {steps}",
            context=(("cycle", " -> ".join(str(section_id) for section_id in cycle)),)
        )

    def _check_fixed_endpoints(self, graph: ConstraintGraph, count: int) -> Optional[Error]:
        registry = graph.registry
        for constraint in graph.constraints():
            before = registry.section(constraint.before)
            after = registry.section(constraint.after)
            context = (("constraint", f"{constraint.before}->{constraint.after}"),)

            if before.fixed and after.fixed:
                if before.fixed_position >= after.fixed_position:
                    return Error(
                        code=ErrorCode.FIXED_POSITION_CONFLICT,
                        message=(
                            f"{constraint.describe()}, but they are fixed at positions "
                            f"{before.fixed_position} and {after.fixed_position}"
                        ),
                        context=context
                    )
            elif after.fixed and after.fixed_position == 0:
                return Error(
                    code=ErrorCode.FIXED_POSITION_CONFLICT,
                    message=(
                        f"{constraint.describe()}, but §{after.section_id} "
                        f"is fixed at the first position"
                    ),
                    context=context
                )
            elif before.fixed and before.fixed_position == count - 1:
                return Error(
                    code=ErrorCode.FIXED_POSITION_CONFLICT,
                    message=(
                        f"{constraint.describe()}, but §{before.section_id} "
                        f"is fixed at the last position"
                    ),
                    context=context
                )
        return None

    def _compute_windows(
        self,
        graph: ConstraintGraph,
        fixed_positions: Mapping[int, int]
    ) -> Dict[int, PositionWindow]:
        """Propagate earliest positions forward and latest positions backward."""
        last = len(graph.registry) - 1
        order = graph.topological_order()
        earliest = {section_id: fixed_positions.get(section_id, 0) for section_id in order}
        latest = {section_id: fixed_positions.get(section_id, last) for section_id in order}

        for section_id in order:
            for successor in graph.successors(section_id):
                earliest[successor] = max(earliest[successor], earliest[section_id] + 1)

        for section_id in reversed(order):
            for successor in graph.successors(section_id):
                latest[section_id] = min(latest[section_id], latest[successor] - 1)

        return {
            section_id: PositionWindow(earliest=earliest[section_id], latest=latest[section_id])
            for section_id in order
        }
