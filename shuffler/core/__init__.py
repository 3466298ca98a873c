"""
Constrained Shuffle Core

RESPONSIBILITY: Section registry, constraint graph, validation, shuffling
ALLOWED INPUTS: Section and Constraint contracts, an optional seed
OUTPUTS: Result carrying a ValidatedGraph or a Permutation

WHAT THIS LAYER MUST NOT DO:
============================
- Perform I/O of any kind (no printing, no logging, no files)
- Split or reassemble manuscript text (manuscript layer's job)
- Keep state between requests (beyond a per-call random source)
- Prefer one valid order over another ("best" orderings are a non-goal)

BOUNDARY ENFORCEMENT:
=====================
- Every request builds a fresh registry and graph from immutable contracts
- The shuffle engine only accepts a ValidatedGraph
- All failures are returned as Result.failure(Error), never raised;
  exceptions are reserved for programming errors
"""

from __future__ import annotations
from typing import Iterable, Optional

from ..contracts.base import Result
from ..contracts.sections import Constraint, Section
from .registry import SectionRegistry
from .topology import ConstraintGraph
from .validator import ConstraintValidator, PositionWindow, ValidatedGraph
from .shuffle import ShuffleEngine


def validate(sections: Iterable[Section], constraints: Iterable[Constraint]) -> Result:
    """
    Build the registry and constraint graph and validate them.

    Returns Result.success(ValidatedGraph) or the first error state found.
    """
    registry_result = SectionRegistry.build(sections)
    if registry_result.is_failure:
        return registry_result

    graph_result = ConstraintGraph.build(registry_result.value, constraints)
    if graph_result.is_failure:
        return graph_result

    return ConstraintValidator().validate(graph_result.value)


def shuffle(validated: ValidatedGraph, seed: Optional[int] = None) -> Result:
    """Produce a constraint-respecting Permutation from a validated graph."""
    return ShuffleEngine().shuffle(validated, seed)


__all__ = [
    "ConstraintGraph",
    "ConstraintValidator",
    "PositionWindow",
    "SectionRegistry",
    "ShuffleEngine",
    "ValidatedGraph",
    "shuffle",
    "validate",
]
