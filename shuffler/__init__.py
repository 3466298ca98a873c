"""
Story Shuffler

Reorders the sections of a manuscript at random while honoring the
writer's ordering rules: some sections must precede others, and some
are pinned to fixed positions.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Immutable Section, Constraint, Permutation, Error and Result types

2. CORE (core/)
   - Responsibility: Registry, constraint graph, validation, shuffling
   - Inputs: Sections + Constraints (+ optional seed)
   - Outputs: Result[ValidatedGraph], Result[Permutation]
   - MUST NOT: Perform I/O, log, or keep state between requests

3. MANUSCRIPT LAYER (manuscript/)
   - Responsibility: Split text into sections, parse "before" lists,
     reassemble shuffled text

4. OBSERVABILITY LAYER (observability/)
   - Responsibility: Audit log and metrics, fed by the backend only

5. INTERFACES (engine.py, api/, cli.py)
   - Backend orchestration, HTTP API, command line

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: requests operate on frozen snapshots
- Deterministic: identical inputs and seed produce identical orders
- Explicit errors: every failure is a typed, queryable error state
- No ranking: the engine guarantees validity and variety, never "quality"
"""

from .contracts.base import Error, ErrorCode, Result
from .contracts.sections import Constraint, Permutation, Section
from .core import (
    ConstraintGraph,
    ConstraintValidator,
    SectionRegistry,
    ShuffleEngine,
    ValidatedGraph,
    shuffle,
    validate,
)

__version__ = "1.0.0"

__all__ = [
    "Constraint",
    "ConstraintGraph",
    "ConstraintValidator",
    "Error",
    "ErrorCode",
    "Permutation",
    "Result",
    "Section",
    "SectionRegistry",
    "ShuffleEngine",
    "ValidatedGraph",
    "shuffle",
    "validate",
]
