"""
Section Contracts

Immutable manuscript sections, precedence constraints and the
permutations produced by the shuffle engine.

Section identifiers are plain integers. The manuscript layer uses the
one-based section number a writer sees (§1, §2, ...), but the core
only requires them to be unique within a registry.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Section:
    """
    An atomic, reorderable unit of manuscript text.

    A fixed section without an explicit position is pinned to its
    original index ("keep it where it is").
    """
    section_id: int
    original_index: int
    text: str = ""
    fixed: bool = False
    fixed_position: Optional[int] = None

    def __post_init__(self):
        if self.original_index < 0:
            raise ValueError("original_index must be non-negative")
        if self.fixed and self.fixed_position is None:
            object.__setattr__(self, 'fixed_position', self.original_index)
        if not self.fixed and self.fixed_position is not None:
            raise ValueError(
                f"Section {self.section_id} has a fixed_position but is not fixed"
            )

    @staticmethod
    def pinned(section_id: int, original_index: int, text: str = "") -> Section:
        """Create a section fixed at its original index."""
        return Section(
            section_id=section_id,
            original_index=original_index,
            text=text,
            fixed=True
        )


@dataclass(frozen=True)
class Constraint:
    """
    Precedence edge: `before` must occupy an earlier position than `after`.

    Self-constraints are representable here and rejected by the
    constraint graph as an explicit error state.
    """
    before: int
    after: int

    def describe(self) -> str:
        return f"§{self.before} must come before §{self.after}"


@dataclass(frozen=True)
class Permutation:
    """
    Bijective mapping from section identifier to output position.

    Stored as the identifiers in position order, together with the seed
    that produced the ordering so a shuffle can be reproduced.
    """
    order: Tuple[int, ...]
    seed: Optional[int] = None

    def __post_init__(self):
        if len(set(self.order)) != len(self.order):
            raise ValueError("Permutation order must not repeat a section")

    def __len__(self) -> int:
        return len(self.order)

    @property
    def positions(self) -> Dict[int, int]:
        """Section identifier -> position (fresh dict on each access)."""
        return {section_id: position for position, section_id in enumerate(self.order)}

    def position_of(self, section_id: int) -> int:
        try:
            return self.order.index(section_id)
        except ValueError:
            raise KeyError(section_id) from None

    def satisfies(self, constraint: Constraint) -> bool:
        return self.position_of(constraint.before) < self.position_of(constraint.after)
