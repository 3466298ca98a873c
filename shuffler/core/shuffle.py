"""
Shuffle Engine
==============

Produces a random, constraint-respecting order of manuscript sections.

ALGORITHM:
==========
Randomized Kahn's algorithm with fixed-slot pre-seeding:
1. Reserve the slot of every fixed section.
2. Walk output positions in increasing order.
   - A reserved slot places its fixed section; only then does that section
     count as placed, so nothing that must follow it can jump ahead.
   - A free slot takes a section drawn uniformly at random from the ready
     set. While reserved slots remain ahead, candidates that would leave
     the rest of the order impossible to finish are passed over.
3. Newly-ready successors join the ready set after each placement.

KNOWN APPROXIMATION:
====================
Drawing uniformly from the ready set is NOT a uniform sample over all
linear extensions: orders with more early branching are over-represented.
The engine promises validity and variety, not statistical uniformity.
Exact uniform sampling needs linear-extension counting and is left out
until someone actually needs it.

DETERMINISM:
============
Each call owns a fresh random.Random seeded from the supplied seed, so the
same validated graph and seed always yield the same permutation.
"""

from __future__ import annotations
from typing import List, Optional, Set
import random
import secrets

from ..contracts.base import Error, ErrorCode, Result
from ..contracts.sections import Permutation
from .validator import ValidatedGraph


SEED_BITS = 64


class ShuffleEngine:
    """Stateless shuffle engine; all randomness is per invocation."""

    def shuffle(self, validated: ValidatedGraph, seed: Optional[int] = None) -> Result:
        if not isinstance(validated, ValidatedGraph):
            raise TypeError("shuffle() requires a ValidatedGraph issued by ConstraintValidator")
        if seed is None:
            seed = secrets.randbits(SEED_BITS)
        elif not 0 <= seed < 2 ** SEED_BITS:
            raise ValueError(f"seed must be in [0, 2**{SEED_BITS})")

        rng = random.Random(seed)
        graph = validated.graph
        count = validated.section_count

        slots: List[Optional[int]] = [None] * count
        for position, section_id in validated.fixed_slots.items():
            slots[position] = section_id
        fixed_ahead = len(validated.fixed_slots)

        placed: Set[int] = set()
        ready = {
            section_id for section_id in graph.topological_candidates(frozenset())
            if not validated.is_fixed(section_id)
        }

        for position in range(count):
            claimant = slots[position]
            if claimant is not None:
                if not graph.predecessors(claimant) <= placed:
                    return Result.failure(self._infeasible(
                        position, f"fixed section §{claimant} reached before its predecessors"
                    ))
                fixed_ahead -= 1
                current = claimant
            else:
                candidates = sorted(ready, key=validated.registry.index_of)
                rng.shuffle(candidates)
                current = None
                for candidate in candidates:
                    if fixed_ahead == 0 or validated.can_complete(placed | {candidate}, position + 1):
                        current = candidate
                        break
                if current is None:
                    return Result.failure(self._infeasible(
                        position, "no ready section can fill this position"
                    ))
                slots[position] = current
                ready.discard(current)

            placed.add(current)
            for successor in graph.successors(current):
                if validated.is_fixed(successor) or successor in placed:
                    continue
                if graph.predecessors(successor) <= placed:
                    ready.add(successor)

        return Result.success(Permutation(order=tuple(slots), seed=seed))

    def _infeasible(self, position: int, reason: str) -> Error:
        return Error(
            code=ErrorCode.INFEASIBLE,
            message=f"Internal error at position {position}: {reason}",
            context=(("position", str(position)),)
        )
