"""
Engine Orchestration Module

This module provides the unified interface for coordinating the
manuscript layer, the shuffle core and observability while keeping
their boundaries intact.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. The core stays I/O free; this module records what happened
3. Every request is one atomic unit of work on fresh, immutable inputs
4. Failures are returned as Result values, never retried
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional
import time

from .contracts.base import Error, Result
from .contracts.events import AuditEventType, AuditLogEntry
from .contracts.sections import Constraint, Permutation, Section
from .core import ShuffleEngine, ValidatedGraph, validate as validate_sections
from .core.shuffle import SEED_BITS
from .manuscript import (
    Manuscript, ManuscriptConfig, ManuscriptSplitter, constraints_from_lists
)
from .observability import ObservabilityConfig, ObservabilityEngine


@dataclass
class ShuffleConfig:
    """Shuffle defaults. A configured seed makes every shuffle reproducible."""
    seed: Optional[int] = None

    def __post_init__(self):
        if self.seed is not None and not 0 <= self.seed < 2 ** SEED_BITS:
            raise ValueError(f"seed must be in [0, 2**{SEED_BITS}), got {self.seed}")


@dataclass
class BackendConfig:
    """Unified configuration for the entire backend."""
    manuscript: ManuscriptConfig = None
    shuffle: ShuffleConfig = None
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.manuscript = self.manuscript or ManuscriptConfig()
        self.shuffle = self.shuffle or ShuffleConfig()
        self.observability = self.observability or ObservabilityConfig()


@dataclass(frozen=True)
class ShuffleOutcome:
    """A shuffled manuscript: the permutation and the reassembled text."""
    manuscript: Manuscript
    permutation: Permutation
    text: str


class StoryShufflerBackend:
    """
    Unified backend for the story shuffler.

    FLOW:
    =====
    1. Manuscript: text -> Sections (+ constraints from "before" lists)
    2. Core: Sections + Constraints -> ValidatedGraph -> Permutation
    3. Manuscript: Permutation -> reassembled text
    4. Observability: records every step
    """

    def __init__(self, config: Optional[BackendConfig] = None):
        self._config = config or BackendConfig()
        self._splitter = ManuscriptSplitter(self._config.manuscript)
        self._engine = ShuffleEngine()
        self._observability = ObservabilityEngine(self._config.observability)

    @property
    def config(self) -> BackendConfig:
        return self._config

    # =========================================================================
    # MANUSCRIPT INTERFACE
    # =========================================================================

    def split_manuscript(
        self,
        text: str,
        pinned: Iterable[int] = (),
        fixed_positions: Optional[Mapping[int, int]] = None,
        config: Optional[ManuscriptConfig] = None
    ) -> Result:
        """Split text into sections; `config` overrides the backend's delimiter settings."""
        splitter = ManuscriptSplitter(config) if config else self._splitter
        result = splitter.split(text, pinned=pinned, fixed_positions=fixed_positions)
        if result.is_failure:
            self._record_failure("manuscript", AuditEventType.MANUSCRIPT, "split", result.error)
            self._observability.collect_metric(
                "manuscript_split_failures_total", 1.0, {"error_code": result.error.code.name}
            )
        else:
            self._observability.log_audit(
                action="split",
                event_type=AuditEventType.MANUSCRIPT,
                details=f"sections={len(result.value)}",
                layer="manuscript"
            )
        return result

    # =========================================================================
    # CORE INTERFACE
    # =========================================================================

    def validate(
        self,
        sections: Iterable[Section],
        constraints: Iterable[Constraint]
    ) -> Result:
        """Validate sections and constraints; see shuffler.core.validate."""
        sections = tuple(sections)
        self._observability.collect_metric("validation_requests_total", 1.0)

        result = validate_sections(sections, constraints)

        if result.is_failure:
            self._observability.collect_metric(
                "validation_failures_total", 1.0, {"error_code": result.error.code.name}
            )
            self._record_failure("core", AuditEventType.VALIDATION, "validate", result.error)
        else:
            self._observability.log_audit(
                action="validate",
                event_type=AuditEventType.VALIDATION,
                details=f"sections={len(sections)} constraints={result.value.graph.edge_count}",
            )
        return result

    def shuffle(self, validated: ValidatedGraph, seed: Optional[int] = None) -> Result:
        """Shuffle a validated graph, falling back to the configured seed."""
        if seed is None:
            seed = self._config.shuffle.seed

        started = time.perf_counter()
        result = self._engine.shuffle(validated, seed)
        elapsed_ms = (time.perf_counter() - started) * 1000

        self._observability.collect_metric("shuffle_duration_ms", elapsed_ms)
        if result.is_failure:
            self._observability.collect_metric("shuffles_total", 1.0, {"outcome": "failure"})
            self._record_failure("core", AuditEventType.SHUFFLE, "shuffle", result.error)
        else:
            permutation = result.value
            self._observability.collect_metric("shuffles_total", 1.0, {"outcome": "success"})
            self._observability.collect_metric("sections_shuffled", float(len(permutation)))
            self._observability.log_audit(
                action="shuffle",
                event_type=AuditEventType.SHUFFLE,
                entity_id=str(permutation.seed),
                details=f"sections={len(permutation)}",
            )
        return result

    # =========================================================================
    # FULL PIPELINE
    # =========================================================================

    def shuffle_manuscript(
        self,
        text: str,
        before: Optional[Mapping[int, str]] = None,
        pinned: Iterable[int] = (),
        fixed_positions: Optional[Mapping[int, int]] = None,
        seed: Optional[int] = None,
        config: Optional[ManuscriptConfig] = None
    ) -> Result:
        """
        Split, validate, shuffle and reassemble a manuscript.

        Args:
            text: The manuscript.
            before: One-based section number -> comma-separated list of
                section numbers it must precede, e.g. {1: "3, 4"}.
            pinned: Section numbers kept at their original place.
            fixed_positions: Section number -> zero-based output position.
            seed: Optional seed for a reproducible shuffle.
            config: Delimiter settings for this request only.

        Returns:
            Result carrying a ShuffleOutcome.
        """
        split = self.split_manuscript(
            text, pinned=pinned, fixed_positions=fixed_positions, config=config
        )
        if split.is_failure:
            return split
        manuscript: Manuscript = split.value

        parsed = constraints_from_lists(before or {})
        if parsed.is_failure:
            self._record_failure("manuscript", AuditEventType.MANUSCRIPT, "parse_constraints", parsed.error)
            self._observability.collect_metric(
                "manuscript_split_failures_total", 1.0, {"error_code": parsed.error.code.name}
            )
            return parsed

        validated = self.validate(manuscript.sections, parsed.value)
        if validated.is_failure:
            return validated

        shuffled = self.shuffle(validated.value, seed)
        if shuffled.is_failure:
            return shuffled

        permutation: Permutation = shuffled.value
        return Result.success(ShuffleOutcome(
            manuscript=manuscript,
            permutation=permutation,
            text=manuscript.assemble(permutation)
        ))

    # =========================================================================
    # OBSERVABILITY INTERFACE
    # =========================================================================

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    def get_audit_log(self) -> List[AuditLogEntry]:
        return self._observability.get_unified_log()

    def get_audit_report(self) -> dict:
        return self._observability.generate_audit_report()

    def _record_failure(
        self,
        layer: str,
        event_type: AuditEventType,
        action: str,
        error: Error
    ):
        self._observability.log_audit(
            action=action,
            event_type=event_type,
            entity_id=error.code.name,
            outcome="failure",
            details=error.message,
            layer=layer
        )
