"""
Error States and Results

Every fallible operation in the shuffler returns a Result instead of
raising. A failed Result carries an Error whose ErrorCode tells the
caller exactly what was wrong with the request.

BOUNDARY ENFORCEMENT:
=====================
- Exceptions are for programming errors only (wrong handle type,
  mutating a frozen graph, inconsistent contract construction)
- Caller mistakes and paradoxes are ErrorCodes, never exceptions
- Only INFEASIBLE signals a defect in the shuffler itself
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES
# =============================================================================

class ErrorCode(Enum):
    """Every way a request can be rejected."""
    # Registry errors
    DUPLICATE_SECTION = auto()

    # Constraint errors
    UNKNOWN_SECTION = auto()
    SELF_CONSTRAINT = auto()

    # Validation errors
    CYCLE_DETECTED = auto()
    DUPLICATE_FIXED_POSITION = auto()
    FIXED_POSITION_OUT_OF_RANGE = auto()
    FIXED_POSITION_CONFLICT = auto()

    # Engine errors (internal, unreachable after validation)
    INFEASIBLE = auto()

    # Manuscript errors
    INVALID_DELIMITER = auto()
    INVALID_SECTION_LIST = auto()


INTERNAL_ERROR_CODES = frozenset({ErrorCode.INFEASIBLE})


@dataclass(frozen=True)
class Error:
    """
    A rejected request: code, a message fit to show a writer, and
    key/value context naming the sections or positions involved.

    Carries no timestamp, so equal failures compare equal.
    """
    code: ErrorCode
    message: str
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def is_internal(self) -> bool:
        return self.code in INTERNAL_ERROR_CODES

    def with_context(self, key: str, value: str) -> Error:
        """Copy of this error with one more context pair appended."""
        return Error(self.code, self.message, self.context + ((key, value),))

    def context_value(self, key: str) -> Optional[str]:
        return dict(self.context).get(key)


@dataclass(frozen=True)
class Result:
    """Outcome of a fallible operation: a value on success, an Error on failure."""
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    @staticmethod
    def success(value: object) -> Result:
        return Result(value=value)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(error=error)


# =============================================================================
# TIME (observability only; the core never reads the clock)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """UTC instant. Naive datetimes are taken to be UTC."""
    value: datetime

    def __post_init__(self):
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(datetime.now(timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()
