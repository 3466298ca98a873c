"""
Observability Contracts

Immutable records emitted by the backend about each request.
The core never produces these; only the orchestrating backend does.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .base import Timestamp


class AuditEventType(Enum):
    """Explicit audit event types."""
    MANUSCRIPT = "manuscript"
    VALIDATION = "validation"
    SHUFFLE = "shuffle"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """
    One recorded step of a request.

    `entity_id` names what the step was about: the seed of a shuffle, or
    the error code of a failure. `sequence` orders entries across layers.
    """
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str
    action: str
    entity_id: Optional[str] = None
    sequence: int = 0
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def metadata_value(self, key: str) -> Optional[str]:
        for metadata_key, value in self.metadata:
            if metadata_key == key:
                return value
        return None


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
