"""
Observability & Audit Layer

RESPONSIBILITY: Record what the backend did with each request
ALLOWED INPUTS: Audit entries and metric points emitted by the backend
OUTPUTS: Per-layer audit logs, metric series, audit reports

WHAT THIS LAYER MUST NOT DO:
============================
- Change the outcome of a request
- Rewrite recorded entries (only the oldest are evicted, once a log is full)
- Be called from the core (the core performs no I/O and no logging)

BOUNDARY ENFORCEMENT:
=====================
- Entries and points are frozen contracts
- Every accessor returns a copy
"""

from __future__ import annotations
from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional, Tuple
import hashlib
import itertools

# ONLY import from contracts - never from other layers' implementations
from ..contracts.base import Timestamp
from ..contracts.events import AuditEventType, AuditLogEntry, MetricPoint


LAYERS = ("manuscript", "core", "api")

# Per layer log and per metric series; the oldest records are evicted first
DEFAULT_MAX_RECORDS = 10_000


# =============================================================================
# AUDIT LOGS (One per layer)
# =============================================================================

class LayerLog:
    """Append-only audit entries of a single layer, bounded by `max_entries`."""

    def __init__(self, layer: str, max_entries: Optional[int] = DEFAULT_MAX_RECORDS):
        self._layer = layer
        self._entries: Deque[AuditLogEntry] = deque(maxlen=max_entries)

    @property
    def layer(self) -> str:
        return self._layer

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: AuditLogEntry):
        self._entries.append(entry)

    def entries(self, event_type: Optional[AuditEventType] = None) -> List[AuditLogEntry]:
        return [
            entry for entry in self._entries
            if event_type is None or entry.event_type is event_type
        ]


# =============================================================================
# METRICS
# =============================================================================

class MetricType(Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


DEFAULT_METRICS = (
    MetricDefinition(
        "validation_requests_total", MetricType.COUNTER,
        "Section sets submitted for validation"
    ),
    MetricDefinition(
        "validation_failures_total", MetricType.COUNTER,
        "Validations rejected, by error code", ("error_code",)
    ),
    MetricDefinition(
        "shuffles_total", MetricType.COUNTER,
        "Shuffle engine invocations, by outcome", ("outcome",)
    ),
    MetricDefinition(
        "shuffle_duration_ms", MetricType.TIMING,
        "Wall time spent in the shuffle engine"
    ),
    MetricDefinition(
        "sections_shuffled", MetricType.GAUGE,
        "Section count of the most recent shuffle"
    ),
    MetricDefinition(
        "manuscript_split_failures_total", MetricType.COUNTER,
        "Manuscripts rejected before validation, by error code", ("error_code",)
    ),
)

# Summarized in audit reports
REPORTED_METRICS = (
    "validation_requests_total",
    "validation_failures_total",
    "shuffles_total",
    "shuffle_duration_ms",
)


class MetricsCollector:
    """
    Time series of metric points keyed by metric name.

    Unknown metric names are accepted and recorded without a definition.
    Each series keeps at most `max_points` points.
    """

    def __init__(
        self,
        definitions: Iterable[MetricDefinition] = DEFAULT_METRICS,
        max_points: Optional[int] = DEFAULT_MAX_RECORDS
    ):
        self._max_points = max_points
        self._definitions: Dict[str, MetricDefinition] = {}
        self._series: Dict[str, Deque[MetricPoint]] = {}
        for definition in definitions:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        self._definitions[definition.name] = definition
        self._series.setdefault(definition.name, deque(maxlen=self._max_points))

    def definition(self, metric_name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(metric_name)

    def record(self, metric_name: str, value: float, labels: Optional[Dict[str, str]] = None):
        self._series.setdefault(metric_name, deque(maxlen=self._max_points)).append(MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=Timestamp.now(),
            labels=tuple(sorted((labels or {}).items()))
        ))

    def get_metric(self, metric_name: str) -> List[MetricPoint]:
        return list(self._series.get(metric_name, ()))

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        series = self._series.get(metric_name)
        return series[-1] if series else None

    def count_by_label(self, metric_name: str, label: str) -> Dict[str, int]:
        """Number of points per value of `label`, e.g. failures per error code."""
        counts = Counter(
            dict(point.labels).get(label)
            for point in self._series.get(metric_name, ())
        )
        counts.pop(None, None)
        return dict(counts)

    def compute_aggregates(self, metric_name: str) -> Dict[str, float]:
        """count/sum/min/max/avg of a series; empty dict when nothing was recorded."""
        values = [point.value for point in self._series.get(metric_name, ())]
        if not values:
            return {}
        total = sum(values)
        return {
            'count': len(values),
            'sum': total,
            'min': min(values),
            'max': max(values),
            'avg': total / len(values),
        }


# =============================================================================
# OBSERVABILITY ENGINE
# =============================================================================

@dataclass
class ObservabilityConfig:
    enable_metrics: bool = True
    enable_audit: bool = True
    max_records: Optional[int] = DEFAULT_MAX_RECORDS


class ObservabilityEngine:
    """
    Owns one audit log per layer and the metrics collector.

    Entries are numbered as they are created, so the unified log keeps
    creation order even when two entries share a timestamp.
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._logs: Dict[str, LayerLog] = {
            layer: LayerLog(layer, self._config.max_records) for layer in LAYERS
        }
        self._metrics = (
            MetricsCollector(max_points=self._config.max_records)
            if self._config.enable_metrics else None
        )
        self._sequence = itertools.count(1)

    def collect_audit(self, entry: AuditLogEntry):
        """File an entry under its layer; entries for unknown layers are ignored."""
        if self._config.enable_audit and entry.layer in self._logs:
            self._logs[entry.layer].append(entry)

    def log_audit(
        self,
        action: str,
        event_type: AuditEventType = AuditEventType.SYSTEM,
        entity_id: Optional[str] = None,
        outcome: str = "success",
        details: str = "",
        layer: str = "core"
    ) -> AuditLogEntry:
        """Create, collect and return an audit entry."""
        sequence = next(self._sequence)
        timestamp = Timestamp.now()
        digest = hashlib.sha256(
            f"{sequence}:{layer}:{action}:{timestamp.to_iso()}".encode()
        ).hexdigest()

        entry = AuditLogEntry(
            entry_id=f"audit_{digest[:16]}",
            event_type=event_type,
            timestamp=timestamp,
            layer=layer,
            action=action,
            entity_id=entity_id,
            sequence=sequence,
            metadata=(("outcome", outcome), ("details", details))
        )
        self.collect_audit(entry)
        return entry

    def collect_metric(self, metric_name: str, value: float, labels: Optional[Dict[str, str]] = None):
        if self._metrics is not None:
            self._metrics.record(metric_name, value, labels)

    def get_unified_log(self, layers: Optional[Iterable[str]] = None) -> List[AuditLogEntry]:
        """Entries of the given layers (default: all), in creation order."""
        entries = [
            entry
            for layer in (layers or LAYERS)
            for entry in self.get_layer_log(layer)
        ]
        return sorted(entries, key=lambda entry: entry.sequence)

    def get_layer_log(self, layer_name: str) -> List[AuditLogEntry]:
        log = self._logs.get(layer_name)
        return log.entries() if log else []

    def get_metrics(self) -> Optional[MetricsCollector]:
        return self._metrics

    def generate_audit_report(self) -> Dict:
        """Entry counts by layer and event type, failures, and metric summaries."""
        entries = self.get_unified_log()
        failed = [e for e in entries if e.metadata_value("outcome") == "failure"]

        report = {
            'total_entries': len(entries),
            'failures': len(failed),
            'by_layer': dict(Counter(e.layer for e in entries)),
            'by_event_type': dict(Counter(e.event_type.value for e in entries)),
            'errors_by_code': dict(Counter(e.entity_id for e in failed if e.entity_id)),
            'metrics': {},
            'generated_at': Timestamp.now().to_iso(),
        }
        if self._metrics is not None:
            report['metrics'] = {
                name: self._metrics.compute_aggregates(name) for name in REPORTED_METRICS
            }
        return report
