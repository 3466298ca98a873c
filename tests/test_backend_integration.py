"""
Backend Integration Tests

Runs the full manuscript pipeline through StoryShufflerBackend and checks
the audit trail and metrics it leaves behind.
"""

import pytest

from shuffler.contracts.base import ErrorCode
from shuffler.contracts.events import AuditEventType
from shuffler.contracts.sections import Constraint, Section
from shuffler.engine import BackendConfig, ShuffleConfig, StoryShufflerBackend
from shuffler.manuscript import ManuscriptConfig
from shuffler.observability import ObservabilityConfig


DRAFT = "\n\n* * *\n\n".join(f"Scene {n}." for n in range(1, 7))


@pytest.fixture
def backend():
    return StoryShufflerBackend()


class TestShuffleManuscript:

    def test_full_pipeline(self, backend):
        result = backend.shuffle_manuscript(
            DRAFT, before={1: "4, 5", 2: "6"}, pinned=[3], seed=21
        )

        assert result.is_success
        outcome = result.value
        permutation = outcome.permutation
        assert sorted(permutation.order) == [1, 2, 3, 4, 5, 6]
        assert permutation.position_of(3) == 2
        for constraint in (Constraint(1, 4), Constraint(1, 5), Constraint(2, 6)):
            assert permutation.satisfies(constraint)
        assert permutation.seed == 21

        expected = "\n\n* * *\n\n".join(f"Scene {n}." for n in permutation.order)
        assert outcome.text == expected

    def test_same_seed_same_text(self, backend):
        first = backend.shuffle_manuscript(DRAFT, seed=5).value
        second = StoryShufflerBackend().shuffle_manuscript(DRAFT, seed=5).value

        assert first.text == second.text

    def test_configured_seed_is_the_default(self):
        backend = StoryShufflerBackend(BackendConfig(shuffle=ShuffleConfig(seed=99)))

        outcome = backend.shuffle_manuscript(DRAFT).value

        assert outcome.permutation.seed == 99

    @pytest.mark.parametrize("seed", [-1, 2 ** 64])
    def test_configured_seed_must_be_in_range(self, seed):
        with pytest.raises(ValueError):
            ShuffleConfig(seed=seed)

    def test_explicit_seed_overrides_configured_seed(self):
        backend = StoryShufflerBackend(BackendConfig(shuffle=ShuffleConfig(seed=99)))

        outcome = backend.shuffle_manuscript(DRAFT, seed=7).value

        assert outcome.permutation.seed == 7

    def test_request_config_overrides_delimiter(self, backend):
        result = backend.shuffle_manuscript(
            "a | b | c", seed=1, config=ManuscriptConfig(delimiter="|")
        )

        assert sorted(result.value.manuscript.texts) == ["a", "b", "c"]
        assert result.value.text.count("\n\n|\n\n") == 2

    def test_paradox_is_reported(self, backend):
        result = backend.shuffle_manuscript(DRAFT, before={1: "2", 2: "1"})

        assert result.error.code == ErrorCode.CYCLE_DETECTED

    def test_bad_section_list(self, backend):
        result = backend.shuffle_manuscript(DRAFT, before={1: "two"})

        assert result.error.code == ErrorCode.INVALID_SECTION_LIST

    def test_constraint_to_missing_section(self, backend):
        result = backend.shuffle_manuscript(DRAFT, before={1: "9"})

        assert result.error.code == ErrorCode.UNKNOWN_SECTION


class TestAuditTrail:

    def test_successful_request_is_logged_per_layer(self, backend):
        backend.shuffle_manuscript(DRAFT, seed=3)

        actions = [entry.action for entry in backend.get_audit_log()]
        assert actions == ["split", "validate", "shuffle"]

        manuscript_log = backend.observability.get_layer_log("manuscript")
        assert [entry.event_type for entry in manuscript_log] == [AuditEventType.MANUSCRIPT]

        shuffle_entry = backend.observability.get_layer_log("core")[-1]
        assert shuffle_entry.entity_id == "3"
        assert shuffle_entry.metadata_value("outcome") == "success"

    def test_failure_is_logged(self, backend):
        backend.shuffle_manuscript(DRAFT, before={1: "1"})

        entry = backend.get_audit_log()[-1]
        assert entry.event_type == AuditEventType.VALIDATION
        assert entry.entity_id == "SELF_CONSTRAINT"
        assert entry.metadata_value("outcome") == "failure"

    def test_split_failure_is_logged(self, backend):
        result = backend.split_manuscript("text", config=ManuscriptConfig(delimiter="(", delimiter_is_regex=True))

        assert result.error.code == ErrorCode.INVALID_DELIMITER
        entry = backend.observability.get_layer_log("manuscript")[-1]
        assert entry.metadata_value("outcome") == "failure"

    def test_audit_can_be_disabled(self):
        config = BackendConfig(observability=ObservabilityConfig(enable_audit=False))
        backend = StoryShufflerBackend(config)

        backend.shuffle_manuscript(DRAFT, seed=1)

        assert backend.get_audit_log() == []


class TestMetrics:

    def test_counters(self, backend):
        backend.shuffle_manuscript(DRAFT, seed=1)
        backend.shuffle_manuscript(DRAFT, before={1: "2", 2: "1"})

        metrics = backend.observability.get_metrics()
        assert metrics.compute_aggregates("validation_requests_total")["count"] == 2
        assert metrics.compute_aggregates("validation_failures_total")["count"] == 1
        assert metrics.get_latest("validation_failures_total").labels == (("error_code", "CYCLE_DETECTED"),)
        assert metrics.get_latest("shuffles_total").labels == (("outcome", "success"),)
        assert metrics.get_latest("sections_shuffled").value == 6.0
        assert len(metrics.get_metric("shuffle_duration_ms")) == 1

    def test_audit_report(self, backend):
        backend.shuffle_manuscript(DRAFT, seed=1)
        backend.shuffle_manuscript(DRAFT, before={1: "x"})

        report = backend.get_audit_report()

        assert report["total_entries"] == 5
        assert report["failures"] == 1
        assert report["by_layer"] == {"manuscript": 3, "core": 2}
        assert report["by_event_type"]["shuffle"] == 1
        assert report["metrics"]["shuffles_total"]["sum"] == 1.0

    def test_metrics_can_be_disabled(self):
        config = BackendConfig(observability=ObservabilityConfig(enable_metrics=False))
        backend = StoryShufflerBackend(config)

        backend.shuffle_manuscript(DRAFT, seed=1)

        assert backend.observability.get_metrics() is None
        assert backend.get_audit_report()["metrics"] == {}


class TestDirectInterface:

    def test_validate_then_shuffle(self, backend):
        sections = [Section(section_id=i, original_index=i - 1) for i in (1, 2, 3)]

        validated = backend.validate(sections, [Constraint(3, 1)])
        shuffled = backend.shuffle(validated.value, seed=0)

        assert shuffled.value.satisfies(Constraint(3, 1))
