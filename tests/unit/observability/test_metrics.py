"""Tests for Prometheus metrics."""

from prometheus_client import REGISTRY

from parley.observability.metrics import (
    INTERVIEW_TURNS,
    LLM_TOKENS,
    NOTIFICATIONS,
    RETRIES,
    SYNTHESIS_DURATION,
    SYNTHESIS_JOBS,
    THRESHOLDS_CROSSED,
    USAGE_COST_CENTS,
)


def sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestCounters:
    """Counters are registered and accept their labels."""

    def test_token_counter_increments(self) -> None:
        labels = {"model": "metrics-test-model", "direction": "input"}
        before = sample("parley_llm_tokens_total", labels)
        LLM_TOKENS.labels(**labels).inc(120)
        assert sample("parley_llm_tokens_total", labels) == before + 120

    def test_cost_counter_increments(self) -> None:
        labels = {"tenant_id": "metrics-tenant"}
        before = sample("parley_usage_cost_cents_total", labels)
        USAGE_COST_CENTS.labels(**labels).inc(7)
        assert sample("parley_usage_cost_cents_total", labels) == before + 7

    def test_label_sets(self) -> None:
        # Should not raise
        RETRIES.labels(operation="interview_turn", error_code="NETWORK_ERROR").inc()
        SYNTHESIS_JOBS.labels(tier="standard", status="succeeded").inc()
        THRESHOLDS_CROSSED.labels(bucket="75").inc()
        INTERVIEW_TURNS.labels(phase="exploring").inc()
        NOTIFICATIONS.labels(channel="email", event="session_completed", status="sent").inc()


class TestHistograms:
    def test_synthesis_duration_observes(self) -> None:
        SYNTHESIS_DURATION.labels(tier="premium").observe(42.0)
        assert sample("parley_synthesis_duration_seconds_count", {"tier": "premium"}) >= 1
