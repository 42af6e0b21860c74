"""Prometheus metrics for Parley.

Covers model calls, token and cost accounting, synthesis jobs, interview
turns and notification delivery.
"""

from prometheus_client import Counter, Histogram

# Model gateway metrics
MODEL_CALLS = Counter(
    "parley_model_calls_total",
    "Total model gateway calls",
    labelnames=["model", "outcome"],
)

MODEL_LATENCY = Histogram(
    "parley_model_latency_seconds",
    "Model gateway call latency in seconds",
    labelnames=["model"],
    buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0, 80.0),
)

LLM_TOKENS = Counter(
    "parley_llm_tokens_total",
    "Total LLM tokens used",
    labelnames=["model", "direction"],
)

# Retry metrics
RETRIES = Counter(
    "parley_retries_total",
    "Retried calls by error code",
    labelnames=["operation", "error_code"],
)

# Billing metrics
USAGE_COST_CENTS = Counter(
    "parley_usage_cost_cents_total",
    "Committed usage cost in cents",
    labelnames=["tenant_id"],
)

USAGE_COMMIT_FAILURES = Counter(
    "parley_usage_commit_failures_total",
    "Usage deltas that could not be written to the ledger",
    labelnames=["tenant_id"],
)

THRESHOLDS_CROSSED = Counter(
    "parley_usage_thresholds_crossed_total",
    "Usage threshold buckets claimed",
    labelnames=["bucket"],
)

# Synthesis metrics
SYNTHESIS_JOBS = Counter(
    "parley_synthesis_jobs_total",
    "Synthesis jobs by tier and terminal status",
    labelnames=["tier", "status"],
)

SYNTHESIS_DURATION = Histogram(
    "parley_synthesis_duration_seconds",
    "Wall time of a synthesis run",
    labelnames=["tier"],
    buckets=(5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0),
)

# Interview metrics
INTERVIEW_TURNS = Counter(
    "parley_interview_turns_total",
    "Interview turns by resulting phase",
    labelnames=["phase"],
)

INTERVIEWS_COMPLETED = Counter(
    "parley_interviews_completed_total",
    "Completed interviews by reason",
    labelnames=["reason"],
)

# Notification metrics
NOTIFICATIONS = Counter(
    "parley_notifications_total",
    "Notification deliveries by channel and status",
    labelnames=["channel", "event", "status"],
)
