"""Interview state machine configuration.

Completion thresholds and phase boundaries are tunable here rather than
baked into prompts, so facilitators can lengthen or shorten interviews per
deployment.
"""

from pydantic import BaseModel, Field, model_validator

from parley.config.models.retry import RetryConfig


class TopicConfig(BaseModel):
    """One required interview topic and the keywords that mark it covered."""

    id: str = Field(..., description="Stable topic tag stored on the session")
    label: str = Field(..., description="Human-readable topic name used in prompts")
    keywords: list[str] = Field(
        ...,
        min_length=1,
        description="Case-insensitive whole-word keywords",
    )


def _default_topics() -> list[TopicConfig]:
    return [
        TopicConfig(
            id="infrastructure",
            label="Digital infrastructure and connectivity",
            keywords=["infrastructure", "network", "cloud", "server", "SCADA", "MES",
                      "ERP", "IoT", "sensors", "MQTT", "OPC UA", "UNS"],
        ),
        TopicConfig(
            id="data_analytics",
            label="Data, analytics and decision support",
            keywords=["data", "analytics", "dashboard", "reporting", "real-time",
                      "AI", "machine learning", "KPI"],
        ),
        TopicConfig(
            id="security",
            label="Cybersecurity and resilience",
            keywords=["security", "cybersecurity", "backup", "outage", "continuity",
                      "ransomware"],
        ),
        TopicConfig(
            id="operations",
            label="Operations and process integration",
            keywords=["process", "workflow", "production", "downtime", "quality",
                      "efficiency", "automation", "maintenance", "ISA-95"],
        ),
        TopicConfig(
            id="supply_chain",
            label="Supply chain and external collaboration",
            keywords=["supplier", "suppliers", "inventory", "procurement", "purchasing",
                      "logistics", "demand", "scheduling"],
        ),
        TopicConfig(
            id="innovation",
            label="Innovation and product lifecycle",
            keywords=["innovation", "product", "lifecycle", "prototype", "launch"],
        ),
        TopicConfig(
            id="people",
            label="Talent, skills and culture",
            keywords=["skills", "training", "culture", "hiring", "team", "change"],
        ),
        TopicConfig(
            id="strategy",
            label="Strategy, governance and investment",
            keywords=["strategy", "roadmap", "budget", "investment", "ROI",
                      "governance", "leadership"],
        ),
    ]


DEFAULT_OPENING = (
    "Hello {name}, thank you for taking the time to speak with me today. "
    "I'm conducting interviews on behalf of {facilitator} to understand how "
    "your organization approaches digital transformation. There are no right "
    "or wrong answers; I'm interested in your own experience as {title}. "
    "To start, could you describe your role and what a typical week looks like?"
)


class InterviewConfig(BaseModel):
    """Interview pacing, completion rule and model settings."""

    model_id: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Model used for interviewer turns",
    )
    max_tokens: int = Field(default=1024, gt=0, description="Max tokens per agent turn")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    topics: list[TopicConfig] = Field(
        default_factory=_default_topics,
        description="Required topics for natural completion",
    )
    coverage_threshold: float = Field(
        default=0.75,
        gt=0.0,
        le=1.0,
        description="Fraction of required topics that must be covered to complete",
    )
    min_questions: int = Field(
        default=10,
        ge=1,
        description="Minimum agent questions before natural completion",
    )
    completing_after_questions: int = Field(
        default=8,
        ge=1,
        description="Question count at which the interview starts wrapping up",
    )
    opening_template: str = Field(
        default=DEFAULT_OPENING,
        description="Opening agent message; fields: name, title, role, facilitator",
    )
    default_facilitator: str = Field(
        default="your facilitator",
        description="Facilitator name used when a participant has none",
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Retry policy for the model call of one turn",
    )
    turn_lock_margin_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Added to the worst-case model call time when sizing the turn lock",
    )

    @model_validator(mode="after")
    def _check_phase_boundaries(self) -> "InterviewConfig":
        if self.completing_after_questions > self.min_questions:
            raise ValueError("completing_after_questions must not exceed min_questions")
        return self
