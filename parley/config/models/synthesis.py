"""Synthesis framework and execution configuration."""

from pydantic import BaseModel, Field, model_validator

from parley.config.models.retry import RetryConfig


class DimensionConfig(BaseModel):
    """One scored dimension of the assessment framework."""

    id: str = Field(..., description="Short dimension code, e.g. T1")
    name: str = Field(..., description="Dimension name")
    description: str = Field(default="", description="What the dimension covers")


class PillarConfig(BaseModel):
    """A weighted group of dimensions."""

    name: str = Field(..., description="Pillar name")
    weight: float = Field(..., gt=0.0, le=1.0, description="Weight in the overall score")
    dimensions: list[DimensionConfig] = Field(..., min_length=1)


class MaturityLevelConfig(BaseModel):
    """One rung of the 0-5 maturity scale used in dimension prompts."""

    level: int = Field(..., ge=0, le=5)
    name: str
    descriptor: str


def _default_pillars() -> list[PillarConfig]:
    return [
        PillarConfig(
            name="Technology",
            weight=0.40,
            dimensions=[
                DimensionConfig(
                    id="T1",
                    name="Digital Infrastructure",
                    description="Automation, connectivity, IT/OT convergence, data infrastructure",
                ),
                DimensionConfig(
                    id="T2",
                    name="Analytics & Intelligence",
                    description="Data analysis, AI/ML, real-time monitoring, decision support",
                ),
                DimensionConfig(
                    id="T3",
                    name="Cybersecurity & Resilience",
                    description="Security posture, business continuity, system reliability",
                ),
            ],
        ),
        PillarConfig(
            name="Process",
            weight=0.35,
            dimensions=[
                DimensionConfig(
                    id="P1",
                    name="Operations Integration",
                    description=(
                        "Vertical integration, process standardization, "
                        "workflow automation"
                    ),
                ),
                DimensionConfig(
                    id="P2",
                    name="Supply Chain Integration",
                    description=(
                        "Horizontal integration, supply chain visibility, "
                        "external collaboration"
                    ),
                ),
                DimensionConfig(
                    id="P3",
                    name="Innovation & Lifecycle",
                    description="Product innovation, lifecycle management, time-to-market",
                ),
            ],
        ),
        PillarConfig(
            name="Organization",
            weight=0.25,
            dimensions=[
                DimensionConfig(
                    id="O1",
                    name="Talent & Culture",
                    description=(
                        "Digital skills, learning programs, leadership competency, "
                        "change readiness"
                    ),
                ),
                DimensionConfig(
                    id="O2",
                    name="Strategy & Governance",
                    description=(
                        "Transformation strategy, governance, collaboration, "
                        "resource allocation"
                    ),
                ),
            ],
        ),
    ]


def _default_maturity_levels() -> list[MaturityLevelConfig]:
    return [
        MaturityLevelConfig(level=0, name="Newcomer",
                            descriptor="Little awareness, manual processes, no strategy"),
        MaturityLevelConfig(level=1, name="Beginner",
                            descriptor="Initial awareness, pilot projects, limited scope"),
        MaturityLevelConfig(level=2, name="Intermediate",
                            descriptor="Defined processes, multi-department adoption"),
        MaturityLevelConfig(level=3, name="Experienced",
                            descriptor="Integrated systems, organization-wide adoption"),
        MaturityLevelConfig(level=4, name="Expert",
                            descriptor="Optimized systems, strong competitive advantage"),
        MaturityLevelConfig(level=5, name="Leader",
                            descriptor="Industry-leading, ecosystem influence"),
    ]


class SynthesisConfig(BaseModel):
    """Synthesis orchestrator configuration."""

    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Maximum dimension calls in flight at once",
    )
    dimension_max_tokens: int = Field(default=4000, gt=0)
    summary_max_tokens: int = Field(default=1500, gt=0)
    themes_max_tokens: int = Field(default=2000, gt=0)
    recommendations_max_tokens: int = Field(default=2000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_recommendation_dimensions: int = Field(
        default=5,
        ge=1,
        description="Critical/important dimensions fed to the recommendations call",
    )
    auto_trigger: bool = Field(
        default=True,
        description="Start a run when every session of a campaign completes",
    )
    auto_trigger_tier: str = Field(
        default="standard",
        description="Tier used by automatic runs",
    )
    pillars: list[PillarConfig] = Field(default_factory=_default_pillars)
    maturity_levels: list[MaturityLevelConfig] = Field(
        default_factory=_default_maturity_levels,
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Retry policy applied to each model call",
    )

    @model_validator(mode="after")
    def _check_framework(self) -> "SynthesisConfig":
        ids = [d.id for p in self.pillars for d in p.dimensions]
        if len(ids) != len(set(ids)):
            raise ValueError("dimension ids must be unique")
        total = sum(p.weight for p in self.pillars)
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"pillar weights must sum to 1.0, got {total}")
        return self
