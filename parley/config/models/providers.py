"""Model gateway and tier configuration models."""

from typing import Literal

from pydantic import BaseModel, Field, SecretStr


class AnthropicConfig(BaseModel):
    """Anthropic Messages API settings."""

    api_key: SecretStr | None = Field(
        default=None,
        description="API key (from PARLEY_PROVIDERS__ANTHROPIC__API_KEY)",
    )
    base_url: str = Field(
        default="https://api.anthropic.com",
        description="API base URL",
    )
    api_version: str = Field(
        default="2023-06-01",
        description="anthropic-version header",
    )
    timeout: float = Field(
        default=120.0,
        gt=0,
        description="Request timeout in seconds",
    )


class TierModelConfig(BaseModel):
    """Model selected for one report tier."""

    model_id: str = Field(..., description="Model identifier sent to the gateway")
    pricing_key: str = Field(..., description="Key into the pricing table")
    display_name: str = Field(default="", description="Human-readable name")


def _default_tiers() -> dict[str, TierModelConfig]:
    return {
        "standard": TierModelConfig(
            model_id="claude-sonnet-4-20250514",
            pricing_key="claude-sonnet-4-20250514",
            display_name="Claude Sonnet 4",
        ),
        "premium": TierModelConfig(
            model_id="claude-opus-4-20250514",
            pricing_key="claude-opus-4-20250514",
            display_name="Claude Opus 4",
        ),
        "enterprise": TierModelConfig(
            model_id="claude-opus-4-1-20250805",
            pricing_key="claude-opus-4-1-20250805",
            display_name="Claude Opus 4.1",
        ),
    }


class ProvidersConfig(BaseModel):
    """Model gateway configuration."""

    gateway: Literal["anthropic", "mock"] = Field(
        default="anthropic",
        description="Gateway implementation",
    )
    anthropic: AnthropicConfig = Field(
        default_factory=AnthropicConfig,
        description="Anthropic settings",
    )
    tiers: dict[str, TierModelConfig] = Field(
        default_factory=_default_tiers,
        description="Report tier -> model lookup",
    )
