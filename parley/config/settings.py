"""Root settings model for Parley configuration."""

from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from parley.config.models.billing import BillingConfig
from parley.config.models.interview import InterviewConfig
from parley.config.models.notifications import NotificationsConfig
from parley.config.models.observability import ObservabilityConfig
from parley.config.models.providers import ProvidersConfig
from parley.config.models.storage import StorageConfig
from parley.config.models.synthesis import SynthesisConfig

# TOML config consumed by the custom settings source
_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Set the TOML configuration to be used by Settings."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source that reads from the loaded TOML configuration."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return _toml_config.copy()


class Settings(BaseSettings):
    """Root configuration object.

    Configuration is loaded in this order:
    1. Pydantic model defaults (in code)
    2. config/default.toml (base configuration)
    3. config/{PARLEY_ENV}.toml (environment overrides)
    4. PARLEY_* environment variables (runtime overrides)
    """

    model_config = SettingsConfigDict(
        env_prefix="PARLEY_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="parley", description="Application name for logging")
    debug: bool = Field(default=False, description="Enable debug mode")

    interview: InterviewConfig = Field(
        default_factory=InterviewConfig,
        description="Interview state machine configuration",
    )
    synthesis: SynthesisConfig = Field(
        default_factory=SynthesisConfig,
        description="Synthesis orchestrator configuration",
    )
    billing: BillingConfig = Field(
        default_factory=BillingConfig,
        description="Pricing and usage ledger configuration",
    )
    notifications: NotificationsConfig = Field(
        default_factory=NotificationsConfig,
        description="Notification channel configuration",
    )
    providers: ProvidersConfig = Field(
        default_factory=ProvidersConfig,
        description="Model gateway configuration",
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Storage backend configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: constructor args, then PARLEY_* env, then TOML, then defaults."""
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )
