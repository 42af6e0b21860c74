"""Configuration model exports.

    from parley.config.models import BillingConfig, StorageConfig
"""

from parley.config.models.billing import BillingConfig, ModelPricingConfig
from parley.config.models.interview import InterviewConfig, TopicConfig
from parley.config.models.notifications import (
    EmailChannelConfig,
    NotificationsConfig,
    WhatsAppChannelConfig,
)
from parley.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from parley.config.models.providers import (
    AnthropicConfig,
    ProvidersConfig,
    TierModelConfig,
)
from parley.config.models.retry import RetryConfig
from parley.config.models.storage import RedisConfig, StorageConfig
from parley.config.models.synthesis import (
    DimensionConfig,
    MaturityLevelConfig,
    PillarConfig,
    SynthesisConfig,
)

__all__ = [
    # Billing
    "BillingConfig",
    "ModelPricingConfig",
    # Interview
    "InterviewConfig",
    "TopicConfig",
    # Notifications
    "EmailChannelConfig",
    "NotificationsConfig",
    "WhatsAppChannelConfig",
    # Observability
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    # Providers
    "AnthropicConfig",
    "ProvidersConfig",
    "TierModelConfig",
    # Retry
    "RetryConfig",
    # Storage
    "RedisConfig",
    "StorageConfig",
    # Synthesis
    "DimensionConfig",
    "MaturityLevelConfig",
    "PillarConfig",
    "SynthesisConfig",
]
