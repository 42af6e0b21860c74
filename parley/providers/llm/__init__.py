"""Model gateway implementations.

    from parley.providers.llm import ModelGateway, create_gateway
"""

from parley.config.models.providers import ProvidersConfig
from parley.providers.llm.anthropic import AnthropicGateway
from parley.providers.llm.base import Completion, ModelGateway
from parley.providers.llm.mock import ScriptedModelGateway
from parley.providers.llm.tiers import ReportTier, TierCatalog, TierModel


def create_gateway(config: ProvidersConfig) -> ModelGateway:
    """Build the configured gateway."""
    if config.gateway == "mock":
        return ScriptedModelGateway()
    api_key = config.anthropic.api_key.get_secret_value() if config.anthropic.api_key else ""
    return AnthropicGateway(
        api_key,
        base_url=config.anthropic.base_url,
        api_version=config.anthropic.api_version,
        timeout=config.anthropic.timeout,
    )


__all__ = [
    "AnthropicGateway",
    "Completion",
    "ModelGateway",
    "ReportTier",
    "ScriptedModelGateway",
    "TierCatalog",
    "TierModel",
    "create_gateway",
]
