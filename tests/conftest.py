"""Shared test fixtures for the Parley test suite."""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from parley.billing.ledger import UsageLedger
from parley.billing.models import ModelPricing
from parley.billing.pricing import CostLedger, StaticPricingSource
from parley.billing.stores import InMemoryUsageLedgerStore
from parley.config.models.billing import BillingConfig
from parley.providers.llm.mock import ScriptedModelGateway
from parley.retry import RetryPolicy
from tests.factories import FrozenClock


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "debug = true",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            toml_file = test_config_dir / filename
            toml_file.write_text(content)

    return _create_toml_files


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            if self.original_env[key] is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = self.original_env[key]


@pytest.fixture
def env_override() -> Generator[Callable[[dict[str, str]], EnvOverrideContext], None, None]:
    """Context manager for temporarily setting environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"PARLEY_DEBUG": "true"}):
                # test code here
    """

    def _env_override(overrides: dict[str, str]) -> EnvOverrideContext:
        return EnvOverrideContext(overrides)

    yield _env_override


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test.

    This ensures test isolation for configuration tests.
    """
    from parley.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------

TEST_PRICING = [
    ModelPricing(model_id="test-sonnet", input_rate_per_million=3.0, output_rate_per_million=15.0),
    ModelPricing(model_id="test-opus", input_rate_per_million=15.0, output_rate_per_million=75.0),
]


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def retry() -> RetryPolicy:
    """Three attempts with no real sleeping."""

    async def no_sleep(_delay: float) -> None:
        return None

    return RetryPolicy(max_attempts=3, base_delay=1.0, jitter=1.0, sleep=no_sleep, rng=lambda: 0.0)


@pytest.fixture
def gateway() -> ScriptedModelGateway:
    return ScriptedModelGateway(default_response="Tell me more.", tokens_in=100, tokens_out=50)


@pytest.fixture
def pricing_source() -> StaticPricingSource:
    return StaticPricingSource(TEST_PRICING)


@pytest.fixture
def cost_ledger(pricing_source: StaticPricingSource) -> CostLedger:
    return CostLedger(pricing_source)


@pytest.fixture
def billing_config() -> BillingConfig:
    return BillingConfig(tier_limits={"standard": 1000, "premium": 5000, "enterprise": 0})


@pytest.fixture
def ledger_store() -> InMemoryUsageLedgerStore:
    return InMemoryUsageLedgerStore()


@pytest.fixture
def usage_ledger(
    ledger_store: InMemoryUsageLedgerStore,
    billing_config: BillingConfig,
    clock: FrozenClock,
) -> UsageLedger:
    return UsageLedger(ledger_store, billing_config, clock=clock)
