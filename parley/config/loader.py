"""TOML configuration loader.

Parley reads up to three files from the config directory, each deep-merged
over the previous one:

1. ``default.toml``: required base values (topics, pricing, tier limits)
2. ``{PARLEY_ENV}.toml``: optional per-environment overrides
3. ``local.toml``: optional, untracked developer overrides

Secrets never live in these files; they arrive through ``PARLEY_*``
environment variables handled by the settings model.
"""

import os
import re
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_ENV = "development"
LOCAL_OVERRIDES = "local.toml"

_ENV_NAME = re.compile(r"^[a-z][a-z0-9_-]*$")


def get_config_dir(start: Path | None = None, max_depth: int = 5) -> Path:
    """Locate the configuration directory.

    PARLEY_CONFIG_DIR wins when set. Otherwise the nearest ``config/``
    directory walking up from ``start`` (the cwd by default) is used.

    Args:
        start: Directory to begin the upward search from
        max_depth: Number of parent directories to try

    Returns:
        Path of the config directory; ``config`` relative to the cwd if none
        was found

    Raises:
        FileNotFoundError: If PARLEY_CONFIG_DIR points at a missing directory
    """
    override = os.environ.get("PARLEY_CONFIG_DIR")
    if override:
        path = Path(override)
        if not path.is_dir():
            raise FileNotFoundError(f"Config directory not found: {override}")
        return path

    current = start or Path.cwd()
    for _ in range(max_depth):
        candidate = current / "config"
        if (candidate / "default.toml").exists():
            return candidate
        current = current.parent
    return Path("config")


def get_environment() -> str:
    """Deployment environment name from PARLEY_ENV.

    Raises:
        ValueError: If the name could escape the config directory or is
            otherwise not a plain lowercase identifier
    """
    env = os.environ.get("PARLEY_ENV", DEFAULT_ENV).strip().lower()
    if not _ENV_NAME.match(env):
        raise ValueError(f"Invalid PARLEY_ENV value: {env!r}")
    return env


def load_toml(file_path: Path) -> dict[str, Any]:
    """Load one TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")
    with file_path.open("rb") as f:
        return tomllib.load(f)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Tables merge recursively. Arrays and scalars are replaced, so an
    environment that lists ``thresholds = [90]`` drops the other thresholds
    instead of appending to them.
    """
    merged = dict(base)
    for key, value in override.items():
        existing = merged.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def config_files(config_dir: Path, env: str) -> list[Path]:
    """Files that ``load_config`` reads for ``env``, in merge order."""
    candidates = [config_dir / f"{env}.toml", config_dir / LOCAL_OVERRIDES]
    return [config_dir / "default.toml", *(p for p in candidates if p.exists())]


def load_config(config_dir: Path | None = None, env: str | None = None) -> dict[str, Any]:
    """Load and merge the configuration files.

    Args:
        config_dir: Directory holding the TOML files; located automatically
            when omitted
        env: Environment name; read from PARLEY_ENV when omitted

    Returns:
        Merged raw configuration, ready for the settings model

    Raises:
        FileNotFoundError: If default.toml is missing
        ValueError: If the environment name is invalid
    """
    config_dir = config_dir or get_config_dir()
    if env is None:
        env = get_environment()
    elif not _ENV_NAME.match(env):
        raise ValueError(f"Invalid environment name: {env!r}")

    default_path = config_dir / "default.toml"
    if not default_path.exists():
        raise FileNotFoundError(
            f"Default configuration file not found: {default_path}. "
            "Create config/default.toml or set PARLEY_CONFIG_DIR."
        )

    config: dict[str, Any] = {}
    for path in config_files(config_dir, env):
        config = deep_merge(config, load_toml(path))
    return config
