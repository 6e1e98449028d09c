"""Runtime configuration loading for CLI commands."""

import logging
from pathlib import Path
from typing import Any

from ai_comments.config.runtime_config import RuntimeConfig

logger = logging.getLogger(__name__)


def load_runtime_config(
    config: str | Path | None,
    cli_overrides: dict[str, Any],
) -> RuntimeConfig:
    """Load runtime configuration with proper precedence.

    Configuration precedence: CLI flags > environment variables > config file > defaults

    Args:
        config: Path to a YAML/TOML configuration file, or None for defaults.
        cli_overrides: CLI flag values keyed by RuntimeConfig field. None values
            are ignored.

    Returns:
        Fully merged RuntimeConfig.

    Raises:
        ConfigError: If the file, an environment variable or an override is invalid.
    """
    if config:
        logger.debug(f"Loading configuration file: {config}")
        base = RuntimeConfig.from_file(config)
    else:
        base = RuntimeConfig.from_defaults()

    runtime_config = RuntimeConfig.from_env(base).merge_with_cli(**cli_overrides)
    logger.debug(f"Runtime configuration: {runtime_config.to_dict()}")
    return runtime_config
