"""Runtime configuration management with environment variable and file support.

This module provides the RuntimeConfig system for managing application configuration
from multiple sources: defaults, config files (YAML/TOML), environment variables,
and CLI flags. Configuration precedence: CLI flags > env vars > config file > defaults.
"""

import logging
import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from ai_comments.analyzer.change_analyzer import AnalyzerConfig
from ai_comments.config.exceptions import ConfigError
from ai_comments.llm.config import LLMConfig
from ai_comments.llm.constants import (
    API_KEY_ENV_VARS,
    DEFAULT_PROVIDER,
    DEFAULT_TIMEOUT,
    MAX_WORKERS,
    VALID_LLM_PROVIDERS,
)
from ai_comments.llm.providers.base import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from ai_comments.scoring.weights import ScoringWeights

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_CONCURRENCY = 3

# Environment variable for each field read by from_env
ENV_VARS: dict[str, str] = {
    "parallel": "AI_COMMENTS_PARALLEL",
    "concurrency": "AI_COMMENTS_CONCURRENCY",
    "log_level": "AI_COMMENTS_LOG_LEVEL",
    "log_file": "AI_COMMENTS_LOG_FILE",
    "llm_provider": "AI_COMMENTS_PROVIDER",
    "llm_model": "AI_COMMENTS_MODEL",
    "llm_api_key": "AI_COMMENTS_API_KEY",
    "llm_max_tokens": "AI_COMMENTS_MAX_TOKENS",
    "llm_temperature": "AI_COMMENTS_TEMPERATURE",
    "llm_timeout": "AI_COMMENTS_TIMEOUT",
    "include_raw_response": "AI_COMMENTS_INCLUDE_RAW_RESPONSE",
}


def _parse_bool(value: str, source: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise ConfigError(f"Invalid {source}='{value}'. Must be true/false, 1/0, yes/no, or on/off")


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Runtime configuration for the change analysis pipeline.

    This immutable configuration dataclass manages application settings from multiple
    sources with proper precedence. All fields are validated during initialization.

    Attributes:
        parallel: Analyze changes in bounded-concurrency windows.
        concurrency: Window size for parallel analysis.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to log file. If None, logs to stderr only.
        llm_provider: LLM provider to use ("openai" or "anthropic").
        llm_model: Model identifier (None selects the provider default).
        llm_api_key: API key for the provider. Falls back to the provider's own
            environment variable (OPENAI_API_KEY / ANTHROPIC_API_KEY).
        llm_max_tokens: Maximum tokens per analysis request (default: 2000).
        llm_temperature: Sampling temperature (default: 0.3).
        llm_timeout: Request timeout in seconds (default: 60).
        include_raw_response: Keep the raw model output on each result.
        weights: Scoring weights for the overall PR score.

    Example:
        >>> config = RuntimeConfig.from_env()
        >>> config = config.merge_with_cli(parallel=True, concurrency=5)
        >>> print(f"Parallel: {config.parallel}, Concurrency: {config.concurrency}")
        Parallel: True, Concurrency: 5
    """

    parallel: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    log_level: str = "INFO"
    log_file: str | None = None
    llm_provider: str = DEFAULT_PROVIDER
    llm_model: str | None = None
    llm_api_key: str | None = None
    llm_max_tokens: int = DEFAULT_MAX_TOKENS
    llm_temperature: float = DEFAULT_TEMPERATURE
    llm_timeout: int = DEFAULT_TIMEOUT
    include_raw_response: bool = True
    weights: ScoringWeights = field(default_factory=ScoringWeights)

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Raises:
            ConfigError: If any configuration value is invalid.
        """
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}"
            )

        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.concurrency > MAX_WORKERS:
            raise ConfigError(f"concurrency must be <= {MAX_WORKERS}, got {self.concurrency}")

        if self.llm_provider not in VALID_LLM_PROVIDERS:
            raise ConfigError(
                f"llm_provider must be one of {VALID_LLM_PROVIDERS}, got '{self.llm_provider}'"
            )

        if self.llm_max_tokens <= 0:
            raise ConfigError(f"llm_max_tokens must be positive, got {self.llm_max_tokens}")

        if not 0.0 <= self.llm_temperature <= 2.0:
            raise ConfigError(
                f"llm_temperature must be in [0.0, 2.0], got {self.llm_temperature}"
            )

        if self.llm_timeout <= 0:
            raise ConfigError(f"llm_timeout must be positive, got {self.llm_timeout}")

        if not isinstance(self.weights, ScoringWeights):
            raise ConfigError(
                f"weights must be ScoringWeights, got {type(self.weights).__name__}"
            )

    @property
    def resolved_api_key(self) -> str | None:
        """The configured API key, or the provider's own environment variable."""
        return self.llm_api_key or os.getenv(API_KEY_ENV_VARS[self.llm_provider]) or None

    @classmethod
    def from_defaults(cls) -> "RuntimeConfig":
        """Create configuration with default values.

        Example:
            >>> config = RuntimeConfig.from_defaults()
            >>> assert config.parallel is False
            >>> assert config.concurrency == 3
        """
        return cls()

    @classmethod
    def from_env(cls, base: "RuntimeConfig | None" = None) -> "RuntimeConfig":
        """Create configuration from environment variables.

        Loads configuration from environment variables with AI_COMMENTS_ prefix:
        - AI_COMMENTS_PARALLEL: Enable parallel analysis (default: "false")
        - AI_COMMENTS_CONCURRENCY: Parallel window size (default: "3")
        - AI_COMMENTS_LOG_LEVEL: Logging level (default: "INFO")
        - AI_COMMENTS_LOG_FILE: Log file path (default: None)
        - AI_COMMENTS_PROVIDER: LLM provider (default: "openai")
        - AI_COMMENTS_MODEL: LLM model (default: provider default)
        - AI_COMMENTS_API_KEY: API key for provider (default: None)
        - AI_COMMENTS_MAX_TOKENS: Max tokens per request (default: "2000")
        - AI_COMMENTS_TEMPERATURE: Sampling temperature (default: "0.3")
        - AI_COMMENTS_TIMEOUT: Request timeout in seconds (default: "60")
        - AI_COMMENTS_INCLUDE_RAW_RESPONSE: Keep raw model output (default: "true")

        Args:
            base: Configuration whose values are used for unset variables
                (defaults when None). Lets environment variables layer on top of
                a config file.

        Returns:
            RuntimeConfig loaded from environment variables.

        Raises:
            ConfigError: If environment variable has invalid value.

        Example:
            >>> os.environ["AI_COMMENTS_PARALLEL"] = "true"
            >>> config = RuntimeConfig.from_env()
            >>> assert config.parallel is True
        """
        defaults = base if base is not None else cls.from_defaults()

        def parse_bool(env_var: str, default: bool) -> bool:
            """Parse boolean environment variable."""
            return _parse_bool(os.getenv(env_var, str(default)), env_var)

        def parse_int(env_var: str, default: int, min_value: int = 1) -> int:
            """Parse integer environment variable."""
            value_str = os.getenv(env_var, str(default))
            try:
                value = int(value_str)
            except ValueError as e:
                raise ConfigError(f"Invalid {env_var}='{value_str}'. Must be an integer") from e
            if value < min_value:
                raise ConfigError(f"{env_var}={value} must be >= {min_value}")
            return value

        def parse_float(env_var: str, default: float) -> float:
            """Parse float environment variable."""
            value_str = os.getenv(env_var, str(default))
            try:
                return float(value_str)
            except ValueError as e:
                raise ConfigError(f"Invalid {env_var}='{value_str}'. Must be a number") from e

        return cls(
            parallel=parse_bool(ENV_VARS["parallel"], defaults.parallel),
            concurrency=parse_int(ENV_VARS["concurrency"], defaults.concurrency),
            log_level=os.getenv(ENV_VARS["log_level"], defaults.log_level).upper(),
            log_file=os.getenv(ENV_VARS["log_file"]) or defaults.log_file,
            llm_provider=os.getenv(ENV_VARS["llm_provider"], defaults.llm_provider).lower(),
            llm_model=os.getenv(ENV_VARS["llm_model"]) or defaults.llm_model,
            llm_api_key=os.getenv(ENV_VARS["llm_api_key"]) or defaults.llm_api_key,
            llm_max_tokens=parse_int(ENV_VARS["llm_max_tokens"], defaults.llm_max_tokens),
            llm_temperature=parse_float(ENV_VARS["llm_temperature"], defaults.llm_temperature),
            llm_timeout=parse_int(ENV_VARS["llm_timeout"], defaults.llm_timeout),
            include_raw_response=parse_bool(
                ENV_VARS["include_raw_response"], defaults.include_raw_response
            ),
            weights=defaults.weights,
        )

    @classmethod
    def from_file(cls, config_path: Path | str) -> "RuntimeConfig":
        """Load configuration from YAML or TOML file.

        Supports both YAML (.yaml, .yml) and TOML (.toml) formats.

        Example file (YAML)::

            parallel:
              enabled: true
              concurrency: 5
            logging:
              level: DEBUG
            llm:
              provider: anthropic
              max_tokens: 3000
            scoring:
              weights:
                cascadeRisk: 2.0

        Args:
            config_path: Path to configuration file (YAML or TOML).

        Returns:
            RuntimeConfig loaded from file.

        Raises:
            ConfigError: If file doesn't exist, has invalid format, or contains invalid values.
        """
        try:
            config_path = Path(config_path).resolve()
        except (OSError, ValueError) as e:
            raise ConfigError(f"Invalid config file path: {e}") from e

        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        if not config_path.is_file():
            raise ConfigError(f"Config path is not a file: {config_path}")

        suffix = config_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            return cls._load_from_yaml(config_path)
        elif suffix == ".toml":
            return cls._load_from_toml(config_path)
        else:
            raise ConfigError(
                f"Unsupported config file format: {suffix}. Must be .yaml, .yml, or .toml"
            )

    @classmethod
    def _load_from_yaml(cls, config_path: Path) -> "RuntimeConfig":
        """Load configuration from YAML file.

        Raises:
            ConfigError: If YAML is malformed or contains invalid values.
        """
        try:
            with config_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read {config_path}: {e}") from e

        # An empty file means "all defaults"
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping/dict, got {type(data).__name__}")

        return cls._from_dict(data, config_path)

    @classmethod
    def _load_from_toml(cls, config_path: Path) -> "RuntimeConfig":
        """Load configuration from TOML file.

        Raises:
            ConfigError: If TOML is malformed or contains invalid values.
        """
        try:
            with config_path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read {config_path}: {e}") from e

        return cls._from_dict(data, config_path)

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any], source: Path) -> "RuntimeConfig":
        """Create RuntimeConfig from dictionary (internal helper).

        Args:
            data: Dictionary with configuration values.
            source: Source file path (for error messages).

        Raises:
            ConfigError: If dictionary contains invalid values.
        """
        defaults = cls.from_defaults()

        def section(name: str) -> Mapping[str, Any]:
            value = data.get(name, {})
            if not isinstance(value, Mapping):
                raise ConfigError(f"Invalid {name} type in {source}: {type(value).__name__}")
            return value

        def coerce(value: Any, convert: Callable[[Any], Any], key: str) -> Any:  # noqa: ANN401
            try:
                return convert(value)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid {key} '{value}' in {source}: {e}") from e

        # Parse parallel settings; a bare boolean toggles parallel mode
        parallel_config = data.get("parallel", {})
        if isinstance(parallel_config, bool):
            parallel = parallel_config
            concurrency = defaults.concurrency
        elif isinstance(parallel_config, Mapping):
            parallel = parallel_config.get("enabled", defaults.parallel)
            concurrency = parallel_config.get("concurrency", defaults.concurrency)
        else:
            raise ConfigError(
                f"Invalid parallel type in {source}: {type(parallel_config).__name__}"
            )
        if not isinstance(parallel, bool):
            raise ConfigError(f"Invalid parallel.enabled '{parallel}' in {source}")

        logging_config = section("logging")
        log_level = logging_config.get("level", defaults.log_level)
        log_file = logging_config.get("file", defaults.log_file)

        llm_config = section("llm")
        raw_response = section("output").get(
            "include_raw_response", defaults.include_raw_response
        )
        if not isinstance(raw_response, bool):
            raise ConfigError(f"Invalid output.include_raw_response '{raw_response}' in {source}")

        weights_config = section("scoring").get("weights", {})
        if not isinstance(weights_config, Mapping):
            raise ConfigError(f"Invalid scoring.weights type in {source}")
        try:
            weights = ScoringWeights.from_dict(weights_config)
        except ValueError as e:
            raise ConfigError(f"Invalid scoring.weights in {source}: {e}") from e

        return cls(
            parallel=parallel,
            concurrency=coerce(concurrency, int, "parallel.concurrency"),
            log_level=str(log_level).upper(),
            log_file=str(log_file) if log_file else None,
            llm_provider=str(llm_config.get("provider", defaults.llm_provider)).lower(),
            llm_model=llm_config.get("model") or defaults.llm_model,
            llm_api_key=llm_config.get("api_key") or defaults.llm_api_key,
            llm_max_tokens=coerce(
                llm_config.get("max_tokens", defaults.llm_max_tokens), int, "llm.max_tokens"
            ),
            llm_temperature=coerce(
                llm_config.get("temperature", defaults.llm_temperature),
                float,
                "llm.temperature",
            ),
            llm_timeout=coerce(
                llm_config.get("timeout", defaults.llm_timeout), int, "llm.timeout"
            ),
            include_raw_response=raw_response,
            weights=weights,
        )

    def merge_with_cli(self, **overrides: Any) -> "RuntimeConfig":  # noqa: ANN401
        """Create new config with CLI flag overrides.

        CLI flags take precedence over environment variables and config files.
        Only non-None values are applied.

        Args:
            **overrides: Keyword arguments matching RuntimeConfig fields.
                        None values are ignored (no override).

        Returns:
            New RuntimeConfig with overrides applied.

        Raises:
            ConfigError: If an override names an unknown field or has an invalid value.

        Example:
            >>> config = RuntimeConfig.from_env()
            >>> config = config.merge_with_cli(parallel=True, llm_provider="anthropic")
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}

        known = {f.name for f in fields(self)}
        unknown = set(filtered_overrides) - known
        if unknown:
            raise ConfigError(f"Unknown configuration option(s): {', '.join(sorted(unknown))}")

        if isinstance(filtered_overrides.get("log_level"), str):
            filtered_overrides["log_level"] = filtered_overrides["log_level"].upper()

        try:
            return replace(self, **filtered_overrides)
        except ConfigError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Failed to apply CLI overrides: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        The API key is masked so the result is safe to print or log.

        Example:
            >>> data = RuntimeConfig.from_defaults().to_dict()
            >>> assert data["parallel"] is False
        """
        return {
            "parallel": self.parallel,
            "concurrency": self.concurrency,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "llm_provider": self.llm_provider,
            "llm_model": self.llm_model,
            "llm_api_key": "***" if self.llm_api_key else None,
            "llm_max_tokens": self.llm_max_tokens,
            "llm_temperature": self.llm_temperature,
            "llm_timeout": self.llm_timeout,
            "include_raw_response": self.include_raw_response,
            "weights": self.weights.to_dict(),
        }

    def to_llm_config(self) -> LLMConfig:
        """Build the provider configuration.

        Raises:
            ConfigError: If the LLM settings are rejected by LLMConfig.
        """
        try:
            return LLMConfig(
                provider=self.llm_provider,
                model=self.llm_model,
                api_key=self.resolved_api_key,
                max_tokens=self.llm_max_tokens,
                temperature=self.llm_temperature,
                timeout=self.llm_timeout,
            )
        except ValueError as e:
            raise ConfigError(f"Invalid LLM configuration: {e}") from e

    def to_analyzer_config(self) -> AnalyzerConfig:
        return AnalyzerConfig(
            max_tokens=self.llm_max_tokens,
            temperature=self.llm_temperature,
            weights=self.weights,
            include_raw_response=self.include_raw_response,
        )
