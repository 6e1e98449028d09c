"""Configuration management.

This package provides configuration management through:
- RuntimeConfig: Runtime configuration from env vars, files, and CLI flags
  (``ai_comments.config.runtime_config``)
- ConfigError: Exception for configuration errors
"""

from ai_comments.config.exceptions import ConfigError

__all__ = ["ConfigError"]
