"""Custom exceptions for configuration management."""

from reclaim.errors import ConfigError

__all__ = ["ConfigError"]
