"""
Runtime Configuration Module

Provides configuration loading for the HTTP client.
"""

from .runtime import (
    DEFAULT_ENCODING,
    DEFAULT_USER_AGENT,
    HttpConfig,
    get_default_config,
    set_default_config,
)

__all__ = [
    "DEFAULT_ENCODING",
    "DEFAULT_USER_AGENT",
    "HttpConfig",
    "get_default_config",
    "set_default_config",
]
