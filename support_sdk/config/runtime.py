"""
Runtime Configuration

Transport defaults applied by HttpClient at construction and on reset.
"""

from __future__ import annotations

import copy
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from support_sdk.schemas.errors import ValidationError

load_dotenv()

# Environment variable prefix
ENV_PREFIX = "SUPPORT_SDK_HTTP_"

# Generic browser User-Agent sent unless the caller provides one.
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36 Edg/138.0.0.0"
)

DEFAULT_ENCODING = "gzip,deflate"


@dataclass
class HttpConfig:
    """
    Configuration for HttpClient.

    Can be loaded from:
    - Environment variables
    - YAML file
    - Programmatic construction
    """
    connect_timeout: float = 10.0
    timeout: float = 10.0
    verify_peer: bool = False
    verify_host: bool = False
    encoding: str = DEFAULT_ENCODING
    verbose: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    follow_redirects: bool = False

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        Supported variables:
        - SUPPORT_SDK_HTTP_CONNECT_TIMEOUT: seconds to wait while connecting
        - SUPPORT_SDK_HTTP_TIMEOUT: seconds allowed for the whole exchange
        - SUPPORT_SDK_HTTP_VERIFY_PEER: verify the peer certificate (true/false)
        - SUPPORT_SDK_HTTP_VERIFY_HOST: verify the certificate host name (true/false)
        - SUPPORT_SDK_HTTP_ENCODING: accepted content encodings
        - SUPPORT_SDK_HTTP_VERBOSE: log header blocks (true/false)
        - SUPPORT_SDK_HTTP_USER_AGENT: User-Agent header
        - SUPPORT_SDK_HTTP_FOLLOW_REDIRECTS: follow Location headers (true/false)
        """
        overrides: dict[str, Any] = {}

        for name in ("connect_timeout", "timeout"):
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw:
                overrides[name] = _parse_float(raw, name)

        for name in ("verify_peer", "verify_host", "verbose", "follow_redirects"):
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw:
                overrides[name] = raw.strip().lower() in ("1", "true", "yes", "on")

        for name in ("encoding", "user_agent"):
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw:
                overrides[name] = raw

        return overrides

    @classmethod
    def from_env(cls) -> "HttpConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "HttpConfig":
        """Load configuration from a YAML file (top level or under an `http` key)."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValidationError("Config file must contain a mapping", details={"path": str(path)})
        return cls.from_dict(data.get("http", data))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HttpConfig":
        """Load configuration from a dictionary (supports partial data)."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(
                f"Unknown HTTP config keys: {', '.join(unknown)}",
                details={"unknown": unknown},
            )

        config = cls(**data)
        config.connect_timeout = _parse_float(config.connect_timeout, "connect_timeout")
        config.timeout = _parse_float(config.timeout, "timeout")
        return config

    def with_env_overrides(self) -> "HttpConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for key, value in overrides.items():
            setattr(new_config, key, value)
        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return asdict(self)


def _parse_float(value: Any, name: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(
            f"Invalid value for {name}: {value!r}",
            field_path=name,
        ) from e
    if parsed < 0:
        raise ValidationError(f"{name} must not be negative", field_path=name)
    return parsed


# Global default configuration
_default_config: Optional[HttpConfig] = None


def get_default_config() -> HttpConfig:
    """Get the default HTTP configuration."""
    global _default_config
    if _default_config is None:
        _default_config = HttpConfig.from_env()
    return _default_config


def set_default_config(config: Optional[HttpConfig]) -> None:
    """Set (or clear, with None) the default HTTP configuration."""
    global _default_config
    _default_config = config
