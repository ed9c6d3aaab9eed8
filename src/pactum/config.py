"""
Configuration for pactum.

The configuration is an explicit object handed to the platform client and the
address facades; nothing in the library reads process-wide settings after
construction.

Values are loaded from ``~/.pactum/.env`` (python-dotenv) and the process
environment:

- PACTUM_API_URL            platform base URL
- PACTUM_API_KEY            bearer token for the platform
- PACTUM_USE_SERVER_SIGNER  "true" to delegate signing to a server-signer
- PACTUM_DEBUG_API          "true" to log every request/response
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import InvalidConfigurationError

DEFAULT_API_URL = "https://api.cdp.coinbase.com/platform"
DEFAULT_PAGE_LIMIT = 100

PACTUM_DIR = Path.home() / ".pactum"
PACTUM_ENV = PACTUM_DIR / ".env"

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Configuration:
    api_url: str = DEFAULT_API_URL
    api_key: Optional[str] = field(default=None, repr=False)
    use_server_signer: bool = False
    timeout_seconds: float = 30.0
    page_limit: int = DEFAULT_PAGE_LIMIT
    debug_api: bool = False

    def __post_init__(self) -> None:
        if self.page_limit <= 0:
            raise InvalidConfigurationError("page_limit must be positive")
        if self.timeout_seconds <= 0:
            raise InvalidConfigurationError("timeout_seconds must be positive")

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None, require_api_key: bool = False) -> "Configuration":
        """
        Build a configuration from a .env file and the environment.

        Args:
            env_path: Path to .env file (default: ~/.pactum/.env)
            require_api_key: Raise if PACTUM_API_KEY is not set

        Returns:
            Configuration instance

        Raises:
            InvalidConfigurationError: If a required value is missing
        """
        env_path = env_path or PACTUM_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        config = cls(
            api_url=os.environ.get("PACTUM_API_URL", DEFAULT_API_URL).rstrip("/"),
            api_key=os.environ.get("PACTUM_API_KEY") or None,
            use_server_signer=_env_flag("PACTUM_USE_SERVER_SIGNER"),
            debug_api=_env_flag("PACTUM_DEBUG_API"),
        )
        if require_api_key and not config.api_key:
            raise InvalidConfigurationError(
                f"PACTUM_API_KEY not found. Set it in the environment or in {env_path}"
            )
        return config

    def with_server_signer(self, enabled: bool = True) -> "Configuration":
        return replace(self, use_server_signer=enabled)
