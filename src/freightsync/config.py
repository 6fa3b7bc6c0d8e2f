"""Client configuration for freightsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from freightsync.exceptions import ConfigError

ENV_BASE_URL = "FREIGHTSYNC_BASE_URL"


@dataclasses.dataclass(frozen=True)
class ClientConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        REST API root, e.g. ``"https://api.example.com/api"``. Resource
        paths (``/orders``, ``/trucks``, ...) are appended to it.
    timeout : float
        Per-request HTTP timeout in seconds.
    gate_timeout : float
        Length of the session gate's resolution window in seconds.
    resolve_profile_on_fetch : bool
        Let the session gate resolve as soon as the profile fetch succeeds
        instead of waiting out the full window.
    """

    base_url: str
    timeout: float = 30.0
    gate_timeout: float = 3.0
    resolve_profile_on_fetch: bool = False

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigError("base_url is required")
        if self.gate_timeout <= 0:
            raise ConfigError("gate_timeout must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Create configuration from the environment.

        Only ``FREIGHTSYNC_BASE_URL`` is read. Explicit keyword arguments
        override it.
        """
        config_kwargs: dict[str, Any] = {}
        base_url = os.environ.get(ENV_BASE_URL)
        if base_url is not None:
            config_kwargs["base_url"] = base_url.strip()

        config_kwargs.update(overrides)
        if "base_url" not in config_kwargs:
            raise ConfigError(f"{ENV_BASE_URL} is not set")

        return cls(**config_kwargs)
