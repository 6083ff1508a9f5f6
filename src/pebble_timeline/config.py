"""Client configuration for pebble_timeline."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from pebble_timeline._constants import API_URL, DEFAULT_DATA_DIR, DEFAULT_RETENTION_MONTHS


@dataclasses.dataclass(frozen=True)
class TimelineConfig:
    """Client configuration.

    Parameters
    ----------
    timeline_token : str or None
        Default timeline token used when an operation does not pass its
        own ``token`` override.
    api_url : str
        Timeline API base URL. Defaults to the Rebble timeline service.
    data_dir : Path
        Installation data directory. The pin store lives in
        ``<data_dir>/pebble-timeline/timeline-pins.json``.
    retention_months : int
        Calendar months a pin stays in the local store after it was
        stored.
    request_timeout : float
        Total timeout in seconds for a single timeline API request.
    """

    timeline_token: str | None = None
    api_url: str = API_URL
    data_dir: Path = DEFAULT_DATA_DIR
    retention_months: int = DEFAULT_RETENTION_MONTHS
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize through object.__setattr__.
        object.__setattr__(self, "api_url", self.api_url.rstrip("/"))
        object.__setattr__(self, "data_dir", Path(self.data_dir).expanduser())
        if self.retention_months < 1:
            raise ValueError(f"retention_months must be >= 1, got {self.retention_months}")

    def resolve_token(self, override: Any = None) -> str | None:
        """Return the token for an operation.

        A non-empty *override* wins, otherwise the configured default is
        used. Tokens are always returned as strings.
        """
        if override is not None and str(override).strip():
            return str(override).strip()
        if self.timeline_token:
            return str(self.timeline_token)
        return None

    @classmethod
    def from_env(cls, **overrides: Any) -> TimelineConfig:
        """Create configuration from ``PEBBLE_TIMELINE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "PEBBLE_TIMELINE_TOKEN": "timeline_token",
            "PEBBLE_TIMELINE_API_URL": "api_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        data_dir_env = env.get("PEBBLE_TIMELINE_DATA_DIR")
        if data_dir_env is not None and "data_dir" not in overrides:
            config_kwargs["data_dir"] = Path(data_dir_env)

        retention_env = env.get("PEBBLE_TIMELINE_RETENTION_MONTHS")
        if retention_env is not None and "retention_months" not in overrides:
            config_kwargs["retention_months"] = int(retention_env)

        timeout_env = env.get("PEBBLE_TIMELINE_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
