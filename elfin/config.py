"""Runtime configuration for elfin test helpers."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from elfin.errors import ConfigurationError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ElfinConfig:
    """Helper configuration.

    Parameters
    ----------
    retries : int
        Number of polls ``wait_until`` makes before giving up.
    retry_interval : float
        Seconds between polls.
    dependencies_only : bool
        Install test dependencies but skip the request/poll helpers.
    log_level : str or None
        Level applied to the ``elfin`` logger by the pytest plugin.
    """

    retries: int = 5
    retry_interval: float = 1.0 / 24.0
    dependencies_only: bool = False
    log_level: str | None = None

    def __post_init__(self) -> None:
        if self.retries < 1:
            raise ConfigurationError("retries must be at least 1")
        if self.retry_interval < 0:
            raise ConfigurationError("retry_interval must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> ElfinConfig:
        """Create configuration from ``ELFIN_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        retries_env = env.get("ELFIN_RETRIES")
        if retries_env is not None:
            try:
                config_kwargs["retries"] = int(retries_env)
            except ValueError as e:
                raise ConfigurationError(f"ELFIN_RETRIES is not an integer: {retries_env!r}") from e

        interval_env = env.get("ELFIN_RETRY_INTERVAL")
        if interval_env is not None:
            try:
                config_kwargs["retry_interval"] = float(interval_env)
            except ValueError as e:
                raise ConfigurationError(f"ELFIN_RETRY_INTERVAL is not a number: {interval_env!r}") from e

        config_kwargs["dependencies_only"] = _env_bool(env.get("ELFIN_DEPENDENCIES_ONLY"), False)

        level_env = env.get("ELFIN_LOG_LEVEL")
        if level_env:
            config_kwargs["log_level"] = level_env.strip().upper()

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
