"""Emitter configuration.

Settings are plain per-instance values; an emitter built without settings
uses the defaults below.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from typed_emitter.events.types import DispatchMode

ENV_PREFIX = "TYPED_EMITTER_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class EmitterSettings:
    """
    Configuration for emitter behavior.

    Args:
        dispatch_mode: How listener sequences are dispatched
        log_level: Level applied by ``configure_from_settings``
        json_logs: Render log lines as JSON instead of console output
    """

    dispatch_mode: DispatchMode = DispatchMode.SEQUENCE
    log_level: str = "INFO"
    json_logs: bool = False

    def __post_init__(self):
        self.dispatch_mode = DispatchMode(self.dispatch_mode)
        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EmitterSettings:
        """Load settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            EmitterSettings instance
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            dispatch_mode=env.get(f"{ENV_PREFIX}DISPATCH_MODE", defaults.dispatch_mode.value).strip().lower(),
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level).strip(),
            json_logs=env.get(f"{ENV_PREFIX}JSON_LOGS", "").strip().lower() in _TRUTHY,
        )
