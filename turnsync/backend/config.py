"""Configuration helpers for the server and player viewers."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .resolver import ResolverOptions

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ServerSettings:
    host: str
    port: int
    log_level: str


@dataclass(frozen=True)
class SyncSettings:
    server_url: str
    encounter_id: str | None
    poll_interval: float
    transition_seconds: float
    fetch_timeout: float
    sidekick_redirection: bool
    lair_actions: bool

    @property
    def resolver_options(self) -> ResolverOptions:
        return ResolverOptions(
            sidekick_redirection=self.sidekick_redirection,
            lair_actions=self.lair_actions,
        )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def load_settings() -> ServerSettings:
    port_raw = os.getenv("TURNSYNC_PORT", "8000")
    return ServerSettings(
        host=os.getenv("TURNSYNC_HOST", "127.0.0.1"),
        port=int(port_raw),
        log_level=os.getenv("TURNSYNC_LOG_LEVEL", "INFO").upper(),
    )


def load_sync_settings() -> SyncSettings:
    return SyncSettings(
        server_url=os.getenv("TURNSYNC_SERVER_URL", "http://127.0.0.1:8000").rstrip("/"),
        encounter_id=os.getenv("TURNSYNC_ENCOUNTER_ID") or None,
        poll_interval=float(os.getenv("TURNSYNC_POLL_INTERVAL", "3.0")),
        transition_seconds=float(os.getenv("TURNSYNC_TRANSITION_SECONDS", "0.6")),
        fetch_timeout=float(os.getenv("TURNSYNC_FETCH_TIMEOUT", "5.0")),
        sidekick_redirection=_env_bool("TURNSYNC_SIDEKICK_REDIRECTION", True),
        lair_actions=_env_bool("TURNSYNC_LAIR_ACTIONS", True),
    )


def configure_logging(level: str = "INFO") -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
