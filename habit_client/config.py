# -*- coding: utf-8 -*-
"""config.py

Client settings
---------------

All knobs come from the environment and are read once into ``ClientConfig``.
Bad values never raise; they fall back to the defaults.

ENV
- HABIT_BREAKER_BACKEND_URL (default: http://localhost:8000)
- HABIT_BREAKER_HTTP_TIMEOUT_SECONDS (default: 8.0)
- HABIT_BREAKER_HTTP_MAX_CONNECTIONS (default: 20)
- HABIT_BREAKER_HTTP_MAX_KEEPALIVE_CONNECTIONS (default: 10)
- HABIT_BREAKER_STATE_FILE (default: ~/.habit_breaker/state.json)
- HABIT_BREAKER_METRICS_WINDOW (default: 14)
- HABIT_BREAKER_LOG_JSON (default: true)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

DEFAULT_BACKEND_URL = "http://localhost:8000"
DEFAULT_STATE_FILE = Path.home() / ".habit_breaker" / "state.json"

METRICS_WINDOWS = (14, 30, 90)


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = str(raw).strip()
    return s or default


def _env_truthy(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(str(raw).strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_BACKEND_URL
    timeout_sec: float = 8.0
    max_connections: int = 20
    max_keepalive_connections: int = 10
    state_file: Path = DEFAULT_STATE_FILE
    metrics_window: int = 14
    log_json: bool = True

    @classmethod
    def from_env(cls) -> "ClientConfig":
        timeout = _env_float("HABIT_BREAKER_HTTP_TIMEOUT_SECONDS", 8.0)
        if timeout <= 0:
            timeout = 8.0
        window = _env_int("HABIT_BREAKER_METRICS_WINDOW", 14)
        if window not in METRICS_WINDOWS:
            window = 14
        return cls(
            base_url=_env_str("HABIT_BREAKER_BACKEND_URL", DEFAULT_BACKEND_URL).rstrip("/"),
            timeout_sec=timeout,
            max_connections=max(1, _env_int("HABIT_BREAKER_HTTP_MAX_CONNECTIONS", 20)),
            max_keepalive_connections=max(
                1, _env_int("HABIT_BREAKER_HTTP_MAX_KEEPALIVE_CONNECTIONS", 10)
            ),
            state_file=Path(
                _env_str("HABIT_BREAKER_STATE_FILE", str(DEFAULT_STATE_FILE))
            ).expanduser(),
            metrics_window=window,
            log_json=_env_truthy("HABIT_BREAKER_LOG_JSON", True),
        )

    def with_overrides(
        self,
        *,
        base_url: Optional[str] = None,
        state_file: Optional[Path] = None,
    ) -> "ClientConfig":
        """Return a copy with CLI-level overrides applied."""
        cfg = self
        if base_url:
            cfg = replace(cfg, base_url=base_url.strip().rstrip("/"))
        if state_file is not None:
            cfg = replace(cfg, state_file=Path(state_file).expanduser())
        return cfg
