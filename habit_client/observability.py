# -*- coding: utf-8 -*-
"""observability.py

Structured client logs
----------------------

Goals
- Make it easy to see which request failed and in which mode (strict or
  best-effort) without a debugger.
- Best-effort refresh failures are swallowed by the controller; they still
  leave a debug-level trace here.

Policy
- Events are written to ``logging`` as one JSON line each, so they can be
  filtered by ``event``.
- Bearer tokens are never written. Use ``redact_token`` when a token needs to be
  correlated across lines.

ENV
- HABIT_BREAKER_LOG_JSON=true/false (default true)
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_LOG_JSON = os.getenv("HABIT_BREAKER_LOG_JSON", "true").strip().lower() != "false"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def set_json_logging(enabled: bool) -> None:
    global _LOG_JSON
    _LOG_JSON = bool(enabled)


def configure_logging(level: str = "WARNING", *, json_events: Optional[bool] = None) -> None:
    """Install a root handler (CLI entry point only; libraries never call this)."""
    lvl = getattr(logging, str(level or "WARNING").upper(), logging.WARNING)
    logging.basicConfig(level=lvl, format=_LOG_FORMAT)
    if json_events is not None:
        set_json_logging(json_events)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _safe_default(o: Any) -> str:
    try:
        return str(o)
    except Exception:
        return repr(o)


def _safe_json_dumps(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), default=_safe_default)


def redact_token(token: Optional[str]) -> Optional[str]:
    """Short stable fingerprint of a bearer token (never the token itself)."""
    tok = str(token or "").strip()
    if not tok:
        return None
    return "sha256:" + hashlib.sha256(tok.encode("utf-8")).hexdigest()[:10]


def log_event(logger: logging.Logger, event: str, *, level: str = "info", **fields: Any) -> None:
    """Write a structured event log.

    - level: info|warning|error|debug
    - event: stable identifier (e.g. load_all_failed)
    """
    payload: Dict[str, Any] = {
        "ts": _iso_now(),
        "event": event,
        **fields,
    }

    msg = _safe_json_dumps(payload) if _LOG_JSON else f"{event} {payload}"

    fn = getattr(logger, level, logger.info)
    fn(msg)
