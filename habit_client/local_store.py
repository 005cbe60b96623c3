# -*- coding: utf-8 -*-
"""local_store.py

Durable client-side state
-------------------------

A tiny key/value store kept in one JSON file, playing the role browser
``localStorage`` plays for a web client.

Keys
- ``hb_token``: bearer token of the current session (removed on logout)
- ``hb_habit``: selected habit (kept across logout)

Writes go to ``<file>.tmp`` first and are then renamed over the target, so a
crash mid-write leaves the previous state intact.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

TOKEN_KEY = "hb_token"
HABIT_KEY = "hb_habit"

logger = logging.getLogger("habit_client.local_store")


class LocalStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._state: Dict[str, Any] = self._load()

    # ---------- Public API ----------

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        v = self._state.get(key)
        if v is None:
            return default
        return str(v)

    def set(self, key: str, value: str) -> None:
        self._state[key] = str(value)
        self._save()

    def remove(self, key: str) -> None:
        if key not in self._state:
            return
        del self._state[key]
        self._save()

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._state)

    # ---------- Internal ----------

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, exc)
            return {}
        return raw if isinstance(raw, dict) else {}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(self._state, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)


class MemoryStore(LocalStore):
    """Same interface, nothing touches disk. Handy for notebooks and tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.path = Path("<memory>")
        self._state = dict(initial or {})

    def _save(self) -> None:
        return None
