# -*- coding: utf-8 -*-
"""state.py

Client state container
----------------------

Every write to client state goes through ``ClientState.apply``. The controller
is the only writer and it runs on a single event loop, so writes are applied
one at a time in the order responses resolve.

Superseded responses
- Reads of the same kind (e.g. two tip fetches after quick habit switches) are
  not cancelled. Whichever resolves last wins.
- ``issue``/``apply_response`` number each read per kind. A response that lands
  after a newer request of its kind was issued is still applied, but a
  ``stale_response_applied`` warning is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from .models import (
    AuthForm,
    Goal,
    GoalDraft,
    Habit,
    JournalDraft,
    JournalEntry,
    MetricsSnapshot,
    StreakSnapshot,
    UserProfile,
)
from .observability import log_event

logger = logging.getLogger("habit_client.state")


@dataclass
class ClientState:
    # session
    token: Optional[str] = None
    profile: Optional[UserProfile] = None

    # selections
    habit: Habit = Habit.GENERAL
    window: int = 14

    # status
    loading: bool = False
    error: str = ""
    hint: str = ""

    # server-synced cache
    tips: List[str] = field(default_factory=list)
    journal_items: List[JournalEntry] = field(default_factory=list)
    goals: List[Goal] = field(default_factory=list)
    streak: StreakSnapshot = field(default_factory=StreakSnapshot)
    metrics: MetricsSnapshot = field(default_factory=MetricsSnapshot)

    # local drafts
    journal_draft: JournalDraft = field(default_factory=JournalDraft)
    goal_draft: GoalDraft = field(default_factory=GoalDraft)
    auth_form: AuthForm = field(default_factory=AuthForm)

    _issued: Dict[str, int] = field(default_factory=dict, repr=False)

    def apply(self, **slots: Any) -> None:
        names = _SLOT_NAMES
        for k, v in slots.items():
            if k not in names:
                raise AttributeError(f"Unknown state slot: {k}")
            setattr(self, k, v)

    def issue(self, kind: str) -> int:
        """Register a new read of ``kind`` and return its sequence number."""
        seq = self._issued.get(kind, 0) + 1
        self._issued[kind] = seq
        return seq

    def apply_response(self, kind: str, seq: int, **slots: Any) -> None:
        latest = self._issued.get(kind, 0)
        if seq < latest:
            log_event(
                logger,
                "stale_response_applied",
                level="warning",
                kind=kind,
                seq=seq,
                latest=latest,
            )
        self.apply(**slots)

    @property
    def signed_in(self) -> bool:
        return bool(self.token)


_SLOT_NAMES = frozenset(f.name for f in fields(ClientState) if not f.name.startswith("_"))
