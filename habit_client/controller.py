# -*- coding: utf-8 -*-
"""controller.py

Session & sync controller
-------------------------

Owns the session token, the selected habit and metrics window, form drafts and
the cached server views, and decides which backend calls each user action or
event issues.

Request modes
- STRICT: the primary call of an action. Failure goes to ``state.error``.
- BEST_EFFORT: secondary refreshes (tips on habit change, metrics on window
  change, post-check-in reloads, single-list reloads). Failure is logged at
  debug level and dropped.

A 401 on any call, in either mode, clears the session (memory + local store)
and the cached profile.

Every mutating action sets ``state.loading`` while it runs and clears
``state.error`` when it starts.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import date
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple, Union

import httpx

from .config import METRICS_WINDOWS, ClientConfig
from .errors import ApiError
from .events import Event, HabitChanged, TokenChanged, WindowChanged
from .goal_editor import GoalEditor, GoalRowMode
from .http_client import HabitApiClient
from .local_store import HABIT_KEY, TOKEN_KEY, LocalStore
from .models import (
    AuthForm,
    Goal,
    GoalDraft,
    Habit,
    JournalDraft,
    UserProfile,
    coerce_int,
)
from .observability import log_event, redact_token
from .state import ClientState

logger = logging.getLogger("habit_client.controller")

RESET_REQUESTED_HINT = "If that email is registered, a reset token has been sent."
RESET_CONFIRMED_HINT = "Password updated. You can log in with the new password."
VERIFY_REQUESTED_HINT = "Verification token sent. Check your email."
VERIFY_CONFIRMED_HINT = "Email verified."

Slots = Dict[str, Any]


class RequestMode(str, Enum):
    STRICT = "strict"
    BEST_EFFORT = "best_effort"


def _today() -> date:
    return date.today()


def _clamp(n: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, n))


class SessionController:
    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        store: Optional[LocalStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or ClientConfig.from_env()
        self.store = store if store is not None else LocalStore(self.config.state_file)
        self.state = ClientState(
            token=self.store.get(TOKEN_KEY) or None,
            habit=Habit.normalize(self.store.get(HABIT_KEY)),
            window=self.config.metrics_window,
        )
        self.goal_editor = GoalEditor()
        # Operations in flight; a 401-driven reload waits until this is 0.
        self._depth = 0
        self._expired = False
        self.api = HabitApiClient(
            self.config,
            get_token=lambda: self.state.token,
            on_unauthorized=self._expire_session,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.api.aclose()

    async def __aenter__(self) -> "SessionController":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ---------- Plumbing ----------

    def _clear_session(self) -> None:
        self.state.apply(token=None, profile=None)
        self.store.remove(TOKEN_KEY)

    def _expire_session(self) -> None:
        if self.state.token:
            self._expired = True
        self._clear_session()

    @contextlib.asynccontextmanager
    async def _operation(self) -> AsyncIterator[None]:
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
        if self._depth == 0 and self._expired:
            self._expired = False
            await self._reload_after_expiry()

    async def _reload_after_expiry(self) -> None:
        error = self.state.error
        await self.dispatch(TokenChanged(None))
        if error and not self.state.error:
            self.state.apply(error=error)

    def _adopt_token(self, token: str) -> None:
        self.state.apply(token=token, auth_form=AuthForm())
        self.store.set(TOKEN_KEY, token)
        log_event(logger, "session_started", token=redact_token(token))

    async def _run_mutation(self, name: str, op: Callable[[], Awaitable[None]]) -> bool:
        async with self._operation():
            self.state.apply(loading=True, error="")
            try:
                await op()
            except ApiError as exc:
                self.state.apply(error=str(exc))
                log_event(logger, "action_failed", level="info", action=name, error=str(exc))
                return False
            finally:
                self.state.apply(loading=False)
            return True

    async def _call(self, aw: Awaitable[Any], mode: RequestMode, label: str) -> Any:
        if mode is RequestMode.STRICT:
            return await aw
        try:
            return await aw
        except ApiError as exc:
            log_event(logger, "best_effort_failed", level="debug", read=label, error=str(exc))
            return None

    # Each fetcher returns the state slots it fills.

    async def _fetch_tips(self, habit: Habit) -> Slots:
        return {"tips": await self.api.get_tips(habit)}

    async def _fetch_journal(self) -> Slots:
        return {"journal_items": await self.api.list_journal()}

    async def _fetch_goals(self) -> Slots:
        return {"goals": await self.api.list_goals()}

    async def _fetch_streak(self) -> Slots:
        return {"streak": await self.api.get_streak()}

    async def _fetch_metrics(self, days: int) -> Slots:
        return {"metrics": await self.api.get_metrics(days)}

    async def _refresh(self, kind: str, aw: Awaitable[Slots]) -> bool:
        async with self._operation():
            seq = self.state.issue(kind)
            slots = await self._call(aw, RequestMode.BEST_EFFORT, kind)
            if slots is None:
                return False
            self.state.apply_response(kind, seq, **slots)
            return True

    # ---------- Best-effort single reads ----------

    async def refresh_tips(self) -> bool:
        return await self._refresh("tips", self._fetch_tips(self.state.habit))

    async def refresh_journal(self) -> bool:
        return await self._refresh("journal", self._fetch_journal())

    async def refresh_goals(self) -> bool:
        return await self._refresh("goals", self._fetch_goals())

    async def refresh_streak(self) -> bool:
        return await self._refresh("streak", self._fetch_streak())

    async def refresh_metrics(self) -> bool:
        return await self._refresh("metrics", self._fetch_metrics(self.state.window))

    async def fetch_profile(self) -> Optional[UserProfile]:
        if not self.state.token:
            self.state.apply(profile=None)
            return None
        async with self._operation():
            profile = await self._call(self.api.me(), RequestMode.BEST_EFFORT, "profile")
            self.state.apply(profile=profile)
        return profile

    # ---------- Events ----------

    async def dispatch(self, event: Event) -> None:
        if isinstance(event, TokenChanged):
            if event.token:
                await self.load_all()
                await self.fetch_profile()
            else:
                self.state.apply(profile=None)
                await self.load_all()
        elif isinstance(event, HabitChanged):
            self.store.set(HABIT_KEY, event.habit.value)
            if self.state.token:
                await self._call(
                    self.api.update_profile(event.habit),
                    RequestMode.BEST_EFFORT,
                    "profile_update",
                )
            await self._refresh("tips", self._fetch_tips(event.habit))
        elif isinstance(event, WindowChanged):
            await self._refresh("metrics", self._fetch_metrics(event.days))
        else:
            raise TypeError(f"Unsupported event: {event!r}")

    async def start(self) -> None:
        """Initial load: every view, plus the profile when a session exists."""
        await self.load_all()
        await self.fetch_profile()

    # ---------- Load-all ----------

    async def load_all(self) -> bool:
        """Five concurrent reads; all must succeed or none is applied."""

        async def op() -> None:
            reads: List[Tuple[str, Awaitable[Slots]]] = [
                ("tips", self._fetch_tips(self.state.habit)),
                ("journal", self._fetch_journal()),
                ("goals", self._fetch_goals()),
                ("streak", self._fetch_streak()),
                ("metrics", self._fetch_metrics(self.state.window)),
            ]
            seqs = [self.state.issue(kind) for kind, _ in reads]
            results = await asyncio.gather(*(aw for _, aw in reads), return_exceptions=True)
            for res in results:
                if isinstance(res, BaseException):
                    raise res
            for (kind, _), seq, slots in zip(reads, seqs, results):
                self.state.apply_response(kind, seq, **slots)

        return await self._run_mutation("load_all", op)

    # ---------- Auth ----------

    def update_auth_form(self, **changes: Any) -> None:
        form = self.state.auth_form.model_dump()
        form.update(changes)
        self.state.apply(auth_form=AuthForm.model_validate(form))

    async def _authenticate(self, name: str, call: Callable[[], Awaitable[str]]) -> bool:
        async def op() -> None:
            self._adopt_token(await call())

        ok = await self._run_mutation(name, op)
        if ok:
            await self.dispatch(TokenChanged(self.state.token))
        return ok

    async def login(self, email: Optional[str] = None, password: Optional[str] = None) -> bool:
        if email is not None or password is not None:
            self.update_auth_form(
                email=email if email is not None else self.state.auth_form.email,
                password=password if password is not None else self.state.auth_form.password,
            )
        form = self.state.auth_form
        return await self._authenticate("login", lambda: self.api.login(form.email, form.password))

    async def register(
        self,
        email: Optional[str] = None,
        password: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> bool:
        changes = {
            k: v
            for k, v in (("email", email), ("password", password), ("display_name", display_name))
            if v is not None
        }
        if changes:
            self.update_auth_form(**changes)
        form = self.state.auth_form
        return await self._authenticate(
            "register",
            lambda: self.api.register(form.email, form.password, form.display_name or None),
        )

    async def logout(self) -> None:
        """Drop the session, then reload every view without it."""
        self._clear_session()
        log_event(logger, "session_ended")
        await self.dispatch(TokenChanged(None))

    # ---------- Selections ----------

    async def set_habit(self, habit: Union[str, Habit]) -> None:
        h = Habit.parse(habit)
        self.state.apply(habit=h)
        await self.dispatch(HabitChanged(h))

    async def set_window(self, days: Union[int, str]) -> None:
        n = coerce_int(days, default=-1)
        if n not in METRICS_WINDOWS:
            allowed = ", ".join(str(w) for w in METRICS_WINDOWS)
            raise ValueError(f"Unsupported metrics window {days!r}. Use one of: {allowed}")
        self.state.apply(window=n)
        await self.dispatch(WindowChanged(n))

    # ---------- Check-in & journal ----------

    async def check_in(self) -> bool:
        async def op() -> None:
            await self.api.check_in()
            await asyncio.gather(
                self.refresh_streak(),
                self.refresh_journal(),
                self.refresh_metrics(),
            )

        return await self._run_mutation("check_in", op)

    def update_journal_draft(self, **changes: Any) -> None:
        draft = self.state.journal_draft.model_dump()
        draft.update(changes)
        self.state.apply(journal_draft=JournalDraft.model_validate(draft))

    async def submit_journal(self) -> bool:
        draft = self.state.journal_draft
        if not draft.note.strip():
            return False

        async def op() -> None:
            await self.api.create_journal(
                note=draft.note,
                intensity=_clamp(coerce_int(draft.intensity, default=5), 1, 10),
                feeling=draft.feeling,
            )
            self.state.apply(journal_draft=JournalDraft())
            await asyncio.gather(self.refresh_journal(), self.refresh_metrics())

        return await self._run_mutation("submit_journal", op)

    # ---------- Goals ----------

    def update_goal_draft(self, **changes: Any) -> None:
        draft = self.state.goal_draft.model_dump()
        draft.update(changes)
        self.state.apply(goal_draft=GoalDraft.model_validate(draft))

    async def submit_goal(self) -> bool:
        draft = self.state.goal_draft
        title = draft.title.strip()
        if not title:
            return False

        async def op() -> None:
            await self.api.create_goal(title=title, target_days=coerce_int(draft.target_days))
            self.state.apply(goal_draft=GoalDraft())
            await self.refresh_goals()

        return await self._run_mutation("submit_goal", op)

    def _goal(self, goal_id: str) -> Goal:
        for g in self.state.goals:
            if g.id == goal_id:
                return g
        raise KeyError(f"Unknown goal id: {goal_id}")

    def goal_mode(self, goal_id: str) -> GoalRowMode:
        return self.goal_editor.mode_for(goal_id)

    def begin_goal_edit(self, goal_id: str) -> None:
        self.goal_editor.begin(self._goal(goal_id))

    def update_goal_edit(self, **changes: Any) -> None:
        self.goal_editor.update(**changes)

    def cancel_goal_edit(self) -> None:
        self.goal_editor.cancel()

    async def save_goal_edit(self) -> bool:
        """PATCH the changed fields; back to viewing on success."""
        goal_id = self.goal_editor.editing_id
        if goal_id is None:
            raise RuntimeError("No goal is being edited")
        changes = self.goal_editor.build_changes()

        async def op() -> None:
            await self.api.update_goal(goal_id, changes)
            self.goal_editor.cancel()
            await self.refresh_goals()

        return await self._run_mutation("save_goal_edit", op)

    async def mark_goal_done_today(self, goal_id: str) -> bool:
        today = _today().isoformat()

        async def op() -> None:
            await self.api.update_goal(goal_id, {"completed_date": today})
            await self.refresh_goals()

        return await self._run_mutation("mark_goal_done_today", op)

    # ---------- Password reset / email verification ----------

    async def request_password_reset(self, email: str) -> bool:
        async def op() -> None:
            self.state.apply(hint="")
            await self.api.request_reset(email)
            self.state.apply(hint=RESET_REQUESTED_HINT)

        return await self._run_mutation("request_password_reset", op)

    async def confirm_password_reset(self, token: str, new_password: str) -> bool:
        adopted: List[str] = []

        async def op() -> None:
            self.state.apply(hint="")
            data = await self.api.confirm_reset(token, new_password)
            self.state.apply(hint=RESET_CONFIRMED_HINT)
            access = str(data.get("access_token") or "").strip()
            if access:
                self._adopt_token(access)
                adopted.append(access)

        ok = await self._run_mutation("confirm_password_reset", op)
        if ok and adopted:
            await self.dispatch(TokenChanged(adopted[0]))
        return ok

    async def request_verification(self, email: str) -> bool:
        async def op() -> None:
            self.state.apply(hint="")
            await self.api.request_verify(email)
            self.state.apply(hint=VERIFY_REQUESTED_HINT)

        return await self._run_mutation("request_verification", op)

    async def confirm_verification(self, token: str) -> bool:
        async def op() -> None:
            self.state.apply(hint="")
            await self.api.confirm_verify(token)
            self.state.apply(hint=VERIFY_CONFIRMED_HINT)
            await self.fetch_profile()

        return await self._run_mutation("confirm_verification", op)
