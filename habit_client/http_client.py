# -*- coding: utf-8 -*-
"""http_client.py

Habit Breaker REST client
-------------------------

What this module provides
  - One lazily-created, connection-pooled ``httpx.AsyncClient`` per
    ``HabitApiClient`` (limits and timeout from ``ClientConfig``)
  - ``request``: fetch-with-auth. Every call sends JSON headers plus
    ``Authorization: Bearer <token>`` when a session exists
  - Thin typed wrappers for each backend endpoint

Error mapping
  - 401            -> ``on_unauthorized()`` is called, then SessionExpiredError
  - other non-2xx  -> RequestError("<status> <reason>: <body>")
  - transport fail -> NetworkError
  - bad 2xx body   -> ResponseFormatError

Notes
  - Nothing is retried here. A failed call fails once.
  - Call ``aclose`` (or use ``async with``) to release the pool.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .config import ClientConfig
from .errors import NetworkError, RequestError, ResponseFormatError, SessionExpiredError
from .models import (
    Goal,
    Habit,
    JournalEntry,
    MetricsSnapshot,
    StreakSnapshot,
    UserProfile,
)
from .observability import log_event

logger = logging.getLogger("habit_client.http")

_BODY_MAX_CHARS = 500
_MAX_REPORTED_ERRORS = 3

M = TypeVar("M", bound=BaseModel)


class HabitApiClient:
    def __init__(
        self,
        config: ClientConfig,
        *,
        get_token: Callable[[], Optional[str]],
        on_unauthorized: Callable[[], None],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._get_token = get_token
        self._on_unauthorized = on_unauthorized
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    # --- Client lifecycle ---

    def _build_limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=max(1, self.config.max_connections),
            max_keepalive_connections=max(1, self.config.max_keepalive_connections),
        )

    async def get_async_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_sec),
                    limits=self._build_limits(),
                    transport=self._transport,
                )
            return self._client

    async def aclose(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        finally:
            self._client = None

    async def __aenter__(self) -> "HabitApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # --- Core request ---

    def _headers(self) -> Dict[str, str]:
        h = {"Content-Type": "application/json"}
        tok = str(self._get_token() or "").strip()
        if tok:
            h["Authorization"] = f"Bearer {tok}"
        return h

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body ({} when empty)."""

        p = str(path or "").strip()
        if not p.startswith("/"):
            p = "/" + p
        m = str(method or "GET").upper()

        client = await self.get_async_client()
        try:
            resp = await client.request(m, p, headers=self._headers(), params=params, json=json)
        except httpx.TransportError as exc:
            log_event(logger, "request_transport_error", level="debug", method=m, path=p, error=str(exc))
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc

        if resp.status_code == 401:
            log_event(logger, "session_expired", level="info", method=m, path=p)
            self._on_unauthorized()
            raise SessionExpiredError()

        if resp.is_error:
            body = resp.text[:_BODY_MAX_CHARS] if resp.text else None
            log_event(
                logger,
                "request_failed",
                level="debug",
                method=m,
                path=p,
                status=resp.status_code,
            )
            raise RequestError(resp.status_code, resp.reason_phrase, body)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError:
            return {}

    async def get(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Any) -> Any:
        return await self.request("POST", path, json=json)

    async def patch(self, path: str, *, json: Any) -> Any:
        return await self.request("PATCH", path, json=json)

    async def put(self, path: str, *, json: Any) -> Any:
        return await self.request("PUT", path, json=json)

    # --- Endpoints: data ---

    async def get_tips(self, habit: Habit) -> List[str]:
        data = await self.get("/api/tips", params={"habit": Habit.parse(habit).value})
        tips = data.get("tips") if isinstance(data, dict) else None
        return [str(t) for t in tips or []]

    async def list_journal(self) -> List[JournalEntry]:
        path = "/api/journal"
        return [_parse(JournalEntry, x, path) for x in _items(await self.get(path))]

    async def create_journal(self, note: str, intensity: int, feeling: str) -> Any:
        return await self.post(
            "/api/journal",
            json={"note": note, "intensity": intensity, "feeling": feeling},
        )

    async def list_goals(self) -> List[Goal]:
        path = "/api/goals"
        return [_parse(Goal, x, path) for x in _items(await self.get(path))]

    async def create_goal(self, title: str, target_days: int) -> Any:
        return await self.post("/api/goals", json={"title": title, "target_days": target_days})

    async def update_goal(self, goal_id: str, changes: Dict[str, Any]) -> Any:
        return await self.patch(f"/api/goals/{goal_id}", json=changes)

    async def get_streak(self) -> StreakSnapshot:
        path = "/api/streak"
        return _parse(StreakSnapshot, _obj(await self.get(path)), path)

    async def get_metrics(self, days: int) -> MetricsSnapshot:
        path = "/api/metrics"
        data = await self.get(path, params={"days": int(days)})
        return _parse(MetricsSnapshot, _obj(data), path)

    async def check_in(self) -> Any:
        return await self.post("/api/checkin", json={})

    async def update_profile(self, habit: Habit) -> Any:
        return await self.put("/api/profile", json={"selected_habit": Habit.parse(habit).value})

    # --- Endpoints: auth ---

    async def me(self) -> UserProfile:
        path = "/api/auth/me"
        return _parse(UserProfile, _obj(await self.get(path)), path)

    async def register(self, email: str, password: str, display_name: Optional[str] = None) -> str:
        payload: Dict[str, Any] = {"email": email, "password": password}
        if display_name:
            payload["display_name"] = display_name
        path = "/api/auth/register"
        return _access_token(await self.post(path, json=payload), path)

    async def login(self, email: str, password: str) -> str:
        path = "/api/auth/login"
        data = await self.post(path, json={"email": email, "password": password})
        return _access_token(data, path)

    async def request_reset(self, email: str) -> Dict[str, Any]:
        return _obj(await self.post("/api/auth/request-reset", json={"email": email}))

    async def confirm_reset(self, token: str, new_password: str) -> Dict[str, Any]:
        return _obj(
            await self.post(
                "/api/auth/confirm-reset",
                json={"token": token, "new_password": new_password},
            )
        )

    async def request_verify(self, email: str) -> Dict[str, Any]:
        return _obj(await self.post("/api/auth/request-verify", json={"email": email}))

    async def confirm_verify(self, token: str) -> Dict[str, Any]:
        return _obj(await self.post("/api/auth/confirm-verify", json={"token": token}))


def _obj(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


def _items(data: Any) -> List[Dict[str, Any]]:
    items = _obj(data).get("items")
    if not isinstance(items, list):
        return []
    return [x for x in items if isinstance(x, dict)]


def _parse(model: Type[M], data: Any, path: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        detail = "; ".join(
            f"{'.'.join(str(p) for p in e['loc']) or model.__name__}: {e['msg']}"
            for e in exc.errors()[:_MAX_REPORTED_ERRORS]
        )
        log_event(
            logger,
            "response_invalid",
            level="warning",
            path=path,
            model=model.__name__,
            errors=exc.error_count(),
        )
        raise ResponseFormatError(path, detail) from exc


def _access_token(data: Any, path: str) -> str:
    tok = str(_obj(data).get("access_token") or "").strip()
    if not tok:
        raise ResponseFormatError(path, "no access token in response")
    return tok
