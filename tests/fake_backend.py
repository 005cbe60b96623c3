# -*- coding: utf-8 -*-
"""In-memory Habit Breaker backend for tests.

Implements the REST contract the client consumes. Every request is recorded
(method, path, query, JSON body, Authorization header) and individual routes can
be told to fail with a given status, or to wait on a gate before answering.
"""

from __future__ import annotations

import asyncio
import json
import secrets
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl

import httpx
from fastapi import FastAPI, Header, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel


class RegisterIn(BaseModel):
    email: str
    password: str
    display_name: Optional[str] = None


class LoginIn(BaseModel):
    email: str
    password: str


class EmailIn(BaseModel):
    email: str


class ConfirmResetIn(BaseModel):
    token: str
    new_password: str


class ConfirmVerifyIn(BaseModel):
    token: str


class JournalIn(BaseModel):
    note: str
    intensity: int = 5
    feeling: str = ""


class GoalIn(BaseModel):
    title: str
    target_days: int


class ProfileIn(BaseModel):
    selected_habit: str


class FakeBackend:
    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.failures: Dict[Tuple[str, str], Tuple[int, str, bool]] = {}
        self.gates: Dict[str, asyncio.Event] = {}

        self.users: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}
        self.reset_tokens: Dict[str, str] = {}
        self.verify_tokens: Dict[str, str] = {}
        self.login_on_reset = False

        self.journal: List[Dict[str, Any]] = []
        self.goals: List[Dict[str, Any]] = []
        self.checkin_days: List[str] = []

        self.app = self._build_app()

    # ---------- Test helpers ----------

    def transport(self) -> httpx.ASGITransport:
        return httpx.ASGITransport(app=self._asgi)

    def fail(self, method: str, path: str, status: int, body: str = "", *, once: bool = False) -> None:
        self.failures[(method.upper(), path)] = (status, body, once)

    def clear_failures(self) -> None:
        self.failures.clear()

    def calls_to(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["method"] == method.upper() and c["path"] == path]

    def add_user(self, email: str, password: str, display_name: Optional[str] = None) -> str:
        self.users[email] = {
            "email": email,
            "password": password,
            "display_name": display_name,
            "is_verified": False,
            "selected_habit": "general",
        }
        return self._issue_token(email)

    def add_goal(self, title: str, target_days: int, completed_date: Optional[str] = None) -> Dict[str, Any]:
        goal = {
            "_id": secrets.token_hex(6),
            "title": title,
            "target_days": target_days,
            "start_date": date.today().isoformat(),
            "completed_date": completed_date,
        }
        self.goals.append(goal)
        return goal

    # ---------- ASGI wrapper: record + inject failures ----------

    async def _asgi(self, scope, receive, send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        chunks = []
        more = True
        while more:
            msg = await receive()
            chunks.append(msg.get("body", b""))
            more = msg.get("more_body", False)
        body = b"".join(chunks)

        headers = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in scope["headers"]}
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None
        self.calls.append(
            {
                "method": scope["method"],
                "path": scope["path"],
                "query": dict(parse_qsl(scope.get("query_string", b"").decode("latin-1"))),
                "json": payload,
                "authorization": headers.get("authorization"),
                "content_type": headers.get("content-type"),
            }
        )

        key = (scope["method"], scope["path"])
        failure = self.failures.get(key)
        if failure is not None:
            status, text, once = failure
            if once:
                del self.failures[key]
            await PlainTextResponse(text, status_code=status)(scope, receive, send)
            return

        sent = False

        async def replay():
            nonlocal sent
            if sent:
                return {"type": "http.disconnect"}
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}

        await self.app(scope, replay, send)

    # ---------- Backend ----------

    def _issue_token(self, email: str) -> str:
        tok = "tok-" + secrets.token_hex(8)
        self.tokens[tok] = email
        return tok

    def _user(self, authorization: Optional[str]) -> Dict[str, Any]:
        auth = str(authorization or "")
        if not auth.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Not authenticated")
        email = self.tokens.get(auth[len("Bearer "):])
        if email is None:
            raise HTTPException(status_code=401, detail="Invalid token")
        return self.users[email]

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.get("/api/tips")
        async def tips(habit: str = Query("general")):
            gate = backend.gates.get(f"tips:{habit}")
            if gate is not None:
                await gate.wait()
            return {"tips": [f"{habit} tip 1", f"{habit} tip 2"]}

        @app.get("/api/journal")
        async def list_journal():
            return {"items": list(reversed(backend.journal))}

        @app.post("/api/journal")
        async def create_journal(body: JournalIn):
            item = body.model_dump()
            item["_id"] = secrets.token_hex(6)
            item["created_at"] = "2026-10-19T08:30:00Z"
            backend.journal.append(item)
            return {"ok": True, "_id": item["_id"]}

        @app.get("/api/goals")
        async def list_goals():
            return {"items": list(backend.goals)}

        @app.post("/api/goals")
        async def create_goal(body: GoalIn):
            goal = backend.add_goal(body.title, body.target_days)
            return {"ok": True, "_id": goal["_id"]}

        @app.patch("/api/goals/{goal_id}")
        async def update_goal(goal_id: str, body: Dict[str, Any]):
            for g in backend.goals:
                if g["_id"] == goal_id:
                    for k in ("title", "target_days", "completed_date"):
                        if k in body:
                            g[k] = body[k]
                    return {"ok": True}
            raise HTTPException(status_code=404, detail="Goal not found")

        @app.get("/api/streak")
        async def streak():
            days = sorted(set(backend.checkin_days))
            current = 0
            d = date.today()
            while d.isoformat() in days:
                current += 1
                d -= timedelta(days=1)
            return {"days_logged": len(days), "current_streak": current}

        @app.get("/api/metrics")
        async def metrics(days: int = Query(14)):
            today = date.today()
            series = []
            for i in range(days - 1, -1, -1):
                day = (today - timedelta(days=i)).isoformat()
                series.append({"day": day, "count": backend.checkin_days.count(day)})
            rolling = []
            for i in range(len(series)):
                win = series[max(0, i - 6): i + 1]
                rolling.append(round(sum(x["count"] for x in win) / len(win), 3))
            scores = [
                j["intensity"]
                for j in backend.journal[-200:]
                if isinstance(j.get("intensity"), (int, float))
            ]
            avg = sum(scores) / len(scores) if scores else None
            return {
                "checkins": series,
                "rolling_avg": rolling,
                "journal_count": len(backend.journal),
                "avg_intensity": avg,
                "window": days,
            }

        @app.post("/api/checkin")
        async def checkin(body: Dict[str, Any]):
            backend.checkin_days.append(date.today().isoformat())
            return {"ok": True}

        @app.get("/api/auth/me")
        async def me(authorization: Optional[str] = Header(None)):
            u = backend._user(authorization)
            return {k: u[k] for k in ("email", "display_name", "is_verified", "selected_habit")}

        @app.post("/api/auth/register")
        async def register(body: RegisterIn):
            if body.email in backend.users:
                raise HTTPException(status_code=400, detail="Email already registered")
            tok = backend.add_user(body.email, body.password, body.display_name)
            return {"access_token": tok, "token_type": "bearer"}

        @app.post("/api/auth/login")
        async def login(body: LoginIn):
            u = backend.users.get(body.email)
            if u is None or u["password"] != body.password:
                raise HTTPException(status_code=400, detail="Invalid email or password")
            return {"access_token": backend._issue_token(body.email), "token_type": "bearer"}

        @app.post("/api/auth/request-reset")
        async def request_reset(body: EmailIn):
            if body.email in backend.users:
                backend.reset_tokens["reset-" + secrets.token_hex(4)] = body.email
            return {"ok": True}

        @app.post("/api/auth/confirm-reset")
        async def confirm_reset(body: ConfirmResetIn):
            email = backend.reset_tokens.pop(body.token, None)
            if email is None:
                raise HTTPException(status_code=400, detail="Invalid or expired token")
            backend.users[email]["password"] = body.new_password
            if backend.login_on_reset:
                return {"ok": True, "access_token": backend._issue_token(email)}
            return {"ok": True}

        @app.post("/api/auth/request-verify")
        async def request_verify(body: EmailIn):
            if body.email in backend.users:
                backend.verify_tokens["verify-" + secrets.token_hex(4)] = body.email
            return {"ok": True}

        @app.post("/api/auth/confirm-verify")
        async def confirm_verify(body: ConfirmVerifyIn):
            email = backend.verify_tokens.pop(body.token, None)
            if email is None:
                raise HTTPException(status_code=400, detail="Invalid or expired token")
            backend.users[email]["is_verified"] = True
            return {"ok": True}

        @app.put("/api/profile")
        async def profile(body: ProfileIn, authorization: Optional[str] = Header(None)):
            u = backend._user(authorization)
            u["selected_habit"] = body.selected_habit
            return {"ok": True}

        return app
