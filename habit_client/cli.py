#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cli.py

Command line front end for the Habit Breaker backend.

Each invocation is one user action: the controller is built from the
environment plus flags, the action runs, and the resulting state is printed.
Session token and habit selection persist in the state file between runs.

Usage (examples)
  habit-breaker login you@example.com
  habit-breaker habit smoking
  habit-breaker checkin
  habit-breaker journal "Craved one after lunch" --intensity 7 --feeling stressed
  habit-breaker goal add "30-day clean streak" --target-days 30
  habit-breaker goal done 64f0c0ffee
  habit-breaker status --window 30

Exit codes
- 0: success
- 1: the backend call failed (message printed to stderr)
- 2: usage error (bad habit, unknown goal id, empty note, ...)

ENV: see ``habit_client.config``. Passwords may come from
HABIT_BREAKER_PASSWORD instead of the interactive prompt.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import httpx

from .config import METRICS_WINDOWS, ClientConfig
from .controller import SessionController
from .models import Habit
from .observability import configure_logging
from .views import render_dashboard

Action = Callable[[SessionController, argparse.Namespace], Awaitable[Optional[bool]]]


class UsageError(Exception):
    pass


def _password(args: argparse.Namespace, prompt: str = "Password: ") -> str:
    pw = getattr(args, "password", None) or os.getenv("HABIT_BREAKER_PASSWORD") or ""
    if not pw:
        pw = getpass.getpass(prompt)
    return pw


# ---------- Actions ----------


async def _login(c: SessionController, args: argparse.Namespace) -> bool:
    return await c.login(args.email, _password(args))


async def _register(c: SessionController, args: argparse.Namespace) -> bool:
    return await c.register(args.email, _password(args), args.display_name)


async def _logout(c: SessionController, args: argparse.Namespace) -> None:
    await c.logout()


async def _status(c: SessionController, args: argparse.Namespace) -> bool:
    if args.window is not None:
        c.state.apply(window=args.window)
    await c.start()
    return not c.state.error


async def _habit(c: SessionController, args: argparse.Namespace) -> None:
    await c.set_habit(args.habit)


async def _window(c: SessionController, args: argparse.Namespace) -> None:
    await c.set_window(args.days)


async def _checkin(c: SessionController, args: argparse.Namespace) -> bool:
    return await c.check_in()


async def _journal(c: SessionController, args: argparse.Namespace) -> bool:
    if not str(args.note or "").strip():
        raise UsageError("note must not be empty")
    c.update_journal_draft(note=args.note, intensity=args.intensity, feeling=args.feeling or "")
    return await c.submit_journal()


async def _goal_add(c: SessionController, args: argparse.Namespace) -> bool:
    if not str(args.title or "").strip():
        raise UsageError("title must not be empty")
    c.update_goal_draft(title=args.title, target_days=args.target_days)
    return await c.submit_goal()


async def _load_goals(c: SessionController) -> None:
    if not await c.refresh_goals():
        raise UsageError("could not load goals")


async def _goal_edit(c: SessionController, args: argparse.Namespace) -> bool:
    await _load_goals(c)
    try:
        c.begin_goal_edit(args.goal_id)
    except KeyError as exc:
        raise UsageError(f"unknown goal id: {args.goal_id}") from exc
    changes: dict = {}
    if args.title is not None:
        changes["title"] = args.title
    if args.target_days is not None:
        changes["target_days"] = args.target_days
    if args.completed_date is not None:
        changes["completed_date"] = args.completed_date
    c.update_goal_edit(**changes)
    return await c.save_goal_edit()


async def _goal_done(c: SessionController, args: argparse.Namespace) -> bool:
    return await c.mark_goal_done_today(args.goal_id)


async def _reset_request(c: SessionController, args: argparse.Namespace) -> bool:
    return await c.request_password_reset(args.email)


async def _reset_confirm(c: SessionController, args: argparse.Namespace) -> bool:
    pw = args.new_password or getpass.getpass("New password: ")
    return await c.confirm_password_reset(args.token, pw)


async def _verify_request(c: SessionController, args: argparse.Namespace) -> bool:
    return await c.request_verification(args.email)


async def _verify_confirm(c: SessionController, args: argparse.Namespace) -> bool:
    return await c.confirm_verification(args.token)


# ---------- Parser ----------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="habit-breaker", description="Habit Breaker client")
    parser.add_argument("--base-url", default=None, help="backend URL (HABIT_BREAKER_BACKEND_URL)")
    parser.add_argument("--state-file", type=Path, default=None, help="where token and habit are kept")
    parser.add_argument("--log-level", default=os.getenv("HABIT_BREAKER_LOG_LEVEL") or "WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="log in and load everything")
    p.add_argument("email")
    p.add_argument("--password")
    p.set_defaults(action=_login)

    p = sub.add_parser("register", help="create an account")
    p.add_argument("email")
    p.add_argument("--password")
    p.add_argument("--display-name")
    p.set_defaults(action=_register)

    p = sub.add_parser("logout")
    p.set_defaults(action=_logout, quiet=True)

    p = sub.add_parser("status", help="load and show every view")
    p.add_argument("--window", type=int, choices=METRICS_WINDOWS)
    p.set_defaults(action=_status)

    p = sub.add_parser("habit", help="select the habit to focus on")
    p.add_argument("habit", choices=[h.value for h in Habit])
    p.set_defaults(action=_habit)

    p = sub.add_parser("window", help="select the metrics window")
    p.add_argument("days", type=int, choices=METRICS_WINDOWS)
    p.set_defaults(action=_window)

    p = sub.add_parser("checkin", help="check in for today")
    p.set_defaults(action=_checkin)

    p = sub.add_parser("journal", help="log a trigger or craving")
    p.add_argument("note")
    p.add_argument("--intensity", type=int, default=5)
    p.add_argument("--feeling", default="")
    p.set_defaults(action=_journal)

    goal = sub.add_parser("goal", help="create, edit or complete goals")
    gsub = goal.add_subparsers(dest="goal_command", required=True)
    p = gsub.add_parser("add")
    p.add_argument("title")
    p.add_argument("--target-days", default="30")
    p.set_defaults(action=_goal_add)
    p = gsub.add_parser("edit")
    p.add_argument("goal_id")
    p.add_argument("--title")
    p.add_argument("--target-days")
    p.add_argument("--completed-date", help="YYYY-MM-DD")
    p.set_defaults(action=_goal_edit)
    p = gsub.add_parser("done", help="mark a goal completed today")
    p.add_argument("goal_id")
    p.set_defaults(action=_goal_done)

    reset = sub.add_parser("reset", help="password reset")
    rsub = reset.add_subparsers(dest="reset_command", required=True)
    p = rsub.add_parser("request")
    p.add_argument("email")
    p.set_defaults(action=_reset_request)
    p = rsub.add_parser("confirm")
    p.add_argument("token")
    p.add_argument("--new-password")
    p.set_defaults(action=_reset_confirm)

    verify = sub.add_parser("verify", help="email verification")
    vsub = verify.add_subparsers(dest="verify_command", required=True)
    p = vsub.add_parser("request")
    p.add_argument("email")
    p.set_defaults(action=_verify_request)
    p = vsub.add_parser("confirm")
    p.add_argument("token")
    p.set_defaults(action=_verify_confirm)

    return parser


async def run(
    args: argparse.Namespace,
    *,
    config: Optional[ClientConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    cfg = (config or ClientConfig.from_env()).with_overrides(
        base_url=args.base_url, state_file=args.state_file
    )
    action: Action = args.action

    async with SessionController(cfg, transport=transport) as c:
        try:
            await action(c, args)
        except (UsageError, ValueError) as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 2

        if not getattr(args, "quiet", False):
            print(render_dashboard(c.state, c.goal_editor))
        if c.state.error:
            print(f"ERROR: {c.state.error}", file=sys.stderr)
            return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    cfg = ClientConfig.from_env()
    configure_logging(args.log_level, json_events=cfg.log_json)
    return asyncio.run(run(args, config=cfg))


if __name__ == "__main__":
    raise SystemExit(main())
