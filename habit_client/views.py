# -*- coding: utf-8 -*-
"""views.py

Plain-text renderings of ``ClientState``. No I/O; the CLI prints what these
return.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Sequence

from .goal_editor import GoalEditor, GoalRowMode
from .models import CheckinDay, Goal, Habit, JournalEntry, MetricsSnapshot, UserProfile
from .state import ClientState

EMPTY = "-"
_BAR_CHARS = " ▁▂▃▄▅▆▇█"


def habit_label(habit: Habit) -> str:
    return Habit.normalize(habit).label


def display_name(profile: Optional[UserProfile]) -> str:
    if profile is None:
        return ""
    return (profile.display_name or "").strip() or profile.email


def avg_intensity_text(metrics: MetricsSnapshot) -> str:
    if metrics.avg_intensity is None:
        return EMPTY
    return f"{metrics.avg_intensity:.1f}"


def _scaled(values: Sequence[float]) -> List[float]:
    if not values:
        return []
    peak = max(values)
    if peak <= 0:
        return [0.0 for _ in values]
    return [max(0.0, v) / peak for v in values]


def _bars(heights: Sequence[float]) -> str:
    top = len(_BAR_CHARS) - 1
    return "".join(_BAR_CHARS[round(h * top)] for h in heights)


def bar_heights(checkins: Sequence[CheckinDay]) -> List[float]:
    """Each day's count as a fraction of the busiest day (0.0 .. 1.0)."""
    return _scaled([c.count for c in checkins])


def sparkline(checkins: Sequence[CheckinDay]) -> str:
    return _bars(bar_heights(checkins))


def rolling_avg_line(metrics: MetricsSnapshot) -> str:
    """Trend of the rolling average plus its latest value."""
    if not metrics.rolling_avg:
        return EMPTY
    latest = metrics.rolling_avg[-1]
    return f"{_bars(_scaled(metrics.rolling_avg))}  latest {latest:.2f}/day"


def _parse_day(value: Optional[str]) -> Optional[date]:
    s = str(value or "").strip()
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def day_label(value: Optional[str]) -> str:
    d = _parse_day(value)
    if d is None:
        return EMPTY
    return f"{d.month}/{d.day}"


def date_text(value: Optional[str]) -> str:
    d = _parse_day(value)
    return d.isoformat() if d else EMPTY


def journal_line(entry: JournalEntry) -> str:
    head = date_text(entry.created_at)
    if entry.intensity:
        head += f" [intensity {entry.intensity}]"
    line = f"{head} {entry.note}"
    if entry.feeling:
        line += f" (feeling: {entry.feeling})"
    return line


def goal_line(goal: Goal, mode: GoalRowMode = GoalRowMode.VIEWING) -> str:
    line = f"{goal.id}: {goal.title} - target {goal.target_days} days, start {date_text(goal.start_date)}"
    if goal.completed_date:
        line += f", done {date_text(goal.completed_date)}"
    if mode is GoalRowMode.EDITING:
        line += " (editing)"
    return line


def render_dashboard(state: ClientState, editor: Optional[GoalEditor] = None) -> str:
    out: List[str] = []
    who = display_name(state.profile)
    if not state.signed_in:
        out.append("Not signed in")
    else:
        out.append(f"Signed in as {who}" if who else "Signed in")
    out.append(f"Focus: {habit_label(state.habit)}")
    if state.error:
        out.append(f"Error: {state.error}")
    if state.hint:
        out.append(state.hint)

    out.append("")
    out.append(
        f"Streak: {state.streak.days_logged} days logged, current streak {state.streak.current_streak}"
    )
    m = state.metrics
    chart = sparkline(m.checkins)
    if m.checkins:
        chart += f"  {day_label(m.checkins[0].day)}..{day_label(m.checkins[-1].day)}"
    out.append(f"Check-ins (last {m.window or state.window} days): {chart}")
    out.append(f"Rolling avg: {rolling_avg_line(m)}")
    out.append(f"Avg intensity (last 200): {avg_intensity_text(m)}")
    out.append(f"Journal entries stored: {m.journal_count}")

    out.append("")
    out.append("Tips:")
    out.extend(f"  - {t}" for t in state.tips)

    out.append("")
    out.append("Recent journal entries:")
    if not state.journal_items:
        out.append("  No entries yet.")
    out.extend(f"  {journal_line(e)}" for e in state.journal_items)

    out.append("")
    out.append("Goals:")
    if not state.goals:
        out.append("  No goals yet.")
    for g in state.goals:
        mode = editor.mode_for(g.id) if editor is not None else GoalRowMode.VIEWING
        out.append(f"  {goal_line(g, mode)}")
    return "\n".join(out)
