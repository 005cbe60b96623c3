# -*- coding: utf-8 -*-
"""models.py

Entities as seen by the client
------------------------------

The backend owns every entity here except the drafts; these models only parse
what it returns. Unknown fields are ignored so a newer backend does not break
an older client.

Habit
- Fixed set of values, each with a display label.
- ``Habit.normalize`` is lenient (used when reading the local store);
  ``Habit.parse`` is strict (used for explicit user selection).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Habit(str, Enum):
    GENERAL = "general"
    PHONE = "phone"
    JUNK_FOOD = "junk food"
    PROCRASTINATION = "procrastination"
    SMOKING = "smoking"
    ALCOHOL = "alcohol"
    GAMBLING = "gambling"

    @property
    def label(self) -> str:
        return HABIT_LABELS[self]

    @classmethod
    def parse(cls, value: Union[str, "Habit"]) -> "Habit":
        """Strict: raise ValueError for anything outside the enumerated set."""
        if isinstance(value, Habit):
            return value
        key = str(value or "").strip().lower()
        habit = _HABIT_ALIASES.get(key)
        if habit is None:
            allowed = ", ".join(h.value for h in cls)
            raise ValueError(f"Unknown habit {value!r}. Use one of: {allowed}")
        return habit

    @classmethod
    def normalize(cls, value: Any, default: Optional["Habit"] = None) -> "Habit":
        """Lenient: unknown values fall back to ``default`` (general)."""
        try:
            return cls.parse(value)
        except ValueError:
            return default or cls.GENERAL


HABIT_LABELS: Dict[Habit, str] = {
    Habit.GENERAL: "General Habit",
    Habit.PHONE: "Phone Overuse",
    Habit.JUNK_FOOD: "Junk Food",
    Habit.PROCRASTINATION: "Procrastination",
    Habit.SMOKING: "Smoking",
    Habit.ALCOHOL: "Alcohol",
    Habit.GAMBLING: "Gambling",
}

_HABIT_ALIASES: Dict[str, Habit] = {h.value: h for h in Habit}
_HABIT_ALIASES.update(
    {
        "junk_food": Habit.JUNK_FOOD,
        "junk-food": Habit.JUNK_FOOD,
        "junkfood": Habit.JUNK_FOOD,
    }
)


class _ApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class UserProfile(_ApiModel):
    email: str = ""
    display_name: Optional[str] = None
    is_verified: bool = False
    selected_habit: Optional[str] = None


class JournalEntry(_ApiModel):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    note: str = ""
    intensity: Optional[int] = None
    feeling: Optional[str] = None
    created_at: Optional[str] = None


class Goal(_ApiModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    title: str = ""
    target_days: int = 0
    start_date: Optional[str] = None
    completed_date: Optional[str] = None


class StreakSnapshot(_ApiModel):
    days_logged: int = 0
    current_streak: int = 0


class CheckinDay(_ApiModel):
    day: str
    count: int = 0


class MetricsSnapshot(_ApiModel):
    checkins: List[CheckinDay] = Field(default_factory=list)
    # One value per day of the window, oldest first.
    rolling_avg: List[float] = Field(default_factory=list)
    journal_count: int = 0
    avg_intensity: Optional[float] = None
    window: Optional[int] = None


# ---------- Drafts (local only, never synced) ----------


class JournalDraft(BaseModel):
    note: str = ""
    intensity: int = Field(default=5, description="1..10, clamped on submit")
    feeling: str = ""


class GoalDraft(BaseModel):
    title: str = ""
    # Raw user input; coerced to an int on submit.
    target_days: Union[int, str] = 30


class AuthForm(BaseModel):
    email: str = ""
    password: str = ""
    display_name: str = ""


class GoalEditDraft(BaseModel):
    title: str = ""
    target_days: Union[int, str] = 0
    completed_date: Optional[str] = None


def coerce_int(value: Any, default: int = 0) -> int:
    """Form-input style number coercion: blank or non-numeric -> ``default``."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    s = str(value if value is not None else "").strip()
    if not s:
        return default
    try:
        return int(float(s))
    except (TypeError, ValueError, OverflowError):
        return default
