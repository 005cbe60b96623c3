# -*- coding: utf-8 -*-
"""Named triggers the controller reacts to.

TokenChanged  -> reload every server-backed view (only when a token is set)
HabitChanged  -> persist, mirror to profile, re-fetch tips
WindowChanged -> re-fetch metrics
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .models import Habit


@dataclass(frozen=True)
class TokenChanged:
    token: Optional[str]


@dataclass(frozen=True)
class HabitChanged:
    habit: Habit


@dataclass(frozen=True)
class WindowChanged:
    days: int


Event = Union[TokenChanged, HabitChanged, WindowChanged]
