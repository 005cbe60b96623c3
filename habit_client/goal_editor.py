# -*- coding: utf-8 -*-
"""goal_editor.py

Per-row goal edit state
-----------------------

    Viewing --begin--> Editing --save (PATCH)--> Viewing
                       Editing --cancel-------> Viewing

Only one goal is edited at a time: ``editing_id`` is shared by every row, so
beginning an edit on another goal drops the previous draft.

The PATCH body holds only fields that differ from the goal as loaded.
``completed_date`` is left out entirely when the draft has none.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from .models import Goal, GoalEditDraft, coerce_int


class GoalRowMode(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"


class GoalEditor:
    def __init__(self) -> None:
        self.editing_id: Optional[str] = None
        self.original: Optional[Goal] = None
        self.draft: GoalEditDraft = GoalEditDraft()

    def mode_for(self, goal_id: str) -> GoalRowMode:
        if self.editing_id is not None and self.editing_id == goal_id:
            return GoalRowMode.EDITING
        return GoalRowMode.VIEWING

    def begin(self, goal: Goal) -> None:
        self.editing_id = goal.id
        self.original = goal
        self.draft = GoalEditDraft(
            title=goal.title,
            target_days=goal.target_days,
            completed_date=goal.completed_date,
        )

    def update(self, **changes: Any) -> None:
        if self.editing_id is None:
            raise RuntimeError("No goal is being edited")
        self.draft = self.draft.model_copy(update=changes)

    def cancel(self) -> None:
        self.editing_id = None
        self.original = None
        self.draft = GoalEditDraft()

    def build_changes(self) -> Dict[str, Any]:
        """Fields of the draft that differ from the goal as it was when editing began."""
        goal = self.original
        if goal is None:
            raise RuntimeError("No goal is being edited")
        d = self.draft
        changes: Dict[str, Any] = {}

        title = str(d.title or "").strip()
        if title and title != goal.title:
            changes["title"] = title

        target_days = coerce_int(d.target_days)
        if target_days != goal.target_days:
            changes["target_days"] = target_days

        completed = str(d.completed_date or "").strip()
        if completed and completed != (goal.completed_date or ""):
            changes["completed_date"] = completed

        return changes
