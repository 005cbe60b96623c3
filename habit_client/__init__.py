from .config import ClientConfig, METRICS_WINDOWS
from .controller import RequestMode, SessionController
from .errors import (
    SESSION_EXPIRED_MESSAGE,
    ApiError,
    NetworkError,
    RequestError,
    SessionExpiredError,
)
from .events import HabitChanged, TokenChanged, WindowChanged
from .goal_editor import GoalEditor, GoalRowMode
from .http_client import HabitApiClient
from .local_store import LocalStore, MemoryStore
from .models import Goal, Habit, JournalEntry, MetricsSnapshot, StreakSnapshot, UserProfile
from .state import ClientState
