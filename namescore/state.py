"""
Host application state as an immutable value with a single transition function.

The web client used to keep one mutable state object and patch it from every
handler. Here the state is a frozen dataclass and every change goes through
``transition(state, event)``, which returns a new state. The numerology
engines are not involved: events carry their already computed results.
"""
import datetime
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple, Union

from .schemas import AnalysisResult, CompatibilityResult, normalize_goal, normalize_mode


class View(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RESULTS = "results"
    ERROR = "error"
    DASHBOARD = "dashboard"


class Badge(str, Enum):
    FIRST_STEP = "first_step"
    CURIOUS_EXPLORER = "curious_explorer"
    NUMEROLOGY_NOVICE = "numerology_novice"
    HIGH_ACHIEVER = "high_achiever"
    PERFECT_HARMONY = "perfect_harmony"
    DYNAMIC_DUO = "dynamic_duo"
    CONSISTENT_SEEKER = "consistent_seeker"
    WEEKLY_WISDOM = "weekly_wisdom"


BADGE_DESCRIPTIONS = {
    Badge.FIRST_STEP: "You completed your first name analysis. Welcome!",
    Badge.CURIOUS_EXPLORER: "Completed 5 different name analyses.",
    Badge.NUMEROLOGY_NOVICE: "Unlocked a detailed numerology report.",
    Badge.HIGH_ACHIEVER: "Analyzed a name that scored 90 or higher.",
    Badge.PERFECT_HARMONY: "Found a compatibility score of 95 or higher.",
    Badge.DYNAMIC_DUO: "Completed your first compatibility analysis.",
    Badge.CONSISTENT_SEEKER: "Maintained a 3-day analysis streak.",
    Badge.WEEKLY_WISDOM: "Maintained a 7-day analysis streak.",
}

CURIOUS_EXPLORER_ANALYSES = 5
HIGH_ACHIEVER_SCORE = 90
PERFECT_HARMONY_SCORE = 95
CONSISTENT_SEEKER_STREAK = 3
WEEKLY_WISDOM_STREAK = 7


@dataclass(frozen=True)
class HistoryItem:
    name: str
    score: int
    date: datetime.date
    goal: str
    mode: str


@dataclass(frozen=True)
class UserProgress:
    analyses_completed: int = 0
    compatibility_analyses: int = 0
    last_checkin: Optional[datetime.date] = None
    current_streak: int = 0
    high_score: int = 0
    unlocked_badges: Tuple[Badge, ...] = ()


@dataclass(frozen=True)
class AppState:
    view: View = View.IDLE
    mode: str = "personal"
    analysis: Optional[AnalysisResult] = None
    compatibility: Optional[CompatibilityResult] = None
    error: Optional[str] = None
    current_name: str = ""
    current_name2: str = ""
    progress: UserProgress = field(default_factory=UserProgress)
    history: Tuple[HistoryItem, ...] = ()
    toasts: Tuple[Badge, ...] = ()


# --- Events ---
@dataclass(frozen=True)
class ModeSelected:
    mode: str


@dataclass(frozen=True)
class AnalysisRequested:
    pass


@dataclass(frozen=True)
class AnalysisCompleted:
    name: str
    result: AnalysisResult
    on_date: datetime.date
    goal: str = "General Insight"


@dataclass(frozen=True)
class CompatibilityCompleted:
    result: CompatibilityResult
    on_date: datetime.date


@dataclass(frozen=True)
class AnalysisFailed:
    message: str


@dataclass(frozen=True)
class ReportUnlocked:
    pass


@dataclass(frozen=True)
class ToastDismissed:
    badge: Badge


@dataclass(frozen=True)
class Reset:
    pass


Event = Union[ModeSelected, AnalysisRequested, AnalysisCompleted, CompatibilityCompleted,
              AnalysisFailed, ReportUnlocked, ToastDismissed, Reset]


def advance_streak(progress: UserProgress, on_date: datetime.date) -> UserProgress:
    """Same day keeps the streak, the next day extends it, any gap restarts it."""
    last = progress.last_checkin
    if last == on_date:
        return progress
    if last is not None and on_date - last == datetime.timedelta(days=1):
        streak = progress.current_streak + 1
    else:
        streak = 1
    return replace(progress, last_checkin=on_date, current_streak=streak)


def earned_badges(progress: UserProgress, analysis_score: Optional[int] = None,
                  compatibility_score: Optional[int] = None) -> Tuple[Badge, ...]:
    earned = []
    if progress.analyses_completed >= 1:
        earned.append(Badge.FIRST_STEP)
    if progress.analyses_completed >= CURIOUS_EXPLORER_ANALYSES:
        earned.append(Badge.CURIOUS_EXPLORER)
    if analysis_score is not None and analysis_score >= HIGH_ACHIEVER_SCORE:
        earned.append(Badge.HIGH_ACHIEVER)
    if progress.compatibility_analyses >= 1:
        earned.append(Badge.DYNAMIC_DUO)
    if compatibility_score is not None and compatibility_score >= PERFECT_HARMONY_SCORE:
        earned.append(Badge.PERFECT_HARMONY)
    if progress.current_streak >= CONSISTENT_SEEKER_STREAK:
        earned.append(Badge.CONSISTENT_SEEKER)
    if progress.current_streak >= WEEKLY_WISDOM_STREAK:
        earned.append(Badge.WEEKLY_WISDOM)
    return tuple(earned)


def _unlock(state: AppState, progress: UserProgress, badges: Tuple[Badge, ...]) -> AppState:
    new = tuple(badge for badge in badges if badge not in progress.unlocked_badges)
    progress = replace(progress, unlocked_badges=progress.unlocked_badges + new)
    toasts = state.toasts + tuple(badge for badge in new if badge not in state.toasts)
    return replace(state, progress=progress, toasts=toasts)


def transition(state: AppState, event: Event) -> AppState:
    if isinstance(event, ModeSelected):
        return replace(state, mode=normalize_mode(event.mode))

    if isinstance(event, AnalysisRequested):
        return replace(state, view=View.LOADING, analysis=None, compatibility=None, error=None)

    if isinstance(event, AnalysisFailed):
        return replace(state, view=View.ERROR, error=event.message)

    if isinstance(event, AnalysisCompleted):
        score = event.result.score
        progress = advance_streak(state.progress, event.on_date)
        progress = replace(
            progress,
            analyses_completed=progress.analyses_completed + 1,
            high_score=max(progress.high_score, score),
        )
        item = HistoryItem(name=event.name, score=score, date=event.on_date,
                           goal=normalize_goal(event.goal), mode=state.mode)
        state = replace(state, view=View.RESULTS, analysis=event.result, current_name=event.name,
                        history=state.history + (item,))
        return _unlock(state, progress, earned_badges(progress, analysis_score=score))

    if isinstance(event, CompatibilityCompleted):
        result = event.result
        progress = advance_streak(state.progress, event.on_date)
        progress = replace(progress, compatibility_analyses=progress.compatibility_analyses + 1)
        state = replace(state, view=View.RESULTS, compatibility=result,
                        current_name=result.names[0], current_name2=result.names[1])
        return _unlock(state, progress, earned_badges(progress, compatibility_score=result.score))

    if isinstance(event, ReportUnlocked):
        return _unlock(state, state.progress, (Badge.NUMEROLOGY_NOVICE,))

    if isinstance(event, ToastDismissed):
        return replace(state, toasts=tuple(badge for badge in state.toasts if badge != event.badge))

    if isinstance(event, Reset):
        return replace(state, view=View.IDLE, analysis=None, compatibility=None, error=None,
                       current_name="", current_name2="")

    raise TypeError(f"Unknown event: {event!r}")
