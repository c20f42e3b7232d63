# -*- coding: utf-8 -*-

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple, Union

from domain.models import LogEntry, SessionStats, TimerState


@dataclass(frozen=True)
class LogActivity:
    entry: LogEntry
    attach_task: bool = True  # caller fills in the selected task + color


@dataclass(frozen=True)
class CreditWorkUnit:
    """One work unit finished against the selected task."""


@dataclass(frozen=True)
class Notify:
    kind: str  # work-complete | bank-depleted | switch
    title: str
    body: str = ""


@dataclass(frozen=True)
class SessionStarted:
    at: datetime


@dataclass(frozen=True)
class SessionEnded:
    stats: SessionStats


@dataclass(frozen=True)
class ClearCompletedTasks:
    pass


Effect = Union[
    LogActivity, CreditWorkUnit, Notify, SessionStarted, SessionEnded, ClearCompletedTasks
]


@dataclass(frozen=True)
class Transition:
    state: TimerState
    effects: Tuple[Effect, ...] = ()


def log_entry(
    kind: str,
    now: datetime,
    duration: float,
    reason: str = "",
    start: Optional[datetime] = None,
) -> LogEntry:
    if start is None:
        start = now - timedelta(seconds=duration)
    return LogEntry(
        type=kind,
        start=start.isoformat(),
        end=now.isoformat(),
        duration=float(duration),
        reason=reason,
    )
