# -*- coding: utf-8 -*-

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

WORK = "work"
BREAK = "break"
MODES = (WORK, BREAK)

ALARM_SOUNDS = (
    "bell",
    "digital",
    "chime",
    "gong",
    "pop",
    "wood",
    "marimba",
    "crystal",
    "blade",
    "cosmic",
    "ripple",
    "news",
)

DEFAULT_WORK_DURATION = 1500
DEFAULT_SHORT_BREAK = 300
DEFAULT_LONG_BREAK = 900
DEFAULT_LONG_BREAK_INTERVAL = 4


def new_id() -> str:
    return str(uuid.uuid4())


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class GraceContext(str, Enum):
    AFTER_WORK = "afterWork"
    AFTER_BREAK = "afterBreak"


@dataclass(frozen=True)
class Settings:
    work_duration: int = DEFAULT_WORK_DURATION  # seconds
    short_break_duration: int = DEFAULT_SHORT_BREAK
    long_break_duration: int = DEFAULT_LONG_BREAK
    long_break_interval: int = DEFAULT_LONG_BREAK_INTERVAL
    alarm_sound: str = "bell"
    disable_blur: bool = False

    def __post_init__(self):
        if self.long_break_interval < 1:
            raise ValueError("long_break_interval must be at least 1.")

    def with_updates(self, **fields: Any) -> "Settings":
        """
        Apply user edits. Non-numeric or non-positive durations are ignored,
        the interval is clamped to >= 1, unknown alarm tokens are ignored.
        """
        values = asdict(self)
        for name in ("work_duration", "short_break_duration", "long_break_duration"):
            if name in fields:
                v = _to_int(fields[name])
                if v is not None and v > 0:
                    values[name] = v
        if "long_break_interval" in fields:
            v = _to_int(fields["long_break_interval"])
            if v is not None:
                values["long_break_interval"] = max(1, v)
        if fields.get("alarm_sound") in ALARM_SOUNDS:
            values["alarm_sound"] = fields["alarm_sound"]
        if "disable_blur" in fields:
            values["disable_blur"] = bool(fields["disable_blur"])
        return Settings(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Settings":
        return cls().with_updates(**(d or {}))


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str = "#777777"


@dataclass
class Subtask:
    id: str
    name: str
    estimated: int = 1
    completed: int = 0
    checked: bool = False

    @property
    def remaining_units(self) -> int:
        return max(1, self.estimated - self.completed)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Subtask":
        return cls(
            id=str(d.get("id") or new_id()),
            name=str(d.get("name", "")),
            estimated=max(0, _to_int(d.get("estimated")) or 0),
            completed=max(0, _to_int(d.get("completed")) or 0),
            checked=bool(d.get("checked", False)),
        )


@dataclass
class Task:
    """
    Top-level queue entry. Subtasks are one level deep only; when present,
    estimated/completed are derived from them.
    """

    id: str
    name: str
    estimated: int = 1
    completed: int = 0
    checked: bool = False
    subtasks: List[Subtask] = field(default_factory=list)
    color: Optional[str] = None
    category_id: Optional[str] = None
    expanded: bool = True

    @property
    def remaining_units(self) -> int:
        return max(1, self.estimated - self.completed)

    def recalculate(self) -> None:
        if not self.subtasks:
            return
        total_est = sum(s.estimated for s in self.subtasks)
        if total_est > 0:
            self.estimated = total_est
        self.completed = sum(s.completed for s in self.subtasks)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["subtasks"] = [s.to_dict() for s in self.subtasks]
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Task":
        return cls(
            id=str(d.get("id") or new_id()),
            name=str(d.get("name", "")),
            estimated=max(0, _to_int(d.get("estimated")) or 0),
            completed=max(0, _to_int(d.get("completed")) or 0),
            checked=bool(d.get("checked", False)),
            subtasks=[Subtask.from_dict(s) for s in d.get("subtasks") or []],
            color=d.get("color"),
            category_id=d.get("category_id"),
            expanded=bool(d.get("expanded", True)),
        )


@dataclass(frozen=True)
class WorkUnit:
    task_id: str
    subtask_id: Optional[str]
    name: str
    color: Optional[str] = None


@dataclass(frozen=True)
class ScheduleBreak:
    id: str
    start_time: str  # "HH:MM" 24h
    duration: int  # minutes
    label: str = "Break"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScheduleBreak":
        return cls(
            id=str(d.get("id") or new_id()),
            start_time=str(d["start_time"]),
            duration=int(d["duration"]),
            label=str(d.get("label") or "Break"),
        )


@dataclass(frozen=True)
class TimeBlock:
    kind: str  # work | break | scheduled-break
    start: datetime
    end: datetime
    duration: int  # minutes
    label: str
    offset: float
    length: float
    is_long: bool = False
    task_id: Optional[str] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class TaskRef:
    id: str
    name: str


@dataclass(frozen=True)
class LogEntry:
    type: str  # work | break | allpause | grace | task-complete
    start: str  # ISO timestamps
    end: str
    duration: float  # seconds
    reason: str = ""
    task: Optional[TaskRef] = None
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LogEntry":
        task = d.get("task")
        return cls(
            type=str(d["type"]),
            start=str(d["start"]),
            end=str(d["end"]),
            duration=float(d.get("duration") or 0),
            reason=str(d.get("reason") or ""),
            task=TaskRef(id=str(task["id"]), name=str(task["name"])) if task else None,
            color=d.get("color"),
        )


@dataclass(frozen=True)
class SessionStats:
    total_work_minutes: float
    total_break_minutes: float
    tasks_completed: int
    pomos_completed: int
    category_minutes: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LifetimeStats:
    total_focus_hours: float = 0.0
    total_sessions: int = 0
    total_pomos: int = 0
    current_streak: int = 0
    best_streak: int = 0
    last_active_date: Optional[str] = None  # yyyy-mm-dd

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LifetimeStats":
        known = {k: v for k, v in (d or {}).items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass(frozen=True)
class TimerState:
    work_time: float = DEFAULT_WORK_DURATION  # seconds left in the work interval
    break_time: float = 0.0  # bank balance, negative = debt
    active_mode: str = WORK
    focused_mode: str = WORK
    timer_started: bool = False
    is_idle: bool = True
    pomodoro_count: int = 0
    interval_elapsed: float = 0.0

    grace_open: bool = False
    grace_context: Optional[GraceContext] = None
    grace_total: float = 0.0

    all_pause_active: bool = False
    all_pause_time: float = 0.0
    all_pause_reason: str = ""
    all_pause_started_at: Optional[datetime] = None
    all_pause_mode: Optional[str] = None

    session_started_at: Optional[datetime] = None
    summary_shown: bool = False
    session_stats: Optional[SessionStats] = None

    @property
    def is_running(self) -> bool:
        return (
            self.timer_started
            and not self.is_idle
            and not self.grace_open
            and not self.all_pause_active
        )

    @property
    def phase(self) -> str:
        if self.summary_shown:
            return "summary"
        if self.all_pause_active:
            return "allpaused"
        if self.grace_open:
            return "grace"
        if self.is_idle:
            return "idle"
        return "running" if self.timer_started else "stopped"

    def to_dict(self) -> Dict[str, Any]:
        # only the clocks survive a restart; sub-states are resolved in-process
        return {
            "work_time": self.work_time,
            "break_time": self.break_time,
            "active_mode": self.active_mode,
            "session_started_at": (
                self.session_started_at.isoformat() if self.session_started_at else None
            ),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], pomodoro_count: int = 0) -> "TimerState":
        started = d.get("session_started_at")
        mode = d.get("active_mode")
        return cls(
            work_time=float(d.get("work_time", DEFAULT_WORK_DURATION)),
            break_time=float(d.get("break_time", 0.0)),
            active_mode=mode if mode in MODES else WORK,
            focused_mode=mode if mode in MODES else WORK,
            pomodoro_count=max(0, int(pomodoro_count)),
            session_started_at=datetime.fromisoformat(started) if started else None,
        )


@dataclass(frozen=True)
class GroupSyncConfig:
    sync_timers: bool = True
    sync_tasks: bool = True
    sync_schedule: bool = True
    sync_history: bool = False
    sync_settings: bool = True


@dataclass(frozen=True)
class GroupMember:
    id: str
    name: str
    is_host: bool = False
