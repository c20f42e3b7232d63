# -*- coding: utf-8 -*-

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from core import all_pause, grace
from core.effects import (
    CreditWorkUnit,
    Effect,
    LogActivity,
    Notify,
    SessionStarted,
    Transition,
    log_entry,
)
from domain.models import (
    BREAK,
    MODES,
    WORK,
    Category,
    GraceContext,
    LogEntry,
    Settings,
    Task,
    TimerState,
)


# ----- Commands -----
@dataclass(frozen=True)
class Start:
    now: datetime


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class Toggle:
    now: datetime


@dataclass(frozen=True)
class Tick:
    now: datetime
    seconds: float = 1.0


@dataclass(frozen=True)
class SwitchMode:
    now: datetime


@dataclass(frozen=True)
class ActivateMode:
    mode: str
    now: datetime


@dataclass(frozen=True)
class RestartActiveTimer:
    now: datetime
    custom_seconds: Any = None


@dataclass(frozen=True)
class SetPomodoroCount:
    count: Any


@dataclass(frozen=True)
class ApplySettings:
    settings: Settings


@dataclass(frozen=True)
class OpenGrace:
    context: GraceContext


@dataclass(frozen=True)
class ResolveGrace:
    choice: grace.GraceChoice
    now: datetime


@dataclass(frozen=True)
class ConfirmAllPause:
    now: datetime
    reason: str = ""


@dataclass(frozen=True)
class ResumeFromPause:
    mode: str
    adjustment: float
    now: datetime
    log_as: Optional[str] = None


@dataclass(frozen=True)
class EndAllPause:
    now: datetime


@dataclass(frozen=True)
class EndSession:
    logs: Sequence[LogEntry] = ()
    tasks: Sequence[Task] = ()
    categories: Sequence[Category] = ()


@dataclass(frozen=True)
class CloseSummary:
    pass


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class TimerEngine:
    """
    Pure break-bank state machine (no Tkinter, no storage).
    Every operation takes the current TimerState and returns a Transition;
    the caller owns the state and executes the effects.
    Operations that make no sense in the current state return it unchanged.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self._handlers: Dict[type, Callable[[TimerState, Any], Transition]] = {
            Start: lambda s, c: self.start(s, c.now),
            Stop: lambda s, c: self.stop(s),
            Toggle: lambda s, c: self.toggle(s, c.now),
            Tick: lambda s, c: self.tick(s, c.now, c.seconds),
            SwitchMode: lambda s, c: self.switch_mode(s, c.now),
            ActivateMode: lambda s, c: self.activate_mode(s, c.mode, c.now),
            RestartActiveTimer: lambda s, c: self.restart_active_timer(
                s, c.now, c.custom_seconds
            ),
            SetPomodoroCount: lambda s, c: self.set_pomodoro_count(s, c.count),
            ApplySettings: lambda s, c: self.apply_settings(s, c.settings),
            OpenGrace: lambda s, c: self.open_grace(s, c.context),
            ResolveGrace: lambda s, c: grace.resolve(s, c.choice, c.now, self.settings),
            ConfirmAllPause: lambda s, c: all_pause.confirm_all_pause(s, c.now, c.reason),
            ResumeFromPause: lambda s, c: all_pause.resume_from_pause(
                s, c.mode, c.adjustment, c.now, c.log_as
            ),
            EndAllPause: lambda s, c: all_pause.end_all_pause(s, c.now),
            EndSession: lambda s, c: all_pause.end_session(
                s, c.logs, c.tasks, c.categories
            ),
            CloseSummary: lambda s, c: all_pause.close_summary(s, self.settings),
        }

    def initial_state(self) -> TimerState:
        return TimerState(work_time=self.settings.work_duration)

    def dispatch(self, state: TimerState, command: Any) -> Transition:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unknown timer command: {command!r}")
        return handler(state, command)

    # ----- helpers -----
    @staticmethod
    def _blocked(state: TimerState) -> bool:
        return state.grace_open or state.all_pause_active or state.summary_shown

    @staticmethod
    def _begin_session(state: TimerState, now: datetime, effects: List[Effect]) -> TimerState:
        if state.session_started_at is not None:
            return state
        effects.append(SessionStarted(now))
        return replace(state, session_started_at=now)

    def _perform_switch(self, state: TimerState, target: str, now: datetime) -> Transition:
        effects: List[Effect] = []
        if not state.is_idle and state.interval_elapsed > 0:
            entry = log_entry(state.active_mode, now, state.interval_elapsed, "Switch")
            effects.append(LogActivity(entry))
        effects.append(
            Notify("switch", "Focus" if target == WORK else "Break")
        )
        new_state = replace(
            state,
            active_mode=target,
            focused_mode=target,
            is_idle=False,
            timer_started=True,
            interval_elapsed=0.0,
        )
        new_state = self._begin_session(new_state, now, effects)
        return Transition(new_state, tuple(effects))

    # ----- start / stop -----
    def start(self, state: TimerState, now: datetime) -> Transition:
        if self._blocked(state) or state.timer_started:
            return Transition(state)
        effects: List[Effect] = []
        new_state = replace(
            state,
            timer_started=True,
            is_idle=False,
            interval_elapsed=0.0 if state.is_idle else state.interval_elapsed,
        )
        new_state = self._begin_session(new_state, now, effects)
        return Transition(new_state, tuple(effects))

    def stop(self, state: TimerState) -> Transition:
        if not state.timer_started:
            return Transition(state)
        return Transition(replace(state, timer_started=False))

    def toggle(self, state: TimerState, now: datetime) -> Transition:
        if state.timer_started:
            return self.stop(state)
        return self.start(state, now)

    # ----- mode control -----
    def switch_mode(self, state: TimerState, now: datetime) -> Transition:
        if self._blocked(state):
            return Transition(state)
        target = BREAK if state.active_mode == WORK else WORK
        return self._perform_switch(state, target, now)

    def activate_mode(self, state: TimerState, mode: str, now: datetime) -> Transition:
        if mode not in MODES or self._blocked(state):
            return Transition(state)
        if state.is_idle:
            return self._perform_switch(state, mode, now)
        if not state.timer_started and mode == state.active_mode:
            return self.start(replace(state, focused_mode=mode), now)
        return Transition(replace(state, focused_mode=mode))

    def restart_active_timer(
        self, state: TimerState, now: datetime, custom_seconds: Any = None
    ) -> Transition:
        if self._blocked(state):
            return Transition(state)
        custom = None
        if custom_seconds is not None:
            custom = _to_float(custom_seconds)
            if custom is None:
                return Transition(state)

        if state.active_mode == WORK:
            changes = {
                "work_time": max(0.0, custom) if custom is not None else float(
                    self.settings.work_duration
                )
            }
        else:
            # the break countdown is the bank itself and a restart never moves it
            changes = {}

        effects: List[Effect] = []
        new_state = replace(
            state, is_idle=False, timer_started=True, interval_elapsed=0.0, **changes
        )
        new_state = self._begin_session(new_state, now, effects)
        return Transition(new_state, tuple(effects))

    def set_pomodoro_count(self, state: TimerState, count: Any) -> Transition:
        value = _to_int(count)
        if value is None:
            return Transition(state)
        return Transition(replace(state, pomodoro_count=max(0, value)))

    def apply_settings(self, state: TimerState, settings: Settings) -> Transition:
        self.settings = settings
        if not state.timer_started and state.active_mode == WORK and not self._blocked(state):
            return Transition(replace(state, work_time=float(settings.work_duration)))
        return Transition(state)

    def open_grace(self, state: TimerState, context: GraceContext) -> Transition:
        if self._blocked(state) or state.is_idle:
            return Transition(state)
        return Transition(grace.open_grace(state, GraceContext(context)))

    # ----- tick -----
    def tick(self, state: TimerState, now: datetime, seconds: float = 1.0) -> Transition:
        if seconds <= 0 or state.summary_shown:
            return Transition(state)
        if state.all_pause_active:
            return Transition(replace(state, all_pause_time=state.all_pause_time + seconds))
        if state.grace_open:
            return Transition(replace(state, grace_total=state.grace_total + seconds))
        if not state.timer_started or state.is_idle:
            return Transition(state)

        if state.active_mode == WORK:
            step = min(seconds, max(0.0, state.work_time))
            ticked = replace(
                state,
                work_time=max(0.0, state.work_time - seconds),
                interval_elapsed=state.interval_elapsed + step,
            )
            if ticked.work_time > 0:
                return Transition(ticked)
            return self._complete_work(ticked, now)

        effects: List[Effect] = []
        balance = state.break_time - seconds
        if state.break_time > 0 >= balance:
            effects.append(
                Notify(
                    "bank-depleted",
                    "Break bank empty",
                    "Further rest is borrowed from future work.",
                )
            )
        ticked = replace(
            state, break_time=balance, interval_elapsed=state.interval_elapsed + seconds
        )
        return Transition(ticked, tuple(effects))

    def _complete_work(self, state: TimerState, now: datetime) -> Transition:
        s = self.settings
        count = state.pomodoro_count + 1
        is_long = count % s.long_break_interval == 0
        reward = s.long_break_duration if is_long else s.short_break_duration

        effects: List[Effect] = [
            LogActivity(log_entry(WORK, now, state.interval_elapsed, "Pomodoro Complete")),
            CreditWorkUnit(),
            Notify(
                "work-complete",
                "Long Break Earned!" if is_long else "Focus Session Complete",
                f"{reward // 60} minutes added to break bank.",
            ),
        ]
        new_state = replace(
            state,
            pomodoro_count=count,
            break_time=state.break_time + reward,
            interval_elapsed=0.0,
        )
        new_state = grace.open_grace(new_state, GraceContext.AFTER_WORK)
        return Transition(new_state, tuple(effects))
