# -*- coding: utf-8 -*-

"""
All-pause: both clocks frozen while the user is away, plus the end-of-session
transition into the summary screen.
"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional, Sequence

from core.effects import ClearCompletedTasks, LogActivity, SessionEnded, Transition, log_entry
from core.grace import open_grace
from core.session_stats import summarize_session
from domain.models import (
    MODES,
    Category,
    GraceContext,
    LogEntry,
    Settings,
    Task,
    TimerState,
)


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def confirm_all_pause(state: TimerState, now: datetime, reason: str = "") -> Transition:
    if state.is_idle or state.grace_open or state.all_pause_active or state.summary_shown:
        return Transition(state)
    reason = (reason or "").strip()
    new_state = replace(
        state,
        all_pause_active=True,
        all_pause_time=0.0,
        all_pause_reason=reason,
        all_pause_started_at=now,
        all_pause_mode=state.active_mode,
        timer_started=False,
    )
    entry = log_entry("allpause", now, 0.0, reason or "Paused", start=now)
    return Transition(new_state, (LogActivity(entry, attach_task=False),))


def _pause_entry(state: TimerState, now: datetime, kind: str) -> LogEntry:
    return log_entry(
        kind,
        now,
        state.all_pause_time,
        state.all_pause_reason or "Paused",
        start=state.all_pause_started_at,
    )


def _cleared(state: TimerState) -> TimerState:
    return replace(
        state,
        all_pause_active=False,
        all_pause_time=0.0,
        all_pause_reason="",
        all_pause_started_at=None,
        all_pause_mode=None,
    )


def resume_from_pause(
    state: TimerState,
    mode: str,
    adjustment: float,
    now: datetime,
    log_as: Optional[str] = None,
) -> Transition:
    """
    Resume in `mode`, adding the signed `adjustment` to the break bank.
    `log_as` records the paused window as work or break time when the user
    attributed it.
    """
    amount = _to_float(adjustment)
    if not state.all_pause_active or mode not in MODES or amount is None:
        return Transition(state)

    kind = log_as if log_as in MODES else "allpause"
    entry = _pause_entry(state, now, kind)

    new_state = replace(
        _cleared(state),
        active_mode=mode,
        focused_mode=mode,
        is_idle=False,
        timer_started=True,
        break_time=state.break_time + amount,
        interval_elapsed=state.interval_elapsed if mode == state.all_pause_mode else 0.0,
    )
    return Transition(new_state, (LogActivity(entry, attach_task=kind == "work"),))


def end_all_pause(state: TimerState, now: datetime) -> Transition:
    """Leave the pause without picking a mode; the grace window decides."""
    if not state.all_pause_active:
        return Transition(state)
    entry = _pause_entry(state, now, "allpause")
    new_state = open_grace(_cleared(state), GraceContext.AFTER_BREAK)
    return Transition(new_state, (LogActivity(entry, attach_task=False),))


def end_session(
    state: TimerState,
    logs: Iterable[LogEntry],
    tasks: Sequence[Task],
    categories: Sequence[Category],
) -> Transition:
    if state.summary_shown:
        return Transition(state)
    stats = summarize_session(
        logs, tasks, categories, state.pomodoro_count, since=state.session_started_at
    )
    new_state = replace(
        _cleared(state),
        timer_started=False,
        grace_open=False,
        grace_context=None,
        grace_total=0.0,
        summary_shown=True,
        session_stats=stats,
    )
    return Transition(new_state, (SessionEnded(stats),))


def close_summary(state: TimerState, settings: Settings) -> Transition:
    if not state.summary_shown:
        return Transition(state)
    return Transition(TimerState(work_time=settings.work_duration), (ClearCompletedTasks(),))
