# -*- coding: utf-8 -*-

import datetime as dt
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from core import timer_engine as cmd
from core.bank import bank_delta
from core.effects import (
    ClearCompletedTasks,
    CreditWorkUnit,
    LogActivity,
    Notify,
    SessionEnded,
    SessionStarted,
    Transition,
)
from core.grace import GraceChoice, GraceOption, options
from core.schedule import Timeline
from core.timer_engine import TimerEngine
from domain.models import (
    MODES,
    Category,
    LogEntry,
    ScheduleBreak,
    Settings,
    Task,
    TaskRef,
    TimerState,
)
from services.group_service import GroupService
from services.schedule_service import ScheduleService
from services.stats_service import StatsService
from services.task_service import TaskService
from storage.repos import StateStore

logger = logging.getLogger(__name__)


def _now() -> dt.datetime:
    return dt.datetime.now()


class TimerService:
    """
    Orchestrates:
    - the single TimerState of this session (only this service holds it)
    - TimerEngine transitions and their effects
    - log / task / schedule / lifetime updates
    - persistence of the timer buckets
    - callbacks for UI and group mirroring
    """

    def __init__(
        self,
        store: StateStore,
        task_service: TaskService,
        stats_service: StatsService,
        schedule_service: ScheduleService,
        group_service: Optional[GroupService] = None,
        clock: Callable[[], dt.datetime] = _now,
    ):
        self.store = store
        self.task_service = task_service
        self.stats_service = stats_service
        self.schedule_service = schedule_service
        self.group_service = group_service or GroupService()
        self.clock = clock

        self.settings = Settings.from_dict(store.load("settings"))
        self.engine = TimerEngine(self.settings)
        self.state = self._load_state()

        self._on_tick: Optional[Callable[[TimerState], None]] = None
        self._on_state_change: Optional[Callable[[TimerState], None]] = None
        self._on_alarm: Optional[Callable[[str, Notify], None]] = None

    def _load_state(self) -> TimerState:
        pomodoro = self.store.load("pomodoro")
        timer = self.store.load("timer")
        if not timer:
            return replace(self.engine.initial_state(), pomodoro_count=max(0, int(pomodoro)))
        try:
            return TimerState.from_dict(timer, pomodoro_count=pomodoro)
        except (TypeError, ValueError):
            logger.warning("Timer bucket unreadable, starting fresh")
            return replace(self.engine.initial_state(), pomodoro_count=max(0, int(pomodoro)))

    # ----- Callbacks -----
    def set_on_tick(self, fn: Callable[[TimerState], None]) -> None:
        self._on_tick = fn

    def set_on_state_change(self, fn: Callable[[TimerState], None]) -> None:
        self._on_state_change = fn

    def set_on_alarm(self, fn: Callable[[str, Notify], None]) -> None:
        """fn(alarm_sound, notification)"""
        self._on_alarm = fn

    # ----- Dispatch -----
    def _run(self, command: Any, quiet: bool = False) -> TimerState:
        before = self.state
        transition: Transition = self.engine.dispatch(before, command)
        self.state = transition.state
        if self.state == before and not transition.effects:
            logger.debug("%s ignored in phase %s", type(command).__name__, before.phase)
            return self.state
        if not quiet:
            logger.info("%s: %s -> %s", type(command).__name__, before.phase, self.state.phase)

        for effect in transition.effects:
            self._execute(effect)
        self._persist(before, self.state)

        if self.group_service.active:
            self.group_service.publish(self.sync_snapshot())
        if quiet:
            if self._on_tick:
                self._on_tick(self.state)
            if before.phase != self.state.phase and self._on_state_change:
                self._on_state_change(self.state)
        elif self._on_state_change:
            self._on_state_change(self.state)
        return self.state

    def _execute(self, effect: Any) -> None:
        if isinstance(effect, LogActivity):
            entry = effect.entry
            if effect.attach_task:
                task, color = self.task_service.active_context()
                entry = replace(entry, task=task, color=color)
            self.stats_service.append(entry)
        elif isinstance(effect, CreditWorkUnit):
            self.task_service.credit_work_unit()
        elif isinstance(effect, Notify):
            if self._on_alarm:
                self._on_alarm(self.settings.alarm_sound, effect)
        elif isinstance(effect, SessionStarted):
            self.schedule_service.anchor_to(effect.at)
        elif isinstance(effect, SessionEnded):
            self.stats_service.record_session(effect.stats, self.clock().date())
        elif isinstance(effect, ClearCompletedTasks):
            self.task_service.clear_completed()
            self.schedule_service.anchor_to(self.clock())

    def _persist(self, before: TimerState, after: TimerState) -> None:
        if after.pomodoro_count != before.pomodoro_count:
            self.store.save("pomodoro", after.pomodoro_count)
        if after.to_dict() != before.to_dict():
            self.store.save("timer", after.to_dict())

    # ----- Public API -----
    def get_state(self) -> TimerState:
        return self.state

    def start(self) -> TimerState:
        return self._run(cmd.Start(self.clock()))

    def stop(self) -> TimerState:
        return self._run(cmd.Stop())

    def toggle(self) -> TimerState:
        return self._run(cmd.Toggle(self.clock()))

    def tick(self, seconds: float = 1.0) -> TimerState:
        """Should be called once per second by the UI loop."""
        return self._run(cmd.Tick(self.clock(), seconds), quiet=True)

    def switch_mode(self) -> TimerState:
        return self._run(cmd.SwitchMode(self.clock()))

    def activate_mode(self, mode: str) -> TimerState:
        return self._run(cmd.ActivateMode(mode, self.clock()))

    def restart_active_timer(self, custom_seconds: Any = None) -> TimerState:
        return self._run(cmd.RestartActiveTimer(self.clock(), custom_seconds))

    def set_pomodoro_count(self, count: Any) -> TimerState:
        return self._run(cmd.SetPomodoroCount(count))

    def update_settings(self, **fields: Any) -> Settings:
        self.settings = self.settings.with_updates(**fields)
        self.store.save("settings", self.settings.to_dict())
        self._run(cmd.ApplySettings(self.settings))
        return self.settings

    # ----- Grace -----
    def grace_options(self) -> List[GraceOption]:
        return options(self.state)

    def resolve_grace(self, choice: GraceChoice) -> TimerState:
        return self._run(cmd.ResolveGrace(choice, self.clock()))

    # ----- All-pause -----
    def confirm_all_pause(self, reason: str = "") -> TimerState:
        return self._run(cmd.ConfirmAllPause(self.clock(), reason))

    def resume_from_pause(
        self, mode: str, adjustment: Any = 0.0, log_as: Optional[str] = None
    ) -> TimerState:
        return self._run(cmd.ResumeFromPause(mode, adjustment, self.clock(), log_as))

    def resume_attributed(self, mode: str, attribution: Optional[str]) -> TimerState:
        """Resume, charging or crediting the whole pause as `attribution` (work/break/None)."""
        adjustment = bank_delta(self.state.all_pause_time, attribution)
        return self.resume_from_pause(mode, adjustment, log_as=attribution)

    def end_all_pause(self) -> TimerState:
        return self._run(cmd.EndAllPause(self.clock()))

    # ----- Session -----
    def end_session(self) -> TimerState:
        return self._run(
            cmd.EndSession(
                tuple(self.stats_service.logs),
                tuple(self.task_service.list_tasks()),
                tuple(self.task_service.categories),
            )
        )

    def close_summary(self) -> TimerState:
        return self._run(cmd.CloseSummary())

    def complete_task(self, item_id: str) -> None:
        if not self.task_service.set_checked(item_id, True):
            return
        task, sub = self.task_service.find(item_id)
        item = sub or task
        now = self.clock().isoformat()
        self.stats_service.append(
            LogEntry(
                type="task-complete",
                start=now,
                end=now,
                duration=0.0,
                reason="Task Complete",
                task=TaskRef(id=item.id, name=item.name),
                color=task.color,
            )
        )
        logger.info("Completed %r", item.name)
        if self._on_state_change:
            self._on_state_change(self.state)

    def clear_logs(self) -> None:
        self.stats_service.clear_logs()
        self.set_pomodoro_count(0)

    def hard_reset(self) -> None:
        self.store.clear()
        self.group_service.leave_session()
        self.task_service.reset()
        self.stats_service.reset()
        self.settings = Settings()
        self.engine = TimerEngine(self.settings)
        self.state = self.engine.initial_state()
        self.schedule_service.replace_all(None, [])
        self.schedule_service.anchor_to(self.clock())
        logger.info("Hard reset")
        if self._on_state_change:
            self._on_state_change(self.state)

    def timeline(self, day: Optional[dt.date] = None) -> Timeline:
        return self.schedule_service.timeline(
            self.settings, self.state.pomodoro_count, day or self.clock().date()
        )

    # ----- Group mirroring -----
    def sync_snapshot(self) -> Dict[str, Any]:
        s = self.state
        return {
            "settings": self.settings.to_dict(),
            "tasks": [t.to_dict() for t in self.task_service.list_tasks()],
            "categories": [
                {"id": c.id, "name": c.name, "color": c.color}
                for c in self.task_service.categories
            ],
            "logs": [e.to_dict() for e in self.stats_service.logs],
            "work_time": s.work_time,
            "break_time": s.break_time,
            "active_mode": s.active_mode,
            "timer_started": s.timer_started,
            "is_idle": s.is_idle,
            "pomodoro_count": s.pomodoro_count,
            "all_pause_active": s.all_pause_active,
            "all_pause_reason": s.all_pause_reason,
            "grace_open": s.grace_open,
            "grace_context": s.grace_context.value if s.grace_context else None,
            "schedule_breaks": [b.to_dict() for b in self.schedule_service.breaks],
            "schedule_start_time": self.schedule_service.start_time,
        }

    def _parse_remote(self, accepted: Dict[str, Any]) -> Dict[str, Any]:
        """Convert an accepted peer snapshot into local values. Raises on malformed input."""
        s = self.state
        parsed: Dict[str, Any] = {}
        if "settings" in accepted:
            parsed["settings"] = self.settings.with_updates(**dict(accepted["settings"]))
        if "tasks" in accepted:
            parsed["tasks"] = [Task.from_dict(t) for t in accepted["tasks"]]
            parsed["categories"] = [Category(**c) for c in accepted["categories"]]
        if "logs" in accepted:
            parsed["logs"] = [LogEntry.from_dict(e) for e in accepted["logs"]]
        if "schedule_breaks" in accepted or "schedule_start_time" in accepted:
            start = accepted.get("schedule_start_time")
            breaks = [ScheduleBreak.from_dict(b) for b in accepted.get("schedule_breaks") or []]
            ScheduleService.validate(start, breaks)
            parsed["schedule"] = (start, breaks)

        timer = accepted.get("timer")
        if timer:
            mode = timer.get("active_mode", s.active_mode)
            if mode not in MODES:
                raise ValueError(f"Unknown timer mode {mode!r}")
            parsed["timer"] = {
                "work_time": float(timer.get("work_time", s.work_time)),
                "break_time": float(timer.get("break_time", s.break_time)),
                "active_mode": mode,
                "timer_started": bool(timer.get("timer_started", s.timer_started)),
            }
        if "pomodoro_count" in accepted:
            parsed["pomodoro_count"] = max(0, int(accepted["pomodoro_count"]))
        return parsed

    def apply_remote_state(self, remote: Dict[str, Any]) -> None:
        """
        Mirror a peer snapshot. The whole payload is checked before anything
        is written; a malformed one sets `peer_error` and changes nothing.
        """
        s = self.state
        try:
            accepted = self.group_service.filter_remote_state(
                remote, s.work_time, s.active_mode, s.timer_started
            )
            parsed = self._parse_remote(accepted)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed group update: %s", e)
            self.group_service.peer_error = "Received an unreadable update."
            return

        if "settings" in parsed:
            self.settings = parsed["settings"]
            self.store.save("settings", self.settings.to_dict())
            self.engine.settings = self.settings
        if "tasks" in parsed:
            self.task_service.replace_all(parsed["tasks"], parsed["categories"])
        if "logs" in parsed:
            self.stats_service.logs = parsed["logs"]
            self.store.save("log", [e.to_dict() for e in parsed["logs"]])
        if "schedule" in parsed:
            self.schedule_service.replace_all(*parsed["schedule"])

        before = self.state
        timer = parsed.get("timer")
        if timer:
            self.state = replace(
                self.state,
                is_idle=s.is_idle and not timer["timer_started"],
                **timer,
            )
        if "pomodoro_count" in parsed:
            self.state = replace(self.state, pomodoro_count=parsed["pomodoro_count"])
        self._persist(before, self.state)
        if self._on_state_change:
            self._on_state_change(self.state)
