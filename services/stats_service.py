# -*- coding: utf-8 -*-

import datetime as dt
import logging
from typing import List, Optional

from core.session_stats import HistoryTimeline, history_timeline
from domain.models import LifetimeStats, LogEntry, SessionStats
from storage.repos import StateStore

logger = logging.getLogger(__name__)


def _fmt_minutes(minutes: float) -> str:
    minutes = max(0, int(minutes))
    h, m = divmod(minutes, 60)
    if h > 0:
        return f"{h}h {m:02d}m"
    return f"{m}m"


def _fmt_clock(ts: str) -> str:
    try:
        return dt.datetime.fromisoformat(ts).strftime("%H:%M")
    except ValueError:
        return "--:--"


def _fmt_duration(sec: float) -> str:
    sec = max(0, int(sec))
    if sec < 60:
        return f"{sec}s"
    return f"{sec // 60}m {sec % 60}s"


class StatsService:
    """Append-only activity log, lifetime totals and the markdown reports built from them."""

    def __init__(self, store: StateStore):
        self.store = store
        self.logs: List[LogEntry] = []
        self.lifetime = LifetimeStats.from_dict(store.load("lifetime"))
        for raw in store.load("log"):
            try:
                self.logs.append(LogEntry.from_dict(raw))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable log entry %r", raw)

    # ---- log ----
    def append(self, entry: LogEntry) -> None:
        # newest first
        self.logs.insert(0, entry)
        self.store.save("log", [e.to_dict() for e in self.logs])

    def clear_logs(self) -> None:
        self.logs = []
        self.store.save("log", [])

    def entries_on(self, day: dt.date) -> List[LogEntry]:
        out = []
        for e in self.logs:
            try:
                if dt.datetime.fromisoformat(e.start).date() == day:
                    out.append(e)
            except ValueError:
                continue
        return out

    def total_day_work_sec(self, day: Optional[dt.date] = None) -> int:
        day = day or dt.date.today()
        return int(sum(e.duration for e in self.entries_on(day) if e.type == "work"))

    def total_task_work_sec(self, task_id: str) -> int:
        return int(
            sum(e.duration for e in self.logs if e.type == "work" and e.task and e.task.id == task_id)
        )

    def history(self, day: Optional[dt.date] = None, scale: float = 1.0) -> HistoryTimeline:
        return history_timeline(self.logs, day or dt.date.today(), scale)

    # ---- lifetime ----
    def record_session(self, stats: SessionStats, day: Optional[dt.date] = None) -> LifetimeStats:
        day = day or dt.date.today()
        life = self.lifetime
        life.total_focus_hours += stats.total_work_minutes / 60
        life.total_sessions += 1
        life.total_pomos += stats.pomos_completed

        last = None
        if life.last_active_date:
            try:
                last = dt.date.fromisoformat(life.last_active_date)
            except ValueError:
                last = None
        if last == day:
            life.current_streak = max(1, life.current_streak)
        elif last == day - dt.timedelta(days=1):
            life.current_streak += 1
        else:
            life.current_streak = 1
        life.best_streak = max(life.best_streak, life.current_streak)
        life.last_active_date = day.isoformat()

        self.store.save("lifetime", life.to_dict())
        logger.info(
            "Session recorded: %.1f work min, %d pomos, streak %d",
            stats.total_work_minutes,
            stats.pomos_completed,
            life.current_streak,
        )
        return life

    def reset(self) -> None:
        self.logs = []
        self.lifetime = LifetimeStats()

    # ---- reports ----
    def session_report_md(self, stats: SessionStats) -> str:
        lines = [
            "# Session Complete",
            "",
            "| Focus | Break | Pomos | Tasks Done |",
            "|---|---|---|---|",
            f"| {_fmt_minutes(stats.total_work_minutes)} "
            f"| {_fmt_minutes(stats.total_break_minutes)} "
            f"| {stats.pomos_completed} | {stats.tasks_completed} |",
        ]
        if stats.category_minutes:
            lines += ["", "## Focus Distribution", ""]
            for name, minutes in sorted(stats.category_minutes.items(), key=lambda kv: -kv[1]):
                lines.append(f"- **{name}** {round(minutes)}m")

        life = self.lifetime
        lines += [
            "",
            "## Lifetime",
            "",
            f"- Focus hours: {life.total_focus_hours:.1f}",
            f"- Sessions: {life.total_sessions}",
            f"- Pomodoros: {life.total_pomos}",
            f"- Streak: {life.current_streak} (best {life.best_streak})",
        ]
        return "\n".join(lines)

    def day_log_md(self, day: Optional[dt.date] = None) -> str:
        day = day or dt.date.today()
        entries = self.entries_on(day)
        if not entries:
            return f"## Log for {day.isoformat()}\n\nNothing recorded yet."
        lines = [f"## Log for {day.isoformat()}", "", "| Time | Type | Task | Duration | Note |", "|---|---|---|---|---|"]
        for e in reversed(entries):
            lines.append(
                f"| {_fmt_clock(e.start)}-{_fmt_clock(e.end)} | {e.type} "
                f"| {e.task.name if e.task else ''} | {_fmt_duration(e.duration)} | {e.reason} |"
            )
        return "\n".join(lines)
