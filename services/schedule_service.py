# -*- coding: utf-8 -*-

import datetime as dt
import logging
from typing import Any, List, Optional

from core.schedule import PIXELS_PER_MINUTE, Timeline, generate_timeline, parse_hhmm
from domain.models import ScheduleBreak, Settings, new_id
from services.task_service import TaskService
from storage.repos import StateStore

logger = logging.getLogger(__name__)


def _hhmm(moment: dt.datetime) -> str:
    return f"{moment.hour:02d}:{moment.minute:02d}"


class ScheduleService:
    """Schedule start time and pinned breaks, plus the projected timeline."""

    def __init__(self, store: StateStore, task_service: TaskService):
        self.store = store
        self.task_service = task_service
        self.breaks: List[ScheduleBreak] = []
        self.start_time: str = _hhmm(dt.datetime.now())
        self._load()

    def _load(self) -> None:
        data = self.store.load("schedule")
        start = data.get("start_time")
        if start:
            try:
                parse_hhmm(start)
                self.start_time = start
            except ValueError:
                logger.warning("Ignoring stored schedule start %r", start)
        for raw in data.get("breaks") or []:
            try:
                brk = ScheduleBreak.from_dict(raw)
                parse_hhmm(brk.start_time)
            except (AttributeError, KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable pinned break %r", raw)
                continue
            if brk.duration > 0:
                self.breaks.append(brk)

    def _save(self) -> None:
        self.store.save(
            "schedule",
            {"start_time": self.start_time, "breaks": [b.to_dict() for b in self.breaks]},
        )

    def set_start_time(self, value: str) -> None:
        parse_hhmm(value)
        self.start_time = value.strip()
        self._save()

    def anchor_to(self, moment: dt.datetime) -> None:
        self.start_time = _hhmm(moment)
        self._save()

    def add_break(self, start_time: str, duration: Any, label: str = "Break") -> ScheduleBreak:
        parse_hhmm(start_time)
        try:
            minutes = int(duration)
        except (TypeError, ValueError):
            raise ValueError("Break duration must be a whole number of minutes.")
        if minutes <= 0:
            raise ValueError("Break duration must be positive.")

        brk = ScheduleBreak(
            id=new_id(),
            start_time=start_time.strip(),
            duration=minutes,
            label=(label or "").strip() or "Break",
        )
        self.breaks.append(brk)
        self.breaks.sort(key=lambda b: parse_hhmm(b.start_time))
        self._save()
        logger.info("Pinned break %s at %s for %d min", brk.label, brk.start_time, minutes)
        return brk

    def delete_break(self, break_id: str) -> None:
        self.breaks = [b for b in self.breaks if b.id != break_id]
        self._save()

    @staticmethod
    def validate(start_time: Optional[str], breaks: List[ScheduleBreak]) -> None:
        """Raise ValueError unless the start time and every break are usable."""
        if start_time:
            parse_hhmm(start_time)
        for brk in breaks:
            parse_hhmm(brk.start_time)
            if brk.duration <= 0:
                raise ValueError(f"Break {brk.label!r} has no duration.")

    def replace_all(self, start_time: Optional[str], breaks: List[ScheduleBreak]) -> None:
        self.validate(start_time, breaks)
        if start_time:
            self.start_time = start_time.strip()
        self.breaks = sorted(breaks, key=lambda b: parse_hhmm(b.start_time))
        self._save()

    def timeline(
        self,
        settings: Settings,
        pomodoro_count: int,
        day: Optional[dt.date] = None,
        scale: float = PIXELS_PER_MINUTE,
    ) -> Timeline:
        return generate_timeline(
            self.task_service.list_tasks(),
            settings,
            self.breaks,
            self.start_time,
            pomodoro_count,
            day or dt.date.today(),
            scale,
        )
