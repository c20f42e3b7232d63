# -*- coding: utf-8 -*-

"""
Projection of the remaining work queue onto the clock.

generate_timeline() is a pure function of its arguments: it never reads the
current time, so identical inputs always give identical block lists.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Sequence, Tuple

from domain.models import ScheduleBreak, Settings, Task, TimeBlock, WorkUnit

PIXELS_PER_MINUTE = 2.0
DAY_MINUTES = 24 * 60
TAIL_MARGIN_MINUTES = 60

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


@dataclass(frozen=True)
class Timeline:
    origin: datetime
    blocks: List[TimeBlock]
    extent: float


def parse_hhmm(value: str) -> time:
    m = _HHMM.match(value or "")
    if not m:
        raise ValueError(f"Invalid time {value!r}. Use HH:MM.")
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time {value!r}. Use HH:MM.")
    return time(hour, minute)


def to_minutes(seconds: int) -> int:
    # half minutes round up, so 90 s and 150 s land on 2 and 3
    return max(1, math.floor(seconds / 60 + 0.5))


def flatten_work_units(tasks: Sequence[Task]) -> List[WorkUnit]:
    """Unchecked tasks in queue order; a task with subtasks yields its subtasks' units instead."""
    units: List[WorkUnit] = []
    for t in tasks:
        if t.checked:
            continue
        if t.subtasks:
            for s in t.subtasks:
                if s.checked:
                    continue
                units.extend(
                    WorkUnit(t.id, s.id, s.name, t.color) for _ in range(s.remaining_units)
                )
        else:
            units.extend(WorkUnit(t.id, None, t.name, t.color) for _ in range(t.remaining_units))
    return units


def anchor_break(brk: ScheduleBreak, origin: datetime) -> Tuple[datetime, datetime]:
    """A pinned time-of-day earlier than the origin's belongs to the next day."""
    start = datetime.combine(origin.date(), parse_hhmm(brk.start_time))
    if start.time() < origin.time():
        start += timedelta(days=1)
    return start, start + timedelta(minutes=brk.duration)


def resolve_collision(
    cursor: datetime, minutes: int, pinned: Iterable[Tuple[datetime, datetime]]
) -> datetime:
    """
    Push a block of `minutes` starting at `cursor` past every pinned interval
    it would overlap. Repeats until stable, since clearing one pinned break
    can land the block on another.
    """
    pinned = list(pinned)
    length = timedelta(minutes=minutes)
    moved = True
    while moved:
        moved = False
        for start, end in pinned:
            if cursor < end and cursor + length > start:
                cursor = end
                moved = True
    return cursor


def _block(
    kind: str,
    start: datetime,
    minutes: int,
    label: str,
    origin: datetime,
    scale: float,
    **extra,
) -> TimeBlock:
    offset_min = (start - origin).total_seconds() / 60
    return TimeBlock(
        kind=kind,
        start=start,
        end=start + timedelta(minutes=minutes),
        duration=minutes,
        label=label,
        offset=offset_min * scale,
        length=minutes * scale,
        **extra,
    )


def generate_timeline(
    tasks: Sequence[Task],
    settings: Settings,
    pinned_breaks: Sequence[ScheduleBreak],
    start_time: str,
    pomodoro_count: int,
    day: date,
    scale: float = PIXELS_PER_MINUTE,
) -> Timeline:
    origin = datetime.combine(day, parse_hhmm(start_time))
    anchored = [(brk, *anchor_break(brk, origin)) for brk in pinned_breaks if brk.duration > 0]
    intervals = [(start, end) for _, start, end in anchored]

    work_min = to_minutes(settings.work_duration)
    short_min = to_minutes(settings.short_break_duration)
    long_min = to_minutes(settings.long_break_duration)
    interval = max(1, settings.long_break_interval)

    generated: List[TimeBlock] = []
    cursor = origin
    virtual_count = max(0, pomodoro_count)
    for unit in flatten_work_units(tasks):
        cursor = resolve_collision(cursor, work_min, intervals)
        generated.append(
            _block(
                "work", cursor, work_min, unit.name, origin, scale,
                task_id=unit.subtask_id or unit.task_id, color=unit.color,
            )
        )
        cursor += timedelta(minutes=work_min)
        virtual_count += 1

        is_long = virtual_count % interval == 0
        break_min = long_min if is_long else short_min
        cursor = resolve_collision(cursor, break_min, intervals)
        generated.append(
            _block(
                "break", cursor, break_min, "Long Break" if is_long else "Short Break",
                origin, scale, is_long=is_long,
            )
        )
        cursor += timedelta(minutes=break_min)

    pinned_blocks = [
        _block("scheduled-break", start, brk.duration, brk.label, origin, scale)
        for brk, start, _ in anchored
        if start >= origin
    ]

    blocks = sorted(generated + pinned_blocks, key=lambda b: b.start)
    last_end = max(((b.end - origin).total_seconds() / 60 for b in blocks), default=0)
    extent = max(DAY_MINUTES, last_end + TAIL_MARGIN_MINUTES) * scale
    return Timeline(origin=origin, blocks=blocks, extent=extent)
