# -*- coding: utf-8 -*-

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from domain.models import Category, LogEntry, SessionStats, Task

MERGE_GAP_SECONDS = 120
HISTORY_DAY_START = time(8, 0)
HISTORY_DAY_END = time(18, 0)
HISTORY_LEAD_MINUTES = 30
HISTORY_TAIL_MINUTES = 60
MIN_BLOCK_LENGTH = 10


def _parse(ts: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(ts)
    except (TypeError, ValueError):
        return None


def entries_since(logs: Iterable[LogEntry], since: Optional[datetime]) -> List[LogEntry]:
    if since is None:
        return list(logs)
    out = []
    for entry in logs:
        start = _parse(entry.start)
        if start is not None and start >= since:
            out.append(entry)
    return out


def _category_by_task(tasks: Sequence[Task]) -> Dict[str, Optional[str]]:
    out: Dict[str, Optional[str]] = {}
    for t in tasks:
        out[t.id] = t.category_id
        for s in t.subtasks:
            out[s.id] = t.category_id
    return out


def count_checked(tasks: Sequence[Task]) -> int:
    n = 0
    for t in tasks:
        if t.checked:
            n += 1
        n += sum(1 for s in t.subtasks if s.checked)
    return n


def summarize_session(
    logs: Iterable[LogEntry],
    tasks: Sequence[Task],
    categories: Sequence[Category],
    pomodoro_count: int,
    since: Optional[datetime] = None,
) -> SessionStats:
    entries = entries_since(logs, since)
    work = [e for e in entries if e.type == "work"]
    rest = [e for e in entries if e.type == "break"]

    category_names = {c.id: c.name for c in categories}
    task_category = _category_by_task(tasks)
    per_category: Dict[str, float] = {}
    for e in work:
        if e.task is None:
            continue
        name = category_names.get(task_category.get(e.task.id) or "")
        if name:
            per_category[name] = per_category.get(name, 0.0) + e.duration / 60

    return SessionStats(
        total_work_minutes=sum(e.duration for e in work) / 60,
        total_break_minutes=sum(e.duration for e in rest) / 60,
        tasks_completed=count_checked(tasks),
        pomos_completed=pomodoro_count,
        category_minutes=per_category,
    )


@dataclass
class HistoryBlock:
    start: datetime
    end: datetime
    type: str
    label: str
    sub_label: str = ""
    color: Optional[str] = None
    offset: float = 0.0
    length: float = 0.0


@dataclass(frozen=True)
class HistoryTimeline:
    blocks: List[HistoryBlock]
    origin: datetime
    extent: float


def _label(entry: LogEntry) -> str:
    if entry.task is not None:
        return entry.task.name
    if entry.type == "work":
        return "Focus"
    if entry.type == "break":
        return "Break"
    return "Paused"


def history_timeline(logs: Iterable[LogEntry], day: date, scale: float = 1.0) -> HistoryTimeline:
    """
    Lay the recorded log out on a day view. Neighbouring entries of the same
    type and label less than two minutes apart are drawn as one block.
    """
    min_time = datetime.combine(day, HISTORY_DAY_START)
    max_time = datetime.combine(day, HISTORY_DAY_END)

    blocks: List[HistoryBlock] = []
    for entry in logs:
        start, end = _parse(entry.start), _parse(entry.end)
        if start is None or end is None:
            continue
        min_time = min(min_time, start)
        max_time = max(max_time, end)
        blocks.append(
            HistoryBlock(start, end, entry.type, _label(entry), entry.reason, entry.color)
        )

    blocks.sort(key=lambda b: b.start)
    merged: List[HistoryBlock] = []
    for block in blocks:
        if merged:
            current = merged[-1]
            gap = (block.start - current.end).total_seconds()
            if block.type == current.type and block.label == current.label and gap < MERGE_GAP_SECONDS:
                current.end = max(current.end, block.end)
                continue
        merged.append(block)

    origin = min_time - timedelta(minutes=HISTORY_LEAD_MINUTES)
    for block in merged:
        block.offset = (block.start - origin).total_seconds() / 60 * scale
        block.length = max(
            MIN_BLOCK_LENGTH, (block.end - block.start).total_seconds() / 60 * scale
        )
    total_minutes = (max_time - origin).total_seconds() / 60 + HISTORY_TAIL_MINUTES
    return HistoryTimeline(merged, origin, total_minutes * scale)
