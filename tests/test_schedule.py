from datetime import date, datetime, time

import pytest

from core.schedule import (
    PIXELS_PER_MINUTE,
    anchor_break,
    flatten_work_units,
    generate_timeline,
    parse_hhmm,
    resolve_collision,
    to_minutes,
)
from domain.models import ScheduleBreak, Settings, Subtask, Task

DAY = date(2024, 5, 6)


def hm(block_time):
    return block_time.strftime("%H:%M")


def lunch(start="12:00", minutes=30, label="Lunch", bid="b1"):
    return ScheduleBreak(id=bid, start_time=start, duration=minutes, label=label)


def test_cadence_continues_from_pomodoro_count():
    tasks = [Task(id="a", name="A", estimated=2, color="#f00")]
    tl = generate_timeline(tasks, Settings(), [], "08:00", 3, DAY)

    assert [(b.kind, hm(b.start), hm(b.end)) for b in tl.blocks] == [
        ("work", "08:00", "08:25"),
        ("break", "08:25", "08:40"),
        ("work", "08:40", "09:05"),
        ("break", "09:05", "09:10"),
    ]
    assert tl.blocks[1].is_long and tl.blocks[1].label == "Long Break"
    assert tl.blocks[3].label == "Short Break"
    assert tl.blocks[0].label == "A"
    assert tl.blocks[0].task_id == "a"
    assert tl.blocks[0].color == "#f00"
    assert tl.origin == datetime(2024, 5, 6, 8, 0)


def test_offsets_are_minutes_times_scale():
    tasks = [Task(id="a", name="A", estimated=1)]
    tl = generate_timeline(tasks, Settings(), [], "08:00", 0, DAY)
    work, brk = tl.blocks
    assert work.offset == 0
    assert work.length == 25 * PIXELS_PER_MINUTE
    assert brk.offset == 25 * PIXELS_PER_MINUTE


def test_work_is_pushed_past_pinned_break():
    tasks = [Task(id="a", name="A", estimated=1)]
    tl = generate_timeline(tasks, Settings(), [lunch()], "11:50", 0, DAY)

    assert [(b.kind, hm(b.start)) for b in tl.blocks] == [
        ("scheduled-break", "12:00"),
        ("work", "12:30"),
        ("break", "12:55"),
    ]
    assert tl.blocks[0].label == "Lunch"


def test_pinned_break_covering_origin_delays_first_block():
    tasks = [Task(id="a", name="A", estimated=1)]
    tl = generate_timeline(tasks, Settings(), [lunch("08:00", 30)], "08:00", 0, DAY)

    assert [(b.kind, hm(b.start), hm(b.end)) for b in tl.blocks] == [
        ("scheduled-break", "08:00", "08:30"),
        ("work", "08:30", "08:55"),
        ("break", "08:55", "09:00"),
    ]


def test_collisions_resolve_transitively():
    pinned = [lunch("12:30", 30, "Walk", "b2"), lunch("12:00", 30, "Lunch", "b1")]
    tasks = [Task(id="a", name="A", estimated=1)]
    tl = generate_timeline(tasks, Settings(), pinned, "11:50", 0, DAY)
    work = [b for b in tl.blocks if b.kind == "work"]
    assert hm(work[0].start) == "13:00"


def test_generated_blocks_never_overlap_pinned():
    pinned = [lunch("10:10", 20), lunch("12:00", 45, "Lunch", "b2"), lunch("15:00", 10, "Tea", "b3")]
    tasks = [Task(id="a", name="A", estimated=12)]
    tl = generate_timeline(tasks, Settings(), pinned, "09:00", 0, DAY)

    fixed = [(b.start, b.end) for b in tl.blocks if b.kind == "scheduled-break"]
    assert len(fixed) == 3
    for b in tl.blocks:
        if b.kind == "scheduled-break":
            continue
        for start, end in fixed:
            assert b.end <= start or b.start >= end


def test_blocks_are_sorted_by_start():
    tasks = [Task(id="a", name="A", estimated=6)]
    tl = generate_timeline(tasks, Settings(), [lunch("10:00", 15)], "08:00", 0, DAY)
    starts = [b.start for b in tl.blocks]
    assert starts == sorted(starts)


def test_earlier_pinned_time_anchors_to_next_day():
    origin = datetime(2024, 5, 6, 14, 0)
    start, end = anchor_break(lunch("09:00"), origin)
    assert start == datetime(2024, 5, 7, 9, 0)
    assert end == datetime(2024, 5, 7, 9, 30)

    tl = generate_timeline([], Settings(), [lunch("09:00")], "14:00", 0, DAY)
    assert tl.blocks[0].start == datetime(2024, 5, 7, 9, 0)


def test_empty_queue_gives_full_day_extent():
    tl = generate_timeline([], Settings(), [], "08:00", 0, DAY)
    assert tl.blocks == []
    assert tl.extent == 1440 * PIXELS_PER_MINUTE


def test_long_queue_extends_past_a_day():
    tasks = [Task(id="a", name="A", estimated=60)]
    tl = generate_timeline(tasks, Settings(), [], "00:00", 0, DAY)
    last_end = (tl.blocks[-1].end - tl.origin).total_seconds() / 60
    assert last_end > 1440
    assert tl.extent == (last_end + 60) * PIXELS_PER_MINUTE


def test_generation_is_deterministic():
    tasks = [Task(id="a", name="A", estimated=3)]
    args = (tasks, Settings(), [lunch()], "09:30", 2, DAY)
    assert generate_timeline(*args) == generate_timeline(*args)


def test_durations_round_to_whole_minutes():
    assert to_minutes(1500) == 25
    assert to_minutes(100) == 2
    assert to_minutes(90) == 2
    assert to_minutes(150) == 3
    assert to_minutes(20) == 1
    tasks = [Task(id="a", name="A", estimated=1)]
    tl = generate_timeline(tasks, Settings(work_duration=100), [], "08:00", 0, DAY)
    assert tl.blocks[0].duration == 2


def test_flatten_expands_subtasks_and_skips_checked():
    tasks = [
        Task(
            id="p",
            name="Parent",
            estimated=3,
            color="#0f0",
            subtasks=[
                Subtask(id="s1", name="One", estimated=2, completed=1),
                Subtask(id="s2", name="Two", estimated=1, checked=True),
            ],
        ),
        Task(id="done", name="Done", checked=True),
        Task(id="q", name="Q", estimated=2, completed=2),
    ]
    units = flatten_work_units(tasks)
    assert [(u.task_id, u.subtask_id, u.name) for u in units] == [
        ("p", "s1", "One"),
        ("q", None, "Q"),
    ]
    assert units[0].color == "#0f0"


def test_resolve_collision_without_overlap_keeps_cursor():
    cursor = datetime(2024, 5, 6, 8, 0)
    pinned = [(datetime(2024, 5, 6, 8, 25), datetime(2024, 5, 6, 8, 40))]
    assert resolve_collision(cursor, 25, pinned) == cursor
    assert resolve_collision(cursor, 26, pinned) == datetime(2024, 5, 6, 8, 40)


def test_parse_hhmm():
    assert parse_hhmm("7:05") == time(7, 5)
    for bad in ("25:00", "12:60", "noon", ""):
        with pytest.raises(ValueError):
            parse_hhmm(bad)
