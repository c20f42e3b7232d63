from dataclasses import replace
from datetime import timedelta

import pytest

from core import all_pause
from core.effects import ClearCompletedTasks, SessionEnded
from domain.models import BREAK, WORK, GraceContext, LogEntry, TaskRef, Task, Category


@pytest.fixture
def working(engine, t0):
    s = engine.start(engine.initial_state(), t0).state
    return replace(s, work_time=1000, break_time=120, interval_elapsed=500)


def test_confirm_freezes_both_clocks(engine, working, t0):
    t = all_pause.confirm_all_pause(working, t0, "  Lunch ")
    s = t.state
    assert s.all_pause_active
    assert s.all_pause_reason == "Lunch"
    assert s.all_pause_mode == WORK
    assert not s.timer_started
    assert s.phase == "allpaused"

    (log,) = t.effects
    assert log.entry.type == "allpause"
    assert log.entry.duration == 0
    assert log.entry.reason == "Lunch"
    assert not log.attach_task

    s = engine.tick(s, t0, 600).state
    assert s.all_pause_time == 600
    assert s.work_time == 1000
    assert s.break_time == 120


def test_confirm_ignored_when_idle_or_in_grace(engine, working, t0):
    idle = engine.initial_state()
    assert all_pause.confirm_all_pause(idle, t0).state == idle
    in_grace = replace(working, grace_open=True, grace_context=GraceContext.AFTER_WORK)
    assert all_pause.confirm_all_pause(in_grace, t0).state == in_grace


def test_resume_as_work_credits_bank_and_logs_work(working, t0):
    paused = replace(all_pause.confirm_all_pause(working, t0).state, all_pause_time=600)
    t = all_pause.resume_from_pause(paused, WORK, 120.0, t0 + timedelta(minutes=10), log_as=WORK)

    assert t.state.break_time == pytest.approx(240.0)
    assert t.state.active_mode == WORK
    assert t.state.is_running
    assert not t.state.all_pause_active
    assert t.state.all_pause_time == 0
    assert t.state.interval_elapsed == 500

    (log,) = t.effects
    assert log.entry.type == "work"
    assert log.entry.duration == 600
    assert log.entry.start == t0.isoformat()
    assert log.attach_task


def test_resume_unattributed_logs_allpause(working, t0):
    paused = replace(all_pause.confirm_all_pause(working, t0).state, all_pause_time=90)
    t = all_pause.resume_from_pause(paused, BREAK, 0, t0)
    assert t.state.active_mode == BREAK
    assert t.state.break_time == 120
    assert t.state.interval_elapsed == 0
    assert t.effects[0].entry.type == "allpause"


def test_resume_rejects_bad_input(working, t0):
    paused = all_pause.confirm_all_pause(working, t0).state
    assert all_pause.resume_from_pause(paused, "nap", 0, t0).state == paused
    assert all_pause.resume_from_pause(paused, WORK, "lots", t0).state == paused
    assert all_pause.resume_from_pause(working, WORK, 0, t0).state == working


def test_end_all_pause_opens_grace_after_break(working, t0):
    paused = replace(all_pause.confirm_all_pause(working, t0).state, all_pause_time=300)
    t = all_pause.end_all_pause(paused, t0 + timedelta(minutes=5))
    assert not t.state.all_pause_active
    assert t.state.grace_open
    assert t.state.grace_context == GraceContext.AFTER_BREAK
    assert t.effects[0].entry.duration == 300


def test_end_session_summarizes_since_session_start(working, t0):
    before = LogEntry("work", (t0 - timedelta(hours=1)).isoformat(), t0.isoformat(), 1500)
    during = LogEntry(
        "work",
        t0.isoformat(),
        (t0 + timedelta(minutes=25)).isoformat(),
        1500,
        task=TaskRef("t1", "Write"),
    )
    rest = LogEntry("break", (t0 + timedelta(minutes=25)).isoformat(), t0.isoformat(), 300)
    tasks = [Task(id="t1", name="Write", checked=True, category_id="c1")]
    cats = [Category(id="c1", name="Deep")]

    t = all_pause.end_session(replace(working, pomodoro_count=1), [before, during, rest], tasks, cats)
    stats = t.state.session_stats
    assert t.state.summary_shown
    assert t.state.phase == "summary"
    assert stats.total_work_minutes == pytest.approx(25.0)
    assert stats.total_break_minutes == pytest.approx(5.0)
    assert stats.tasks_completed == 1
    assert stats.pomos_completed == 1
    assert stats.category_minutes == {"Deep": pytest.approx(25.0)}
    assert t.effects == (SessionEnded(stats),)


def test_close_summary_resets_session(working, settings):
    ended = all_pause.end_session(replace(working, pomodoro_count=3), [], [], []).state
    t = all_pause.close_summary(ended, settings)
    assert t.state.is_idle
    assert t.state.pomodoro_count == 0
    assert t.state.break_time == 0
    assert t.state.work_time == settings.work_duration
    assert t.state.session_started_at is None
    assert t.effects == (ClearCompletedTasks(),)

    assert all_pause.close_summary(working, settings).state == working
