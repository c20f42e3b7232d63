from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from core.effects import CreditWorkUnit, LogActivity, Notify, SessionStarted
from core.timer_engine import (
    ActivateMode,
    ApplySettings,
    RestartActiveTimer,
    SetPomodoroCount,
    Start,
    Stop,
    SwitchMode,
    Tick,
    TimerEngine,
)
from domain.models import BREAK, WORK, GraceContext, Settings


def running(engine, now, **changes):
    state = engine.start(engine.initial_state(), now).state
    return replace(state, **changes)


def test_initial_state_is_idle_with_full_work_interval(engine):
    s = engine.initial_state()
    assert s.is_idle
    assert not s.timer_started
    assert s.work_time == 1500
    assert s.break_time == 0
    assert s.phase == "idle"


def test_start_begins_session_once(engine, t0):
    t = engine.start(engine.initial_state(), t0)
    assert t.state.is_running
    assert t.state.session_started_at == t0
    assert t.effects == (SessionStarted(t0),)

    stopped = engine.stop(t.state).state
    again = engine.start(stopped, t0 + timedelta(minutes=5))
    assert again.effects == ()
    assert again.state.session_started_at == t0


def test_tick_counts_work_down(engine, t0):
    s = running(engine, t0)
    s = engine.tick(s, t0, 1).state
    assert s.work_time == 1499
    assert s.interval_elapsed == 1
    assert s.break_time == 0


def test_tick_ignored_when_stopped_or_idle(engine, t0):
    idle = engine.initial_state()
    assert engine.tick(idle, t0).state == idle
    stopped = engine.stop(running(engine, t0)).state
    assert engine.tick(stopped, t0).state == stopped


def test_work_completion_earns_short_break_and_opens_grace(engine, t0):
    s = running(engine, t0, work_time=1, interval_elapsed=1499)
    t = engine.tick(s, t0)

    assert t.state.pomodoro_count == 1
    assert t.state.break_time == 300
    assert t.state.work_time == 0
    assert t.state.grace_open
    assert t.state.grace_context == GraceContext.AFTER_WORK
    assert not t.state.timer_started

    log, credit, note = t.effects
    assert isinstance(log, LogActivity)
    assert log.entry.type == "work"
    assert log.entry.duration == 1500
    assert log.entry.reason == "Pomodoro Complete"
    assert isinstance(credit, CreditWorkUnit)
    assert note == Notify(
        "work-complete", "Focus Session Complete", "5 minutes added to break bank."
    )


def test_every_fourth_completion_earns_long_break(engine, t0):
    s = running(engine, t0, work_time=1, pomodoro_count=3, break_time=-60)
    t = engine.tick(s, t0)
    assert t.state.pomodoro_count == 4
    assert t.state.break_time == 900 - 60
    assert t.effects[2].title == "Long Break Earned!"
    assert t.effects[2].body == "15 minutes added to break bank."


def test_break_spends_bank_into_debt_without_grace(engine, t0):
    s = running(engine, t0, active_mode=BREAK, break_time=2)
    s = engine.tick(s, t0).state
    assert s.break_time == 1

    t = engine.tick(s, t0)
    assert t.state.break_time == 0
    assert [e.kind for e in t.effects] == ["bank-depleted"]

    t = engine.tick(t.state, t0, 5)
    assert t.state.break_time == -5
    assert t.effects == ()
    assert not t.state.grace_open
    assert t.state.is_running


def test_debt_survives_mode_switches_until_work_repays_it(engine, t0):
    s = running(engine, t0, active_mode=BREAK, break_time=10)
    s = engine.tick(s, t0, 70).state
    assert s.break_time == -60

    s = engine.dispatch(s, SwitchMode(t0)).state
    assert s.active_mode == WORK
    s = engine.dispatch(s, SwitchMode(t0)).state
    assert s.active_mode == BREAK
    assert s.break_time == -60

    s = engine.dispatch(s, SwitchMode(t0)).state
    s = engine.tick(s, t0, 5).state
    assert s.break_time == -60

    t = engine.tick(replace(s, work_time=1), t0)
    assert t.state.break_time == -60 + 300


def test_switch_mode_logs_elapsed_interval(engine, t0):
    s = running(engine, t0)
    for _ in range(10):
        s = engine.tick(s, t0).state
    t = engine.dispatch(s, SwitchMode(t0 + timedelta(seconds=10)))

    assert t.state.active_mode == BREAK
    assert t.state.interval_elapsed == 0
    assert t.state.work_time == 1490
    log = t.effects[0]
    assert log.entry.type == WORK
    assert log.entry.duration == 10
    assert log.entry.reason == "Switch"
    assert t.effects[1].kind == "switch"


def test_switch_from_idle_starts_the_other_mode(engine, t0):
    t = engine.dispatch(engine.initial_state(), SwitchMode(t0))
    assert t.state.active_mode == BREAK
    assert t.state.is_running
    assert not any(isinstance(e, LogActivity) for e in t.effects)
    assert SessionStarted(t0) in t.effects


def test_activate_mode(engine, t0):
    t = engine.dispatch(engine.initial_state(), ActivateMode(BREAK, t0))
    assert t.state.active_mode == BREAK
    assert t.state.is_running

    stopped = engine.stop(running(engine, t0)).state
    resumed = engine.dispatch(stopped, ActivateMode(WORK, t0)).state
    assert resumed.is_running

    run = running(engine, t0)
    focused = engine.dispatch(run, ActivateMode(BREAK, t0)).state
    assert focused.active_mode == WORK
    assert focused.focused_mode == BREAK

    assert engine.dispatch(run, ActivateMode("nap", t0)).state == run


def test_restart_active_timer(engine, t0):
    s = running(engine, t0, work_time=100, break_time=40)
    assert engine.dispatch(s, RestartActiveTimer(t0)).state.work_time == 1500
    assert engine.dispatch(s, RestartActiveTimer(t0, 60)).state.work_time == 60
    assert engine.dispatch(s, RestartActiveTimer(t0, "soon")).state == s

    brk = replace(s, active_mode=BREAK, interval_elapsed=12)
    restarted = engine.dispatch(brk, RestartActiveTimer(t0, -30)).state
    assert restarted.break_time == 40
    assert restarted.interval_elapsed == 0
    assert engine.dispatch(brk, RestartActiveTimer(t0)).state.break_time == 40


def test_set_pomodoro_count_clamps_and_ignores_garbage(engine):
    s = engine.initial_state()
    assert engine.dispatch(s, SetPomodoroCount(-3)).state.pomodoro_count == 0
    assert engine.dispatch(s, SetPomodoroCount("7")).state.pomodoro_count == 7
    assert engine.dispatch(s, SetPomodoroCount("x")).state == s


def test_apply_settings_resets_idle_work_interval(engine, t0):
    s = engine.dispatch(engine.initial_state(), ApplySettings(Settings(work_duration=600))).state
    assert s.work_time == 600

    run = running(engine, t0, work_time=50)
    assert engine.dispatch(run, ApplySettings(Settings(work_duration=900))).state.work_time == 50


def test_commands_blocked_during_grace(engine, t0):
    s = engine.tick(running(engine, t0, work_time=1), t0).state
    assert s.grace_open
    for cmd in (Start(t0), SwitchMode(t0), RestartActiveTimer(t0), ActivateMode(BREAK, t0)):
        assert engine.dispatch(s, cmd).state == s

    ticked = engine.dispatch(s, Tick(t0, 3)).state
    assert ticked.grace_total == 3
    assert ticked.work_time == 0


def test_stop_when_not_running_is_noop(engine):
    s = engine.initial_state()
    assert engine.dispatch(s, Stop()).state == s


def test_unknown_command_raises(engine):
    with pytest.raises(TypeError):
        engine.dispatch(engine.initial_state(), object())


def test_custom_long_break_interval(t0):
    engine = TimerEngine(Settings(long_break_interval=2, long_break_duration=1200))
    s = running(engine, t0, work_time=1, pomodoro_count=1)
    assert engine.tick(s, datetime(2024, 1, 1)).state.break_time == 1200


def test_long_break_interval_below_one_is_rejected():
    with pytest.raises(ValueError):
        Settings(long_break_interval=0)
    assert Settings().with_updates(long_break_interval=0).long_break_interval == 1
