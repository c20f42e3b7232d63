# -*- coding: utf-8 -*-

"""
Grace period: the window after a boundary during which elapsed time has no
owner yet. Early on the user only picks the next mode; once the window is
long enough they may also say what they were doing, and the break bank is
corrected for the whole window.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional

from core.bank import bank_delta
from core.effects import LogActivity, Transition, log_entry
from domain.models import BREAK, WORK, GraceContext, Settings, TimerState

ATTRIBUTION_THRESHOLD = 30  # seconds


class GraceChoice(str, Enum):
    CONTINUE_WORK = "continue-work"
    START_BREAK = "start-break"
    WAS_WORKING = "was-working"
    WAS_RESTING = "was-resting"


@dataclass(frozen=True)
class GraceOption:
    choice: GraceChoice
    label: str
    next_mode: str
    bank_delta: float


_NEXT_MODE_LABELS = {
    GraceContext.AFTER_WORK: {
        GraceChoice.CONTINUE_WORK: "Continue Working",
        GraceChoice.START_BREAK: "Start Break",
    },
    GraceContext.AFTER_BREAK: {
        GraceChoice.CONTINUE_WORK: "Start Focus",
        GraceChoice.START_BREAK: "Continue Resting",
    },
}

_REASONS = {
    None: "Grace Period",
    WORK: "Grace Period (Working)",
    BREAK: "Grace Period (Resting)",
}


def open_grace(state: TimerState, context: GraceContext) -> TimerState:
    return replace(
        state,
        grace_open=True,
        grace_context=context,
        grace_total=0.0,
        timer_started=False,
    )


def attribution_offered(state: TimerState) -> bool:
    return state.grace_open and state.grace_total > ATTRIBUTION_THRESHOLD


def _attribution(choice: GraceChoice) -> Optional[str]:
    if choice == GraceChoice.WAS_WORKING:
        return WORK
    if choice == GraceChoice.WAS_RESTING:
        return BREAK
    return None


def _next_mode(context: GraceContext, choice: GraceChoice) -> str:
    if choice == GraceChoice.CONTINUE_WORK:
        return WORK
    if choice == GraceChoice.START_BREAK:
        return BREAK
    # attributed time: move on to whatever follows the boundary
    return BREAK if context == GraceContext.AFTER_WORK else WORK


def options(state: TimerState) -> List[GraceOption]:
    if not state.grace_open:
        return []
    context = state.grace_context or GraceContext.AFTER_WORK
    labels = _NEXT_MODE_LABELS[context]
    out = [
        GraceOption(choice, labels[choice], _next_mode(context, choice), 0.0)
        for choice in (GraceChoice.CONTINUE_WORK, GraceChoice.START_BREAK)
    ]
    if attribution_offered(state):
        out.append(
            GraceOption(
                GraceChoice.WAS_WORKING,
                "I was working",
                _next_mode(context, GraceChoice.WAS_WORKING),
                bank_delta(state.grace_total, WORK),
            )
        )
        out.append(
            GraceOption(
                GraceChoice.WAS_RESTING,
                "I was resting",
                _next_mode(context, GraceChoice.WAS_RESTING),
                bank_delta(state.grace_total, BREAK),
            )
        )
    return out


def resolve(
    state: TimerState, choice: GraceChoice, now: datetime, settings: Settings
) -> Transition:
    """Close the grace window with `choice`; a choice not on offer is ignored."""
    if not state.grace_open:
        return Transition(state)
    try:
        choice = GraceChoice(choice)
    except ValueError:
        return Transition(state)
    if choice not in {o.choice for o in options(state)}:
        return Transition(state)

    context = state.grace_context or GraceContext.AFTER_WORK
    attribution = _attribution(choice)
    next_mode = _next_mode(context, choice)
    total = state.grace_total

    work_time = state.work_time
    if next_mode == WORK:
        if context == GraceContext.AFTER_WORK or work_time <= 1:
            work_time = settings.work_duration
    elif context == GraceContext.AFTER_WORK:
        work_time = settings.work_duration

    new_state = replace(
        state,
        grace_open=False,
        grace_context=None,
        grace_total=0.0,
        active_mode=next_mode,
        focused_mode=next_mode,
        is_idle=False,
        timer_started=True,
        interval_elapsed=0.0,
        work_time=work_time,
        break_time=state.break_time + bank_delta(total, attribution),
    )
    entry = log_entry("grace", now, total, _REASONS[attribution])
    return Transition(new_state, (LogActivity(entry, attach_task=attribution == WORK),))
