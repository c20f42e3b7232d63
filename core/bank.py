# -*- coding: utf-8 -*-

from typing import Optional

from domain.models import BREAK, WORK

# 5 focused seconds buy 1 second of rest
EARN_RATIO = 5


def earned(seconds: float) -> float:
    return max(0.0, float(seconds)) / EARN_RATIO


def spent(seconds: float) -> float:
    return max(0.0, float(seconds))


def bank_delta(seconds: float, attribution: Optional[str]) -> float:
    """
    Signed change to the break bank for `seconds` of disputed time.
    attribution: "work" | "break" | None (neutral)
    """
    if attribution == WORK:
        return earned(seconds)
    if attribution == BREAK:
        return -spent(seconds)
    return 0.0
