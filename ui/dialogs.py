# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import ttk
from typing import Callable, Optional

from core.bank import bank_delta
from core.grace import GraceOption
from domain.models import BREAK, WORK
from services.timer_service import TimerService
from ui.pomodoro_widget import format_time


class _Modal(tk.Toplevel):
    def __init__(self, master, title: str):
        super().__init__(master)
        self.title(title)
        self.resizable(False, False)
        self.transient(master)
        self.protocol("WM_DELETE_WINDOW", lambda: None)
        self.body = ttk.Frame(self, padding=14)
        self.body.pack(fill="both", expand=True)

    def show(self):
        self.grab_set()
        self.focus_set()


class GraceDialog(_Modal):
    """
    Shown while the timer waits after an interval ends. The elapsed grace
    time keeps counting; once it passes the threshold the attribution
    choices appear.
    """

    def __init__(self, master, timer_service: TimerService, on_done: Callable[[], None]):
        super().__init__(master, "Interval finished")
        self.timer_service = timer_service
        self.on_done = on_done
        self._shown_options = None

        self.elapsed_var = tk.StringVar(value="00:00")
        ttk.Label(self.body, text="What next?", font=("Sans", 12, "bold")).pack(anchor="w")
        ttk.Label(self.body, textvariable=self.elapsed_var).pack(anchor="w", pady=(4, 10))
        self.buttons = ttk.Frame(self.body)
        self.buttons.pack(fill="x")
        self.refresh()
        self.show()

    def refresh(self):
        state = self.timer_service.get_state()
        if not state.grace_open:
            self.destroy()
            return
        self.elapsed_var.set(f"Waiting for {format_time(state.grace_total)}")

        opts = self.timer_service.grace_options()
        key = tuple(o.choice for o in opts)
        if key == self._shown_options:
            return
        self._shown_options = key
        for w in self.buttons.winfo_children():
            w.destroy()
        for opt in opts:
            ttk.Button(self.buttons, text=self._label(opt), command=lambda o=opt: self._pick(o)).pack(
                fill="x", pady=2
            )

    @staticmethod
    def _label(opt: GraceOption) -> str:
        if not opt.bank_delta:
            return opt.label
        sign = "+" if opt.bank_delta > 0 else "-"
        return f"{opt.label} ({sign}{format_time(abs(opt.bank_delta))} bank)"

    def _pick(self, opt: GraceOption):
        self.timer_service.resolve_grace(opt.choice)
        self.destroy()
        self.on_done()


class AllPauseDialog(_Modal):
    """Asks for the reason before freezing everything."""

    def __init__(self, master, timer_service: TimerService, on_done: Callable[[], None]):
        super().__init__(master, "Pause everything")
        self.protocol("WM_DELETE_WINDOW", self.destroy)
        self.timer_service = timer_service
        self.on_done = on_done

        ttk.Label(self.body, text="Why are you stepping away?").pack(anchor="w")
        self.reason_var = tk.StringVar()
        entry = ttk.Entry(self.body, textvariable=self.reason_var, width=36)
        entry.pack(fill="x", pady=(6, 10))
        entry.bind("<Return>", lambda e: self._confirm())
        row = ttk.Frame(self.body)
        row.pack(fill="x")
        ttk.Button(row, text="Pause", command=self._confirm).pack(side="right")
        ttk.Button(row, text="Cancel", command=self.destroy).pack(side="right", padx=(0, 6))
        self.show()
        entry.focus_set()

    def _confirm(self):
        self.timer_service.confirm_all_pause(self.reason_var.get().strip())
        self.destroy()
        self.on_done()


class ResumeDialog(_Modal):
    """
    Shown during an all-pause. The paused time can be credited as work,
    charged to the bank as rest, or ignored.
    """

    def __init__(self, master, timer_service: TimerService, on_done: Callable[[], None]):
        super().__init__(master, "Paused")
        self.timer_service = timer_service
        self.on_done = on_done

        state = timer_service.get_state()
        self.elapsed_var = tk.StringVar()
        ttk.Label(self.body, text=state.all_pause_reason or "Everything paused", font=("Sans", 12, "bold")).pack(
            anchor="w"
        )
        ttk.Label(self.body, textvariable=self.elapsed_var).pack(anchor="w", pady=(4, 10))

        self._add("I was working", WORK, WORK)
        self._add("I was resting", BREAK, BREAK)
        self._add("Resume focus", WORK, None)
        self._add("Resume break", BREAK, None)
        ttk.Button(self.body, text="End pause, decide later", command=self._end).pack(fill="x", pady=(8, 0))
        self.refresh()
        self.show()

    def _add(self, label: str, mode: str, attribution: Optional[str]):
        ttk.Button(
            self.body, text=label, command=lambda: self._resume(mode, attribution)
        ).pack(fill="x", pady=2)

    def refresh(self):
        state = self.timer_service.get_state()
        if not state.all_pause_active:
            self.destroy()
            return
        paused = state.all_pause_time
        self.elapsed_var.set(
            f"Paused for {format_time(paused)}  "
            f"(work: +{format_time(bank_delta(paused, WORK))}, rest: -{format_time(paused)})"
        )

    def _resume(self, mode: str, attribution: Optional[str]):
        self.timer_service.resume_attributed(mode, attribution)
        self.destroy()
        self.on_done()

    def _end(self):
        self.timer_service.end_all_pause()
        self.destroy()
        self.on_done()
