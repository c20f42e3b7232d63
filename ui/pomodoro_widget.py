# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import ttk
from typing import Callable

from domain.models import BREAK, WORK, TimerState
from services.timer_service import TimerService

TICK_MS = 1000


def format_time(seconds: float) -> str:
    """Whole-second clock; a negative bank is shown as debt with a leading minus."""
    sec = int(seconds)
    sign = "-" if sec < 0 else ""
    sec = abs(sec)
    h, rem = divmod(sec, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{sign}{h}:{m:02d}:{s:02d}"
    return f"{sign}{m:02d}:{s:02d}"


class PomodoroWidget(ttk.Frame):
    """
    Two squares: the focus countdown and the break bank.
    Clicking a square activates that mode; the widget owns the tick loop.
    """

    def __init__(
        self,
        master,
        timer_service: TimerService,
        on_request_refresh: Callable[[], None],
    ):
        super().__init__(master)

        self.timer_service = timer_service
        self.on_request_refresh = on_request_refresh
        self._tick_job = None

        self._build_ui()

        self.render(self.timer_service.get_state())
        self._tick_job = self.after(TICK_MS, self._tick_once)

    def _build_ui(self):
        self.columnconfigure(0, weight=1)
        self.columnconfigure(1, weight=1)

        self.status_var = tk.StringVar(value="Ready")
        self.count_var = tk.StringVar(value="#0")

        head = ttk.Frame(self)
        head.grid(row=0, column=0, columnspan=2, sticky="ew", pady=(0, 6))
        ttk.Label(head, text="Break Bank", font=("Sans", 12, "bold")).pack(side="left")
        ttk.Label(head, textvariable=self.count_var).pack(side="right")

        self.squares = {}
        for col, (mode, title) in enumerate(((WORK, "Focus"), (BREAK, "Break Bank"))):
            box = tk.Frame(self, bd=2, relief="groove", padx=12, pady=12, cursor="hand2")
            box.grid(row=1, column=col, sticky="nsew", padx=(0, 6) if col == 0 else (6, 0))
            title_lbl = tk.Label(box, text=title, font=("Sans", 10, "bold"))
            title_lbl.pack(anchor="w")
            time_var = tk.StringVar(value="00:00")
            time_lbl = tk.Label(box, textvariable=time_var, font=("Sans", 30, "bold"))
            time_lbl.pack(anchor="w", pady=(6, 0))
            for w in (box, title_lbl, time_lbl):
                w.bind("<Button-1>", lambda e, m=mode: self._activate(m))
            self.squares[mode] = (box, time_var, time_lbl)

        ttk.Label(self, textvariable=self.status_var).grid(
            row=2, column=0, columnspan=2, sticky="w", pady=(8, 6)
        )

        btns = ttk.Frame(self)
        btns.grid(row=3, column=0, columnspan=2, sticky="w")

        self.toggle_btn = ttk.Button(btns, text="Start", command=self._toggle)
        self.switch_btn = ttk.Button(btns, text="Switch", command=self._switch)
        self.restart_btn = ttk.Button(btns, text="Restart", command=self._restart)

        self.toggle_btn.grid(row=0, column=0, padx=(0, 6))
        self.switch_btn.grid(row=0, column=1, padx=(0, 6))
        self.restart_btn.grid(row=0, column=2)

    # ---- actions ----
    def _toggle(self):
        self.timer_service.toggle()
        self.on_request_refresh()

    def _switch(self):
        self.timer_service.switch_mode()
        self.on_request_refresh()

    def _restart(self):
        self.timer_service.restart_active_timer()
        self.on_request_refresh()

    def _activate(self, mode: str):
        self.timer_service.activate_mode(mode)
        self.on_request_refresh()

    # ---- tick loop (UI-driven) ----
    def _tick_once(self):
        self._tick_job = None
        self.timer_service.tick()
        self._tick_job = self.after(TICK_MS, self._tick_once)

    def stop_tick_loop(self):
        if self._tick_job is not None:
            self.after_cancel(self._tick_job)
            self._tick_job = None

    # ---- render ----
    def render(self, state: TimerState):
        values = {WORK: state.work_time, BREAK: state.break_time}
        for mode, (box, time_var, time_lbl) in self.squares.items():
            time_var.set(format_time(values[mode]))
            active = mode == state.active_mode and not state.is_idle
            box.configure(bg="#FEE2E2" if active and mode == WORK else "#D1FAE5" if active else "#F3F4F6")
            time_lbl.configure(
                bg=box["bg"], fg="#B91C1C" if mode == BREAK and state.break_time < 0 else "#111827"
            )
            for child in box.winfo_children():
                child.configure(bg=box["bg"])

        self.count_var.set(f"#{state.pomodoro_count}")
        self.toggle_btn.configure(text="Pause" if state.timer_started else "Start")
        self.status_var.set(
            {
                "idle": "Ready",
                "running": "Focusing..." if state.active_mode == WORK else "Resting...",
                "stopped": "Paused",
                "grace": f"Grace period: {format_time(state.grace_total)}",
                "allpaused": f"All paused: {format_time(state.all_pause_time)}",
                "summary": "Session ended",
            }[state.phase]
        )

        blocked = state.phase in ("grace", "allpaused", "summary")
        for btn in (self.toggle_btn, self.switch_btn, self.restart_btn):
            btn.state(["disabled"] if blocked else ["!disabled"])
