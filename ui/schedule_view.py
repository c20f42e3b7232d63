# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import ttk
from typing import Callable

from core.schedule import PIXELS_PER_MINUTE, Timeline, parse_hhmm
from services.schedule_service import ScheduleService

ROW_HEIGHT = 34
RULER_HEIGHT = 18

_FILL = {
    "work": "#FCA5A5",
    "break": "#A7F3D0",
    "scheduled-break": "#FDE68A",
}


class ScheduleView(ttk.Labelframe):
    """
    Horizontal timeline of the remaining queue: one pixel column per
    1/PIXELS_PER_MINUTE minutes, hour ticks on top, blocks below.
    """

    def __init__(
        self,
        master,
        schedule_service: ScheduleService,
        get_timeline: Callable[[], Timeline],
    ):
        super().__init__(master, text="Schedule", padding=8)
        self.schedule_service = schedule_service
        self.get_timeline = get_timeline

        self.columnconfigure(0, weight=1)

        form = ttk.Frame(self)
        form.grid(row=0, column=0, sticky="ew", pady=(0, 6))

        ttk.Label(form, text="Start").pack(side="left")
        self.start_var = tk.StringVar(value=schedule_service.start_time)
        start = ttk.Entry(form, textvariable=self.start_var, width=6)
        start.pack(side="left", padx=(4, 12))
        start.bind("<Return>", lambda e: self._set_start())

        ttk.Label(form, text="Break at").pack(side="left")
        self.brk_time_var = tk.StringVar(value="12:00")
        ttk.Entry(form, textvariable=self.brk_time_var, width=6).pack(side="left", padx=4)
        self.brk_len_var = tk.StringVar(value="30")
        ttk.Entry(form, textvariable=self.brk_len_var, width=4).pack(side="left")
        ttk.Label(form, text="min").pack(side="left", padx=(2, 4))
        self.brk_label_var = tk.StringVar(value="Break")
        ttk.Entry(form, textvariable=self.brk_label_var, width=12).pack(side="left", padx=4)
        ttk.Button(form, text="Pin", command=self._add_break).pack(side="left")

        self.err_var = tk.StringVar(value="")
        ttk.Label(self, textvariable=self.err_var, foreground="red").grid(row=1, column=0, sticky="w")

        self.canvas = tk.Canvas(self, height=RULER_HEIGHT + ROW_HEIGHT + 8, bg="#FFFFFF", highlightthickness=0)
        self.canvas.grid(row=2, column=0, sticky="ew")
        xscroll = ttk.Scrollbar(self, orient="horizontal", command=self.canvas.xview)
        xscroll.grid(row=3, column=0, sticky="ew")
        self.canvas.configure(xscrollcommand=xscroll.set)
        self.canvas.tag_bind("pinned", "<Double-Button-1>", self._delete_break)

        self.refresh()

    def _set_start(self):
        try:
            self.schedule_service.set_start_time(self.start_var.get())
            self.err_var.set("")
        except ValueError as e:
            self.err_var.set(str(e))
        self.refresh()

    def _add_break(self):
        try:
            self.schedule_service.add_break(
                self.brk_time_var.get(), self.brk_len_var.get(), self.brk_label_var.get()
            )
            self.err_var.set("")
        except ValueError as e:
            self.err_var.set(str(e))
        self.refresh()

    def _delete_break(self, event):
        item = self.canvas.find_withtag("current")
        for tag in self.canvas.gettags(item):
            if tag.startswith("brk:"):
                self.schedule_service.delete_break(tag[4:])
                self.refresh()
                return

    def refresh(self):
        self.start_var.set(self.schedule_service.start_time)
        tl = self.get_timeline()
        c = self.canvas
        c.delete("all")
        c.configure(scrollregion=(0, 0, tl.extent, RULER_HEIGHT + ROW_HEIGHT + 8))

        # hour ticks relative to the origin
        first = 60 - tl.origin.minute if tl.origin.minute else 0
        minute = first
        while minute * PIXELS_PER_MINUTE <= tl.extent:
            x = minute * PIXELS_PER_MINUTE
            hour = (tl.origin.hour + (tl.origin.minute + minute) // 60) % 24
            c.create_line(x, 0, x, RULER_HEIGHT + ROW_HEIGHT, fill="#E5E7EB")
            c.create_text(x + 3, 2, text=f"{hour:02d}:00", anchor="nw", fill="#6B7280", font=("Sans", 8))
            minute += 60

        top = RULER_HEIGHT
        for b in tl.blocks:
            x0, x1 = b.offset, b.offset + b.length
            tags = ("block",)
            if b.kind == "scheduled-break":
                brk = next(
                    (p for p in self.schedule_service.breaks if parse_hhmm(p.start_time) == b.start.time()),
                    None,
                )
                tags = ("block", "pinned") + ((f"brk:{brk.id}",) if brk else ())
            fill = b.color if b.kind == "work" and b.color else _FILL[b.kind]
            c.create_rectangle(x0, top, x1, top + ROW_HEIGHT, fill=fill, outline="#FFFFFF", tags=tags)
            if b.length > 24:
                c.create_text(
                    x0 + 4, top + ROW_HEIGHT / 2, text=b.label, anchor="w",
                    font=("Sans", 8), width=max(1, b.length - 6), tags=tags,
                )
