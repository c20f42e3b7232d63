# -*- coding: utf-8 -*-

import logging
import tkinter as tk
from tkinter import messagebox, ttk
from typing import Optional

from core.effects import Notify
from domain.models import TimerState
from services.stats_service import StatsService
from services.task_service import TaskService
from services.timer_service import TimerService
from ui.dialogs import AllPauseDialog, GraceDialog, ResumeDialog
from ui.pomodoro_widget import PomodoroWidget
from ui.schedule_view import ScheduleView
from ui.summary_view import show_day_log, show_session_summary

logger = logging.getLogger(__name__)


def _fmt_hms(sec: int) -> str:
    sec = max(0, int(sec))
    h = sec // 3600
    m = (sec % 3600) // 60
    s = sec % 60
    if h > 0:
        return f"{h}h {m:02d}m"
    return f"{m}m {s:02d}s"


class MainWindow:
    def __init__(
        self,
        task_service: TaskService,
        timer_service: TimerService,
        stats_service: StatsService,
    ):
        self.task_service = task_service
        self.timer_service = timer_service
        self.stats_service = stats_service

        self.root = tk.Tk()
        self.root.title("Break Bank")
        self.root.geometry("1080x640")

        self._grace_dialog: Optional[GraceDialog] = None
        self._resume_dialog: Optional[ResumeDialog] = None
        self._summary_open = False

        self._build_menu()
        self._build_ui()

        self.timer_service.set_on_tick(self._on_tick)
        self.timer_service.set_on_state_change(self._on_state_change)
        self.timer_service.set_on_alarm(self._on_alarm)

        self._refresh_all()
        self._on_state_change(self.timer_service.get_state())

    def _build_menu(self):
        bar = tk.Menu(self.root)
        session = tk.Menu(bar, tearoff=0)
        session.add_command(label="Pause Everything...", command=self._pause_all)
        session.add_command(label="End Session", command=self._end_session)
        session.add_separator()
        session.add_command(label="Settings...", command=self._edit_settings)
        session.add_command(label="Today's Log", command=lambda: show_day_log(self.root, self.stats_service))
        session.add_separator()
        session.add_command(label="Clear Logs", command=self._clear_logs)
        session.add_command(label="Hard Reset", command=self._hard_reset)
        bar.add_cascade(label="Session", menu=session)
        self.root.config(menu=bar)

    def _build_ui(self):
        root = self.root

        outer = ttk.Frame(root, padding=10)
        outer.pack(fill="both", expand=True)

        outer.columnconfigure(0, weight=1)
        outer.columnconfigure(1, weight=2)
        outer.rowconfigure(0, weight=1)

        # LEFT: task queue
        left = ttk.Labelframe(outer, text="Tasks", padding=10)
        left.grid(row=0, column=0, sticky="nsew", padx=(0, 10))
        left.columnconfigure(0, weight=1)
        left.rowconfigure(2, weight=1)

        add_row = ttk.Frame(left)
        add_row.grid(row=0, column=0, sticky="ew")
        add_row.columnconfigure(0, weight=1)

        self.new_task_var = tk.StringVar()
        self.new_est_var = tk.StringVar(value="1")
        entry = ttk.Entry(add_row, textvariable=self.new_task_var)
        entry.grid(row=0, column=0, sticky="ew")
        entry.bind("<Return>", lambda e: self._add_task())
        ttk.Spinbox(add_row, from_=0, to=99, width=4, textvariable=self.new_est_var).grid(
            row=0, column=1, padx=(6, 0)
        )
        ttk.Button(add_row, text="Add", command=self._add_task).grid(row=0, column=2, padx=(6, 0))
        ttk.Button(add_row, text="Add Sub", command=self._add_subtask).grid(row=0, column=3, padx=(6, 0))

        self.err_var = tk.StringVar(value="")
        ttk.Label(left, textvariable=self.err_var, foreground="red").grid(
            row=1, column=0, sticky="w", pady=(6, 6)
        )

        self.task_tree = ttk.Treeview(left, columns=("units",), show="tree headings", height=14)
        self.task_tree.heading("#0", text="Task")
        self.task_tree.heading("units", text="Done / Est")
        self.task_tree.column("units", width=80, anchor="center")
        self.task_tree.grid(row=2, column=0, sticky="nsew")
        self.task_tree.bind("<<TreeviewSelect>>", self._on_select_task)

        actions = ttk.Frame(left)
        actions.grid(row=3, column=0, sticky="ew", pady=(8, 0))
        ttk.Button(actions, text="Mark Done", command=self._mark_done).pack(side="left")
        ttk.Button(actions, text="Delete", command=self._delete).pack(side="left", padx=(6, 0))
        ttk.Button(actions, text="Clear Done", command=self._clear_done).pack(side="right")

        # RIGHT: timer, stats, schedule
        right = ttk.Frame(outer)
        right.grid(row=0, column=1, sticky="nsew")
        right.columnconfigure(0, weight=1)
        right.rowconfigure(2, weight=1)

        self.pomodoro = PomodoroWidget(right, timer_service=self.timer_service, on_request_refresh=self._refresh_all)
        self.pomodoro.grid(row=0, column=0, sticky="ew")

        stats = ttk.Labelframe(right, text="Stats", padding=10)
        stats.grid(row=1, column=0, sticky="ew", pady=(10, 0))
        self.stats_var = tk.StringVar(value="")
        ttk.Label(stats, textvariable=self.stats_var, font=("Sans", 11)).grid(row=0, column=0, sticky="w")
        self.active_var = tk.StringVar(value="Active task: (none)")
        ttk.Label(stats, textvariable=self.active_var).grid(row=1, column=0, sticky="w", pady=(8, 0))
        self.notice_var = tk.StringVar(value="")
        ttk.Label(stats, textvariable=self.notice_var, foreground="#2563EB").grid(row=2, column=0, sticky="w", pady=(4, 0))

        self.schedule = ScheduleView(right, self.timer_service.schedule_service, self.timer_service.timeline)
        self.schedule.grid(row=2, column=0, sticky="nsew", pady=(10, 0))

    def run(self):
        self.root.mainloop()

    # ----- Timer callbacks -----
    def _on_state_change(self, state: TimerState):
        self.pomodoro.render(state)

        if state.grace_open:
            if self._grace_dialog is None or not self._grace_dialog.winfo_exists():
                self._grace_dialog = GraceDialog(self.root, self.timer_service, self._refresh_all)
        if state.all_pause_active:
            if self._resume_dialog is None or not self._resume_dialog.winfo_exists():
                self._resume_dialog = ResumeDialog(self.root, self.timer_service, self._refresh_all)
        if state.summary_shown and state.session_stats and not self._summary_open:
            self._summary_open = True
            show_session_summary(self.root, self.stats_service, state.session_stats, self._close_summary)

        self._refresh_all()

    def _on_tick(self, state: TimerState):
        self.pomodoro.render(state)
        self._refresh_dialogs()

    def _on_alarm(self, sound: str, note: Notify):
        logger.info("Alarm %s: %s", sound, note.title)
        self.root.bell()
        if note.kind != "switch":
            self.notice_var.set(f"{note.title}. {note.body}".strip())

    def _refresh_dialogs(self):
        for dlg in (self._grace_dialog, self._resume_dialog):
            if dlg is not None and dlg.winfo_exists():
                dlg.refresh()

    # ----- Task actions -----
    def _selected_item(self) -> Optional[str]:
        sel = self.task_tree.selection()
        return sel[0] if sel else None

    def _on_select_task(self, event=None):
        item_id = self._selected_item()
        if item_id and item_id != self.task_service.selected_id:
            self.task_service.select(item_id)
            self._refresh_stats_only()

    def _add_task(self):
        try:
            self.task_service.add_task(self.new_task_var.get(), self.new_est_var.get())
            self.new_task_var.set("")
            self.err_var.set("")
        except ValueError as e:
            self.err_var.set(str(e))
        self._refresh_all()

    def _add_subtask(self):
        parent = self._selected_item()
        if not parent:
            self.err_var.set("Select a task first.")
            return
        try:
            self.task_service.add_task(self.new_task_var.get(), self.new_est_var.get(), parent_id=parent)
            self.new_task_var.set("")
            self.err_var.set("")
        except ValueError as e:
            self.err_var.set(str(e))
        self._refresh_all()

    def _mark_done(self):
        item_id = self._selected_item()
        if item_id:
            self.timer_service.complete_task(item_id)
            self._refresh_all()

    def _delete(self):
        item_id = self._selected_item()
        if not item_id:
            return
        task, sub = self.task_service.find(item_id)
        name = (sub or task).name if task else "this task"
        if messagebox.askyesno("Delete task?", f"Delete '{name}'?"):
            self.task_service.delete(item_id)
            self._refresh_all()

    def _clear_done(self):
        self.task_service.clear_completed()
        self._refresh_all()

    # ----- Session actions -----
    def _pause_all(self):
        AllPauseDialog(self.root, self.timer_service, self._refresh_all)

    def _end_session(self):
        if messagebox.askyesno("End session?", "End this session and show the summary?"):
            self.timer_service.end_session()

    def _close_summary(self):
        self._summary_open = False
        self.timer_service.close_summary()

    def _clear_logs(self):
        if messagebox.askyesno("Clear logs?", "Delete the activity log and reset the pomodoro count?"):
            self.timer_service.clear_logs()
            self._refresh_all()

    def _hard_reset(self):
        if messagebox.askyesno("Hard reset?", "Erase all tasks, logs, settings and stats?"):
            self.timer_service.hard_reset()
            self._refresh_all()

    def _edit_settings(self):
        s = self.timer_service.settings
        win = tk.Toplevel(self.root)
        win.title("Settings")
        win.transient(self.root)
        win.grab_set()
        frame = ttk.Frame(win, padding=12)
        frame.pack(fill="both", expand=True)

        fields = (
            ("work_duration", "Focus (min)", s.work_duration // 60),
            ("short_break_duration", "Short break (min)", s.short_break_duration // 60),
            ("long_break_duration", "Long break (min)", s.long_break_duration // 60),
            ("long_break_interval", "Long break every", s.long_break_interval),
        )
        vars_ = {}
        for row, (name, label, value) in enumerate(fields):
            ttk.Label(frame, text=label).grid(row=row, column=0, sticky="w", pady=2)
            vars_[name] = tk.StringVar(value=str(value))
            ttk.Entry(frame, textvariable=vars_[name], width=8).grid(row=row, column=1, padx=(8, 0))

        def save():
            updates = {}
            for name, var in vars_.items():
                try:
                    value = int(var.get())
                except ValueError:
                    continue
                updates[name] = value if name == "long_break_interval" else value * 60
            self.timer_service.update_settings(**updates)
            win.destroy()
            self._refresh_all()

        ttk.Button(frame, text="Save", command=save).grid(row=len(fields), column=1, sticky="e", pady=(10, 0))

    # ----- Refresh -----
    def _refresh_all(self):
        self._refresh_tasks_only()
        self._refresh_stats_only()
        self._refresh_dialogs()
        self.schedule.refresh()

    def _refresh_tasks_only(self):
        tree = self.task_tree
        tree.delete(*tree.get_children())
        for t in self.task_service.list_tasks():
            mark = "✓ " if t.checked else ""
            tree.insert("", tk.END, iid=t.id, text=mark + t.name, values=(f"{t.completed}/{t.estimated}",), open=t.expanded)
            for s in t.subtasks:
                mark = "✓ " if s.checked else ""
                tree.insert(t.id, tk.END, iid=s.id, text=mark + s.name, values=(f"{s.completed}/{s.estimated}",))

        selected = self.task_service.selected_id
        if selected and tree.exists(selected):
            tree.selection_set(selected)
            tree.see(selected)

    def _refresh_stats_only(self):
        today = self.stats_service.total_day_work_sec()
        ref, _ = self.task_service.active_context()
        if ref:
            self.active_var.set(f"Active task: {ref.name}")
            active_total = self.stats_service.total_task_work_sec(ref.id)
            self.stats_var.set(
                f"Today (work): {_fmt_hms(today)}\nSelected task total (work): {_fmt_hms(active_total)}"
            )
        else:
            self.active_var.set("Active task: (none)")
            self.stats_var.set(f"Today (work): {_fmt_hms(today)}\nSelected task total (work): -")
