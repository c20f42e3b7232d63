# -*- coding: utf-8 -*-

import datetime as dt
import tkinter as tk
from typing import Callable, Optional

from tkinterweb import HtmlFrame

from services.stats_service import StatsService
from ui.markdown_renderer import MarkdownRenderer


class ReportWindow(tk.Toplevel):
    """Markdown report rendered through tkinterweb."""

    def __init__(self, master, title: str, md_text: str, on_close: Optional[Callable[[], None]] = None):
        super().__init__(master)
        self.title(title)
        self.geometry("560x520")
        self.transient(master)
        self.on_close = on_close
        self.protocol("WM_DELETE_WINDOW", self.close)

        self.view = HtmlFrame(self, horizontal_scrollbar="auto", messages_enabled=False)
        self.view.pack(fill="both", expand=True)
        self.view.load_html(MarkdownRenderer().to_html(md_text))

        tk.Button(self, text="Close", command=self.close).pack(pady=8)

    def close(self):
        self.destroy()
        if self.on_close:
            self.on_close()


def show_session_summary(master, stats_service: StatsService, stats, on_close: Callable[[], None]) -> ReportWindow:
    return ReportWindow(master, "Session Summary", stats_service.session_report_md(stats), on_close)


def show_day_log(master, stats_service: StatsService, day: Optional[dt.date] = None) -> ReportWindow:
    return ReportWindow(master, "Activity Log", stats_service.day_log_md(day))
