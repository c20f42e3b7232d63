# ui/markdown_renderer.py
# -*- coding: utf-8 -*-

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from markdown import markdown


@dataclass(frozen=True)
class ReportTheme:
    text: str = "#111827"
    muted: str = "#6B7280"
    border: str = "#E5E7EB"
    panel: str = "#FFFFFF"
    work: str = "#EF4444"
    rest: str = "#10B981"
    pause: str = "#F59E0B"


class MarkdownRenderer:
    """
    Turns the stats reports (session summary, day log) into HTML for tkinterweb.
    tkhtml has no CSS variables and limited selectors, so colors are inlined.
    """

    EXTENSIONS: List[str] = ["extra", "tables", "sane_lists"]

    # log type column -> colored badge
    _TYPE_CELL = re.compile(r"^\| ([^|]*) \| (work|break|allpause|grace|task-complete) \|")

    def __init__(self, theme: Optional[ReportTheme] = None):
        self.theme = theme or ReportTheme()

    def preprocess(self, md_text: str) -> str:
        if not md_text:
            return ""
        t = self.theme
        colors = {"work": t.work, "break": t.rest, "allpause": t.pause, "grace": t.muted}
        out: List[str] = []
        for line in md_text.splitlines():
            m = self._TYPE_CELL.match(line)
            if m and m.group(2) in colors:
                badge = f'<span style="color:{colors[m.group(2)]};font-weight:700">{m.group(2)}</span>'
                line = f"| {m.group(1)} | {badge} |" + line[m.end():]
            out.append(line)
        return "\n".join(out)

    def css(self) -> str:
        t = self.theme
        return f"""
        body {{
          font-family: "Segoe UI", Roboto, Arial, sans-serif;
          margin: 14px;
          color: {t.text};
          background: {t.panel};
          font-size: 14px;
          line-height: 1.5;
        }}
        h1 {{ font-size: 1.35em; margin: 0.4em 0 0.6em; }}
        h2 {{ font-size: 1.15em; margin: 1.0em 0 0.4em; color: {t.muted}; }}
        p {{ margin: 0.6em 0; }}
        ul {{ padding-left: 1.2em; margin: 0.5em 0; }}
        li {{ margin: 0.2em 0; }}
        table {{
          border-collapse: collapse;
          width: 100%;
          margin: 0.6em 0;
          font-size: 0.95em;
        }}
        th, td {{
          border: 1px solid {t.border};
          padding: 6px 9px;
          text-align: left;
        }}
        th {{ background: #F9FAFB; font-weight: 700; }}
        """

    def to_html(self, md_text: str) -> str:
        body = markdown(
            self.preprocess(md_text or ""),
            extensions=self.EXTENSIONS,
            output_format="html5",
        )
        return f"""
        <html>
          <head>
            <meta charset="utf-8"/>
            <style>{self.css()}</style>
          </head>
          <body>{body}</body>
        </html>
        """
