"""
Formatting for quota toast output.

Responsive columns:
  default  name + time on one line, bar + percent on the next
  narrow   same structure, shorter time column
  tiny     no bars, one "Name  time  XX%" line per entry
"""
from datetime import datetime
from typing import Optional

from opencode_quota.toast.cells import (
    PERCENT_COL,
    SEPARATOR,
    TIME_COL,
    bar,
    bar_width_for,
    breakpoint_for,
    error_lines,
    pad_left,
    pad_right,
    percent_cell,
    session_token_lines,
    time_cell,
)
from opencode_quota.toast.entries import (
    LayoutConfig,
    QuotaToastEntry,
    QuotaToastError,
    SessionTokensData,
)
from opencode_quota.toast.grouped import render_grouped


def _entry_lines(entry: QuotaToastEntry, layout: LayoutConfig, mode: str, now: Optional[datetime]) -> list[str]:
    max_width = layout.max_width
    time_col = TIME_COL[mode]
    time_str = time_cell(entry.percent_remaining, entry.reset_time_iso, now)

    if mode == "tiny":
        name_col = max_width - len(SEPARATOR) - time_col - len(SEPARATOR) - PERCENT_COL
        line = SEPARATOR.join([
            pad_right(entry.name, name_col),
            pad_left(time_str, time_col),
            percent_cell(entry.percent_remaining),
        ])
        return [line[:max_width]]

    # Line 1 spans exactly the bar width; the percent cell on line 2 hangs past it
    bar_width = bar_width_for(max_width)
    time_width = max(len(time_str), time_col)
    name_width = max(1, bar_width - len(SEPARATOR) - time_width)
    time_line = pad_right(entry.name, name_width) + SEPARATOR + pad_left(time_str, time_width)

    bar_line = SEPARATOR.join([bar(entry.percent_remaining, bar_width), percent_cell(entry.percent_remaining)])
    return [time_line[:bar_width], bar_line]


def render(
    entries: Optional[list[QuotaToastEntry]] = None,
    errors: Optional[list[QuotaToastError]] = None,
    session_tokens: Optional[SessionTokensData] = None,
    layout: Optional[LayoutConfig] = None,
    style: str = "classic",
    now: Optional[datetime] = None,
) -> str:
    """Render quota entries, errors and a session token summary as a toast body.

    Never raises on odd numeric input: percentages are clamped and a missing
    or unparseable reset time is rendered as a placeholder.
    """
    if style == "grouped":
        return render_grouped(entries, errors, session_tokens, layout, now=now)

    layout = layout or LayoutConfig()
    mode = breakpoint_for(layout)

    lines: list[str] = []
    for entry in entries or []:
        lines.extend(_entry_lines(entry, layout, mode, now))

    lines.extend(error_lines(errors or []))
    lines.extend(session_token_lines(session_tokens, has_prior_content=bool(lines)))

    return "\n".join(lines)
