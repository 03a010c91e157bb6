"""Grouped toast style: one header per group, one compact row per entry."""
from datetime import datetime
from typing import Optional

from opencode_quota.toast.cells import (
    PERCENT_COL,
    SEPARATOR,
    bar,
    breakpoint_for,
    error_lines,
    pad_right,
    percent_cell,
    session_token_lines,
    time_cell,
)
from opencode_quota.toast.entries import LayoutConfig, SessionTokensData

INDENT = "  "


def _group_key(entry) -> str:
    return getattr(entry, "group", None) or entry.name


def _row_label(entry) -> str:
    return getattr(entry, "label", None) or entry.name


def render_grouped(
    entries=None,
    errors=None,
    session_tokens: Optional[SessionTokensData] = None,
    layout: Optional[LayoutConfig] = None,
    now: Optional[datetime] = None,
) -> str:
    layout = layout or LayoutConfig()
    max_width = layout.max_width
    tiny = breakpoint_for(layout) == "tiny"

    label_width = max(4, min(12, max_width // 4))
    bar_width = max(5, max_width - len(INDENT) - label_width - 2 * len(SEPARATOR) - PERCENT_COL)

    groups: dict[str, list] = {}
    for entry in entries or []:
        groups.setdefault(_group_key(entry), []).append(entry)

    lines: list[str] = []
    for group_name, members in groups.items():
        lines.append(group_name[:max_width])
        for entry in members:
            cells = [INDENT + pad_right(_row_label(entry), label_width)]
            if not tiny:
                cells.append(bar(entry.percent_remaining, bar_width))
            cells.append(percent_cell(entry.percent_remaining))
            time_str = time_cell(entry.percent_remaining, entry.reset_time_iso, now)
            if time_str:
                cells.append(time_str)
            lines.append(SEPARATOR.join(cells))

    lines.extend(error_lines(errors))
    lines.extend(session_token_lines(session_tokens, has_prior_content=bool(lines)))
    return "\n".join(lines)
