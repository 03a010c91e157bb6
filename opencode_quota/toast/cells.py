"""Fixed-width text cells shared by the toast styles."""
import math
import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

SEPARATOR = "  "
PERCENT_COL = 4  # "100%"
BAR_FILLED = "█"
BAR_EMPTY = "░"
ELLIPSIS = "…"

_MODEL_NAME_DECORATIONS = (
    re.compile(r"^antigravity-", re.IGNORECASE),
    re.compile(r"-thinking$", re.IGNORECASE),
    re.compile(r"-preview$", re.IGNORECASE),
)


def clamp_int(n, low: int, high: int) -> int:
    """Truncate toward zero and clamp. NaN maps to ``low``, infinities to the nearest bound."""
    try:
        value = float(n)
    except (TypeError, ValueError):
        return low
    if math.isnan(value):
        return low
    if math.isinf(value):
        return high if value > 0 else low
    return max(low, min(high, math.trunc(value)))


def pad_right(s: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(s) >= width:
        return s[:width]
    return s + " " * (width - len(s))


def pad_left(s: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(s) >= width:
        return s[len(s) - width:]
    return " " * (width - len(s)) + s


def bar(percent_remaining, width: int) -> str:
    p = clamp_int(percent_remaining, 0, 100)
    # round-half-up, so a 50% bar of width 5 gets 3 filled cells
    filled = int(math.floor(p / 100 * width + 0.5))
    return BAR_FILLED * filled + BAR_EMPTY * (width - filled)


def percent_cell(percent_remaining) -> str:
    return pad_left(f"{clamp_int(percent_remaining, 0, 100)}%", PERCENT_COL)


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into an aware UTC datetime, or None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_reset_countdown(iso: Optional[str], now: Optional[datetime] = None) -> str:
    if not iso:
        return "-"
    reset_at = parse_iso(iso)
    if reset_at is None:
        return "reset"
    now = now or datetime.now(timezone.utc)
    diff_seconds = (reset_at - now).total_seconds()
    if diff_seconds <= 0:
        return "reset"

    diff_minutes = int(diff_seconds // 60)
    days = diff_minutes // 1440
    hours = (diff_minutes % 1440) // 60
    minutes = diff_minutes % 60

    if days > 0:
        return f"{days}d {hours}h"
    return f"{hours}h {minutes}m"


def time_cell(percent_remaining, reset_time_iso: Optional[str], now: Optional[datetime] = None) -> str:
    # The countdown only means something once the quota is exhausted
    if percent_remaining == 0:
        return format_reset_countdown(reset_time_iso, now)
    return ""


def _fixed(value: float, digits: int) -> str:
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_token_count(count: int) -> str:
    """Format a token count with a K/M suffix: 999, 1.0K, 12K, 1.2M."""
    if count >= 1_000_000:
        return f"{_fixed(count / 1_000_000, 1)}M"
    if count >= 10_000:
        return f"{_fixed(count / 1_000, 0)}K"
    if count >= 1_000:
        return f"{_fixed(count / 1_000, 1)}K"
    return str(count)


def shorten_model_name(name: str, max_len: int = 20) -> str:
    if len(name) <= max_len:
        return name
    s = name
    for pattern in _MODEL_NAME_DECORATIONS:
        s = pattern.sub("", s)
    if len(s) <= max_len:
        return s
    return s[: max_len - 1] + ELLIPSIS


def session_token_lines(session_tokens, has_prior_content: bool) -> list[str]:
    if session_tokens is None or not session_tokens.models:
        return []

    lines = [""] if has_prior_content else []
    lines.append("Session Tokens")
    for model in session_tokens.models:
        short_name = shorten_model_name(model.model_id, 20)
        in_str = format_token_count(model.input)
        out_str = format_token_count(model.output)
        lines.append(
            f"  {pad_right(short_name, 20)}  {pad_left(in_str, 6)} in  {pad_left(out_str, 6)} out"
        )
    return lines


TIME_COL = {"tiny": 6, "narrow": 7, "default": 7}


def breakpoint_for(layout) -> str:
    """Classify a layout as "tiny", "narrow" or "default" by its max width."""
    if layout.max_width <= layout.tiny_at:
        return "tiny"
    if layout.max_width <= layout.narrow_at:
        return "narrow"
    return "default"


def bar_width_for(max_width: int) -> int:
    return max(10, max_width - len(SEPARATOR) - PERCENT_COL)


def error_lines(errors) -> list[str]:
    return [f"{err.label}: {err.message}" for err in errors or []]
