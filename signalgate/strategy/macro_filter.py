"""
Macro Filter — High-impact event blackout

No entries within ± MACRO_WINDOW_HOURS of any scheduled high-impact release
(FOMC, CPI, NFP...). The schedule is operator-maintained in .env:

    MACRO_EVENTS_UTC=2026-11-04T18:00:00Z,2026-11-13T13:30:00Z
    MACRO_WINDOW_HOURS=12

The window is symmetric and inclusive: exactly window_hours before or after
an event is still blocked; one second further is not.

The check runs BEFORE any price fetch — inside a window the answer is "no"
regardless of what the chart looks like.
"""
import logging
import math
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from dotenv import load_dotenv

from . import strategy_config as _cfg

logger = logging.getLogger(__name__)

_ROOT = Path(__file__).parents[2]
load_dotenv(_ROOT / ".env")


def parse_event_time(text: str) -> Optional[datetime]:
    """
    ISO 8601 → aware UTC datetime. Accepts a trailing 'Z' and naive strings
    (taken as UTC). Returns None when unparseable.
    """
    s = (text or "").strip()
    if not s:
        return None
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class MacroWindow:
    """
    Usage:
        mw = MacroWindow.from_env()
        blocked, reason = mw.is_blocked(datetime.now(timezone.utc))
    """

    def __init__(self, events: Iterable[datetime] = (), window_hours: float = _cfg.MACRO_WINDOW_HOURS):
        self.events: List[datetime] = sorted(
            e if e.tzinfo else e.replace(tzinfo=timezone.utc) for e in events
        )
        self.window_hours = float(window_hours)

    @classmethod
    def from_env(cls, raw: Optional[str] = None, window_hours: Optional[str] = None) -> "MacroWindow":
        raw = raw if raw is not None else os.getenv("MACRO_EVENTS_UTC", "")
        hours_raw = window_hours if window_hours is not None else os.getenv("MACRO_WINDOW_HOURS")
        hours = _cfg.MACRO_WINDOW_HOURS
        if hours_raw not in (None, ""):
            try:
                parsed = float(hours_raw)
            except ValueError:
                parsed = None
            if parsed is not None and math.isfinite(parsed) and parsed >= 0:
                hours = parsed
            else:
                logger.warning(f"MacroWindow: bad MACRO_WINDOW_HOURS {hours_raw!r} — using {_cfg.MACRO_WINDOW_HOURS}")

        events = []
        for item in raw.split(","):
            item = item.strip()
            if not item:
                continue
            dt = parse_event_time(item)
            if dt is None:
                logger.warning(f"MacroWindow: skipping unparseable event time {item!r}")
                continue
            events.append(dt)
        return cls(events, hours)

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.window_hours)

    def is_blocked(self, now_utc: datetime) -> Tuple[bool, str]:
        """Returns (blocked, reason) for the given moment."""
        if now_utc.tzinfo is None:
            now_utc = now_utc.replace(tzinfo=timezone.utc)
        for event_dt in self.events:
            if abs(now_utc - event_dt) <= self.window:
                return True, f"macro event at {event_dt.isoformat()} (±{self.window_hours:g}h)"
        return False, ""

    def upcoming_events(self, hours_ahead: float = 48, now_utc: Optional[datetime] = None) -> List[datetime]:
        """Events in [now, now + hours_ahead] — for the /api/macro view."""
        now = now_utc or datetime.now(timezone.utc)
        cutoff = now + timedelta(hours=hours_ahead)
        return [e for e in self.events if now <= e <= cutoff]

    def format_upcoming(self, hours_ahead: float = 48, now_utc: Optional[datetime] = None) -> str:
        events = self.upcoming_events(hours_ahead, now_utc)
        if not events:
            return f"No macro events in the next {hours_ahead:g} hours."
        lines = [f"⚠️ Upcoming macro events (next {hours_ahead:g}h, ±{self.window_hours:g}h blackout):"]
        for e in events:
            lines.append(f"  • {e.strftime('%a %b %d %H:%M UTC')}")
        return "\n".join(lines)
