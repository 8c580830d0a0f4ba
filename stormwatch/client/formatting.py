"""Presentation helpers for the lightning alerts panel."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

INTENSITY_LEVELS = 10


def format_time_ago(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """Elapsed time as HH:MM:SS for the last day, a short date beyond that."""

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - timestamp).total_seconds()))

    if seconds < 86400:
        hours, remainder = divmod(seconds, 3600)
        minutes, secs = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{timestamp.strftime('%b')} {timestamp.day}, {timestamp.strftime('%H:%M')}"


def intensity_bars(intensity: int) -> List[bool]:
    """Ten-slot bar gauge with the first ``intensity`` slots lit."""

    return [index < intensity for index in range(INTENSITY_LEVELS)]


__all__ = ["format_time_ago", "intensity_bars"]
