"""Cache entries held by the dashboard poller."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ViewStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"
    FROZEN = "frozen"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Last known value of a polled resource.

    ``value`` survives a failed or in-flight refresh so presentation code can
    keep showing it; ``fetched_at`` is the clock reading of the last success.
    """

    value: Optional[T] = None
    fetched_at: Optional[float] = None
    status: ViewStatus = ViewStatus.IDLE
    error: Optional[str] = None
    # status to restore if the in-flight request is abandoned
    previous: Optional[ViewStatus] = None

    @property
    def has_data(self) -> bool:
        return self.fetched_at is not None

    def loading(self) -> "CacheEntry[T]":
        if self.status is ViewStatus.LOADING:
            return self
        return replace(self, status=ViewStatus.LOADING, previous=self.status)

    def abandoned(self) -> "CacheEntry[T]":
        """Undo :meth:`loading`, keeping the prior status and error."""
        if self.status is not ViewStatus.LOADING:
            return self
        return replace(self, status=self.previous or ViewStatus.IDLE, previous=None)

    def ready(self, value: T, fetched_at: float) -> "CacheEntry[T]":
        return CacheEntry(value=value, fetched_at=fetched_at, status=ViewStatus.READY)

    def failed(self, reason: str) -> "CacheEntry[T]":
        return replace(self, status=ViewStatus.FAILED, error=reason, previous=None)


def is_stale(entry: CacheEntry, now: float, stale_window: float) -> bool:
    """True when the entry has never been fetched or is older than ``stale_window``."""

    if entry.fetched_at is None:
        return True
    return now - entry.fetched_at > stale_window


__all__ = ["CacheEntry", "ViewStatus", "is_stale"]
