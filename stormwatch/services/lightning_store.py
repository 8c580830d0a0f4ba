"""In-memory store for lightning strikes."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..models import LightningStrike, LightningStrikeCreate

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
StrikeInput = Union[LightningStrikeCreate, Mapping[str, Any]]

DEFAULT_RECENT_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LightningStore:
    """Thread-safe keyed store with age-based eviction for lightning strikes.

    Records are never mutated after insertion. They leave the store only
    through ``evict_older_than`` or, when ``max_strikes`` is set, when the
    count cap drops the oldest ones.
    """

    def __init__(self, max_strikes: Optional[int] = None, clock: Clock | None = None) -> None:
        if max_strikes is not None and max_strikes < 1:
            raise ValueError("max_strikes must be positive")
        self.max_strikes = max_strikes
        self._clock = clock or _utcnow
        self._strikes: Dict[str, LightningStrike] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._strikes)

    def add(self, strike: StrikeInput) -> LightningStrike:
        """Assign a fresh id, insert the strike and return the stored record."""

        data = _validate(strike)
        with self._lock:
            strike_id = uuid.uuid4().hex
            while strike_id in self._strikes:
                strike_id = uuid.uuid4().hex
            stored = LightningStrike(id=strike_id, **data.model_dump())
            self._strikes[strike_id] = stored
            self._enforce_cap_locked()
        return stored

    def get(self, strike_id: str) -> Optional[LightningStrike]:
        with self._lock:
            return self._strikes.get(strike_id)

    def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[LightningStrike]:
        """Return up to ``limit`` strikes, newest first."""

        if limit < 0:
            raise ValidationError("limit must be non-negative")
        with self._lock:
            snapshot = list(self._strikes.values())
        # sorted() is stable, ties keep insertion order
        snapshot = sorted(snapshot, key=lambda s: s.timestamp, reverse=True)
        return snapshot[:limit]

    def evict_older_than(self, max_age_minutes: int) -> int:
        """Drop every strike whose timestamp is strictly older than now - max_age.

        Returns the number of evicted strikes.
        """

        if max_age_minutes <= 0:
            raise ValidationError("max_age_minutes must be positive")
        cutoff = self._clock() - timedelta(minutes=max_age_minutes)
        with self._lock:
            stale = [key for key, strike in self._strikes.items() if strike.timestamp < cutoff]
            for key in stale:
                del self._strikes[key]
        if stale:
            logger.debug("[lightning] Evicted %d strikes older than %d min", len(stale), max_age_minutes)
        return len(stale)

    def clear(self) -> None:
        """Clear all stored strikes."""

        with self._lock:
            self._strikes.clear()

    def _enforce_cap_locked(self) -> None:
        if self.max_strikes is None or len(self._strikes) <= self.max_strikes:
            return
        overflow = len(self._strikes) - self.max_strikes
        oldest = sorted(self._strikes.values(), key=lambda s: s.timestamp)[:overflow]
        for strike in oldest:
            del self._strikes[strike.id]
        logger.warning(
            "[lightning] Store above cap (%d), dropped %d oldest strikes",
            self.max_strikes,
            overflow,
        )


def _validate(strike: StrikeInput) -> LightningStrikeCreate:
    if isinstance(strike, LightningStrike):
        strike = strike.model_dump(exclude={"id"})
    if isinstance(strike, LightningStrikeCreate):
        # re-validate, model_construct() skips the field constraints
        strike = strike.model_dump()
    try:
        return LightningStrikeCreate.model_validate(strike)
    except PydanticValidationError as exc:
        raise ValidationError(_summarize(exc)) from exc


def _summarize(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts) or "invalid lightning strike"


__all__ = ["DEFAULT_RECENT_LIMIT", "LightningStore"]
