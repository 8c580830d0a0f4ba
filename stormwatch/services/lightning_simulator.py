"""Simulated lightning feed that periodically feeds the strike store."""
from __future__ import annotations

import logging
import random
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from ..models import LightningConfig, LightningStrike, LightningStrikeCreate
from .lightning_store import Clock, LightningStore

logger = logging.getLogger(__name__)

ReverseGeocoder = Callable[[float, float], Optional[str]]

MIN_INTENSITY = 1
MAX_INTENSITY = 10


class LightningSimulator:
    """Background producer of fake strikes around a reference point.

    Each cycle generates one strike, inserts it and evicts everything older
    than ``max_age_minutes``. A failing cycle is logged and the next one runs
    on schedule.
    """

    def __init__(
        self,
        store: LightningStore,
        reverse_geocode: Optional[ReverseGeocoder] = None,
        config: LightningConfig | None = None,
        rng: random.Random | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.reverse_geocode = reverse_geocode
        self.config = config or LightningConfig()
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.cycles = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start the generator thread. Returns False if already running."""

        if self.running:
            logger.warning("[lightning] Simulator already running")
            return False
        # fresh event per thread so a stuck predecessor never sees it cleared
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, args=(self._stop_event,), name="lightning-simulator", daemon=True
        )
        self._thread.start()
        logger.info(
            "[lightning] Simulating strikes around (%.4f, %.4f) every %.1fs",
            self.config.center_lat,
            self.config.center_lon,
            self.config.interval_seconds,
        )
        return True

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the generator thread and wait for it to exit."""

        self._stop_event.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                # keep the reference so start() still sees it running
                logger.warning("[lightning] Simulator thread did not stop within %.1fs", timeout)
                return
        self._thread = None
        logger.info("[lightning] Simulator stopped")

    def _loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.config.interval_seconds):
            self.run_once()

    def generate_strike(self) -> LightningStrikeCreate:
        jitter = self.config.jitter_degrees
        lat = self.config.center_lat + self._rng.uniform(-jitter, jitter)
        lon = self.config.center_lon + self._rng.uniform(-jitter, jitter)
        return LightningStrikeCreate(
            coordinates={"lat": lat, "lon": lon},
            location=self._lookup_location(lat, lon),
            intensity=self._rng.randint(MIN_INTENSITY, MAX_INTENSITY),
            timestamp=self._clock(),
        )

    def _lookup_location(self, lat: float, lon: float) -> Optional[str]:
        if self.reverse_geocode is None:
            return None
        try:
            return self.reverse_geocode(lat, lon)
        except Exception as exc:  # noqa: BLE001 - the label is best-effort
            logger.warning("[lightning] Failed to get location for strike: %s", exc)
            return None

    def run_once(self) -> Optional[LightningStrike]:
        """Run one generation cycle; returns the stored strike or None on failure."""

        self.cycles += 1
        try:
            strike = self.store.add(self.generate_strike())
            self.store.evict_older_than(self.config.max_age_minutes)
        except Exception as exc:  # noqa: BLE001 - a cycle must never kill the loop
            self.failures += 1
            logger.error("[lightning] Simulation cycle failed: %s", exc, exc_info=True)
            return None
        logger.debug(
            "[lightning] Strike %s at (%.4f, %.4f) intensity=%d",
            strike.id,
            strike.coordinates.lat,
            strike.coordinates.lon,
            strike.intensity,
        )
        return strike


__all__ = ["LightningSimulator", "ReverseGeocoder"]
