"""Client-side polling of the strike list and the weather snapshot.

Each resource is a :class:`PolledView` with its own schedule and a per-key
cache of :class:`CacheEntry`. The :class:`DashboardPoller` owns both views
and maps the dashboard's connection/toggle/selection state onto them.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Awaitable, Callable, Dict, Generic, List, Optional, Set, TypeVar

from ..models import AppConfig, CitySearchResult, LightningStrike, WeatherData
from .api import StormWatchApi
from .cache import CacheEntry, ViewStatus, is_stale

logger = logging.getLogger(__name__)

T = TypeVar("T")
Clock = Callable[[], float]
Fetcher = Callable[[str], Awaitable[T]]

DEFAULT_CITY = AppConfig().weather.default_city
STRIKES_KEY = "/api/lightning"
COORDINATE_NAME = re.compile(r"^-?\d+\.\d+,\s*-?\d+\.\d+$")


def weather_key_for(selection: Optional[str], default_city: str = DEFAULT_CITY) -> Optional[str]:
    """City name used to query the weather for the selected location.

    Returns None for coordinate-shaped selections such as "37.7749, -122.4194",
    which suppresses the weather fetch until a place name is known.
    """
    if selection is None:
        return default_city
    name = selection.strip()
    if COORDINATE_NAME.match(name):
        return None
    return name.split(",")[0].strip() or None


class PolledView(Generic[T]):
    """One polled resource: schedule, cache and last-write-wins bookkeeping."""

    def __init__(
        self,
        name: str,
        fetcher: Fetcher,
        interval: float,
        stale_after: float,
        clock: Clock,
    ) -> None:
        self.name = name
        self.interval = interval
        self.stale_after = stale_after
        self._fetcher = fetcher
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._key: Optional[str] = None
        self._enabled = False
        # bumped whenever in-flight results must no longer be applied
        self._epoch = 0
        self._issued = 0
        self._applied = 0
        self._in_flight: Optional[asyncio.Future] = None
        self.next_due: Optional[float] = None
        self.fetch_count = 0

    @property
    def key(self) -> Optional[str]:
        return self._key

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def active(self) -> bool:
        return self._enabled and self._key is not None

    @property
    def entry(self) -> CacheEntry[T]:
        if self._key is None:
            return CacheEntry()
        return self._entries.get(self._key, CacheEntry())

    @property
    def value(self) -> Optional[T]:
        return self.entry.value

    @property
    def state(self) -> ViewStatus:
        if not self._enabled:
            return ViewStatus.FROZEN
        if self._key is None:
            return ViewStatus.IDLE
        return self.entry.status

    def is_stale(self) -> bool:
        return is_stale(self.entry, self._clock(), self.stale_after)

    def is_due(self, now: float) -> bool:
        return self.active and self.next_due is not None and now >= self.next_due

    def set_key(self, key: Optional[str]) -> None:
        if key == self._key:
            return
        self._abandon_in_flight()
        self._key = key
        self._reschedule()

    def set_enabled(self, enabled: bool) -> None:
        if enabled == self._enabled:
            return
        self._abandon_in_flight()
        self._enabled = enabled
        self._reschedule()

    def _abandon_in_flight(self) -> None:
        self._epoch += 1
        self._in_flight = None
        for key, entry in list(self._entries.items()):
            if entry.status is ViewStatus.LOADING:
                self._entries[key] = entry.abandoned()

    def _reschedule(self) -> None:
        if not self.active:
            self.next_due = None
            return
        now = self._clock()
        entry = self.entry
        if is_stale(entry, now, self.stale_after):
            self.next_due = now
        else:
            self.next_due = entry.fetched_at + self.interval

    async def refresh(self, force: bool = False) -> Optional[T]:
        """Fetch the current key and apply the result unless it was superseded.

        Without ``force`` a request already in flight is joined instead of
        starting another one.
        """
        if not self.active:
            return None
        if not force and self._in_flight is not None and not self._in_flight.done():
            return await self._join_in_flight(self._in_flight)

        key = self._key
        epoch = self._epoch
        self._issued += 1
        ticket = self._issued
        self.next_due = self._clock() + self.interval
        self._entries[key] = self._entries.get(key, CacheEntry()).loading()
        self.fetch_count += 1
        task = asyncio.ensure_future(self._fetcher(key))
        self._in_flight = task
        try:
            value = await task
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - surfaced as FAILED state
            self._settle(task, ticket, epoch, key, error=exc)
            return None
        if self._settle(task, ticket, epoch, key, value=value):
            return value
        return None

    async def _join_in_flight(self, task: asyncio.Future) -> Optional[T]:
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001 - the owner of the request records the failure
            return None
        return self.value

    def _settle(
        self,
        task: asyncio.Future,
        ticket: int,
        epoch: int,
        key: str,
        value: Optional[T] = None,
        error: Optional[BaseException] = None,
    ) -> bool:
        if self._in_flight is task:
            self._in_flight = None
        if epoch != self._epoch or ticket < self._applied:
            logger.debug("[poller] Discarding superseded %s response for %r", self.name, key)
            return False
        self._applied = ticket
        entry = self._entries.get(key, CacheEntry())
        if error is not None:
            logger.warning("[poller] %s refresh for %r failed: %s", self.name, key, error)
            self._entries[key] = entry.failed(str(error) or type(error).__name__)
        else:
            self._entries[key] = entry.ready(value, self._clock())
        return True


class DashboardPoller:
    """Keeps the strike list and the weather snapshot fresh for the dashboard."""

    def __init__(
        self,
        api: StormWatchApi,
        config: AppConfig | None = None,
        clock: Clock = time.monotonic,
        lightning_enabled: bool = True,
        connected: bool = True,
        selection: Optional[str] = None,
    ) -> None:
        self.api = api
        config = config or AppConfig()
        self.config = config.poller
        self.default_city = config.weather.default_city
        self._clock = clock
        self.connected = connected
        self.lightning_enabled = lightning_enabled
        self.selection = selection
        self._tasks: Set[asyncio.Task] = set()

        self.strikes: PolledView[List[LightningStrike]] = PolledView(
            "strikes",
            lambda _key: api.list_strikes(),
            interval=self.config.strikes_interval_seconds,
            stale_after=0.0,
            clock=clock,
        )
        self.weather: PolledView[WeatherData] = PolledView(
            "weather",
            api.get_weather,
            interval=self.config.weather_interval_seconds,
            stale_after=self.config.weather_stale_seconds,
            clock=clock,
        )
        self.strikes.set_key(STRIKES_KEY)
        self.weather.set_key(weather_key_for(selection, self.default_city))
        self._apply_flags()

    @property
    def views(self) -> List[PolledView]:
        return [self.strikes, self.weather]

    def _apply_flags(self) -> None:
        self.strikes.set_enabled(self.connected and self.lightning_enabled)
        self.weather.set_enabled(self.connected)

    def set_connected(self, connected: bool) -> None:
        if connected != self.connected:
            logger.info("[poller] %s", "Connected" if connected else "Disconnected, polling frozen")
        self.connected = connected
        self._apply_flags()

    def set_lightning_enabled(self, enabled: bool) -> None:
        self.lightning_enabled = enabled
        self._apply_flags()

    def select_location(self, name: Optional[str]) -> None:
        self.selection = name
        self.weather.set_key(weather_key_for(name, self.default_city))

    def poll_due(self) -> List[asyncio.Task]:
        """Start a refresh task for every view whose schedule has come due."""

        now = self._clock()
        started = []
        for view in self.views:
            if not view.is_due(now):
                continue
            view.next_due = now + view.interval
            task = asyncio.ensure_future(view.refresh())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            started.append(task)
        return started

    async def tick(self) -> int:
        """Run due refreshes to completion; returns how many were started."""

        tasks = self.poll_due()
        if tasks:
            await asyncio.gather(*tasks)
        return len(tasks)

    async def refresh_weather(self) -> Optional[WeatherData]:
        """Manual refresh, ignoring the staleness window."""
        return await self.weather.refresh(force=True)

    async def refresh_strikes(self) -> Optional[List[LightningStrike]]:
        return await self.strikes.refresh(force=True)

    async def search_cities(self, query: str) -> List[CitySearchResult]:
        if not self.connected or len(query) < 2:
            return []
        return await self.api.search_cities(query)

    async def run(self, resolution: float = 1.0) -> None:
        """Poll until cancelled."""
        try:
            while True:
                self.poll_due()
                await asyncio.sleep(resolution)
        finally:
            for task in list(self._tasks):
                task.cancel()


__all__ = [
    "COORDINATE_NAME",
    "DEFAULT_CITY",
    "DashboardPoller",
    "PolledView",
    "STRIKES_KEY",
    "weather_key_for",
]
