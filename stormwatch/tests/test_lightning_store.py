from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from stormwatch.errors import ValidationError
from stormwatch.models import LightningStrikeCreate
from stormwatch.services.lightning_store import LightningStore
from stormwatch.tests.helpers import FIXED_NOW, strike_payload


def _store(**kwargs) -> LightningStore:
    return LightningStore(clock=lambda: FIXED_NOW, **kwargs)


def _at(minutes_ago: float, **overrides) -> dict:
    timestamp = FIXED_NOW - timedelta(minutes=minutes_ago)
    return strike_payload(timestamp=timestamp.isoformat(), **overrides)


def test_add_assigns_id_and_keeps_fields() -> None:
    store = _store()
    stored = store.add(strike_payload())

    assert stored.id
    fetched = store.recent(10)
    assert fetched == [stored]
    assert fetched[0].coordinates.lat == 37.7749
    assert fetched[0].coordinates.lon == -122.4194
    assert fetched[0].location == "San Francisco, California, United States"
    assert fetched[0].intensity == 5
    assert fetched[0].timestamp == FIXED_NOW


def test_ids_are_unique_across_history() -> None:
    store = _store()
    seen = set()
    for _ in range(50):
        seen.add(store.add(strike_payload()).id)
        store.clear()
    assert len(seen) == 50


def test_add_accepts_model_without_location() -> None:
    store = _store()
    strike = LightningStrikeCreate(
        coordinates={"lat": 10.0, "lon": 20.0},
        intensity=3,
        timestamp=FIXED_NOW,
    )
    stored = store.add(strike)
    assert stored.location is None
    assert store.get(stored.id) == stored


def test_naive_timestamp_is_treated_as_utc() -> None:
    store = _store()
    stored = store.add(strike_payload(timestamp="2024-06-01T12:00:00"))
    assert stored.timestamp == FIXED_NOW
    assert stored.timestamp.tzinfo is not None


@pytest.mark.parametrize("intensity", [1, 10])
def test_intensity_boundaries_are_accepted(intensity: int) -> None:
    store = _store()
    assert store.add(strike_payload(intensity=intensity)).intensity == intensity


@pytest.mark.parametrize("intensity", [0, 11, -3, 5.5, True, "7"])
def test_invalid_intensity_is_rejected(intensity: object) -> None:
    store = _store()
    with pytest.raises(ValidationError):
        store.add(strike_payload(intensity=intensity))
    assert len(store) == 0


@pytest.mark.parametrize(
    "coordinates",
    [
        {"lat": 90.5, "lon": 0.0},
        {"lat": 0.0, "lon": -180.1},
        {"lat": float("nan"), "lon": 0.0},
        {"lat": 0.0, "lon": float("inf")},
        {"lat": 1.0},
    ],
)
def test_invalid_coordinates_are_rejected(coordinates: dict) -> None:
    store = _store()
    with pytest.raises(ValidationError):
        store.add(strike_payload(coordinates=coordinates))


def test_unvalidated_model_is_rechecked() -> None:
    store = _store()
    bogus = LightningStrikeCreate.model_construct(
        coordinates={"lat": 1.0, "lon": 1.0}, location=None, intensity=42, timestamp=FIXED_NOW
    )
    with pytest.raises(ValidationError):
        store.add(bogus)


def test_recent_on_empty_store() -> None:
    assert _store().recent(10) == []


def test_recent_sorts_newest_first_and_limits() -> None:
    store = _store()
    for minutes_ago in (30, 5, 45, 1, 12):
        store.add(_at(minutes_ago))

    recent = store.recent(3)
    assert len(recent) == 3
    assert [FIXED_NOW - s.timestamp for s in recent] == [
        timedelta(minutes=1),
        timedelta(minutes=5),
        timedelta(minutes=12),
    ]
    assert len(store.recent(100)) == 5
    assert store.recent(0) == []


def test_recent_default_limit_is_fifty() -> None:
    store = _store()
    for index in range(60):
        store.add(_at(index * 0.1))
    assert len(store.recent()) == 50


def test_recent_rejects_negative_limit() -> None:
    with pytest.raises(ValidationError):
        _store().recent(-1)


def test_evict_keeps_only_recent_strikes() -> None:
    store = _store()
    fresh = store.add(_at(5))
    store.add(_at(65))
    store.add(_at(120))

    assert store.evict_older_than(60) == 2
    assert store.recent(10) == [fresh]


def test_evict_is_idempotent() -> None:
    store = _store()
    store.add(_at(5))
    store.add(_at(90))

    assert store.evict_older_than(60) == 1
    snapshot = store.recent(10)
    assert store.evict_older_than(60) == 0
    assert store.recent(10) == snapshot


def test_evict_keeps_strike_exactly_at_cutoff() -> None:
    store = _store()
    boundary = store.add(_at(60))
    store.evict_older_than(60)
    assert store.get(boundary.id) == boundary


def test_evict_rejects_non_positive_age() -> None:
    with pytest.raises(ValidationError):
        _store().evict_older_than(0)


def test_max_strikes_drops_oldest() -> None:
    store = _store(max_strikes=3)
    oldest = store.add(_at(40))
    kept = [store.add(_at(minutes)) for minutes in (30, 20, 10)]

    assert len(store) == 3
    assert store.get(oldest.id) is None
    assert {s.id for s in store.recent(10)} == {s.id for s in kept}


def test_concurrent_adds_are_serialized() -> None:
    store = LightningStore()
    now = datetime.now(timezone.utc).isoformat()

    def worker() -> None:
        for _ in range(100):
            store.add(strike_payload(timestamp=now))
            store.evict_older_than(60)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store) == 800
    assert len({s.id for s in store.recent(1000)}) == 800
