"""Shared availability state for the upstream providers."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ProviderStatus:
    ok: bool
    timestamp: float
    error: Optional[str] = None


_KNOWN_PROVIDERS = {"mapbox", "openweathermap"}
_status_lock = threading.Lock()
_provider_status: Dict[str, ProviderStatus] = {}


def _normalize_provider(name: str) -> str:
    return name.lower().strip()


def reset_provider_state() -> None:
    """Mark every known provider as available again."""

    now = time.time()
    with _status_lock:
        _provider_status.clear()
        for name in _KNOWN_PROVIDERS:
            _provider_status[name] = ProviderStatus(ok=True, timestamp=now)


def record_provider_success(provider: str) -> None:
    """Mark a provider as available on the last attempt."""

    status = ProviderStatus(ok=True, timestamp=time.time(), error=None)
    with _status_lock:
        _provider_status[_normalize_provider(provider)] = status


def record_provider_failure(provider: str, error: Optional[str] = None) -> None:
    """Mark a provider as failed on the last attempt."""

    message = (error or "").strip()
    if message and len(message) > 300:
        message = message[:300] + "…"
    status = ProviderStatus(ok=False, timestamp=time.time(), error=message or None)
    with _status_lock:
        _provider_status[_normalize_provider(provider)] = status


def get_offline_state() -> Dict[str, Any]:
    """Return the combined upstream connectivity state."""

    with _status_lock:
        snapshot = dict(_provider_status)

    offline = bool(snapshot) and all(not state.ok for state in snapshot.values())
    result: Dict[str, Any] = {
        "offline": offline,
        "sources": {name: state.ok for name, state in snapshot.items()},
    }
    if offline:
        since = min(state.timestamp for state in snapshot.values())
        result["since"] = int(since * 1000)
    errors = {name: state.error for name, state in snapshot.items() if state.error}
    if errors:
        result["errors"] = errors
    return result


reset_provider_state()


__all__ = [
    "ProviderStatus",
    "get_offline_state",
    "record_provider_failure",
    "record_provider_success",
    "reset_provider_state",
]
