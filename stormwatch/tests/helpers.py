"""Shared builders for the test-suite."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict
from unittest.mock import MagicMock

import requests

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_response(payload: Any = None, status_code: int = 200) -> MagicMock:
    """Build a requests.Response stand-in for a mocked Session.get()."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


def make_session(*responses: Any) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    if len(responses) == 1:
        session.get.return_value = responses[0]
    elif responses:
        session.get.side_effect = list(responses)
    return session


def strike_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "coordinates": {"lat": 37.7749, "lon": -122.4194},
        "location": "San Francisco, California, United States",
        "intensity": 5,
        "timestamp": FIXED_NOW.isoformat(),
    }
    payload.update(overrides)
    return payload
