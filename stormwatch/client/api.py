"""Async HTTP client for the StormWatch backend endpoints."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..models import CitySearchResult, LightningStrike, LightningStrikeCreate, WeatherData

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(10.0, read=15.0)


class ApiError(Exception):
    """The backend answered with an error status or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class StormWatchApi:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:5000",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=DEFAULT_TIMEOUT)

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise ApiError(f"{method} {url} failed: {exc}") from exc
        if response.status_code >= 400:
            message = _error_message(response) or f"HTTP {response.status_code}"
            logger.debug("[api] %s %s -> %d (%s)", method, url, response.status_code, message)
            raise ApiError(message, response.status_code)
        return response.json()

    async def list_strikes(self) -> List[LightningStrike]:
        data = await self._request("GET", "/api/lightning")
        return [LightningStrike.model_validate(item) for item in data]

    async def submit_strike(self, strike: LightningStrikeCreate) -> LightningStrike:
        data = await self._request("POST", "/api/lightning", json=strike.model_dump(mode="json", exclude_none=True))
        return LightningStrike.model_validate(data)

    async def get_weather(self, city: str) -> WeatherData:
        try:
            data = await self._request("GET", f"/api/weather/{quote(city, safe='')}")
        except ApiError as exc:
            if exc.not_found:
                raise ApiError("City not found", 404) from exc
            raise ApiError("Failed to fetch weather data", exc.status_code) from exc
        return WeatherData.model_validate(data)

    async def search_cities(self, query: str) -> List[CitySearchResult]:
        if len(query) < 2:
            return []
        data = await self._request("GET", "/api/cities/search", params={"q": query})
        return [CitySearchResult.model_validate(item) for item in data]

    async def reverse_geocode(self, lat: float, lon: float) -> str:
        data = await self._request("GET", "/api/reverse-geocode", params={"lat": lat, "lon": lon})
        return str(data["location"])


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        payload: Dict[str, Any] = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return None


__all__ = ["ApiError", "StormWatchApi"]
