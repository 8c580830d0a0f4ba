"""Mapbox geocoding client: place search and reverse lookups."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ..errors import ConfigError, UpstreamError
from ..models import CitySearchResult, GeocodingConfig
from ..secret_store import SecretStore
from .offline_state import record_provider_failure, record_provider_success

logger = logging.getLogger(__name__)

PROVIDER = "mapbox"
SECRET_NAME = "mapbox_api_key"
MIN_QUERY_LENGTH = 2


class MapboxGeocoder:
    """Thin wrapper over the Mapbox places endpoint."""

    def __init__(
        self,
        secret_store: SecretStore,
        config: GeocodingConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._secret_store = secret_store
        self.config = config or GeocodingConfig()
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def _api_key(self) -> str:
        key = self._secret_store.get_secret(SECRET_NAME)
        if not key:
            raise ConfigError("Mapbox")
        return key

    def _get_features(self, query: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        url = f"{self.config.base_url.rstrip('/')}/{quote(query, safe=',')}.json"
        request_params = {"access_token": self._api_key(), "types": "place", **params}
        try:
            response = self._session.get(url, params=request_params, timeout=self.config.timeout_seconds)
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            record_provider_failure(PROVIDER, f"HTTP {status}")
            raise UpstreamError(PROVIDER, f"Mapbox request failed with HTTP {status}", status) from exc
        except (requests.RequestException, ValueError) as exc:
            record_provider_failure(PROVIDER, str(exc))
            raise UpstreamError(PROVIDER, f"Mapbox request failed: {exc}") from exc

        record_provider_success(PROVIDER)
        features = payload.get("features") if isinstance(payload, dict) else None
        return features if isinstance(features, list) else []

    def search_places(self, query: str) -> List[CitySearchResult]:
        """Return up to ``search_limit`` place suggestions for ``query``."""

        text = (query or "").strip()
        if len(text) < MIN_QUERY_LENGTH:
            return []
        features = self._get_features(text, {"limit": self.config.search_limit})
        results: List[CitySearchResult] = []
        for feature in features:
            parsed = _parse_feature(feature)
            if parsed is not None:
                results.append(parsed)
        logger.debug("[mapbox] search %r -> %d results", text, len(results))
        return results

    def reverse_geocode(self, lat: float, lon: float) -> Optional[str]:
        """Return the place name at (lat, lon), or None when Mapbox has no match."""

        features = self._get_features(f"{lon},{lat}", {})
        if not features:
            return None
        place_name = features[0].get("place_name")
        return str(place_name) if place_name else None


def _parse_feature(feature: Any) -> Optional[CitySearchResult]:
    if not isinstance(feature, dict):
        return None
    center = feature.get("center")
    if not isinstance(center, (list, tuple)) or len(center) < 2:
        return None
    context = [
        str(item.get("text"))
        for item in feature.get("context") or []
        if isinstance(item, dict) and item.get("text")
    ]
    try:
        return CitySearchResult(
            placeName=str(feature.get("place_name", "")),
            coordinates={"lat": center[1], "lon": center[0]},
            context=context,
        )
    except ValueError as exc:
        logger.debug("[mapbox] Skipping unparseable feature: %s", exc)
        return None


__all__ = ["MIN_QUERY_LENGTH", "MapboxGeocoder"]
