"""
OpenWeatherMap current-conditions client.
Normalizes the provider payload into the dashboard's WeatherData shape.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict

import requests

from ..errors import ConfigError, UpstreamError
from ..models import WeatherConfig, WeatherData
from ..secret_store import SecretStore
from .offline_state import record_provider_failure, record_provider_success

logger = logging.getLogger(__name__)

PROVIDER = "openweathermap"
SECRET_NAME = "openweathermap_api_key"
MS_TO_KMH = 3.6
# parse_current_weather assumes Celsius and m/s
UNITS = "metric"


class OpenWeatherClient:
    """Fetches current conditions for a city name."""

    def __init__(
        self,
        secret_store: SecretStore,
        config: WeatherConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._secret_store = secret_store
        self.config = config or WeatherConfig()
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def fetch_current(self, city: str) -> Dict[str, Any]:
        """
        Fetch the raw current-conditions payload.

        Raises:
            ConfigError: the API key is not configured
            UpstreamError: the request failed; ``not_found`` is set on HTTP 404
        """
        key = self._secret_store.get_secret(SECRET_NAME)
        if not key:
            raise ConfigError("OpenWeatherMap")

        params = {"q": city, "appid": key, "units": UNITS}
        logger.info("[openweather] Fetching current weather for %r", city)
        try:
            response = self._session.get(
                f"{self.config.base_url.rstrip('/')}/weather",
                params=params,
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            if status == 404:
                # unknown city is not a provider outage
                record_provider_success(PROVIDER)
            else:
                record_provider_failure(PROVIDER, f"HTTP {status}")
            raise UpstreamError(PROVIDER, f"OpenWeatherMap returned HTTP {status}", status) from exc
        except (requests.RequestException, ValueError) as exc:
            record_provider_failure(PROVIDER, str(exc))
            raise UpstreamError(PROVIDER, f"OpenWeatherMap request failed: {exc}") from exc

        record_provider_success(PROVIDER)
        return data

    def get_weather(self, city: str) -> WeatherData:
        return parse_current_weather(self.fetch_current(city))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def parse_current_weather(data: Dict[str, Any]) -> WeatherData:
    """Map an OpenWeatherMap ``/weather`` response onto WeatherData."""

    try:
        main = data["main"]
        condition = data["weather"][0]
        visibility_m = data.get("visibility")
        return WeatherData(
            location=f"{data['name']}, {data['sys']['country']}",
            coordinates={"lat": data["coord"]["lat"], "lon": data["coord"]["lon"]},
            temperature=_round_half_up(main["temp"]),
            humidity=main["humidity"],
            windSpeed=_round_half_up(data["wind"]["speed"] * MS_TO_KMH),
            visibility=_round_half_up(visibility_m / 1000) if visibility_m else None,
            description=condition["description"],
            icon=condition["icon"],
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise UpstreamError(PROVIDER, f"Unexpected OpenWeatherMap payload: {exc}") from exc


__all__ = ["OpenWeatherClient", "parse_current_weather"]
