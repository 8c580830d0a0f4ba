"""Current-conditions proxy over OpenWeatherMap."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..errors import ConfigError, UpstreamError
from ..services.openweather import OpenWeatherClient
from .deps import get_weather_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/weather", tags=["weather"])


@router.get("/{city}")
def get_city_weather(city: str, client: OpenWeatherClient = Depends(get_weather_client)):
    """Return the current WeatherData for ``city``."""
    try:
        weather = client.get_weather(city)
    except ConfigError as exc:
        logger.error("[weather] %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    except UpstreamError as exc:
        logger.error("[weather] Weather API error for %r: %s", city, exc)
        if exc.not_found:
            return JSONResponse(status_code=404, content={"error": "City not found"})
        return JSONResponse(status_code=500, content={"error": "Failed to fetch weather data"})
    return weather.model_dump(mode="json", exclude_none=True)
