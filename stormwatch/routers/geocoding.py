"""Place search and reverse geocoding proxied through Mapbox."""
from __future__ import annotations

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..errors import ConfigError, UpstreamError
from ..services.mapbox import MapboxGeocoder
from .deps import get_geocoder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["geocoding"])


@router.get("/cities/search")
def search_cities(
    q: Optional[str] = Query(default=None),
    geocoder: MapboxGeocoder = Depends(get_geocoder),
):
    if not q or len(q) < 2:
        return []
    try:
        results = geocoder.search_places(q)
    except ConfigError as exc:
        logger.error("[geocoding] %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    except UpstreamError as exc:
        logger.error("[geocoding] City search error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Failed to search cities"})
    return [result.model_dump(mode="json", exclude_none=True) for result in results]


@router.get("/reverse-geocode")
def reverse_geocode(
    lat: Optional[str] = Query(default=None),
    lon: Optional[str] = Query(default=None),
    geocoder: MapboxGeocoder = Depends(get_geocoder),
):
    if not lat or not lon:
        return JSONResponse(status_code=400, content={"error": "Latitude and longitude are required"})
    try:
        lat_value = float(lat)
        lon_value = float(lon)
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Latitude and longitude must be numbers"})
    if not (math.isfinite(lat_value) and math.isfinite(lon_value)):
        return JSONResponse(status_code=400, content={"error": "Latitude and longitude must be numbers"})

    try:
        place_name = geocoder.reverse_geocode(lat_value, lon_value)
    except ConfigError as exc:
        logger.error("[geocoding] %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    except UpstreamError as exc:
        logger.error("[geocoding] Reverse geocoding error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Failed to reverse geocode"})
    # echo the raw query values when Mapbox has no match
    return {"location": place_name or f"{lat}, {lon}"}
