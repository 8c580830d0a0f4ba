from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Coordinates(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    lon: float = Field(..., ge=-180, le=180, allow_inf_nan=False)


class LightningStrikeCreate(BaseModel):
    """A strike as submitted to the store, before an id is assigned."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    coordinates: Coordinates
    location: Optional[str] = None
    # strict: booleans and numeric strings are rejected, not coerced
    intensity: int = Field(..., ge=1, le=10, strict=True)
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class LightningStrike(LightningStrikeCreate):
    id: str = Field(..., min_length=1)


class WeatherData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location: str
    coordinates: Coordinates
    temperature: float
    humidity: float
    windSpeed: float
    visibility: Optional[float] = None
    description: str
    icon: str


class CitySearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    placeName: str
    coordinates: Coordinates
    context: Optional[List[str]] = None


class ReverseGeocodeResult(BaseModel):
    location: str


# --- Configuration ---


class LightningConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    simulation_enabled: bool = True
    interval_seconds: float = Field(default=15.0, gt=0, le=3600)
    center_lat: float = Field(default=37.7749, ge=-90, le=90)
    center_lon: float = Field(default=-122.4194, ge=-180, le=180)
    jitter_degrees: float = Field(default=1.0, ge=0, le=10)
    max_age_minutes: int = Field(default=60, ge=1, le=24 * 60)
    max_strikes: Optional[int] = Field(default=5000, ge=1)
    api_limit: int = Field(default=20, ge=1, le=1000)


class WeatherConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    base_url: str = "https://api.openweathermap.org/data/2.5"
    default_city: str = Field(default="San Francisco", min_length=1)
    timeout_seconds: float = Field(default=10.0, gt=0, le=120)


class GeocodingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    base_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    search_limit: int = Field(default=5, ge=1, le=10)
    timeout_seconds: float = Field(default=10.0, gt=0, le=120)


class PollerConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    strikes_interval_seconds: float = Field(default=10.0, gt=0)
    weather_interval_seconds: float = Field(default=300.0, gt=0)
    weather_stale_seconds: float = Field(default=120.0, ge=0)


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lightning: LightningConfig = Field(default_factory=LightningConfig)
    weather: WeatherConfig = Field(default_factory=WeatherConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


__all__ = [
    "AppConfig",
    "CitySearchResult",
    "Coordinates",
    "GeocodingConfig",
    "LightningConfig",
    "LightningStrike",
    "LightningStrikeCreate",
    "PollerConfig",
    "ReverseGeocodeResult",
    "ServerConfig",
    "WeatherConfig",
    "WeatherData",
]
