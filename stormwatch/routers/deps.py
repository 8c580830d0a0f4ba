"""FastAPI dependencies resolving the collaborators owned by the app instance."""
from __future__ import annotations

from fastapi import Request

from ..config_manager import ConfigManager
from ..models import AppConfig
from ..secret_store import SecretStore
from ..services.lightning_simulator import LightningSimulator
from ..services.lightning_store import LightningStore
from ..services.mapbox import MapboxGeocoder
from ..services.openweather import OpenWeatherClient


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_store(request: Request) -> LightningStore:
    return request.app.state.lightning_store


def get_simulator(request: Request) -> LightningSimulator:
    return request.app.state.lightning_simulator


def get_geocoder(request: Request) -> MapboxGeocoder:
    return request.app.state.geocoder


def get_weather_client(request: Request) -> OpenWeatherClient:
    return request.app.state.weather_client


def get_config_manager(request: Request) -> ConfigManager:
    return request.app.state.config_manager


def get_secret_store(request: Request) -> SecretStore:
    return request.app.state.secret_store
