from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from stormwatch.config_manager import ConfigManager
from stormwatch.logging_utils import configure_logging
from stormwatch.models import AppConfig
from stormwatch.routers import geocoding, lightning, system, weather
from stormwatch.secret_store import SecretStore
from stormwatch.services.lightning_simulator import LightningSimulator
from stormwatch.services.lightning_store import LightningStore
from stormwatch.services.mapbox import MapboxGeocoder
from stormwatch.services.openweather import OpenWeatherClient

logger = configure_logging()


class SPAStaticFiles(StaticFiles):
    """Serves the dashboard bundle, falling back to index.html for client routes."""

    async def get_response(self, path: str, scope):
        response = await super().get_response(path, scope)
        if response.status_code == 404:
            return await super().get_response("index.html", scope)
        return response


def create_app(
    config_manager: Optional[ConfigManager] = None,
    secret_store: Optional[SecretStore] = None,
    store: Optional[LightningStore] = None,
    geocoder: Optional[MapboxGeocoder] = None,
    weather_client: Optional[OpenWeatherClient] = None,
    simulator: Optional[LightningSimulator] = None,
) -> FastAPI:
    """Build the app and the collaborators it owns for its lifetime."""

    config_manager = config_manager or ConfigManager()
    config: AppConfig = config_manager.read()
    secret_store = secret_store or SecretStore()

    store = store or LightningStore(max_strikes=config.lightning.max_strikes)
    geocoder = geocoder or MapboxGeocoder(secret_store, config.geocoding)
    weather_client = weather_client or OpenWeatherClient(secret_store, config.weather)
    simulator = simulator or LightningSimulator(
        store,
        reverse_geocode=geocoder.reverse_geocode,
        config=config.lightning,
    )

    app = FastAPI(title="StormWatch Backend", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.config_manager = config_manager
    app.state.secret_store = secret_store
    app.state.lightning_store = store
    app.state.geocoder = geocoder
    app.state.weather_client = weather_client
    app.state.lightning_simulator = simulator

    app.include_router(weather.router)
    app.include_router(geocoding.router)
    app.include_router(lightning.router)
    app.include_router(system.router)

    @app.on_event("startup")
    def _startup_services() -> None:
        if not config.lightning.simulation_enabled:
            logger.info("[startup] Lightning simulation disabled")
            return
        if not secret_store.has_secret("mapbox_api_key"):
            logger.warning("[startup] Mapbox API key not configured, strikes will have no location label")
        simulator.start()

    @app.on_event("shutdown")
    def _shutdown_services() -> None:
        logger.info("Shutting down services...")
        simulator.stop()
        geocoder.close()
        weather_client.close()

    ui_dist = Path(os.getenv("STORMWATCH_UI_DIST", "/var/www/stormwatch"))
    if ui_dist.is_dir():
        app.mount("/", SPAStaticFiles(directory=str(ui_dist), html=True), name="frontend")
    else:
        logger.debug("Frontend dist directory not found at %s, serving API only", ui_dist)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "5000"))
    logger.info("Serving on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port)
