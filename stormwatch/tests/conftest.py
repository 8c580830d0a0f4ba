import importlib
import json
import sys
from pathlib import Path
from typing import Any, Callable, Generator, Optional
from unittest.mock import MagicMock

import pytest

from stormwatch.tests.helpers import make_session

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "default_config.json"


@pytest.fixture()
def state_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    state = tmp_path / "state"
    state.mkdir()
    monkeypatch.setenv("STORMWATCH_STATE_DIR", str(state))
    monkeypatch.setenv("STORMWATCH_BACKEND_LOG", str(tmp_path / "log" / "backend.log"))
    monkeypatch.setenv("STORMWATCH_UI_DIST", str(tmp_path / "no-ui"))
    for name in (
        "MAPBOX_API_KEY",
        "VITE_MAPBOX_API_KEY",
        "OPENWEATHERMAP_API_KEY",
        "VITE_OPENWEATHERMAP_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    return state


@pytest.fixture()
def config_file(state_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = state_dir / "config.json"
    config = json.loads(DEFAULT_CONFIG_PATH.read_text(encoding="utf-8"))
    config["lightning"]["simulation_enabled"] = False
    path.write_text(json.dumps(config), encoding="utf-8")
    monkeypatch.setenv("STORMWATCH_CONFIG", str(path))
    monkeypatch.setenv("STORMWATCH_DEFAULT_CONFIG_FILE", str(DEFAULT_CONFIG_PATH))
    return path


@pytest.fixture()
def secret_store(state_dir: Path):
    from stormwatch.secret_store import SecretStore

    store = SecretStore(state_dir / "secrets.json")
    store.set_secret("mapbox_api_key", "pk.test-mapbox")
    store.set_secret("openweathermap_api_key", "owm-test-key")
    return store


@pytest.fixture()
def app_module(config_file: Path) -> Generator[Any, None, None]:
    if "stormwatch.main" in sys.modules:
        del sys.modules["stormwatch.main"]
    module = importlib.import_module("stormwatch.main")
    yield module


@pytest.fixture()
def build_app(app_module: Any, secret_store: Any) -> Callable[..., Any]:
    """Factory for an app wired to mocked upstream sessions."""

    from stormwatch.config_manager import ConfigManager
    from stormwatch.services.mapbox import MapboxGeocoder
    from stormwatch.services.openweather import OpenWeatherClient

    def _build(
        mapbox_session: Optional[MagicMock] = None,
        weather_session: Optional[MagicMock] = None,
        **kwargs: Any,
    ) -> Any:
        config = ConfigManager().read()
        geocoder = MapboxGeocoder(secret_store, config.geocoding, session=mapbox_session or make_session())
        weather_client = OpenWeatherClient(secret_store, config.weather, session=weather_session or make_session())
        return app_module.create_app(
            secret_store=secret_store,
            geocoder=geocoder,
            weather_client=weather_client,
            **kwargs,
        )

    return _build


@pytest.fixture(autouse=True)
def _reset_provider_state() -> Generator[None, None, None]:
    from stormwatch.services.offline_state import reset_provider_state

    reset_provider_state()
    yield
    reset_provider_state()

