from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest

from stormwatch.config_manager import ConfigManager
from stormwatch.logging_utils import SensitiveDataFilter, mask_sensitive
from stormwatch.secret_store import SecretStore

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "default_config.json"


def _manager(path: Path) -> ConfigManager:
    return ConfigManager(config_file=path, default_config_file=DEFAULT_CONFIG_PATH)


def test_missing_config_falls_back_to_defaults(tmp_path: Path) -> None:
    manager = _manager(tmp_path / "missing.json")

    config = manager.read()

    assert manager.config_source == "embedded_fallback"
    assert config.lightning.interval_seconds == 15
    assert config.lightning.max_age_minutes == 60
    assert config.lightning.api_limit == 20
    assert (config.lightning.center_lat, config.lightning.center_lon) == (37.7749, -122.4194)
    assert config.poller.weather_stale_seconds == 120


def test_partial_config_is_merged_with_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"lightning": {"interval_seconds": 5}, "unknown": True}), encoding="utf-8")
    manager = _manager(path)

    config = manager.read()

    assert manager.config_source == "file"
    assert config.lightning.interval_seconds == 5
    assert config.lightning.max_age_minutes == 60
    assert config.weather.default_city == "San Francisco"


@pytest.mark.parametrize(
    "content",
    ["{not json", json.dumps([1, 2]), json.dumps({"lightning": {"max_age_minutes": 0}})],
)
def test_invalid_config_falls_back(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    manager = _manager(path)

    config = manager.read()

    assert manager.config_source == "embedded_fallback"
    assert config.lightning.max_age_minutes == 60


def test_write_round_trips(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.json"
    manager = _manager(path)

    manager.write({"weather": {"default_city": "Chicago"}, "poller": {"weather_stale_seconds": 60}})

    config = manager.read()
    assert config.weather.default_city == "Chicago"
    assert config.poller.weather_stale_seconds == 60


def test_secret_store_persists_with_private_mode(tmp_path: Path) -> None:
    path = tmp_path / "secrets.json"
    store = SecretStore(path)

    store.set_secret("mapbox_api_key", "  pk.abc  ")

    assert SecretStore(path).get_secret("mapbox_api_key") == "pk.abc"
    assert os.stat(path).st_mode & 0o777 == 0o600
    store.set_secret("mapbox_api_key", "")
    assert store.has_secret("mapbox_api_key") is False


def test_secret_store_env_fallback(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MAPBOX_API_KEY", raising=False)
    monkeypatch.setenv("VITE_MAPBOX_API_KEY", "pk.from-vite")
    store = SecretStore(tmp_path / "secrets.json")

    assert store.get_secret("mapbox_api_key") == "pk.from-vite"
    monkeypatch.setenv("MAPBOX_API_KEY", "pk.from-env")
    assert store.get_secret("mapbox_api_key") == "pk.from-env"
    store.set_secret("mapbox_api_key", "pk.stored")
    assert store.get_secret("mapbox_api_key") == "pk.stored"


def test_mask_sensitive_hides_tokens() -> None:
    text = "GET https://api.mapbox.com/x.json?access_token=pk.secret&types=place appid=owm123"
    masked = mask_sensitive(text)
    assert "pk.secret" not in masked
    assert "owm123" not in masked
    assert "types=place" in masked


def test_sensitive_filter_masks_args() -> None:
    record = logging.LogRecord(
        "stormwatch", logging.ERROR, __file__, 1, "failed %s", ("url?access_token=pk.secret",), None
    )
    SensitiveDataFilter().filter(record)
    assert "pk.secret" not in record.getMessage()
