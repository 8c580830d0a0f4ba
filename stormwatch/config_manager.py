from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import ValidationError

from .models import AppConfig


class ConfigManager:
    """Utility class that handles persistent configuration for the backend."""

    def __init__(
        self,
        config_file: Path | None = None,
        default_config_file: Path | None = None,
    ) -> None:
        self.logger = logging.getLogger("stormwatch.config")

        # 1. explicit argument, 2. STORMWATCH_CONFIG, 3. /var/lib/stormwatch/config.json
        env_config = os.getenv("STORMWATCH_CONFIG")
        resolved_path = Path(env_config) if env_config else Path("/var/lib/stormwatch/config.json")
        self.config_file = config_file or resolved_path
        self.default_config_file = default_config_file or Path(
            os.getenv(
                "STORMWATCH_DEFAULT_CONFIG_FILE",
                Path(__file__).resolve().parent / "default_config.json",
            )
        )
        self.config_source: Literal["file", "embedded_fallback"] = "file"
        self.config_loaded_at: Optional[str] = None

    def _default_config_model(self) -> AppConfig:
        try:
            raw = json.loads(self.default_config_file.read_text(encoding="utf-8"))
            return AppConfig.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            self.logger.warning(
                "[config] Default template %s unusable (%s), using built-in defaults",
                self.default_config_file,
                exc,
            )
            return AppConfig()

    def read(self) -> AppConfig:
        """Load and validate the config file, falling back to the embedded defaults."""

        try:
            raw = json.loads(self.config_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            self.logger.warning(
                "Config file %s does not exist, falling back to embedded default",
                self.config_file,
            )
            return self._fallback()
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning(
                "Cannot read config file %s (reason: %s), falling back to embedded default",
                self.config_file,
                exc,
            )
            return self._fallback()

        if not isinstance(raw, dict):
            self.logger.warning("[config] %s is not a JSON object, using defaults", self.config_file)
            return self._fallback()

        merged = _deep_merge(self._default_config_model().model_dump(mode="json"), raw)
        try:
            config = AppConfig.model_validate(merged)
        except ValidationError as exc:
            self.logger.warning("[config] Invalid config in %s: %s", self.config_file, exc)
            return self._fallback()

        self.config_source = "file"
        self.config_loaded_at = datetime.now(timezone.utc).isoformat()
        return config

    def write(self, payload: Dict[str, Any]) -> AppConfig:
        """Validate ``payload`` and persist it atomically."""

        config = AppConfig.model_validate(payload)
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=self.config_file.name + ".", dir=str(self.config_file.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(json.dumps(config.model_dump(mode="json"), indent=2, ensure_ascii=False))
            os.replace(tmp_path, self.config_file)
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
        self.logger.info("[config] Saved config to %s", self.config_file)
        return config

    def update(self, patch: Dict[str, Any]) -> AppConfig:
        """Merge ``patch`` over the current config and persist the result."""

        current = self.read().model_dump(mode="json")
        return self.write(_deep_merge(current, patch))

    def _fallback(self) -> AppConfig:
        self.config_source = "embedded_fallback"
        self.config_loaded_at = datetime.now(timezone.utc).isoformat()
        return self._default_config_model()


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


__all__ = ["ConfigManager"]
