from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

# Environment fallbacks per secret, checked in order when the file has no entry.
ENV_FALLBACKS: Dict[str, tuple[str, ...]] = {
    "mapbox_api_key": ("MAPBOX_API_KEY", "VITE_MAPBOX_API_KEY"),
    "openweathermap_api_key": ("OPENWEATHERMAP_API_KEY", "VITE_OPENWEATHERMAP_API_KEY"),
}


class SecretStore:
    """Secret store backed by a single JSON file with atomic writes (0600).

    Default location is controlled by env var STORMWATCH_SECRETS_FILE
    (fallback: $STORMWATCH_STATE_DIR/secrets.json).
    """

    def __init__(self, file_path: Path | None = None) -> None:
        state_dir = Path(os.getenv("STORMWATCH_STATE_DIR", "/var/lib/stormwatch"))
        default_path = Path(os.getenv("STORMWATCH_SECRETS_FILE", str(state_dir / "secrets.json")))
        self._file = file_path or default_path
        self._lock = threading.Lock()
        try:
            self._file.parent.mkdir(parents=True, exist_ok=True)
            if not self._file.exists():
                self._atomic_write({})
            else:
                os.chmod(self._file, 0o600)
        except OSError:
            # read-only deployments rely on the environment fallbacks
            pass

    # ------------------------ Internal helpers ------------------------
    def _load(self) -> Dict[str, str]:
        try:
            raw = self._file.read_text(encoding="utf-8")
        except OSError:
            return {}
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}
        return {}

    def _atomic_write(self, payload: Dict[str, str]) -> None:
        directory = self._file.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=self._file.name + ".", dir=str(directory))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(json.dumps(payload, ensure_ascii=False))
            os.replace(tmp_path, self._file)
            os.chmod(self._file, 0o600)
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)

    # ------------------------ Public API ------------------------
    def set_secret(self, name: str, value: Optional[str]) -> None:
        key = str(name).strip()
        if not key:
            return
        with self._lock:
            current = self._load()
            if value is None or not value.strip():
                current.pop(key, None)
            else:
                current[key] = value.strip()
            self._atomic_write(current)

    def get_secret(self, name: str) -> Optional[str]:
        """Return the stored secret, falling back to its environment variables."""

        key = str(name).strip()
        if not key:
            return None
        value = (self._load().get(key) or "").strip()
        if value:
            return value
        for env_name in ENV_FALLBACKS.get(key, ()):
            env_value = os.getenv(env_name, "").strip()
            if env_value:
                return env_value
        return None

    def has_secret(self, name: str) -> bool:
        return self.get_secret(name) is not None


__all__ = ["ENV_FALLBACKS", "SecretStore"]
