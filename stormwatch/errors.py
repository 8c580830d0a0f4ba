"""Error taxonomy shared by the store, the provider clients and the routers."""
from __future__ import annotations

from typing import Optional


class StormWatchError(Exception):
    """Base error for the StormWatch backend."""


class ValidationError(StormWatchError, ValueError):
    """Malformed or out-of-range input to a store operation."""


class ConfigError(StormWatchError):
    """A provider credential is missing from the configuration."""

    def __init__(self, provider: str, message: Optional[str] = None) -> None:
        self.provider = provider
        super().__init__(message or f"{provider} API key not configured")


class UpstreamError(StormWatchError):
    """A third-party provider failed or could not resolve the request."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


__all__ = ["ConfigError", "StormWatchError", "UpstreamError", "ValidationError"]
