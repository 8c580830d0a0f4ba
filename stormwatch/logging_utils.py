from __future__ import annotations

import logging
import os
import re
from pathlib import Path

SENSITIVE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)(access_token=)([^&\s\"']+)"), r"\1****"),
    (re.compile(r"(?i)(appid=)([^&\s\"']+)"), r"\1****"),
    (re.compile(r"(?i)(api[_-]?key\s*[:=]\s*)([^\s\"']+)"), r"\1******"),
)


def mask_sensitive(text: str) -> str:
    masked = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        masked = pattern.sub(replacement, masked)
    return masked


def _mask_arg(arg: object) -> object:
    if isinstance(arg, str):
        return mask_sensitive(arg)
    if isinstance(arg, BaseException):
        return mask_sensitive(str(arg))
    return arg


class SensitiveDataFilter(logging.Filter):
    """Masks provider credentials that leak into log messages through URLs."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = mask_sensitive(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(_mask_arg(arg) for arg in record.args)
        return True


def configure_logging() -> logging.Logger:
    logger = logging.getLogger("stormwatch")
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        log_path = Path(os.getenv("STORMWATCH_BACKEND_LOG", "/var/log/stormwatch/backend.log"))
        stream_handler = logging.StreamHandler()
        handlers: list[logging.Handler] = [stream_handler]
        file_handler_error: OSError | None = None

        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            handlers.append(file_handler)
        except OSError as exc:
            file_handler_error = exc

        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s", "%Y-%m-%d %H:%M:%S"
        )
        sensitive_filter = SensitiveDataFilter()
        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(sensitive_filter)
            logger.addHandler(handler)

        if file_handler_error is not None:
            logger.warning(
                "Could not open backend log at %s (%s). Continuing with console output only.",
                log_path,
                file_handler_error,
            )

    return logger


__all__ = ["SensitiveDataFilter", "configure_logging", "mask_sensitive"]
