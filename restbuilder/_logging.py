import logging
import os
from threading import Lock
from typing import Any

_SETUP_LOCK = Lock()
_configured = False
# header and config keys whose values never reach the log
_SENSITIVE_KEYS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "token",
    "password",
}


def _setup_default_logging() -> None:
    global _configured
    with _SETUP_LOCK:
        if _configured:
            return
        if not logging.getLogger().handlers:
            level_name = os.getenv("RESTBUILDER_LOG_LEVEL", "INFO").upper()
            logging.basicConfig(
                level=getattr(logging, level_name, logging.INFO),
                format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            )
        _configured = True


def get_logger(name: str) -> logging.Logger:
    _setup_default_logging()
    return logging.getLogger(f"restbuilder.{name}")


def redact_config(values: dict[str, Any]) -> dict[str, Any]:
    """Copy a header or config map with sensitive values masked."""
    return {
        key: "***" if key.lower() in _SENSITIVE_KEYS and value is not None else value
        for key, value in values.items()
    }
