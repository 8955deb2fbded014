"""Thread-safe session cache with thread-local keys for reusable clients."""

from threading import Lock, get_ident
from typing import Any, Callable

from ._logging import get_logger

_CACHE_LOCK = Lock()
_SESSION_CACHE: dict[tuple[str, tuple[tuple[str, str], ...], int], Any] = {}
LOGGER = get_logger("session_cache")


def _cache_key(client_type: str, config: dict[str, Any]) -> tuple[str, tuple[tuple[str, str], ...], int]:
    """Build a cache key that includes the current thread id."""
    normalized_items = tuple(sorted((str(key), str(value)) for key, value in config.items()))
    return client_type, normalized_items, get_ident()


def get_or_create_session(client_type: str, config: dict[str, Any], factory: Callable[[], Any]) -> Any:
    """Return the cached session for this thread and config, creating it on a miss."""
    key = _cache_key(client_type, config)

    with _CACHE_LOCK:
        cached = _SESSION_CACHE.get(key)
        if cached is not None:
            return cached

        session = factory()
        _SESSION_CACHE[key] = session
        LOGGER.debug("Session cache miss for %s on thread %s, new session created", client_type, key[2])
        return session


def close_all_sessions(scope: str | None = None) -> None:
    """Close and drop cached sessions; with a scope, only sessions created for that scope."""
    with _CACHE_LOCK:
        keys = [key for key in _SESSION_CACHE if scope is None or ("scope", scope) in key[1]]
        sessions = [_SESSION_CACHE.pop(key) for key in keys]

    for session in sessions:
        session.close()

    LOGGER.info("Closed %s cached HTTP sessions", len(sessions))
