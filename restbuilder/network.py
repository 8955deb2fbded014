"""Thread pool dispatch for connection requests."""

import threading
import uuid
from collections import Counter
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from threading import Lock

from ._config import load_client_config
from ._logging import get_logger
from ._session_cache import close_all_sessions
from .config import ClientConfig
from .connection import ConnectionRequest
from .transport import OutgoingRequest, TransportResponse, send_request

_MANAGER_LOCK = Lock()
_MANAGER: "NetworkManager | None" = None


class NetworkManager:
    def __init__(self, config: ClientConfig | None = None):
        self.config = config or load_client_config()
        self.logger = get_logger("network")
        self.scope = f"manager-{uuid.uuid4().hex}"
        self._local = threading.local()
        self._lock = Lock()
        self._pending: Counter = Counter()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="restbuilder-network",
            initializer=self._mark_worker_thread,
        )
        self.logger.info(
            "Network manager started with %s workers using %s",
            self.config.max_workers,
            self.config.client_library,
        )

    def _mark_worker_thread(self) -> None:
        self._local.is_worker = True

    def _send(self, outgoing: OutgoingRequest) -> TransportResponse:
        return send_request(outgoing, self.config, scope=self.scope)

    def is_network_thread(self) -> bool:
        return getattr(self._local, "is_worker", False)

    def pending_count(self) -> int:
        with self._lock:
            return sum(self._pending.values())

    def add_to_queue(self, request: ConnectionRequest) -> Future | None:
        """Queue a request for background execution; returns None when dropped as a duplicate."""
        key = request.dedupe_key()
        with self._lock:
            if not request.duplicate_supported and self._pending[key] > 0:
                self.logger.info("Dropping duplicate request %s %s", request.http_method, request.url)
                return None
            self._pending[key] += 1

        try:
            future = self._executor.submit(self._run, request, key)
        except RuntimeError:
            self._release(key)
            raise
        request.attach_future(future)
        future.add_done_callback(lambda done: self._on_done(done, key))
        return future

    def add_to_queue_and_wait(self, request: ConnectionRequest) -> None:
        """Execute a request and block until its listeners have run."""
        if self.is_network_thread():
            request.perform(self._send)
            return

        future = self.add_to_queue(request)
        if future is None:
            return
        try:
            future.result()
        except CancelledError:
            self.logger.info("Request cancelled while waiting: %s %s", request.http_method, request.url)

    def _run(self, request: ConnectionRequest, key: tuple) -> None:
        try:
            request.perform(self._send)
        finally:
            self._release(key)

    def _release(self, key: tuple) -> None:
        with self._lock:
            self._pending[key] -= 1
            if self._pending[key] <= 0:
                del self._pending[key]

    def _on_done(self, future: Future, key: tuple) -> None:
        if future.cancelled():
            self._release(key)
            return
        error = future.exception()
        if error is not None:
            self.logger.error("Unhandled error while performing request: %s", error)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
        close_all_sessions(self.scope)
        self.logger.info("Network manager shut down")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()


def get_network_manager() -> NetworkManager:
    """Return the shared network manager, creating it from environment config on first use."""
    global _MANAGER
    with _MANAGER_LOCK:
        if _MANAGER is None:
            _MANAGER = NetworkManager()
        return _MANAGER


def set_network_manager(manager: NetworkManager | None) -> None:
    global _MANAGER
    with _MANAGER_LOCK:
        _MANAGER = manager


def shutdown_network_manager(wait: bool = True) -> None:
    global _MANAGER
    with _MANAGER_LOCK:
        manager, _MANAGER = _MANAGER, None

    if manager is not None:
        manager.shutdown(wait=wait)
