"""Request object configured by the builder and performed by the network manager."""

import json
from concurrent.futures import Future
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict

from ._logging import get_logger, redact_config
from .transport import OutgoingRequest, TransportResponse

POST_METHODS = {"POST", "PUT", "PATCH"}


class NetworkEvent(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    connection_request: Any = None
    response_code: int = -1
    message: str | None = None
    metadata: Any = None
    error: BaseException | None = None


Listener = Callable[[NetworkEvent], None]


class ConnectionRequest:
    """A single HTTP request with listener hooks for response, error code, and failure."""

    def __init__(self, url: str | None = None, http_method: str = "GET"):
        self.url = url
        self.http_method = http_method
        self.post = False
        self.content_type: str | None = None
        self.request_body: str | None = None
        self.write_request = False
        self.timeout: int | None = None
        self.arguments: list[tuple[str, str]] = []
        self.request_headers: dict[str, str] = {}
        self.read_response_for_errors = False
        self.duplicate_supported = False
        self.killed = False

        self.response_code = 0
        self.response_error_message: str | None = None
        self.response_headers: dict[str, str] = {}
        self.response_data: bytes | None = None
        self.error: BaseException | None = None

        self._response_listeners: list[Listener] = []
        self._response_code_listeners: list[Listener] = []
        self._exception_listeners: list[Listener] = []
        self._future: Future | None = None
        self.logger = get_logger("connection")

    def add_argument(self, key: str, value: str) -> None:
        self.arguments.append((key, value))

    def add_request_header(self, key: str, value: str) -> None:
        self.request_headers[key] = value

    def add_response_listener(self, listener: Listener) -> None:
        self._response_listeners.append(listener)

    def add_response_code_listener(self, listener: Listener) -> None:
        self._response_code_listeners.append(listener)

    def add_exception_listener(self, listener: Listener) -> None:
        self._exception_listeners.append(listener)

    def has_response_listeners(self) -> bool:
        return bool(self._response_listeners)

    def attach_future(self, future: Future) -> None:
        self._future = future

    def kill(self) -> None:
        """Stop the request: queued work is cancelled and no listener fires afterwards."""
        self.killed = True
        if self._future is not None:
            self._future.cancel()
        self.logger.info("Request killed: %s %s", self.http_method, self.url)

    def dedupe_key(self) -> tuple:
        return (
            self.http_method.upper(),
            self.url,
            tuple(self.arguments),
            self.request_body if self.write_request else None,
        )

    def build_outgoing(self) -> OutgoingRequest:
        if not self.url:
            raise ValueError("Request url cannot be empty")

        headers = dict(self.request_headers)
        if self.content_type and not any(key.lower() == "content-type" for key in headers):
            headers["Content-Type"] = self.content_type

        send_as_form = self.post and not self.write_request and bool(self.arguments)
        body = None
        if self.write_request and self.request_body is not None:
            body = self.request_body.encode("utf-8")

        return OutgoingRequest(
            method=self.http_method.upper(),
            url=self.url,
            params=[] if send_as_form else list(self.arguments),
            form=list(self.arguments) if send_as_form else None,
            body=body,
            headers=headers,
            timeout_ms=self.timeout,
        )

    def perform(self, send: Callable[[OutgoingRequest], TransportResponse]) -> None:
        """Send the request and dispatch the outcome to the registered listeners."""
        if self.killed:
            return

        try:
            outgoing = self.build_outgoing()
            self.logger.info(
                "Performing %s %s headers=%s",
                outgoing.method,
                outgoing.url,
                redact_config(outgoing.headers),
            )
            response = send(outgoing)
        except Exception as exc:
            # client side failures are reported like transport failures
            self.response_code = -1
            self.handle_exception(exc)
            return

        self.response_code = response.status_code
        self.response_headers = response.headers
        if self.killed:
            return

        error_code = response.status_code < 200 or response.status_code > 300
        if error_code:
            self.response_error_message = response.reason
            self.handle_error_response_code(response.status_code, response.reason)
            if not self.read_response_for_errors:
                return

        try:
            self.read_response(response.content)
        except ValueError as exc:
            if not error_code:
                self.handle_exception(exc)
                return
            # the error code was already reported
            self.error = exc
            self.logger.warning("Could not read error response body for %s %s: %s", self.http_method, self.url, exc)

    def handle_error_response_code(self, code: int, message: str | None) -> None:
        if not self._response_code_listeners:
            self.logger.warning("Server returned %s (%s) for %s %s", code, message, self.http_method, self.url)
            return
        self._fire(self._response_code_listeners, NetworkEvent(connection_request=self, response_code=code, message=message))

    def handle_exception(self, error: BaseException) -> None:
        self.error = error
        if not self._exception_listeners:
            self.logger.error("Request failed: %s %s - %s", self.http_method, self.url, error)
            return
        self._fire(
            self._exception_listeners,
            NetworkEvent(connection_request=self, response_code=self.response_code, message=str(error), error=error),
        )

    def read_response(self, content: bytes) -> None:
        self.response_data = content
        self.fire_response_listener(NetworkEvent(connection_request=self, response_code=self.response_code, metadata=content))

    def fire_response_listener(self, event: NetworkEvent) -> None:
        if self.killed:
            return
        self._fire(self._response_listeners, event)

    def _fire(self, listeners: list[Listener], event: NetworkEvent) -> None:
        for listener in list(listeners):
            if self.killed:
                return
            listener(event)


class JsonConnectionRequest(ConnectionRequest):
    """Connection request that optionally parses the response body as a JSON map."""

    def __init__(self, parse_json: bool, url: str | None = None, http_method: str = "GET"):
        super().__init__(url, http_method)
        self.parse_json = parse_json
        self.json: dict | None = None

    def read_response(self, content: bytes) -> None:
        if not self.parse_json:
            super().read_response(content)
            return

        self.json = parse_json_map(content)
        if self.has_response_listeners() and not self.killed:
            self.fire_response_listener(
                NetworkEvent(connection_request=self, response_code=self.response_code, metadata=self.json)
            )


def parse_json_map(content: bytes) -> dict:
    """Decode a UTF-8 JSON payload into a map; non-object roots are stored under "root"."""
    text = content.decode("utf-8").strip()
    if not text:
        return {}

    parsed = json.loads(text)
    if isinstance(parsed, dict):
        return parsed
    return {"root": parsed}
