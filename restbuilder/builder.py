"""Fluent builder that configures, executes, and adapts HTTP requests."""

import base64
import json
import warnings
from typing import Any

from ._logging import get_logger
from .callbacks import (
    Callback,
    FailureCallback,
    FailureHandler,
    SuccessCallback,
    SuccessHandler,
    to_failure,
    to_success,
)
from .connection import POST_METHODS, ConnectionRequest, JsonConnectionRequest, NetworkEvent
from .network import NetworkManager, get_network_manager
from .response import Response

# response codes above this are routed to the failure callback when one is given
_JSON_SUCCESS_CEILING = 310


class RequestBuilder:
    """Builds an HTTP request step by step and executes it.

    Every setter returns the builder so calls can be chained::

        response = (
            RequestBuilder("GET", "https://api.example.com/users/{id}")
            .path_param("id", "42")
            .accept_json()
            .get_as_json_map()
        )

    Header, query, and path maps keep the last value written for a key.
    """

    def __init__(self, method: str, url: str, network_manager: NetworkManager | None = None):
        if not method or not method.strip():
            raise ValueError("method cannot be empty")
        if not url or not url.strip():
            raise ValueError("url cannot be empty")

        self.method = method.strip().upper()
        self.url = url.strip()
        self.query_params: dict[str, str] = {}
        self.headers: dict[str, str] = {}
        self.path_params: dict[str, str] = {}
        self.request_timeout: int | None = None
        self.request_body: str | None = None
        self.is_gzip = False
        self.request_content_type: str | None = None
        self._network_manager = network_manager
        self.logger = get_logger("builder")

    @property
    def network_manager(self) -> NetworkManager:
        if self._network_manager is None:
            self._network_manager = get_network_manager()
        return self._network_manager

    def content_type(self, value: str) -> "RequestBuilder":
        self.request_content_type = value
        return self

    def path_param(self, key: str, value: Any) -> "RequestBuilder":
        """Replace ``{key}`` in the url with ``value`` when the request executes.

        For the url ``http://domain.com/users/{id}``, ``path_param("id", "1")``
        produces ``http://domain.com/users/1``.
        """
        self.path_params[key] = str(value)
        return self

    def query_param(self, key: str, value: Any) -> "RequestBuilder":
        self.query_params[key] = str(value)
        return self

    def header(self, key: str, value: Any) -> "RequestBuilder":
        self.headers[key] = str(value)
        return self

    def body(self, body: str) -> "RequestBuilder":
        self.request_body = body
        return self

    def json_body(self, payload: Any) -> "RequestBuilder":
        """Serialize ``payload`` as the request body and mark the request as JSON."""
        self.request_body = json.dumps(payload)
        return self.json_content()

    def timeout(self, timeout_ms: int) -> "RequestBuilder":
        """Set the request timeout in milliseconds."""
        if timeout_ms <= 0:
            raise ValueError("timeout must be a positive number of milliseconds")
        self.request_timeout = int(timeout_ms)
        return self

    def gzip(self) -> "RequestBuilder":
        warnings.warn(
            "RequestBuilder.gzip() is deprecated; gzip responses are decoded by the transport",
            DeprecationWarning,
            stacklevel=2,
        )
        self.is_gzip = True
        return self.header("Accept-Encoding", "gzip")

    def accept_json(self) -> "RequestBuilder":
        return self.header("Accept", "application/json")

    def json_content(self) -> "RequestBuilder":
        """Set both the content type and the Accept header to application/json."""
        return self.content_type("application/json").header("Accept", "application/json")

    def basic_auth(self, username: str, password: str) -> "RequestBuilder":
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return self.header("Authorization", f"Basic {token}")

    def bearer_auth(self, token: str) -> "RequestBuilder":
        return self.header("Authorization", f"Bearer {token}")

    def create_request(self, parse_json: bool) -> ConnectionRequest:
        """Copy the builder state onto a fresh connection request."""
        request = JsonConnectionRequest(parse_json)
        for key, value in self.path_params.items():
            self.url = self.url.replace("{" + key + "}", value)

        if self.request_content_type is not None:
            request.content_type = self.request_content_type
        request.read_response_for_errors = True
        request.duplicate_supported = True
        request.url = self.url
        request.http_method = self.method
        request.post = self.method in POST_METHODS
        if self.request_body is not None:
            request.request_body = self.request_body
            request.write_request = True
        if self.request_timeout is not None:
            request.timeout = self.request_timeout
        for key, value in self.query_params.items():
            request.add_argument(key, value)
        for key, value in self.headers.items():
            request.add_request_header(key, value)

        self.logger.debug("Created %s request for %s", self.method, self.url)
        return request

    def get_as_string(self) -> Response[str]:
        """Execute the request synchronously and decode the body as UTF-8."""
        request = self.create_request(False)
        self.network_manager.add_to_queue_and_wait(request)
        data = request.response_data.decode("utf-8", errors="replace") if request.response_data is not None else None
        return self._sync_response(request, data)

    def get_as_string_async(self, callback: SuccessCallback | SuccessHandler) -> ConnectionRequest:
        on_success = to_success(callback)
        request = self.create_request(False)

        def on_response(event: NetworkEvent) -> None:
            on_success(
                Response[str](
                    response_code=event.response_code,
                    response_data=event.connection_request.response_data.decode("utf-8", errors="replace"),
                    response_error_message=event.message,
                    headers=event.connection_request.response_headers,
                )
            )

        request.add_response_listener(on_response)
        self.network_manager.add_to_queue(request)
        return request

    def get_as_bytes(self) -> Response[bytes]:
        """Execute the request synchronously and return the raw body."""
        request = self.create_request(False)
        self.network_manager.add_to_queue_and_wait(request)
        return self._sync_response(request, request.response_data)

    def get_as_bytes_async(self, callback: SuccessCallback | SuccessHandler) -> ConnectionRequest:
        on_success = to_success(callback)
        request = self.create_request(False)

        def on_response(event: NetworkEvent) -> None:
            on_success(
                Response[bytes](
                    response_code=event.response_code,
                    response_data=event.connection_request.response_data,
                    response_error_message=event.message,
                    headers=event.connection_request.response_headers,
                )
            )

        request.add_response_listener(on_response)
        self.network_manager.add_to_queue(request)
        return request

    def get_as_json_map(
        self,
        callback: SuccessCallback | SuccessHandler | None = None,
        on_error: FailureCallback | FailureHandler | None = None,
    ):
        """Execute the request and parse the body as a JSON map.

        Without a callback the call blocks and returns a ``Response[dict]``.
        With a callback it runs in the background and returns the
        ``ConnectionRequest`` so it can be killed.
        """
        if callback is not None:
            return self.fetch_as_json_map(callback, on_error)
        if on_error is not None:
            raise ValueError("on_error requires a success callback")

        request = self.create_request(True)
        self.network_manager.add_to_queue_and_wait(request)
        return self._sync_response(request, request.json)

    def fetch_as_json_map(
        self,
        callback: SuccessCallback | SuccessHandler,
        on_error: FailureCallback | FailureHandler | None = None,
    ) -> ConnectionRequest:
        """Execute the request in the background and deliver the parsed JSON map."""
        on_success = to_success(callback)
        failure = to_failure(on_error)
        request = self.create_request(True)

        def on_response(event: NetworkEvent) -> None:
            # error codes belong to the failure callback
            if failure is not None and event.response_code > _JSON_SUCCESS_CEILING:
                return
            on_success(
                Response[dict](
                    response_code=event.response_code,
                    response_data=event.metadata,
                    response_error_message=event.message,
                    headers=event.connection_request.response_headers,
                )
            )

        request.add_response_listener(on_response)
        self._bind_on_error(request, failure)
        self.network_manager.add_to_queue(request)
        return request

    def get_as_json_map_async(self, callback: Callback) -> ConnectionRequest:
        """Execute in the background, reporting both outcomes to one callback object."""
        if not hasattr(callback, "on_success") or not hasattr(callback, "on_error"):
            raise TypeError("callback must define both on_success and on_error")
        return self.fetch_as_json_map(callback, callback)

    def _bind_on_error(self, request: ConnectionRequest, failure: FailureHandler | None) -> None:
        if failure is None:
            return

        def on_failure(event: NetworkEvent) -> None:
            failure(None, event.error, event.response_code, event.message)

        request.add_response_code_listener(on_failure)
        request.add_exception_listener(on_failure)

    def _sync_response(self, request: ConnectionRequest, data: Any) -> Response:
        message = request.response_error_message
        if message is None and request.error is not None:
            message = str(request.error)
        return Response(
            response_code=request.response_code,
            response_data=data,
            response_error_message=message,
            headers=request.response_headers,
        )
