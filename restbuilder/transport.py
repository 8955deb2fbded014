"""HTTP transport backed by requests (default) or httpx."""

import requests
from pydantic import BaseModel, ConfigDict, Field

from ._logging import get_logger
from ._session_cache import get_or_create_session
from .config import ClientConfig

LOGGER = get_logger("transport")
DEFAULT_SCOPE = "default"


class TransportError(IOError):
    """Raised when the underlying HTTP client fails to complete a request."""


class OutgoingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    method: str = Field(min_length=1)
    url: str = Field(min_length=1)
    params: list[tuple[str, str]] = Field(default_factory=list)
    form: list[tuple[str, str]] | None = None
    body: bytes | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_ms: int | None = Field(default=None, ge=1)


class TransportResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status_code: int
    reason: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    content: bytes = b""


def _session_key(config: ClientConfig, scope: str) -> dict[str, str]:
    return {
        "scope": scope,
        "verify_ssl": str(config.verify_ssl),
        "user_agent": config.user_agent or "",
    }


def _requests_session(config: ClientConfig, scope: str = DEFAULT_SCOPE) -> requests.Session:
    def factory() -> requests.Session:
        session = requests.Session()
        session.verify = config.verify_ssl
        if config.user_agent:
            session.headers["User-Agent"] = config.user_agent
        return session

    return get_or_create_session("requests", _session_key(config, scope), factory)


def _httpx_client(config: ClientConfig, scope: str = DEFAULT_SCOPE):
    try:
        import httpx  # type: ignore
    except ImportError as exc:
        raise RuntimeError("httpx is not installed. Add it to requirements to use client_library='httpx'.") from exc

    def factory():
        headers = {"User-Agent": config.user_agent} if config.user_agent else None
        return httpx.Client(verify=config.verify_ssl, headers=headers, follow_redirects=True)

    return get_or_create_session("httpx", _session_key(config, scope), factory)


def _timeout_seconds(outgoing: OutgoingRequest, config: ClientConfig) -> float:
    return (outgoing.timeout_ms or config.default_timeout_ms) / 1000.0


def _send_with_requests(outgoing: OutgoingRequest, config: ClientConfig, scope: str) -> TransportResponse:
    session = _requests_session(config, scope)
    try:
        response = session.request(
            method=outgoing.method,
            url=outgoing.url,
            params=outgoing.params or None,
            data=outgoing.form if outgoing.form is not None else outgoing.body,
            headers=outgoing.headers,
            timeout=_timeout_seconds(outgoing, config),
        )
    except requests.RequestException as exc:
        raise TransportError(str(exc)) from exc

    return TransportResponse(
        status_code=response.status_code,
        reason=response.reason,
        headers=dict(response.headers),
        content=response.content,
    )


def _send_with_httpx(outgoing: OutgoingRequest, config: ClientConfig, scope: str) -> TransportResponse:
    client = _httpx_client(config, scope)
    import httpx  # type: ignore

    request_kwargs = {}
    if outgoing.form is not None:
        request_kwargs["data"] = dict(outgoing.form)
    elif outgoing.body is not None:
        request_kwargs["content"] = outgoing.body

    try:
        response = client.request(
            outgoing.method,
            outgoing.url,
            params=outgoing.params or None,
            headers=outgoing.headers,
            timeout=_timeout_seconds(outgoing, config),
            **request_kwargs,
        )
    except httpx.HTTPError as exc:
        raise TransportError(str(exc)) from exc

    return TransportResponse(
        status_code=response.status_code,
        reason=response.reason_phrase,
        headers=dict(response.headers),
        content=response.content,
    )


def send_request(outgoing: OutgoingRequest, config: ClientConfig, scope: str = DEFAULT_SCOPE) -> TransportResponse:
    """Send a request through the configured client library and return its response."""
    LOGGER.debug("Sending %s %s via %s", outgoing.method, outgoing.url, config.client_library)

    if config.client_library == "httpx":
        return _send_with_httpx(outgoing, config, scope)
    return _send_with_requests(outgoing, config, scope)
