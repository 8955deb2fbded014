"""Entry points that start a RequestBuilder for each HTTP method."""

from .builder import RequestBuilder
from .network import NetworkManager


def get(url: str, network_manager: NetworkManager | None = None) -> RequestBuilder:
    return RequestBuilder("GET", url, network_manager)


def post(url: str, network_manager: NetworkManager | None = None) -> RequestBuilder:
    return RequestBuilder("POST", url, network_manager)


def put(url: str, network_manager: NetworkManager | None = None) -> RequestBuilder:
    return RequestBuilder("PUT", url, network_manager)


def patch(url: str, network_manager: NetworkManager | None = None) -> RequestBuilder:
    return RequestBuilder("PATCH", url, network_manager)


def delete(url: str, network_manager: NetworkManager | None = None) -> RequestBuilder:
    return RequestBuilder("DELETE", url, network_manager)


def head(url: str, network_manager: NetworkManager | None = None) -> RequestBuilder:
    return RequestBuilder("HEAD", url, network_manager)


def options(url: str, network_manager: NetworkManager | None = None) -> RequestBuilder:
    return RequestBuilder("OPTIONS", url, network_manager)


def request(method: str, url: str, network_manager: NetworkManager | None = None) -> RequestBuilder:
    """Start a builder for an arbitrary HTTP method."""
    return RequestBuilder(method, url, network_manager)
