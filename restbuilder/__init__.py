"""Fluent HTTP request builder with synchronous and callback delivery."""

from ._config import load_client_config
from ._session_cache import close_all_sessions
from .builder import RequestBuilder
from .callbacks import Callback, FailureCallback, SuccessCallback
from .config import ClientConfig
from .connection import ConnectionRequest, JsonConnectionRequest, NetworkEvent
from .network import NetworkManager, get_network_manager, set_network_manager, shutdown_network_manager
from .response import Response
from .rest import delete, get, head, options, patch, post, put, request
from .transport import TransportError

__version__ = "0.1.0"

__all__ = [
    "RequestBuilder",
    "Response",
    "Callback",
    "SuccessCallback",
    "FailureCallback",
    "ClientConfig",
    "load_client_config",
    "ConnectionRequest",
    "JsonConnectionRequest",
    "NetworkEvent",
    "NetworkManager",
    "get_network_manager",
    "set_network_manager",
    "shutdown_network_manager",
    "close_all_sessions",
    "TransportError",
    "get",
    "post",
    "put",
    "patch",
    "delete",
    "head",
    "options",
    "request",
]
