"""Callback contracts used to deliver asynchronous results."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from .response import Response

SuccessHandler = Callable[[Response], None]
FailureHandler = Callable[[Any, Optional[BaseException], int, Optional[str]], None]


class SuccessCallback(ABC):
    @abstractmethod
    def on_success(self, response: Response) -> None:
        """Receive a completed response."""


class FailureCallback(ABC):
    @abstractmethod
    def on_error(self, sender: Any, error: BaseException | None, code: int, message: str | None) -> None:
        """Receive a failed request: transport error or an error response code."""


class Callback(SuccessCallback, FailureCallback):
    """Receives both the success and the failure of a request."""


def to_success(callback: SuccessCallback | SuccessHandler) -> SuccessHandler:
    """Normalize a callback object or plain callable to a success handler."""
    on_success = getattr(callback, "on_success", None)
    if on_success is not None:
        return on_success
    if callable(callback):
        return callback
    raise TypeError(f"Expected a callable or an object with on_success, got {type(callback).__name__}")


def to_failure(callback: FailureCallback | FailureHandler | None) -> FailureHandler | None:
    """Normalize a callback object or plain callable to a failure handler."""
    if callback is None:
        return None
    on_error = getattr(callback, "on_error", None)
    if on_error is not None:
        return on_error
    if callable(callback):
        return callback
    raise TypeError(f"Expected a callable or an object with on_error, got {type(callback).__name__}")
