from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Response(BaseModel, Generic[T]):
    """Result of an executed request: status code, decoded data, and message."""

    model_config = ConfigDict(frozen=True)

    response_code: int
    response_data: T | None = None
    response_error_message: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return 200 <= self.response_code < 300
