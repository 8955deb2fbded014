from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TIMEOUT_MS = 300000


class ClientConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    default_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=1)
    client_library: Literal["requests", "httpx"] = "requests"
    max_workers: int = Field(default=2, ge=1)
    verify_ssl: bool = True
    user_agent: str | None = None
