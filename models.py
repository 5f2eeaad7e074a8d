from dataclasses import dataclass
from typing import Any, List, Optional, Union

from pydantic import BaseModel, field_validator

DEFAULT_IMAGE_SIZE = "2K"

# =============================================================================
# Inbound payloads
# =============================================================================

class TextProxyRequest(BaseModel):
    messages: List[Any]  # passed to the provider untouched

    @field_validator("messages")
    @classmethod
    def _messages_not_empty(cls, v):
        if not v:
            raise ValueError("messages must not be empty")
        return v

class ImageProxyRequest(BaseModel):
    prompt: str
    size: Optional[str] = None
    watermark: bool = True

    @field_validator("prompt", mode="before")
    @classmethod
    def _strip_prompt(cls, v):
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("prompt")
    @classmethod
    def _prompt_not_empty(cls, v):
        if not v:
            raise ValueError("prompt must not be empty")
        return v

    @field_validator("watermark", mode="before")
    @classmethod
    def _watermark_flag(cls, v):
        # only an explicit false turns the watermark off
        return v is not False

    @property
    def size_or_default(self) -> str:
        return self.size or DEFAULT_IMAGE_SIZE

# =============================================================================
# Upstream results
# =============================================================================

@dataclass(frozen=True)
class UpstreamSuccess:
    payload: Any

@dataclass(frozen=True)
class UpstreamHTTPFailure:
    status_code: int
    payload: Any

@dataclass(frozen=True)
class UpstreamTransportFailure:
    message: str

UpstreamResult = Union[UpstreamSuccess, UpstreamHTTPFailure, UpstreamTransportFailure]
