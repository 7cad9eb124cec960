"""Chat transcript entities"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


ERROR_PREFIX = "Error: "


class MessageSender(str, Enum):
    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class MessageKind(str, Enum):
    NORMAL = "normal"
    ERROR = "error"


def new_message_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UrlContextMetadataItem(BaseModel):
    """Per-URL retrieval info reported by the URL context tool.

    Status is kept as an opaque string, upstream adds new variants over time.
    """

    retrieved_url: str
    url_retrieval_status: str = ""

    @property
    def is_success(self) -> bool:
        status = self.url_retrieval_status or ""
        return "SUCCESS" in status or status == "OK"


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: new_message_id("msg"))
    text: str
    sender: MessageSender
    kind: MessageKind = MessageKind.NORMAL
    timestamp: datetime = Field(default_factory=utcnow)
    is_loading: bool = False
    is_summarizing: bool = False
    url_context: Optional[list[UrlContextMetadataItem]] = None
    summary: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.kind == MessageKind.ERROR

    def successful_urls(self) -> list[str]:
        """Retrieved URLs that can be summarized"""
        if not self.url_context:
            return []
        return [item.retrieved_url for item in self.url_context if item.is_success]


class ContentFragment(BaseModel):
    """Request-ready file content: inline base64 blob or literal text"""

    kind: Literal["inline", "text"]
    mime_type: Optional[str] = None
    data: Optional[str] = None  # base64
    text: Optional[str] = None


class GenerationResult(BaseModel):
    text: str = ""
    url_context_metadata: Optional[list[UrlContextMetadataItem]] = None
