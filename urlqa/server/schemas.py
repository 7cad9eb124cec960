"""API request/response schemas"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from urlqa.models import ChatMessage


# === Request Schemas ===


class SetActiveGroupRequest(BaseModel):
    group_id: str


class AddUrlRequest(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def url_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("URL cannot be empty.")
        return v


class SendMessageRequest(BaseModel):
    query: str

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query cannot be empty")
        return v


class SummarizeRequest(BaseModel):
    """URLs to summarize; defaults to the message's successfully retrieved URLs"""

    urls: Optional[list[str]] = None


# === Response Schemas ===


class HealthResponse(BaseModel):
    status: str
    version: str
    api_key_configured: bool
    online: bool


class GroupFileResponse(BaseModel):
    name: str
    size: int
    mime_type: str


class GroupResponse(BaseModel):
    id: str
    name: str
    urls: list[str]
    files: list[GroupFileResponse] = Field(default_factory=list)
    is_active: bool = False


class GroupsResponse(BaseModel):
    active_group_id: str
    max_urls: int
    max_files: int
    groups: list[GroupResponse]


class AddUrlResponse(BaseModel):
    status: Literal["added", "duplicate", "limit_reached"]
    notice: Optional[str] = None
    group: GroupResponse


class AddFilesResponse(BaseModel):
    added: list[str]
    skipped_duplicates: list[str] = Field(default_factory=list)
    dropped_over_limit: list[str] = Field(default_factory=list)
    notice: Optional[str] = None
    group: GroupResponse


class TranscriptResponse(BaseModel):
    messages: list[ChatMessage]
    is_loading: bool
    is_fetching_suggestions: bool


class SuggestionsResponse(BaseModel):
    suggestions: list[str]
    is_fetching: bool
