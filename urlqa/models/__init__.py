"""Pydantic models and constants"""

from urlqa.models.model_config import (
    DEFAULT_MODEL,
    MAX_URLS,
    MAX_FILES,
    SAFETY_THRESHOLDS,
    INITIAL_URL_GROUPS,
)
from urlqa.models.knowledge_base import KnowledgeFile, URLGroup
from urlqa.models.chat import (
    ERROR_PREFIX,
    MessageSender,
    MessageKind,
    UrlContextMetadataItem,
    ChatMessage,
    ContentFragment,
    GenerationResult,
)

__all__ = [
    # Config
    "DEFAULT_MODEL",
    "MAX_URLS",
    "MAX_FILES",
    "SAFETY_THRESHOLDS",
    "INITIAL_URL_GROUPS",
    # Knowledge base
    "KnowledgeFile",
    "URLGroup",
    # Chat
    "ERROR_PREFIX",
    "MessageSender",
    "MessageKind",
    "UrlContextMetadataItem",
    "ChatMessage",
    "ContentFragment",
    "GenerationResult",
]
