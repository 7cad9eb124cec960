"""Services"""

from urlqa.services.gemini_client import GeminiClient, ErrorCategory, classify_error
from urlqa.services.file_encoder import encode_file, encode_files
from urlqa.services.knowledge_base import (
    KnowledgeBase,
    KnowledgeBaseEvent,
    AddUrlResult,
    AddFilesResult,
)
from urlqa.services.network import NetworkMonitor
from urlqa.services.conversation import ConversationController

__all__ = [
    "GeminiClient",
    "ErrorCategory",
    "classify_error",
    "encode_file",
    "encode_files",
    "KnowledgeBase",
    "KnowledgeBaseEvent",
    "AddUrlResult",
    "AddFilesResult",
    "NetworkMonitor",
    "ConversationController",
]
