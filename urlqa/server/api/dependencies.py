"""Dependency injection for API routes"""

from typing import Optional

from urlqa.config import get_settings
from urlqa.services.conversation import ConversationController
from urlqa.services.gemini_client import GeminiClient
from urlqa.services.knowledge_base import KnowledgeBase
from urlqa.services.network import NetworkMonitor

# Singleton instances, one per server process (single session)
_gemini_client: Optional[GeminiClient] = None
_knowledge_base: Optional[KnowledgeBase] = None
_network_monitor: Optional[NetworkMonitor] = None
_controller: Optional[ConversationController] = None


def get_gemini_client() -> GeminiClient:
    """Get Gemini client instance built from GEMINI_API_KEY"""
    global _gemini_client
    if _gemini_client is None:
        settings = get_settings()
        _gemini_client = GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.model_name,
        )
    return _gemini_client


def get_knowledge_base() -> KnowledgeBase:
    global _knowledge_base
    if _knowledge_base is None:
        settings = get_settings()
        _knowledge_base = KnowledgeBase(
            max_urls=settings.max_urls,
            max_files=settings.max_files,
        )
    return _knowledge_base


def get_network_monitor() -> NetworkMonitor:
    global _network_monitor
    if _network_monitor is None:
        _network_monitor = NetworkMonitor(probe_url=get_settings().connectivity_check_url)
    return _network_monitor


def get_conversation_controller() -> ConversationController:
    global _controller
    if _controller is None:
        _controller = ConversationController(
            knowledge_base=get_knowledge_base(),
            gemini_client=get_gemini_client(),
            network=get_network_monitor(),
        )
    return _controller


def reset_clients():
    """Reset singletons (used when settings change and in tests)"""
    global _gemini_client, _knowledge_base, _network_monitor, _controller
    _gemini_client = None
    _knowledge_base = None
    _network_monitor = None
    _controller = None
