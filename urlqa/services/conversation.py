"""Conversation controller - drives the chat transcript"""

import asyncio
import logging
from typing import Optional

from urlqa.exceptions import MessageNotFoundError
from urlqa.models import (
    ERROR_PREFIX,
    ChatMessage,
    MessageKind,
    MessageSender,
    URLGroup,
)
from urlqa.models.chat import new_message_id
from urlqa.prompts import (
    EMPTY_RESPONSE_TEXT,
    MISSING_API_KEY_TEXT,
    MISSING_API_KEY_WELCOME_TEXT,
    OFFLINE_TEXT,
    SUMMARY_FAILED_TEXT,
    THINKING_TEXT,
    UNEXPECTED_ERROR_TEXT,
    WELCOME_TEMPLATE,
    parse_suggestions,
)
from urlqa.services.file_encoder import encode_files
from urlqa.services.gemini_client import GeminiClient
from urlqa.services.knowledge_base import KnowledgeBase, KnowledgeBaseEvent
from urlqa.services.network import NetworkMonitor

logger = logging.getLogger(__name__)


def error_text(message: str) -> str:
    return f"{ERROR_PREFIX}{message}"


class ConversationController:
    """Owns the transcript of the active knowledge base group.

    Messages live in an id -> message dict; insertion order is transcript order.
    One submission at a time: attempts made while a request or a suggestion
    fetch is in flight are dropped, not queued.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        gemini_client: GeminiClient,
        network: Optional[NetworkMonitor] = None,
    ):
        self.knowledge_base = knowledge_base
        self.gemini_client = gemini_client
        self.network = network

        self._messages: dict[str, ChatMessage] = {}
        self.is_loading = False
        self.is_fetching_suggestions = False
        self.suggestions: list[str] = []
        self.suggestions_task: Optional[asyncio.Task] = None
        self._suggestions_generation = 0

        self.knowledge_base.subscribe(self._on_knowledge_base_event)
        self.reset_transcript()

    # ========== TRANSCRIPT ==========

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages.values())

    @property
    def is_online(self) -> bool:
        return self.network.is_online if self.network is not None else True

    def get_message(self, message_id: str) -> ChatMessage:
        try:
            return self._messages[message_id]
        except KeyError:
            raise MessageNotFoundError(f"Unknown message: {message_id}")

    def _append(self, *messages: ChatMessage) -> None:
        for message in messages:
            self._messages[message.id] = message

    def _update(self, message_id: str, **changes) -> Optional[ChatMessage]:
        """Replace a message by id; None if it left the transcript meanwhile"""
        current = self._messages.get(message_id)
        if current is None:
            logger.info(f"Message {message_id} no longer in transcript, update dropped")
            return None
        updated = current.model_copy(update=changes)
        self._messages[message_id] = updated
        return updated

    def _system_message(self, prefix: str, text: str, is_error: bool = False) -> ChatMessage:
        return ChatMessage(
            id=new_message_id(prefix),
            text=error_text(text) if is_error else text,
            sender=MessageSender.SYSTEM,
            kind=MessageKind.ERROR if is_error else MessageKind.NORMAL,
        )

    def reset_transcript(self) -> None:
        """Drop all messages and seed a single welcome message"""
        group = self.knowledge_base.active_group
        self._messages = {}
        self.suggestions = []
        if self.gemini_client.is_configured:
            welcome = self._system_message(
                f"system-welcome-{group.id}", WELCOME_TEMPLATE.format(group_name=group.name)
            )
        else:
            welcome = self._system_message(
                f"system-welcome-{group.id}", MISSING_API_KEY_WELCOME_TEXT, is_error=True
            )
        self._append(welcome)

    # ========== CHAT ==========

    async def submit(self, query: str) -> Optional[ChatMessage]:
        """Ask a question about the active group.

        Returns the resulting model (or error) message, a system notice when
        the request could not be sent, or None when the submission was dropped.
        """
        if not query.strip() or self.is_loading or self.is_fetching_suggestions:
            return None

        if not self.is_online:
            notice = self._system_message("sys-offline", OFFLINE_TEXT, is_error=True)
            self._append(notice)
            return notice

        if not self.gemini_client.is_configured:
            notice = self._system_message("error-apikey", MISSING_API_KEY_TEXT, is_error=True)
            self._append(notice)
            return notice

        self.is_loading = True
        user_message = ChatMessage(
            id=new_message_id("user"), text=query, sender=MessageSender.USER
        )
        placeholder = ChatMessage(
            id=new_message_id("model-response"),
            text=THINKING_TEXT,
            sender=MessageSender.MODEL,
            is_loading=True,
        )
        self._append(user_message, placeholder)
        self.suggestions = []

        group = self.knowledge_base.active_group
        urls = list(group.urls)
        files = list(group.files)
        logger.info(f"submit: group={group.id}, urls={len(urls)}, files={len(files)}")

        try:
            fragments = await encode_files(files)
            result = await self.gemini_client.generate(query, urls, fragments)
            return self._update(
                placeholder.id,
                text=result.text or EMPTY_RESPONSE_TEXT,
                is_loading=False,
                url_context=result.url_context_metadata,
            )
        except Exception as e:
            logger.error(f"submit failed: {type(e).__name__}: {e}")
            return self._update(
                placeholder.id,
                text=error_text(str(e) or UNEXPECTED_ERROR_TEXT),
                sender=MessageSender.SYSTEM,
                kind=MessageKind.ERROR,
                is_loading=False,
            )
        finally:
            self.is_loading = False

    async def summarize(self, message_id: str, urls: list[str]) -> Optional[ChatMessage]:
        """Attach a summary of `urls` to a message; failures land in `summary`.

        Two calls on the same message race, the last one to finish wins.
        """
        if not urls:
            return None
        self.get_message(message_id)

        self._update(message_id, is_summarizing=True)
        try:
            summary = await self.gemini_client.summarize(urls)
        except Exception as e:
            logger.warning(f"summarize failed for {message_id}: {e}")
            summary = error_text(str(e) or SUMMARY_FAILED_TEXT)
        return self._update(message_id, is_summarizing=False, summary=summary)

    # ========== SUGGESTIONS ==========

    async def refresh_suggestions(self) -> list[str]:
        """Fetch starter questions for the active group's URLs.

        Failures are logged and leave the list empty.
        """
        if not self.gemini_client.is_configured:
            return self.suggestions

        group = self.knowledge_base.active_group
        urls = list(group.urls)
        if not urls:
            self.suggestions = []
            return self.suggestions

        self._suggestions_generation += 1
        generation = self._suggestions_generation
        self.is_fetching_suggestions = True
        self.suggestions = []
        try:
            result = await self.gemini_client.suggest_initial_queries(urls)
            suggestions = parse_suggestions(result.text)
            if generation == self._suggestions_generation:
                self.suggestions = suggestions
        except Exception as e:
            logger.warning(f"Could not fetch suggestions: {e}")
        finally:
            if generation == self._suggestions_generation:
                self.is_fetching_suggestions = False
        return self.suggestions

    def schedule_suggestions(self) -> Optional[asyncio.Task]:
        """Start a background suggestion fetch if an event loop is running"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, suggestion prefetch skipped")
            return None

        self.cancel_suggestions()
        self.suggestions_task = loop.create_task(self.refresh_suggestions())
        return self.suggestions_task

    def cancel_suggestions(self) -> None:
        """Abandon any in-flight fetch; its result is never applied"""
        if self.suggestions_task is not None and not self.suggestions_task.done():
            self.suggestions_task.cancel()
        # Invalidates fetches started outside a task too
        self._suggestions_generation += 1
        self.is_fetching_suggestions = False

    def _on_knowledge_base_event(self, event: KnowledgeBaseEvent, group: URLGroup) -> None:
        if event == KnowledgeBaseEvent.ACTIVE_GROUP_CHANGED:
            self.reset_transcript()
        if group.urls and self.gemini_client.is_configured:
            self.schedule_suggestions()
        else:
            self.cancel_suggestions()
            self.suggestions = []
