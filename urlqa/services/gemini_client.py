"""Gemini API client - URL context aware generation (native async)"""

import base64
import logging
import re
from enum import Enum
from typing import Optional

from google import genai
from google.genai import types

from urlqa.exceptions import ConfigurationError, GeminiServiceError
from urlqa.models import (
    DEFAULT_MODEL,
    SAFETY_THRESHOLDS,
    ContentFragment,
    GenerationResult,
    UrlContextMetadataItem,
)
from urlqa.prompts import (
    NO_SUMMARY_TEXT,
    SUGGESTIONS_SCHEMA,
    SUMMARY_PROMPT,
    build_context_prompt,
    build_suggestions_prompt,
    canned_suggestions_payload,
)

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    UNAVAILABLE = "unavailable"
    NETWORK = "network"
    SAFETY = "safety"
    INVALID_CANDIDATE = "invalid_candidate"
    UNEXPECTED = "unexpected"


# Ordered (category, keywords, message); first case-insensitive substring match wins.
# Best effort only: upstream errors are classified by their message text.
ERROR_CATEGORIES: list[tuple[ErrorCategory, tuple[str, ...], str]] = [
    (
        ErrorCategory.AUTHENTICATION,
        ("403", "api key"),
        "Authentication failed. Please verify your API Key.",
    ),
    (
        ErrorCategory.RATE_LIMIT,
        ("429", "quota"),
        "Usage limit exceeded. Please try again later.",
    ),
    (
        ErrorCategory.UNAVAILABLE,
        ("503", "service unavailable", "overloaded"),
        "The AI service is temporarily unavailable. Please try again in a few moments.",
    ),
    (
        ErrorCategory.NETWORK,
        ("network", "fetch failed", "failed to fetch"),
        "Network connection failed. Please check your internet connection.",
    ),
    (
        ErrorCategory.SAFETY,
        ("safety", "blocked"),
        "The content was blocked due to safety policies. Please try a different prompt.",
    ),
    (
        ErrorCategory.INVALID_CANDIDATE,
        ("candidate",),
        "The model could not generate a valid response for this request.",
    ),
]

UNEXPECTED_ERROR_MESSAGE = (
    "An unexpected error occurred while communicating with the AI service."
)

_BRACKET_TAG_RE = re.compile(r"\[.*?\]\s*")
_SDK_PREFIX_RE = re.compile(r"^(GoogleGenAIError|ClientError|ServerError|APIError):\s*")


def classify_error(error: BaseException) -> tuple[ErrorCategory, str]:
    """Map an upstream exception to (category, user-facing message)"""
    raw = str(error)
    lowered = raw.lower()
    for category, keywords, message in ERROR_CATEGORIES:
        if any(keyword in lowered for keyword in keywords):
            return category, message

    cleaned = _SDK_PREFIX_RE.sub("", _BRACKET_TAG_RE.sub("", raw, count=1)).strip()
    return ErrorCategory.UNEXPECTED, cleaned or UNEXPECTED_ERROR_MESSAGE


def to_service_error(error: BaseException) -> GeminiServiceError:
    if isinstance(error, GeminiServiceError):
        return error
    category, message = classify_error(error)
    return GeminiServiceError(message, category=category.value)


def build_safety_settings() -> list[types.SafetySetting]:
    return [
        types.SafetySetting(
            category=types.HarmCategory(category),
            threshold=types.HarmBlockThreshold(threshold),
        )
        for category, threshold in SAFETY_THRESHOLDS
    ]


def fragment_to_part(fragment: ContentFragment) -> types.Part:
    if fragment.kind == "inline":
        return types.Part.from_bytes(
            data=base64.b64decode(fragment.data or ""),
            mime_type=fragment.mime_type or "application/octet-stream",
        )
    return types.Part(text=fragment.text or "")


def _enum_text(value) -> str:
    """SDK enums -> their wire string ("STOP", "URL_RETRIEVAL_STATUS_SUCCESS")"""
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def extract_url_context_metadata(candidate) -> Optional[list[UrlContextMetadataItem]]:
    """Pull per-URL retrieval metadata off a candidate; None when absent"""
    url_context = getattr(candidate, "url_context_metadata", None)
    url_metadata = getattr(url_context, "url_metadata", None) if url_context else None
    if not url_metadata:
        return None
    return [
        UrlContextMetadataItem(
            retrieved_url=getattr(item, "retrieved_url", None) or "",
            url_retrieval_status=_enum_text(getattr(item, "url_retrieval_status", None)),
        )
        for item in url_metadata
    ]


class GeminiClient:
    """Async Gemini gateway.

    Owns a single genai.Client, built lazily from the API key on first use
    (or injected directly). Without a key every call raises ConfigurationError
    before touching the network.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        client: Optional[genai.Client] = None,
    ):
        self.api_key = api_key or ""
        self.model = model
        self._client: Optional[genai.Client] = client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key.strip())

    def _get_client(self) -> genai.Client:
        """Lazy init Gemini client"""
        if not self.is_configured:
            logger.error("Gemini API key is not set (GEMINI_API_KEY)")
            raise ConfigurationError(
                "Gemini API Key not configured. Please check your environment settings."
            )
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        urls: list[str],
        fragments: Optional[list[ContentFragment]] = None,
    ) -> GenerationResult:
        """Single-turn generation with optional context URLs and file fragments"""
        client = self._get_client()
        fragments = fragments or []

        # Files FIRST, then text
        parts = [fragment_to_part(f) for f in fragments]
        parts.append(types.Part(text=build_context_prompt(prompt, urls)))

        tools = [types.Tool(url_context=types.UrlContext())] if urls else None
        config = types.GenerateContentConfig(
            tools=tools,
            safety_settings=build_safety_settings(),
        )

        logger.info(
            f"generate: model={self.model}, urls={len(urls)}, fragments={len(fragments)}"
        )

        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=parts)],
                config=config,
            )
        except Exception as e:
            logger.error(f"Gemini API error: {e}", exc_info=True)
            raise to_service_error(e)

        text = getattr(response, "text", None) or ""
        candidates = getattr(response, "candidates", None) or []
        candidate = candidates[0] if candidates else None

        # Empty output without a normal stop, e.g. output safety filter
        if not text and candidate is not None:
            finish_reason = _enum_text(getattr(candidate, "finish_reason", None))
            if finish_reason != "STOP":
                logger.warning(f"Empty response, finish_reason={finish_reason}")
                raise GeminiServiceError(
                    f"Response stopped due to: {finish_reason}",
                    category=ErrorCategory.INVALID_CANDIDATE.value,
                )

        metadata = extract_url_context_metadata(candidate) if candidate is not None else None
        if metadata:
            logger.info(f"URL context metadata: {len(metadata)} urls")

        return GenerationResult(text=text, url_context_metadata=metadata)

    async def summarize(self, urls: list[str]) -> str:
        """Summarize the given URLs; errors propagate"""
        result = await self.generate(SUMMARY_PROMPT, urls)
        return result.text or NO_SUMMARY_TEXT

    async def suggest_initial_queries(self, urls: list[str]) -> GenerationResult:
        """Ask for 3-4 starter questions as raw JSON text; caller parses"""
        if not urls:
            return GenerationResult(text=canned_suggestions_payload())

        client = self._get_client()
        config = types.GenerateContentConfig(
            safety_settings=build_safety_settings(),
            response_mime_type="application/json",
            response_json_schema=SUGGESTIONS_SCHEMA,
        )

        logger.info(f"suggest_initial_queries: model={self.model}, urls={len(urls)}")

        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=[
                    types.Content(
                        role="user",
                        parts=[types.Part(text=build_suggestions_prompt(urls))],
                    )
                ],
                config=config,
            )
        except Exception as e:
            logger.warning(f"Failed to fetch suggestions: {e}")
            raise to_service_error(e)

        return GenerationResult(text=getattr(response, "text", None) or "")
