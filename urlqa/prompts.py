"""Prompt templates, notices and suggestion parsing"""

import json
import logging
import re

logger = logging.getLogger(__name__)

# ========== PROMPT TEMPLATES ==========

URL_CONTEXT_TEMPLATE = """{prompt}

Relevant URLs for context:
{url_list}"""

SUMMARY_PROMPT = (
    "Please provide a concise and clear summary of the key information contained "
    "in the following URLs. Focus on the main topics and takeaways."
)

SUGGESTIONS_PROMPT_TEMPLATE = """Based on the content of the following documentation URLs, provide 3-4 concise and actionable questions a developer might ask to explore these documents. Return ONLY a JSON object with a key "suggestions".

Relevant URLs:
{url_list}"""

FILE_TEXT_TEMPLATE = "File: {name}\nContent:\n{content}\n---\n"

# ========== FALLBACKS AND NOTICES ==========

NO_SUMMARY_TEXT = "No summary available."
EMPTY_RESPONSE_TEXT = "I received an empty response."
THINKING_TEXT = "Thinking..."
NO_URLS_SUGGESTION = "Add some URLs or Files to get topic suggestions."
OFFLINE_TEXT = "You appear to be offline. Please check your internet connection."
MISSING_API_KEY_TEXT = "API Key is not configured."
MISSING_API_KEY_WELCOME_TEXT = (
    "Gemini API Key (GEMINI_API_KEY) is not configured. "
    "Please set this environment variable to use the application."
)
WELCOME_TEMPLATE = (
    'Welcome! You\'re currently browsing "{group_name}". '
    "Add URLs or upload files/folders to ask questions about them."
)
UNEXPECTED_ERROR_TEXT = "An unexpected error occurred."
SUMMARY_FAILED_TEXT = "Failed to generate summary."

MAX_SUGGESTIONS = 4

SUGGESTIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "suggestions": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["suggestions"],
}

_FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


def build_context_prompt(prompt: str, urls: list[str]) -> str:
    """Append the context URL list to the prompt when there are URLs"""
    if not urls:
        return prompt
    return URL_CONTEXT_TEMPLATE.format(prompt=prompt, url_list="\n".join(urls))


def build_suggestions_prompt(urls: list[str]) -> str:
    return SUGGESTIONS_PROMPT_TEMPLATE.format(url_list="\n".join(urls))


def canned_suggestions_payload() -> str:
    return json.dumps({"suggestions": [NO_URLS_SUGGESTION]})


def strip_code_fence(text: str) -> str:
    """Unwrap ```json ... ``` if the model wrapped its JSON in a fence"""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match and match.group(2):
        return match.group(2).strip()
    return stripped


def parse_suggestions(text: str) -> list[str]:
    """Parse suggestion JSON into at most MAX_SUGGESTIONS strings.

    Never raises: malformed payloads give an empty list.
    """
    if not text:
        return []
    try:
        parsed = json.loads(strip_code_fence(text))
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Failed to parse suggestions JSON: {e}")
        return []

    if not isinstance(parsed, dict) or not isinstance(parsed.get("suggestions"), list):
        logger.warning("Suggestions payload has no 'suggestions' array")
        return []

    return [s for s in parsed["suggestions"] if isinstance(s, str)][:MAX_SUGGESTIONS]
