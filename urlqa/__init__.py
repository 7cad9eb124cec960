"""Knowledge-base chat over Gemini with URL context"""

from urlqa.exceptions import (
    AppError,
    ConfigurationError,
    ServiceError,
    GeminiServiceError,
    FileReadError,
    GroupNotFoundError,
    MessageNotFoundError,
)
from urlqa.prompts import parse_suggestions

__version__ = "1.0.0"

__all__ = [
    # Exceptions
    "AppError",
    "ConfigurationError",
    "ServiceError",
    "GeminiServiceError",
    "FileReadError",
    "GroupNotFoundError",
    "MessageNotFoundError",
    # Prompts
    "parse_suggestions",
]
