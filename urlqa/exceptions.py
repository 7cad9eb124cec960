"""Custom exceptions"""

from typing import Optional


class AppError(Exception):
    """Base application error"""

    pass


class ConfigurationError(AppError):
    """Required configuration (API key) is missing"""

    pass


class ServiceError(AppError):
    """Service layer error"""

    pass


class GeminiServiceError(ServiceError):
    """Gemini call failed; message is already human-readable.

    `category` is a best-effort classification derived from the upstream error
    text, the SDK does not expose structured error codes for all failures.
    """

    def __init__(self, message: str, category: Optional[str] = None):
        super().__init__(message)
        self.category = category


class FileReadError(AppError):
    """Knowledge base file could not be read or decoded"""

    pass


class GroupNotFoundError(AppError):
    """Unknown knowledge base group id"""

    pass


class MessageNotFoundError(AppError):
    """Unknown chat message id"""

    pass
