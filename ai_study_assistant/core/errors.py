"""
Error taxonomy for the study assistant.

Every error carries a stable ``code`` so callers can map it to display text
without parsing messages.
"""

from typing import Any, Dict, Optional


class StudyAssistantError(Exception):
    """Base exception for all study assistant errors."""
    code = "STUDY_ASSISTANT_ERROR"

    def __init__(self, message: str, code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.details = details or {}


class InvalidArgumentError(StudyAssistantError, ValueError):
    """Raised for bad token counts or non-string message content."""
    code = "INVALID_ARGUMENT"


class InvalidConfigurationError(StudyAssistantError, ValueError):
    """Raised when a budget, history limit or config file value is invalid."""
    code = "INVALID_CONFIGURATION"


class UnsupportedExportFormatError(StudyAssistantError, ValueError):
    """Raised when a conversation export format is not recognized."""
    code = "UNSUPPORTED_EXPORT_FORMAT"

    def __init__(self, fmt: str):
        super().__init__(f"Unsupported export format: {fmt}", details={"format": fmt})
        self.format = fmt


class ChatClientError(StudyAssistantError):
    """Raised when the upstream chat API call fails for good."""
    code = "UNKNOWN_ERROR"

    RATE_LIMIT = "RATE_LIMIT"
    INVALID_API_KEY = "INVALID_API_KEY"
    INVALID_REQUEST = "INVALID_REQUEST"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
