"""
Custom error types and exit codes for Wordbook.
"""

from typing import Optional


class WordbookError(Exception):
    """Base exception for Wordbook errors."""

    exit_code = 1

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(WordbookError):
    """Configuration, path or backend selection errors."""

    exit_code = 2


class StoreError(WordbookError):
    """A row store call failed (network, HTTP status or SQL error)."""

    exit_code = 3

    def __init__(self, message: str, table: Optional[str] = None, operation: Optional[str] = None):
        self.table = table
        self.operation = operation
        super().__init__(message)


class ValidationError(WordbookError):
    """Input rejected before any store call."""

    exit_code = 5

    def __init__(self, message: str, problems: Optional[list] = None):
        self.problems = list(problems or [])
        super().__init__(message)


class TranslationServiceError(WordbookError):
    """The external translation service failed for one piece of text."""

    exit_code = 6

    # Reasons reported to the user
    QUOTA = "quota"
    RATE_LIMITED = "rate_limited"
    AUTH = "auth"
    UNAVAILABLE = "unavailable"

    def __init__(self, message: str, reason: str = UNAVAILABLE):
        self.reason = reason
        super().__init__(message)


# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_STORE_ERROR = 3
EXIT_VALIDATION_ERROR = 5
EXIT_TRANSLATION_ERROR = 6
