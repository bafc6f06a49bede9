"""Custom exceptions for note-analysis.

Every error raised on the request path derives from ``AnalysisError`` and
carries the HTTP status it maps to, a message that is safe to show to the
client, and optional response headers. Errors describing server-side
configuration set ``public_message``; their detailed ``message`` is only
logged.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base exception for all analysis errors."""

    status_code: int = 500
    public_message: str | None = None

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers or {}

    @property
    def client_message(self) -> str:
        """Message returned to HTTP clients."""
        return self.public_message or self.message


class ValidationError(AnalysisError):
    """Raised when request input is missing, malformed or out of bounds."""

    status_code = 400


class UnauthorizedError(AnalysisError):
    """Raised when the access token is missing or wrong."""

    status_code = 401


class RateLimitError(AnalysisError):
    """Raised when a client exceeds its request quota."""

    status_code = 429

    def __init__(self, message: str, retry_after: int, remaining: int = 0) -> None:
        super().__init__(
            message,
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Remaining": str(remaining),
                "X-RateLimit-Reset": str(retry_after),
            },
        )
        self.retry_after = retry_after
        self.remaining = remaining


class ConfigurationError(AnalysisError):
    """Raised when the service is missing required configuration."""

    status_code = 500


class ProviderError(AnalysisError):
    """Raised when the LLM provider call fails.

    ``status_code`` mirrors the provider's HTTP status when there is one.
    """

    status_code = 500


class ProviderRateLimitError(ProviderError):
    """Raised when the LLM provider itself answers 429."""

    status_code = 429

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
        super().__init__(message, headers=headers)
        self.retry_after = retry_after


class ParsingError(AnalysisError):
    """Raised when the model output cannot be parsed."""

    status_code = 500


class UnknownError(AnalysisError):
    """Raised for failures that fit no other category."""

    status_code = 500


PROMPT_CONFIGURATION_MESSAGE = "The analysis prompt is misconfigured. Please contact the administrator."


class PromptNotFoundError(AnalysisError):
    """Raised when no prompt template matches a lookup."""

    status_code = 500
    public_message = PROMPT_CONFIGURATION_MESSAGE


class DuplicateTemplateError(AnalysisError):
    """Raised when registering a template id that already exists."""

    status_code = 500
    public_message = PROMPT_CONFIGURATION_MESSAGE


class PromptValidationError(AnalysisError):
    """Raised when a prompt template or its variables are invalid."""

    status_code = 500
    public_message = PROMPT_CONFIGURATION_MESSAGE


class ExperimentNotFoundError(AnalysisError):
    """Raised when an experiment id is unknown."""

    status_code = 404


class ExperimentInactiveError(AnalysisError):
    """Raised when selecting from an inactive experiment."""

    status_code = 409


class ExperimentValidationError(AnalysisError):
    """Raised when an experiment definition is invalid."""

    status_code = 400
