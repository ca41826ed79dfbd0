"""Exception hierarchy for docqa.

Every error carries a machine-readable ``error_code`` so the API layer can
tell actionable failures (quota exhausted) apart from generic ones.
"""

from typing import Any


class DocQAError(Exception):
    """Base exception for all docqa errors."""

    error_code = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ProviderError(DocQAError):
    """Raised when a model backend call cannot be completed."""

    error_code = "provider_error"


class AllModelsFailedError(ProviderError):
    """Raised when every model in a failover list has been tried without success.

    Attributes:
        kind: "generation" or "embedding"
        last_error: The last underlying exception, if any
        attempted_models: Model names in the order they were tried
        rate_limited: True when every failed attempt was a rate-limit error
    """

    error_code = "models_exhausted"

    def __init__(
        self,
        kind: str,
        last_error: BaseException | None,
        attempted_models: list[str],
        rate_limited: bool = False,
    ) -> None:
        last_message = str(last_error) if last_error else "Unknown error"
        super().__init__(
            f"All {kind} models failed. Last error: {last_message}",
            {"attempted_models": attempted_models},
        )
        self.kind = kind
        self.last_error = last_error
        self.attempted_models = attempted_models
        self.rate_limited = rate_limited


class ProviderTimeoutError(ProviderError):
    """Raised when a single backend call exceeds its timeout."""

    error_code = "provider_timeout"

    def __init__(self, model: str, timeout: float) -> None:
        super().__init__(
            f"Model {model} did not respond within {timeout:g}s",
            {"model": model, "timeout": timeout},
        )
        self.model = model
        self.timeout = timeout


class QuotaExceededError(DocQAError):
    """Raised when answering failed because every model hit its rate limit."""

    error_code = "quota_exceeded"


class AnswerGenerationError(DocQAError):
    """Raised when answering failed for a reason other than quota."""

    error_code = "generation_failed"


class InvalidQuestionError(DocQAError):
    """Raised when a question is missing or blank."""

    error_code = "invalid_question"



class ConversationNotFoundError(DocQAError):
    """Raised when a conversation does not exist or belongs to another user."""

    error_code = "conversation_not_found"


class ConversationLimitError(DocQAError):
    """Raised when a user already has the maximum number of active conversations."""

    error_code = "conversation_limit_reached"


class InvalidFeedbackError(DocQAError):
    """Raised when submitted feedback is missing its type or has a bad rating."""

    error_code = "invalid_feedback"
