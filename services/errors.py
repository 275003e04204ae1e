"""
Error taxonomy for the partner lead ingestion pipeline.

Every rejection the API can return is an IngestionError carrying a stable
machine code and the HTTP status the router maps it to.
"""

from __future__ import annotations

from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from services.rate_limiter import RateLimitDecision


class IngestionError(Exception):
    """Base class for rejections surfaced to the partner."""

    code: str = "INTERNAL_ERROR"
    http_status: int = 500

    def __init__(self, message: str, code: Optional[str] = None, http_status: Optional[int] = None):
        self.message = message
        # Attached by the ingestion service once admission control has run
        self.rate_limit: Optional["RateLimitDecision"] = None
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        super().__init__(message)


class AuthenticationError(IngestionError):
    """Missing, unknown or inactive API key. Never audited."""

    code = "AUTH_INVALID_API_KEY"
    http_status = 401


class RateLimitError(IngestionError):
    """Partner exceeded its hourly budget. Not a compliance event."""

    code = "RATE_LIMIT_EXCEEDED"
    http_status = 429

    def __init__(self, decision: "RateLimitDecision"):
        self.decision = decision
        self.retry_after_seconds = decision.retry_after_seconds
        super().__init__(
            f"Rate limit of {decision.limit} requests per window exceeded. "
            f"Retry in {decision.retry_after_seconds} seconds."
        )
        self.rate_limit = decision


class ComplianceError(IngestionError):
    """A legal prerequisite failed. Always accompanied by an audit entry."""

    http_status = 403

    def __init__(self, code: str, message: str):
        super().__init__(message, code=code)


class SubmissionValidationError(IngestionError):
    """Payload failed schema validation. Carries field-level messages."""

    code = "VALIDATION_FAILED"
    http_status = 400

    def __init__(self, details: Dict[str, List[str]]):
        self.details = details
        super().__init__("Submission payload failed validation.")


class PersistenceError(IngestionError):
    """Atomic write failed. The message is deliberately opaque."""

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str = "The lead could not be recorded."):
        super().__init__(message)


class EnrichmentError(Exception):
    """Post-commit scoring or routing failed; logged and swallowed."""
    pass
