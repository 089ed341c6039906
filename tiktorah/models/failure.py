"""
Failure Envelope — Unified Response Classification.

Every feed API response is wrapped in this envelope so the presentation
layer can tell "nothing ready yet" from "nothing enabled" from a crash.

INVARIANT: No raw 500 errors may reach the client.

Response types:
- Success: Operation completed successfully
- Refusal: System chose not to proceed (e.g. no card kind enabled)
- KnownFailure: System knows why it failed (e.g. content exhausted)
- UnknownFailure: System does not know why it failed

AUTHORITY BOUNDARY:
All user-visible responses MUST pass through `finalize_response()`.

Engine-internal failures (HydrationError) never cross this boundary:
the pipeline skips the card and picks another.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"
    EMPTY_RESULT = "empty_result"

    # Feed configuration
    NO_CONTENT_ENABLED = "no_content_enabled"
    SESSION_LIMIT = "session_limit"

    # Card preparation
    HYDRATION_FAILED = "hydration_failed"

    # Service failures
    EXTERNAL_API_ERROR = "external_api_error"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    REFUSAL = "refusal"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Universal response envelope for all feed endpoints.

    Every response is classified into one of four outcome types.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        """Convert to a finalized known-failure response."""
        response: ApiResponse[Any] = ApiResponse(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=self.kind,
                message=self.message,
                detail=self.detail,
                suggestion=self.suggestion,
            ),
        )
        return finalize_response(response)


class HydrationError(KnownError):
    """
    A card could not be prepared for display.

    Raised for rejected network calls and for payloads that fail the
    per-kind validity rules. Handled inside the preparation pipeline:
    the card is marked seen and a replacement is picked.
    """

    def __init__(self, card_id: str, reason: str):
        self.card_id = card_id
        self.reason = reason
        super().__init__(
            kind=FailureKind.HYDRATION_FAILED,
            message=f"Card '{card_id}' could not be prepared",
            detail=reason,
            status_code=502,
        )


class SessionNotFoundError(KnownError):
    """No feed session exists under the given id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message="This feed session does not exist or has been closed.",
            detail=f"session_id={session_id}",
            suggestion="Start a new feed session.",
            status_code=404,
        )


class SessionLimitError(KnownError):
    """The session registry is full."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            kind=FailureKind.SESSION_LIMIT,
            message="Too many feed sessions are open. Please try again shortly.",
            detail=f"Session limit: {limit}",
            status_code=429,
        )


# =============================================================================
# FAILURE AUTHORITY BOUNDARY
# =============================================================================
#
# All user-visible responses MUST pass through this boundary.
#
# =============================================================================


# Standard messages (fixed wording; details go in `detail`)

STANDARD_MESSAGES: dict[OutcomeType, str] = {
    OutcomeType.REFUSAL: "The feed cannot proceed with the current settings.",
    OutcomeType.KNOWN_FAILURE: "The operation failed due to a known issue.",
    OutcomeType.UNKNOWN_FAILURE: "Something went wrong while loading the feed.",
}

STANDARD_SUGGESTIONS: dict[OutcomeType, str] = {
    OutcomeType.REFUSAL: "Enable at least one kind of content in your feed preferences.",
    OutcomeType.KNOWN_FAILURE: "Check the error details and try again.",
    OutcomeType.UNKNOWN_FAILURE: "If this persists, please report the issue.",
}


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Check a response's shape before it leaves the API.

    Raises:
        ValueError: If response structure is invalid
    """
    if response.outcome == OutcomeType.SUCCESS:
        if response.failure is not None:
            raise ValueError("Success response must not have failure details")
    else:
        if response.failure is None:
            raise ValueError(f"{response.outcome.value} response must have failure details")

    return response


def create_unknown_failure(exception: Exception) -> ApiResponse[Any]:
    """Create a finalized unknown failure response from an exception."""
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.UNKNOWN_FAILURE,
        failure=FailureDetail(
            kind=FailureKind.UNKNOWN,
            message=STANDARD_MESSAGES[OutcomeType.UNKNOWN_FAILURE],
            detail=type(exception).__name__,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.UNKNOWN_FAILURE],
        ),
    )
    return finalize_response(response)


def create_known_failure(kind: FailureKind, reason: str) -> ApiResponse[Any]:
    """
    Create a known failure response.

    The message is standardized. Only the reason (technical detail) varies.
    """
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.KNOWN_FAILURE,
        failure=FailureDetail(
            kind=kind,
            message=STANDARD_MESSAGES[OutcomeType.KNOWN_FAILURE],
            detail=reason,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.KNOWN_FAILURE],
        ),
    )
    return finalize_response(response)


def create_refusal(kind: FailureKind, constraint: str) -> ApiResponse[Any]:
    """Create a refusal response naming the unmet constraint."""
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.REFUSAL,
        failure=FailureDetail(
            kind=kind,
            message=STANDARD_MESSAGES[OutcomeType.REFUSAL],
            detail=f"Constraint violated: {constraint}",
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.REFUSAL],
        ),
    )
    return finalize_response(response)


def create_success(data: T) -> ApiResponse[T]:
    """Create a finalized success response."""
    response = ApiResponse[T](outcome=OutcomeType.SUCCESS, data=data)
    return finalize_response(response)
