"""Structured outcomes returned by the core instead of raising for business conditions."""
import enum
from dataclasses import dataclass, field


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    ALREADY_COMPLETED = "already_completed"
    ALREADY_RELEASED = "already_released"
    DISPUTED = "disputed"
    INVALID_STATE = "invalid_state"
    UNAUTHORIZED = "unauthorized"
    INVALID_RATING = "invalid_rating"
    INELIGIBLE_REVIEW = "ineligible_review"
    VALIDATION_ERROR = "validation_error"
    ALREADY_REGISTERED = "already_registered"


@dataclass
class OperationResult:
    success: bool
    message: str
    error: ErrorKind | None = None
    escrow_account: str | None = None
    transaction_hash: str | None = None

    @classmethod
    def ok(cls, message: str, **extra: str | None) -> "OperationResult":
        return cls(success=True, message=message, **extra)

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "OperationResult":
        return cls(success=False, message=message, error=error)


@dataclass
class AutoReleaseSummary:
    processed_count: int = 0
    session_ids: list[str] = field(default_factory=list)


@dataclass
class ReviewEligibility:
    can_review: bool
    reason: str | None = None
    error: ErrorKind | None = None
