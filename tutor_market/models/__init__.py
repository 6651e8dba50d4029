from tutor_market.models.base import Base
from tutor_market.models.review import Review
from tutor_market.models.session import (
    ConfirmerRole,
    EscrowStatus,
    ReleaseReason,
    SessionStatus,
    TutoringSession,
)
from tutor_market.models.student import StudentRecord

__all__ = [
    "Base",
    "TutoringSession",
    "SessionStatus",
    "EscrowStatus",
    "ConfirmerRole",
    "ReleaseReason",
    "Review",
    "StudentRecord",
]
