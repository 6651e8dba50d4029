"""Pydantic schemas for tutoring sessions."""
from datetime import datetime
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, Field

from tutor_market.models.session import ConfirmerRole, EscrowStatus, SessionStatus


class SessionCreate(BaseModel):
    """Request body for POST /sessions. The caller is the student; times must carry a UTC offset."""
    session_id: str | None = Field(default=None, min_length=1, max_length=64)
    student_id: str = Field(..., min_length=1, max_length=64)
    tutor_id: str = Field(..., min_length=1, max_length=64)
    tutor_wallet: str = Field(..., min_length=1, max_length=128)
    course_id: str | None = Field(default=None, max_length=32)
    scheduled_time: AwareDatetime
    session_end_time: AwareDatetime
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class ConfirmRequest(BaseModel):
    role: ConfirmerRole


class ReportRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class SessionResponse(BaseModel):
    """Session in API responses. my_role is the caller's side, if any."""
    id: str
    student_id: str
    student_wallet: str
    tutor_id: str
    tutor_wallet: str
    course_id: str | None = None
    scheduled_time: datetime
    session_end_time: datetime
    duration: int
    amount: Decimal
    status: SessionStatus
    escrow_status: EscrowStatus
    escrow_account: str | None = None
    payment_released: bool
    confirmed_by_student: bool
    confirmed_by_tutor: bool
    student_confirmed_at: datetime | None = None
    tutor_confirmed_at: datetime | None = None
    confirmation_deadline: datetime | None = None
    auto_release_triggered: bool
    transaction_hash: str | None = None
    completed_at: datetime | None = None
    dispute_reason: str | None = None
    created_at: datetime
    my_role: ConfirmerRole | None = None

    class Config:
        from_attributes = True


class SessionActionResponse(BaseModel):
    """Outcome message of a session action plus the session as it now stands."""
    message: str
    session: SessionResponse


class AutoReleaseResponse(BaseModel):
    processed_count: int
    session_ids: list[str]
