"""Tutoring session model: booked engagement with escrow and two-party confirmation state."""
import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tutor_market.models.base import Base, UTCDateTime


class SessionStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    AWAITING_CONFIRMATION = "awaiting-confirmation"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


class EscrowStatus(str, enum.Enum):
    PENDING = "pending"
    LOCKED = "locked"
    RELEASED = "released"
    REFUNDED = "refunded"


class ConfirmerRole(str, enum.Enum):
    STUDENT = "student"
    TUTOR = "tutor"


class ReleaseReason(str, enum.Enum):
    BOTH_CONFIRMED = "both_confirmed"
    DEADLINE_REACHED = "deadline_reached"
    ADMIN_OVERRIDE = "admin_override"


class TutoringSession(Base):
    __tablename__ = "tutoring_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False)
    student_wallet: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tutor_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    tutor_wallet: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    course_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Terms are fixed at booking
    scheduled_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    session_end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus), nullable=False, default=SessionStatus.SCHEDULED, index=True
    )
    escrow_status: Mapped[EscrowStatus] = mapped_column(
        Enum(EscrowStatus), nullable=False, default=EscrowStatus.PENDING
    )
    escrow_account: Mapped[str | None] = mapped_column(String(128), nullable=True)

    confirmed_by_student: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    confirmed_by_tutor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    student_confirmed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    tutor_confirmed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    # Set when exactly one party has confirmed; cleared on release
    confirmation_deadline: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True, index=True)

    payment_released: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_release_triggered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    transaction_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    dispute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    disputed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    disputed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
