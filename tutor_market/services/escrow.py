"""Escrow / session state machine.

Funds are notionally locked at booking and released exactly once: either when
both parties confirm, when the confirmation deadline passes (auto-release
sweep), or by admin override. A dispute freezes every release path.

Every read-check-write on a session runs under that session's lock, so the
confirmation path and the sweep cannot both release it.
"""
import logging
import secrets
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from tutor_market.config import settings
from tutor_market.models.session import (
    ConfirmerRole,
    EscrowStatus,
    ReleaseReason,
    SessionStatus,
    TutoringSession,
)
from tutor_market.repositories.base import Repository
from tutor_market.services.clock import Clock, system_clock
from tutor_market.services.locks import KeyedLock
from tutor_market.services.results import AutoReleaseSummary, ErrorKind, OperationResult

logger = logging.getLogger(__name__)

# Allowed transitions: from_status -> {to_status, ...}
ALLOWED: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.SCHEDULED: {
        SessionStatus.AWAITING_CONFIRMATION,
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
        SessionStatus.DISPUTED,
    },
    SessionStatus.IN_PROGRESS: {
        SessionStatus.AWAITING_CONFIRMATION,
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
        SessionStatus.DISPUTED,
    },
    SessionStatus.AWAITING_CONFIRMATION: {
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
        SessionStatus.DISPUTED,
    },
    SessionStatus.COMPLETED: set(),
    SessionStatus.CANCELLED: {SessionStatus.DISPUTED},
    # Resolution is manual and happens outside this service
    SessionStatus.DISPUTED: set(),
}

DISPUTED_MESSAGE = "Session is disputed. Escrow is frozen pending review."

# Process-wide: request handlers and the sweep task must share one lock per session
session_locks = KeyedLock()


def _money(amount: Decimal) -> str:
    return f"${amount:.2f}"


def _parse_amount(value: Decimal | int | float | str) -> Decimal | None:
    """Amount rounded to cents, or None if it is not a finite number."""
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            return None
        return amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        return None


def _blocked(session: TutoringSession, to_status: SessionStatus) -> OperationResult | None:
    """Failure result if session cannot move to to_status, else None."""
    if to_status in ALLOWED[session.status]:
        return None
    if session.status == SessionStatus.COMPLETED:
        return OperationResult.fail(ErrorKind.ALREADY_COMPLETED, "Session already completed")
    if session.status == SessionStatus.DISPUTED:
        return OperationResult.fail(ErrorKind.DISPUTED, DISPUTED_MESSAGE)
    if session.status == SessionStatus.CANCELLED:
        return OperationResult.fail(ErrorKind.INVALID_STATE, "Session was cancelled and the escrow refunded")
    return OperationResult.fail(
        ErrorKind.INVALID_STATE,
        f"Transition {session.status.value} -> {to_status.value} not allowed",
    )


def _deadline_passed(session: TutoringSession, now: datetime) -> bool:
    return (
        session.status == SessionStatus.AWAITING_CONFIRMATION
        and not session.payment_released
        and session.confirmation_deadline is not None
        and now > session.confirmation_deadline
    )


class EscrowService:
    def __init__(
        self,
        sessions: Repository[TutoringSession],
        clock: Clock = system_clock,
        locks: KeyedLock = session_locks,
        confirmation_window: timedelta | None = None,
    ) -> None:
        self.sessions = sessions
        self.clock = clock
        self.locks = locks
        self.confirmation_window = confirmation_window or timedelta(hours=settings.CONFIRMATION_WINDOW_HOURS)

    @property
    def _window_label(self) -> str:
        hours = int(self.confirmation_window.total_seconds() // 3600)
        return f"{hours}h"

    async def create_escrow(
        self,
        student_wallet: str,
        tutor_wallet: str,
        amount: Decimal,
        session_id: str,
    ) -> OperationResult:
        """Lock funds for a booking. No payment rail behind it, so this always succeeds."""
        escrow_account = f"escrow_{secrets.token_urlsafe(24)}"
        logger.info(
            "Escrow created for session %s: %s locked (student=%s tutor=%s)",
            session_id,
            _money(amount),
            student_wallet,
            tutor_wallet,
        )
        return OperationResult.ok(
            f"Escrow created: {_money(amount)} locked until session confirmation",
            escrow_account=escrow_account,
        )

    async def book_session(
        self,
        session_id: str,
        student_id: str,
        student_wallet: str,
        tutor_id: str,
        tutor_wallet: str,
        scheduled_time: datetime,
        session_end_time: datetime,
        amount: Decimal | int | float | str,
        course_id: str | None = None,
    ) -> tuple[OperationResult, TutoringSession | None]:
        """Create the escrow and persist the session as scheduled / locked."""
        amount = _parse_amount(amount)
        if amount is None or amount <= 0:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, "Amount must be positive"), None
        if scheduled_time.tzinfo is None or session_end_time.tzinfo is None:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, "Session times must include a timezone"), None
        if session_end_time <= scheduled_time:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, "Session must end after it starts"), None
        if student_wallet == tutor_wallet:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, "You cannot book a session with yourself"), None
        duration = int((session_end_time - scheduled_time).total_seconds() // 60)

        async with self.locks(session_id):
            if await self.sessions.get(session_id) is not None:
                return OperationResult.fail(ErrorKind.INVALID_STATE, f"Session {session_id} already exists"), None
            escrow = await self.create_escrow(student_wallet, tutor_wallet, amount, session_id)
            session = TutoringSession(
                id=session_id,
                student_id=student_id,
                student_wallet=student_wallet,
                tutor_id=tutor_id,
                tutor_wallet=tutor_wallet,
                course_id=course_id,
                scheduled_time=scheduled_time,
                session_end_time=session_end_time,
                duration=duration,
                amount=amount,
                status=SessionStatus.SCHEDULED,
                escrow_status=EscrowStatus.LOCKED,
                escrow_account=escrow.escrow_account,
                confirmed_by_student=False,
                confirmed_by_tutor=False,
                student_confirmed_at=None,
                tutor_confirmed_at=None,
                confirmation_deadline=None,
                payment_released=False,
                auto_release_triggered=False,
                transaction_hash=None,
                completed_at=None,
                dispute_reason=None,
                disputed_by=None,
                disputed_at=None,
                created_at=self.clock.now(),
            )
            await self.sessions.upsert(session)
        return escrow, session

    async def confirm_session(
        self,
        session_id: str,
        confirmer_wallet: str,
        role: ConfirmerRole | str,
    ) -> OperationResult:
        """
        Record one party's confirmation. Both confirmed -> release now (both_confirmed).
        First confirmation -> start the deadline window. Repeating a confirmation is a no-op.
        """
        try:
            role = ConfirmerRole(role)
        except ValueError:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, "Role must be student or tutor")
        async with self.locks(session_id):
            session = await self.sessions.get(session_id)
            if session is None:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "Session not found")
            blocked = _blocked(session, SessionStatus.COMPLETED)
            if blocked:
                return blocked
            party_wallet = session.student_wallet if role == ConfirmerRole.STUDENT else session.tutor_wallet
            if confirmer_wallet != party_wallet:
                return OperationResult.fail(
                    ErrorKind.UNAUTHORIZED, f"Only the session's {role.value} can confirm as {role.value}"
                )

            now = self.clock.now()
            if role == ConfirmerRole.STUDENT:
                repeated = session.confirmed_by_student
                if not repeated:
                    session.confirmed_by_student = True
                    session.student_confirmed_at = now
            else:
                repeated = session.confirmed_by_tutor
                if not repeated:
                    session.confirmed_by_tutor = True
                    session.tutor_confirmed_at = now

            if session.confirmed_by_student and session.confirmed_by_tutor:
                released = await self._release(session, ReleaseReason.BOTH_CONFIRMED)
                if not released.success:
                    return released
                return OperationResult.ok(
                    f"Session confirmed by {role.value}. Payment released! {released.message}",
                    transaction_hash=released.transaction_hash,
                )

            if repeated:
                deadline = session.confirmation_deadline
                when = f"at {deadline.isoformat()}" if deadline else f"in {self._window_label}"
                return OperationResult.ok(
                    f"Session already confirmed by {role.value}. Waiting for other party (auto-release {when})"
                )

            if session.confirmation_deadline is None:
                session.confirmation_deadline = now + self.confirmation_window
                session.status = SessionStatus.AWAITING_CONFIRMATION
            await self.sessions.upsert(session)

        logger.info(
            "Session %s confirmed by %s (%s); deadline %s",
            session_id,
            role.value,
            confirmer_wallet,
            session.confirmation_deadline.isoformat(),
        )
        return OperationResult.ok(
            f"Session confirmed by {role.value}. Waiting for other party (auto-release in {self._window_label})"
        )

    async def release_escrow(self, session_id: str, reason: ReleaseReason | str) -> OperationResult:
        """Release payment to the tutor. Safe to call twice: the second call reports ALREADY_RELEASED."""
        try:
            reason = ReleaseReason(reason)
        except ValueError:
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, f"Unknown release reason: {reason}")
        async with self.locks(session_id):
            session = await self.sessions.get(session_id)
            if session is None:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "Session not found")
            return await self._release(session, reason)

    async def _release(self, session: TutoringSession, reason: ReleaseReason) -> OperationResult:
        # Caller holds the session lock
        if session.payment_released:
            return OperationResult.fail(ErrorKind.ALREADY_RELEASED, "Payment already released")
        blocked = _blocked(session, SessionStatus.COMPLETED)
        if blocked:
            return blocked

        now = self.clock.now()
        session.payment_released = True
        session.escrow_status = EscrowStatus.RELEASED
        session.status = SessionStatus.COMPLETED
        session.completed_at = now
        session.auto_release_triggered = reason == ReleaseReason.DEADLINE_REACHED
        session.confirmation_deadline = None
        session.transaction_hash = secrets.token_hex(32)
        await self.sessions.upsert(session)

        logger.info(
            "Escrow released for session %s: %s to tutor %s (reason=%s, tx=%s)",
            session.id,
            _money(session.amount),
            session.tutor_id,
            reason.value,
            session.transaction_hash[:8],
        )
        return OperationResult.ok(
            f"Payment of {_money(session.amount)} released to tutor. "
            f"Transaction: {session.transaction_hash[:8]}...",
            transaction_hash=session.transaction_hash,
        )

    async def process_auto_release(self) -> AutoReleaseSummary:
        """Release every awaiting session whose confirmation deadline has passed."""
        now = self.clock.now()
        released: list[str] = []
        for candidate in await self.sessions.list_all():
            if not _deadline_passed(candidate, now):
                continue
            async with self.locks(candidate.id):
                # Re-read under the lock: a confirmation may have released it meanwhile
                session = await self.sessions.get(candidate.id)
                if session is None or not _deadline_passed(session, now):
                    continue
                result = await self._release(session, ReleaseReason.DEADLINE_REACHED)
            if result.success:
                released.append(session.id)
                logger.info(
                    "Auto-release triggered for session %s (student confirmed=%s, tutor confirmed=%s)",
                    session.id,
                    session.confirmed_by_student,
                    session.confirmed_by_tutor,
                )
        if released:
            logger.info("Auto-release sweep released %d session(s)", len(released))
        return AutoReleaseSummary(processed_count=len(released), session_ids=released)

    async def report_session_issue(self, session_id: str, reporter_wallet: str, reason: str) -> OperationResult:
        """Freeze the escrow. Later confirmations, sweeps and overrides cannot release it."""
        async with self.locks(session_id):
            session = await self.sessions.get(session_id)
            if session is None:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "Session not found")
            if session.status == SessionStatus.DISPUTED:
                return OperationResult.ok("Issue already reported. " + DISPUTED_MESSAGE)
            blocked = _blocked(session, SessionStatus.DISPUTED)
            if blocked:
                return blocked
            session.status = SessionStatus.DISPUTED
            session.dispute_reason = reason.strip() or None
            session.disputed_by = reporter_wallet
            session.disputed_at = self.clock.now()
            await self.sessions.upsert(session)

        logger.warning(
            "Session %s disputed by %s (escrow %s)",
            session_id,
            reporter_wallet,
            session.escrow_status.value,
        )
        return OperationResult.ok(
            "Issue reported. Escrow is frozen pending review. Support will contact you within 24 hours."
        )

    async def cancel_session(self, session_id: str, requester_wallet: str) -> OperationResult:
        """Cancel an unreleased session and mark its escrow refunded."""
        async with self.locks(session_id):
            session = await self.sessions.get(session_id)
            if session is None:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "Session not found")
            if session.status == SessionStatus.CANCELLED:
                return OperationResult.fail(ErrorKind.INVALID_STATE, "Session already cancelled")
            blocked = _blocked(session, SessionStatus.CANCELLED)
            if blocked:
                return blocked
            if requester_wallet not in (session.student_wallet, session.tutor_wallet):
                return OperationResult.fail(ErrorKind.UNAUTHORIZED, "Not a party to this session")
            session.status = SessionStatus.CANCELLED
            session.escrow_status = EscrowStatus.REFUNDED
            await self.sessions.upsert(session)

        logger.info("Session %s cancelled by %s; %s refunded", session_id, requester_wallet, _money(session.amount))
        return OperationResult.ok(f"Session cancelled: {_money(session.amount)} refunded to student")

    async def get_session(self, session_id: str) -> TutoringSession | None:
        return await self.sessions.get(session_id)

    async def sessions_for_wallet(self, wallet: str) -> list[TutoringSession]:
        """Sessions where wallet is the student or the tutor, newest booking first."""
        sessions = [
            s for s in await self.sessions.list_all()
            if wallet in (s.student_wallet, s.tutor_wallet)
        ]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    async def completed_sessions_with_tutor(self, student_wallet: str, tutor_id: str) -> list[TutoringSession]:
        return [
            s for s in await self.sessions.list_all()
            if s.student_wallet == student_wallet
            and s.tutor_id == tutor_id
            and s.status == SessionStatus.COMPLETED
            and s.payment_released
        ]
