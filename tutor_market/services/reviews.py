"""Review eligibility gate and tutor rating aggregate.

A student may review a tutor once, ever, and only after a session with that
tutor completed and its escrow was released. Sessions are read-only here.
"""
import logging
import uuid
from dataclasses import dataclass

from tutor_market.config import settings
from tutor_market.models.review import Review
from tutor_market.models.session import EscrowStatus, SessionStatus, TutoringSession
from tutor_market.repositories.base import Repository
from tutor_market.services.clock import Clock, system_clock
from tutor_market.services.hashing import content_digest
from tutor_market.services.locks import KeyedLock
from tutor_market.services.results import ErrorKind, OperationResult, ReviewEligibility

logger = logging.getLogger(__name__)

NO_SETTLED_SESSION_REASON = (
    "You can only review after your first completed session and payment release from escrow."
)
ALREADY_REVIEWED_REASON = "You have already reviewed this tutor. Only one review per tutor is allowed - ever."

review_locks = KeyedLock()


@dataclass
class TutorRating:
    tutor_id: str
    average: float | None
    count: int

    @property
    def reputation_score(self) -> int | None:
        """Average scaled to 0-100."""
        if self.average is None:
            return None
        return round(self.average * 20)


def _is_settled(session: TutoringSession) -> bool:
    return (
        session.status == SessionStatus.COMPLETED
        and session.escrow_status == EscrowStatus.RELEASED
        and session.payment_released
    )


class ReviewService:
    def __init__(
        self,
        reviews: Repository[Review],
        sessions: Repository[TutoringSession],
        clock: Clock = system_clock,
        locks: KeyedLock = review_locks,
        max_text_length: int | None = None,
    ) -> None:
        self.reviews = reviews
        self.sessions = sessions
        self.clock = clock
        self.locks = locks
        self.max_text_length = max_text_length or settings.REVIEW_TEXT_MAX_LENGTH

    async def can_submit_review(self, student_wallet: str, tutor_id: str) -> ReviewEligibility:
        has_settled_session = any(
            s.student_wallet == student_wallet and s.tutor_id == tutor_id and _is_settled(s)
            for s in await self.sessions.list_all()
        )
        if not has_settled_session:
            return ReviewEligibility(False, NO_SETTLED_SESSION_REASON, ErrorKind.INELIGIBLE_REVIEW)
        already_reviewed = any(
            r.student_wallet == student_wallet and r.tutor_id == tutor_id
            for r in await self.reviews.list_all()
        )
        if already_reviewed:
            return ReviewEligibility(False, ALREADY_REVIEWED_REASON, ErrorKind.INELIGIBLE_REVIEW)
        return ReviewEligibility(True)

    async def submit_review(
        self,
        student_wallet: str,
        tutor_id: str,
        session_id: str,
        rating: int,
        review_text: str,
    ) -> OperationResult:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            return OperationResult.fail(ErrorKind.INVALID_RATING, "Rating must be between 1 and 5 stars")
        review_text = (review_text or "").strip()
        if len(review_text) > self.max_text_length:
            return OperationResult.fail(
                ErrorKind.VALIDATION_ERROR, f"Review text must be at most {self.max_text_length} characters"
            )

        eligibility = await self.can_submit_review(student_wallet, tutor_id)
        if not eligibility.can_review:
            return OperationResult.fail(ErrorKind.INELIGIBLE_REVIEW, eligibility.reason)

        # Re-check under the pair's lock; the answer above may be stale
        async with self.locks(f"{student_wallet}:{tutor_id}"):
            eligibility = await self.can_submit_review(student_wallet, tutor_id)
            if not eligibility.can_review:
                return OperationResult.fail(ErrorKind.INELIGIBLE_REVIEW, eligibility.reason)
            session = await self.sessions.get(session_id)
            if session is None or session.student_wallet != student_wallet or session.tutor_id != tutor_id:
                return OperationResult.fail(
                    ErrorKind.VALIDATION_ERROR, "Review must reference one of your sessions with this tutor"
                )

            created_at = self.clock.now()
            review_id = f"review_{uuid.uuid4().hex}"
            review = Review(
                id=review_id,
                session_id=session_id,
                student_wallet=student_wallet,
                tutor_id=tutor_id,
                rating=rating,
                review_text=review_text,
                created_at=created_at,
                content_hash=content_digest(
                    review_id, session_id, student_wallet, tutor_id, rating, review_text, created_at.isoformat()
                ),
                reviewer_hash=content_digest("reviewer", student_wallet, tutor_id),
            )
            await self.reviews.upsert(review)

        summary = await self.tutor_rating(tutor_id)
        logger.info(
            "Review %s for tutor %s: %d stars (average %.2f over %d, reviewer %s)",
            review_id,
            tutor_id,
            rating,
            summary.average,
            summary.count,
            review.reviewer_hash[:16],
        )
        return OperationResult.ok(
            f"Review submitted successfully! Tutor's rating updated to {summary.average:.1f} stars."
        )

    async def reviews_for_tutor(self, tutor_id: str) -> list[Review]:
        reviews = [r for r in await self.reviews.list_all() if r.tutor_id == tutor_id]
        return sorted(reviews, key=lambda r: r.created_at, reverse=True)

    async def tutor_rating(self, tutor_id: str) -> TutorRating:
        """Mean of every rating for the tutor, recomputed from the full review set."""
        ratings = [r.rating for r in await self.reviews.list_all() if r.tutor_id == tutor_id]
        if not ratings:
            return TutorRating(tutor_id=tutor_id, average=None, count=0)
        return TutorRating(tutor_id=tutor_id, average=sum(ratings) / len(ratings), count=len(ratings))
