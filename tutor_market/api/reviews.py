"""Review routes: eligibility check, submit, list a tutor's reviews, tutor rating."""
from fastapi import APIRouter, Depends

from tutor_market.api.errors import raise_for_result
from tutor_market.deps import get_current_wallet, get_review_service
from tutor_market.schemas.review import (
    EligibilityResponse,
    ReviewCreate,
    ReviewResponse,
    ReviewSubmitResponse,
    TutorRatingResponse,
)
from tutor_market.services.reviews import ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/eligibility", response_model=EligibilityResponse)
async def review_eligibility(
    tutor_id: str,
    reviews: ReviewService = Depends(get_review_service),
    wallet: str = Depends(get_current_wallet),
):
    """Whether the caller may review this tutor, and why not if they may not."""
    eligibility = await reviews.can_submit_review(wallet, tutor_id)
    return EligibilityResponse(can_review=eligibility.can_review, reason=eligibility.reason)


@router.post("", response_model=ReviewSubmitResponse, status_code=201)
async def submit_review(
    body: ReviewCreate,
    reviews: ReviewService = Depends(get_review_service),
    wallet: str = Depends(get_current_wallet),
):
    result = await reviews.submit_review(wallet, body.tutor_id, body.session_id, body.rating, body.review_text)
    raise_for_result(result)
    rating = await reviews.tutor_rating(body.tutor_id)
    return ReviewSubmitResponse(message=result.message, rating=TutorRatingResponse.model_validate(rating))


@router.get("/tutors/{tutor_id}", response_model=list[ReviewResponse])
async def list_tutor_reviews(tutor_id: str, reviews: ReviewService = Depends(get_review_service)):
    """Public; newest first."""
    return [ReviewResponse.model_validate(r) for r in await reviews.reviews_for_tutor(tutor_id)]


@router.get("/tutors/{tutor_id}/rating", response_model=TutorRatingResponse)
async def tutor_rating(tutor_id: str, reviews: ReviewService = Depends(get_review_service)):
    return TutorRatingResponse.model_validate(await reviews.tutor_rating(tutor_id))
