"""Pydantic schemas for reviews and tutor ratings."""
from datetime import datetime

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    """Request body for POST /reviews. Rating bounds are checked by the review gate."""
    tutor_id: str = Field(..., min_length=1, max_length=64)
    session_id: str = Field(..., min_length=1, max_length=64)
    rating: int
    review_text: str = ""


class EligibilityResponse(BaseModel):
    can_review: bool
    reason: str | None = None


class ReviewResponse(BaseModel):
    """Public review: reviewer shown only by its derived hash."""
    id: str
    session_id: str
    tutor_id: str
    rating: int
    review_text: str
    created_at: datetime
    content_hash: str
    reviewer_hash: str

    class Config:
        from_attributes = True


class TutorRatingResponse(BaseModel):
    tutor_id: str
    average: float | None
    count: int
    reputation_score: int | None

    class Config:
        from_attributes = True


class ReviewSubmitResponse(BaseModel):
    message: str
    rating: TutorRatingResponse
