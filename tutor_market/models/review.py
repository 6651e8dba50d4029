"""Review model: one immutable rating of a tutor by a student (one per student wallet and tutor, ever)."""
from datetime import datetime

from sqlalchemy import Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tutor_market.models.base import Base, UTCDateTime


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("student_wallet", "tutor_id", name="uq_reviews_student_tutor"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    student_wallet: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tutor_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-5
    review_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    reviewer_hash: Mapped[str] = mapped_column(String(64), nullable=False)
