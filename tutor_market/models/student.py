"""Registered student: wallet plus digests of email and student ID. Raw values are never stored."""
from datetime import datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from tutor_market.models.base import Base, UTCDateTime


class StudentRecord(Base):
    __tablename__ = "students"

    wallet: Mapped[str] = mapped_column(String(128), primary_key=True)
    email_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    student_id_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    registry_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    registered_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
