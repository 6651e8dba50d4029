"""Shared dependencies: repositories, services, clock, get_current_wallet, require_admin."""
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tutor_market.auth.jwt import decode_wallet
from tutor_market.config import settings
from tutor_market.database import get_db
from tutor_market.models.review import Review
from tutor_market.models.session import TutoringSession
from tutor_market.models.student import StudentRecord
from tutor_market.repositories.base import Repository
from tutor_market.repositories.sql import SqlRepository
from tutor_market.services.clock import Clock, system_clock
from tutor_market.services.escrow import EscrowService
from tutor_market.services.registry import RegistryService
from tutor_market.services.reviews import ReviewService

security = HTTPBearer(auto_error=False)


def get_clock() -> Clock:
    return system_clock


async def get_session_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> Repository[TutoringSession]:
    return SqlRepository(db, TutoringSession)


async def get_review_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> Repository[Review]:
    return SqlRepository(db, Review)


async def get_student_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> Repository[StudentRecord]:
    return SqlRepository(db, StudentRecord)


def get_escrow_service(
    sessions: Annotated[Repository[TutoringSession], Depends(get_session_repository)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> EscrowService:
    return EscrowService(sessions, clock=clock)


def get_review_service(
    reviews: Annotated[Repository[Review], Depends(get_review_repository)],
    sessions: Annotated[Repository[TutoringSession], Depends(get_session_repository)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ReviewService:
    return ReviewService(reviews, sessions, clock=clock)


def get_registry_service(
    students: Annotated[Repository[StudentRecord], Depends(get_student_repository)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> RegistryService:
    return RegistryService(students, clock=clock)


async def get_current_wallet(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    registry: Annotated[RegistryService, Depends(get_registry_service)],
) -> str:
    """Validate Authorization: Bearer <token> and return the caller's registered wallet. Raises 401 otherwise."""
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    wallet = decode_wallet(credentials.credentials)
    if not wallet:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    if not await registry.is_registered(wallet):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Wallet not registered")
    return wallet


def require_admin(x_admin_token: Annotated[str | None, Header()] = None) -> None:
    """Gate for admin_override releases and manual sweeps."""
    if not settings.ADMIN_TOKEN or not x_admin_token or not secrets.compare_digest(
        x_admin_token.encode("utf-8"), settings.ADMIN_TOKEN.encode("utf-8")
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin token required")
