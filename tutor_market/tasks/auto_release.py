"""Release escrow for sessions whose confirmation deadline has passed."""
import asyncio
import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tutor_market.config import settings
from tutor_market.database import async_session
from tutor_market.models.session import TutoringSession
from tutor_market.repositories.sql import SqlRepository
from tutor_market.services.clock import Clock, system_clock
from tutor_market.services.escrow import EscrowService
from tutor_market.services.results import AutoReleaseSummary

logger = logging.getLogger(__name__)


async def run_auto_release_once(
    session_factory: async_sessionmaker[AsyncSession] = async_session,
    clock: Clock = system_clock,
) -> AutoReleaseSummary:
    async with session_factory() as db:
        escrow = EscrowService(SqlRepository(db, TutoringSession), clock=clock)
        return await escrow.process_auto_release()


async def run_auto_release_loop(
    interval_seconds: float | None = None,
    run_once: Callable[[], Awaitable[AutoReleaseSummary]] = run_auto_release_once,
) -> None:
    interval = interval_seconds if interval_seconds is not None else settings.AUTO_RELEASE_INTERVAL_SECONDS
    while True:
        try:
            await run_once()
        except Exception:
            logger.exception("Auto-release sweep failed; retrying in %ss", interval)
        await asyncio.sleep(interval)
