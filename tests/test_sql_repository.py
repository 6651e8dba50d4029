"""Tests for the SQLAlchemy repository and the services running on top of it (SQLite via aiosqlite)."""

from datetime import timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import SESSION_START, STUDENT_WALLET, TUTOR_WALLET
from tutor_market.models import Review, StudentRecord, TutoringSession
from tutor_market.models.session import EscrowStatus, SessionStatus
from tutor_market.repositories.sql import SqlRepository
from tutor_market.services.clock import FrozenClock
from tutor_market.services.escrow import EscrowService
from tutor_market.services.locks import KeyedLock
from tutor_market.services.registry import RegistryService
from tutor_market.tasks.auto_release import run_auto_release_once


def _escrow(db, clock) -> EscrowService:
    return EscrowService(SqlRepository(db, TutoringSession), clock=clock, locks=KeyedLock())


async def _book(escrow: EscrowService, session_id: str = "S2") -> None:
    result, _ = await escrow.book_session(
        session_id=session_id,
        student_id="user-1",
        student_wallet=STUDENT_WALLET,
        tutor_id="tutor-1",
        tutor_wallet=TUTOR_WALLET,
        scheduled_time=SESSION_START,
        session_end_time=SESSION_START + timedelta(hours=1),
        amount="30.00",
        course_id="CS300",
    )
    assert result.success, result.message


class TestSqlRepository:
    async def test_roundtrip_keeps_values_and_timezones(self, sqlite_session_factory, clock):
        async with sqlite_session_factory() as db:
            await _book(_escrow(db, clock))

        async with sqlite_session_factory() as db:
            session = await SqlRepository(db, TutoringSession).get("S2")

        assert session.status == SessionStatus.SCHEDULED
        assert session.escrow_status == EscrowStatus.LOCKED
        assert session.amount == Decimal("30.00")
        assert session.scheduled_time == SESSION_START
        assert session.scheduled_time.tzinfo is not None
        assert session.created_at.utcoffset() == timezone.utc.utcoffset(None)

    async def test_get_missing_returns_none(self, sqlite_session_factory):
        async with sqlite_session_factory() as db:
            assert await SqlRepository(db, TutoringSession).get("missing") is None

    async def test_student_record_keyed_by_wallet(self, sqlite_session_factory, clock):
        async with sqlite_session_factory() as db:
            registry = RegistryService(SqlRepository(db, StudentRecord), clock=clock)
            assert (await registry.register_student("9081234567", "bucky@wisc.edu", "wallet-1")).success
            assert await registry.is_registered("wallet-1")
            assert len(await SqlRepository(db, StudentRecord).list_all()) == 1

    async def test_review_pair_is_unique_in_storage(self, sqlite_session_factory, clock):
        def review(review_id: str) -> Review:
            return Review(
                id=review_id,
                session_id="S1",
                student_wallet=STUDENT_WALLET,
                tutor_id="tutor-1",
                rating=5,
                review_text="",
                created_at=clock.now(),
                content_hash="0" * 64,
                reviewer_hash="0" * 64,
            )

        async with sqlite_session_factory() as db:
            repo = SqlRepository(db, Review)
            await repo.upsert(review("review_a"))
            with pytest.raises(IntegrityError):
                await repo.upsert(review("review_b"))
            assert [r.id for r in await repo.list_all()] == ["review_a"]


class TestEscrowOverSql:
    async def test_confirmations_release_across_requests(self, sqlite_session_factory, clock):
        async with sqlite_session_factory() as db:
            await _book(_escrow(db, clock), "S1")
        async with sqlite_session_factory() as db:
            assert (await _escrow(db, clock).confirm_session("S1", TUTOR_WALLET, "tutor")).success
        async with sqlite_session_factory() as db:
            result = await _escrow(db, clock).confirm_session("S1", STUDENT_WALLET, "student")
            assert "Payment released" in result.message

        async with sqlite_session_factory() as db:
            session = await SqlRepository(db, TutoringSession).get("S1")
        assert session.payment_released
        assert session.escrow_status == EscrowStatus.RELEASED
        assert session.confirmation_deadline is None
        assert not session.auto_release_triggered

    async def test_sweep_task_releases_expired_sessions(self, sqlite_session_factory, clock):
        async with sqlite_session_factory() as db:
            escrow = _escrow(db, clock)
            await _book(escrow, "S2")
            await _book(escrow, "S4")
            await escrow.confirm_session("S2", TUTOR_WALLET, "tutor")

        later = FrozenClock(clock.now() + timedelta(hours=25))
        summary = await run_auto_release_once(session_factory=sqlite_session_factory, clock=later)
        assert summary.session_ids == ["S2"]

        again = await run_auto_release_once(session_factory=sqlite_session_factory, clock=later)
        assert again.processed_count == 0

        async with sqlite_session_factory() as db:
            released = await SqlRepository(db, TutoringSession).get("S2")
            untouched = await SqlRepository(db, TutoringSession).get("S4")
        assert released.auto_release_triggered
        assert released.status == SessionStatus.COMPLETED
        assert untouched.status == SessionStatus.SCHEDULED

    async def test_read_sees_rows_committed_by_another_session(self, sqlite_session_factory, clock):
        async with sqlite_session_factory() as reader_db, sqlite_session_factory() as writer_db:
            await _book(_escrow(writer_db, clock), "S1")
            reader = SqlRepository(reader_db, TutoringSession)
            assert (await reader.get("S1")).status == SessionStatus.SCHEDULED

            await _escrow(writer_db, clock).release_escrow("S1", "admin_override")

            assert (await reader.get("S1")).status == SessionStatus.COMPLETED
