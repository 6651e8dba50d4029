"""Session routes: book, list mine, get, confirm, report issue, cancel, admin release and sweep."""
import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from tutor_market.api.errors import raise_for_result
from tutor_market.deps import get_current_wallet, get_escrow_service, get_registry_service, require_admin
from tutor_market.models.session import ConfirmerRole, ReleaseReason, TutoringSession
from tutor_market.schemas.session import (
    AutoReleaseResponse,
    ConfirmRequest,
    ReportRequest,
    SessionActionResponse,
    SessionCreate,
    SessionResponse,
)
from tutor_market.services.escrow import EscrowService
from tutor_market.services.registry import RegistryService
from tutor_market.services.results import OperationResult

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _my_role(session: TutoringSession, wallet: str | None) -> ConfirmerRole | None:
    if wallet == session.student_wallet:
        return ConfirmerRole.STUDENT
    if wallet == session.tutor_wallet:
        return ConfirmerRole.TUTOR
    return None


def _session_to_response(session: TutoringSession, wallet: str | None) -> SessionResponse:
    response = SessionResponse.model_validate(session)
    return response.model_copy(update={"my_role": _my_role(session, wallet)})


async def _get_my_session(escrow: EscrowService, session_id: str, wallet: str) -> TutoringSession:
    session = await escrow.get_session(session_id)
    if not session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    if _my_role(session, wallet) is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a party to this session")
    return session


async def _action_response(
    escrow: EscrowService,
    session_id: str,
    result: OperationResult,
    wallet: str | None,
) -> SessionActionResponse:
    raise_for_result(result)
    session = await escrow.get_session(session_id)
    return SessionActionResponse(message=result.message, session=_session_to_response(session, wallet))


@router.post("", response_model=SessionActionResponse, status_code=status.HTTP_201_CREATED)
async def book_session(
    body: SessionCreate,
    escrow: EscrowService = Depends(get_escrow_service),
    registry: RegistryService = Depends(get_registry_service),
    wallet: str = Depends(get_current_wallet),
):
    """Book a session with a registered tutor; locks the amount in escrow."""
    if not await registry.is_registered(body.tutor_wallet):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tutor wallet is not registered")
    session_id = body.session_id or f"session_{uuid.uuid4().hex[:12]}"
    result, session = await escrow.book_session(
        session_id=session_id,
        student_id=body.student_id,
        student_wallet=wallet,
        tutor_id=body.tutor_id,
        tutor_wallet=body.tutor_wallet,
        scheduled_time=body.scheduled_time,
        session_end_time=body.session_end_time,
        amount=body.amount,
        course_id=body.course_id,
    )
    raise_for_result(result)
    return SessionActionResponse(message=result.message, session=_session_to_response(session, wallet))


@router.get("/me", response_model=list[SessionResponse])
async def list_my_sessions(
    escrow: EscrowService = Depends(get_escrow_service),
    wallet: str = Depends(get_current_wallet),
):
    """Sessions where the caller is the student or the tutor, newest first."""
    return [_session_to_response(s, wallet) for s in await escrow.sessions_for_wallet(wallet)]


@router.post("/auto-release", response_model=AutoReleaseResponse, dependencies=[Depends(require_admin)])
async def run_auto_release(escrow: EscrowService = Depends(get_escrow_service)):
    """Run the deadline sweep now (the background task runs it every AUTO_RELEASE_INTERVAL_SECONDS)."""
    summary = await escrow.process_auto_release()
    return AutoReleaseResponse(processed_count=summary.processed_count, session_ids=summary.session_ids)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    escrow: EscrowService = Depends(get_escrow_service),
    wallet: str = Depends(get_current_wallet),
):
    session = await _get_my_session(escrow, session_id, wallet)
    return _session_to_response(session, wallet)


@router.post("/{session_id}/confirm", response_model=SessionActionResponse)
async def confirm_session(
    session_id: str,
    body: ConfirmRequest,
    escrow: EscrowService = Depends(get_escrow_service),
    wallet: str = Depends(get_current_wallet),
):
    """Confirm completion as student or tutor. Second party's confirmation releases payment."""
    await _get_my_session(escrow, session_id, wallet)
    result = await escrow.confirm_session(session_id, wallet, body.role)
    return await _action_response(escrow, session_id, result, wallet)


@router.post("/{session_id}/report", response_model=SessionActionResponse)
async def report_issue(
    session_id: str,
    body: ReportRequest,
    escrow: EscrowService = Depends(get_escrow_service),
    wallet: str = Depends(get_current_wallet),
):
    """Report a problem; the escrow is frozen until support resolves it."""
    await _get_my_session(escrow, session_id, wallet)
    result = await escrow.report_session_issue(session_id, wallet, body.reason)
    return await _action_response(escrow, session_id, result, wallet)


@router.post("/{session_id}/cancel", response_model=SessionActionResponse)
async def cancel_session(
    session_id: str,
    escrow: EscrowService = Depends(get_escrow_service),
    wallet: str = Depends(get_current_wallet),
):
    """Cancel an unreleased session; escrow is marked refunded."""
    await _get_my_session(escrow, session_id, wallet)
    result = await escrow.cancel_session(session_id, wallet)
    return await _action_response(escrow, session_id, result, wallet)


@router.post(
    "/{session_id}/release",
    response_model=SessionActionResponse,
    dependencies=[Depends(require_admin)],
)
async def admin_release(session_id: str, escrow: EscrowService = Depends(get_escrow_service)):
    """Release payment by admin override. Disputed sessions stay frozen."""
    result = await escrow.release_escrow(session_id, ReleaseReason.ADMIN_OVERRIDE)
    return await _action_response(escrow, session_id, result, None)
