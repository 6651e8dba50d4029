"""Registry routes: register a student wallet, log in for a bearer token."""
from fastapi import APIRouter, Depends

from tutor_market.api.errors import raise_for_result
from tutor_market.auth.jwt import create_access_token
from tutor_market.deps import get_registry_service
from tutor_market.schemas.registry import RegistryResponse, StudentCredentials, Token
from tutor_market.services.registry import RegistryService

router = APIRouter(prefix="/registry", tags=["registry"])


@router.post("/register", response_model=RegistryResponse, status_code=201)
async def register(body: StudentCredentials, registry: RegistryService = Depends(get_registry_service)):
    """Register a wallet. Only digests of the email and student ID are stored."""
    result = await registry.register_student(body.student_id, body.email, body.wallet)
    raise_for_result(result)
    return RegistryResponse(message=result.message)


@router.post("/login", response_model=Token)
async def login(body: StudentCredentials, registry: RegistryService = Depends(get_registry_service)):
    """Verify student ID + email against the wallet's digests; returns JWT access_token."""
    result = await registry.login_student(body.student_id, body.email, body.wallet)
    raise_for_result(result)
    return Token(access_token=create_access_token(body.wallet))
