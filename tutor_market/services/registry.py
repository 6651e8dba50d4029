"""Student registry: validate institutional identity, keep only digests, verify logins against them."""
import logging
import re

from tutor_market.config import settings
from tutor_market.models.student import StudentRecord
from tutor_market.repositories.base import Repository
from tutor_market.services.clock import Clock, system_clock
from tutor_market.services.hashing import composite_hash, hash_identifier, verify_identifier
from tutor_market.services.results import ErrorKind, OperationResult

logger = logging.getLogger(__name__)

STUDENT_ID_PATTERN = re.compile(r"[0-9]{10}")


class RegistryService:
    def __init__(
        self,
        students: Repository[StudentRecord],
        clock: Clock = system_clock,
        email_domain: str | None = None,
    ) -> None:
        self.students = students
        self.clock = clock
        self.email_domain = (email_domain or settings.ALLOWED_EMAIL_DOMAIN).lower()

    def validate_identity(self, student_id: str, email: str) -> OperationResult | None:
        """VALIDATION_ERROR result for a malformed student ID or a non-institutional email, else None."""
        if not STUDENT_ID_PATTERN.fullmatch(student_id.strip()):
            return OperationResult.fail(ErrorKind.VALIDATION_ERROR, "Student ID must be exactly 10 digits")
        if not email.strip().lower().endswith("@" + self.email_domain):
            return OperationResult.fail(
                ErrorKind.VALIDATION_ERROR, f"Only @{self.email_domain} emails are allowed"
            )
        return None

    async def register_student(self, student_id: str, email: str, wallet: str) -> OperationResult:
        invalid = self.validate_identity(student_id, email)
        if invalid:
            return invalid

        email_hash = hash_identifier(email)
        student_id_hash = hash_identifier(student_id)
        registry_hash = composite_hash(email_hash, student_id_hash)

        existing = await self.students.list_all()
        if any(r.student_id_hash == student_id_hash for r in existing):
            return OperationResult.fail(ErrorKind.ALREADY_REGISTERED, "Student ID already registered in the system")
        if any(r.email_hash == email_hash for r in existing):
            return OperationResult.fail(ErrorKind.ALREADY_REGISTERED, "Email already registered in the system")
        if await self.students.get(wallet) is not None:
            return OperationResult.fail(
                ErrorKind.ALREADY_REGISTERED, "Wallet address already registered to another student"
            )

        await self.students.upsert(
            StudentRecord(
                wallet=wallet,
                email_hash=email_hash,
                student_id_hash=student_id_hash,
                registry_hash=registry_hash,
                registered_at=self.clock.now(),
            )
        )
        logger.info("Student registered: wallet=%s registry=%s...", wallet, registry_hash[:16])
        return OperationResult.ok(f"Successfully registered. Registry hash: {registry_hash[:16]}...")

    async def login_student(self, student_id: str, email: str, wallet: str) -> OperationResult:
        invalid = self.validate_identity(student_id, email)
        if invalid:
            return invalid
        record = await self.students.get(wallet)
        if record is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Wallet is not registered")
        if not (
            verify_identifier(email, record.email_hash)
            and verify_identifier(student_id, record.student_id_hash)
        ):
            logger.warning("Login rejected for wallet %s: identifiers do not match", wallet)
            return OperationResult.fail(ErrorKind.UNAUTHORIZED, "Student ID or email does not match this wallet")
        return OperationResult.ok("Student verified successfully")

    async def is_registered(self, wallet: str) -> bool:
        return await self.students.get(wallet) is not None
