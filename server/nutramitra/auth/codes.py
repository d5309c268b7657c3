"""
One-time email verification codes.

A code is six digits, keyed by its purpose (`signup` or `reset`) and the
(lower-cased) email it was sent to. Issuing a new code for the same purpose
and address replaces the previous one. Codes are single use: a successful
verification deletes the record, and so does the first verification attempt
that finds it expired.
"""
import asyncio
import hmac
import logging
import secrets
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nutramitra.core import templates
from nutramitra.db.models import VerificationCode

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
SIGNUP = "signup"
RESET = "reset"


class VerificationResult(str, Enum):
    VERIFIED = "verified"
    EXPIRED = "expired"
    # No code on record and wrong code look the same from outside
    INVALID = "invalid"


@dataclass
class CodeRecord:
    email: str
    code: str
    issued_at: float
    expires_at: float
    attempts: int = 0
    purpose: str = SIGNUP


@dataclass
class IssuedCode:
    email: str
    code: str
    expires_at: float
    purpose: str = SIGNUP


def generate_code() -> str:
    # Uniform over all 10**6 values, leading zeros kept
    return str(secrets.randbelow(10 ** CODE_LENGTH)).zfill(CODE_LENGTH)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class VerificationCodeStore:
    """Code storage keyed by (purpose, email). Last writer wins per key."""

    async def get(self, purpose: str, email: str) -> Optional[CodeRecord]:
        raise NotImplementedError

    async def put(self, record: CodeRecord):
        raise NotImplementedError

    async def consume(self, purpose: str, email: str, code: str) -> bool:
        """Delete the record only if it still holds `code`. True if this call removed it."""
        raise NotImplementedError

    async def record_failure(self, purpose: str, email: str, code: str) -> int:
        """Count a wrong guess against `code`, returning the new attempt count (0 if it is gone)."""
        raise NotImplementedError

    async def purge_expired(self, before: float) -> int:
        raise NotImplementedError


class MemoryVerificationCodeStore(VerificationCodeStore):
    def __init__(self):
        self._records: Dict[Tuple[str, str], CodeRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, purpose, email):
        async with self._lock:
            record = self._records.get((purpose, email))
            return replace(record) if record else None

    async def put(self, record):
        async with self._lock:
            self._records[(record.purpose, record.email)] = replace(record)

    async def consume(self, purpose, email, code):
        async with self._lock:
            record = self._records.get((purpose, email))
            if record is None or record.code != code:
                return False
            del self._records[(purpose, email)]
            return True

    async def record_failure(self, purpose, email, code):
        async with self._lock:
            record = self._records.get((purpose, email))
            if record is None or record.code != code:
                return 0
            record.attempts += 1
            return record.attempts

    async def purge_expired(self, before):
        async with self._lock:
            expired = [key for key, r in self._records.items() if r.expires_at < before]
            for key in expired:
                del self._records[key]
            return len(expired)


class SqlVerificationCodeStore(VerificationCodeStore):
    """Codes kept in the `verification_codes` table, one row per purpose and email."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _match(purpose, email, code=None):
        clauses = [VerificationCode.purpose == purpose, VerificationCode.email == email]
        if code is not None:
            clauses.append(VerificationCode.code == code)
        return clauses

    async def get(self, purpose, email):
        res = await self.session.execute(
            select(VerificationCode)
            .where(*self._match(purpose, email))
            .execution_options(populate_existing=True)
        )
        row = res.scalars().first()
        if row is None:
            return None
        return CodeRecord(
            email=row.email,
            code=row.code,
            issued_at=row.issued_at,
            expires_at=row.expires_at,
            attempts=row.attempts,
            purpose=row.purpose,
        )

    async def put(self, record):
        values = dict(
            code=record.code,
            issued_at=record.issued_at,
            expires_at=record.expires_at,
            attempts=record.attempts,
        )
        try:
            await self.session.merge(VerificationCode(purpose=record.purpose, email=record.email, **values))
            await self.session.commit()
        except IntegrityError:
            # Another request inserted the row first; overwrite it
            await self.session.rollback()
            await self.session.execute(
                update(VerificationCode).where(*self._match(record.purpose, record.email)).values(**values)
            )
            await self.session.commit()

    async def consume(self, purpose, email, code):
        res = await self.session.execute(delete(VerificationCode).where(*self._match(purpose, email, code)))
        await self.session.commit()
        return res.rowcount == 1

    async def record_failure(self, purpose, email, code):
        await self.session.execute(
            update(VerificationCode)
            .where(*self._match(purpose, email, code))
            .values(attempts=VerificationCode.attempts + 1)
        )
        await self.session.commit()
        res = await self.session.execute(
            select(VerificationCode.attempts).where(*self._match(purpose, email, code))
        )
        return res.scalar() or 0

    async def purge_expired(self, before):
        res = await self.session.execute(delete(VerificationCode).where(VerificationCode.expires_at < before))
        await self.session.commit()
        return res.rowcount or 0


class VerificationCodeService:
    def __init__(self, store: VerificationCodeStore, mailer, ttl_seconds: int = 600,
                 max_attempts: Optional[int] = 5, clock: Callable[[], float] = time.time):
        self.store = store
        self.mailer = mailer
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self.clock = clock

    async def issue_code(self, email: str, purpose: str = SIGNUP) -> IssuedCode:
        """
        Mail a fresh code to `email` and remember it.

        The code is stored only once the mail went out, so a failed send
        (MailDeliveryError) leaves whatever code was there before.
        """
        email = normalize_email(email)

        code = generate_code()
        subject, html, text = templates.verification_code_email(
            code, ttl_minutes=self.ttl_seconds // 60, purpose=purpose
        )
        await self.mailer.send(email, subject, html, text)

        now = self.clock()
        record = CodeRecord(
            email=email, code=code, issued_at=now, expires_at=now + self.ttl_seconds, purpose=purpose
        )
        await self.store.put(record)
        logger.info("Issued %s code for %s", purpose, email)
        return IssuedCode(email=email, code=code, expires_at=record.expires_at, purpose=purpose)

    async def verify_code(self, email: str, submitted: str, purpose: str = SIGNUP) -> VerificationResult:
        email = normalize_email(email)
        submitted = (submitted or "").strip()

        record = await self.store.get(purpose, email)
        if record is None:
            return VerificationResult.INVALID

        # Deletes below are conditional on the code we read, so a code
        # issued in the meantime survives
        if self.clock() > record.expires_at:
            await self.store.consume(purpose, email, record.code)
            logger.info("Expired %s code touched for %s", purpose, email)
            return VerificationResult.EXPIRED

        if hmac.compare_digest(record.code.encode(), submitted.encode()):
            if await self.store.consume(purpose, email, record.code):
                logger.info("%s code verified for %s", purpose.capitalize(), email)
                return VerificationResult.VERIFIED
            return VerificationResult.INVALID

        attempts = await self.store.record_failure(purpose, email, record.code)
        if self.max_attempts and attempts >= self.max_attempts:
            await self.store.consume(purpose, email, record.code)
            logger.warning("%s code for %s burned after %d wrong attempts", purpose.capitalize(), email, attempts)
        return VerificationResult.INVALID

    async def sweep_expired(self, grace_seconds: float = 24 * 60 * 60) -> int:
        """
        Maintenance: drop records that expired more than `grace_seconds` ago.

        Never called on the request path; an expired code stays in place until
        its owner touches it (and gets EXPIRED) or the grace period runs out.
        """
        removed = await self.store.purge_expired(self.clock() - grace_seconds)
        if removed:
            logger.info("Purged %d stale verification codes", removed)
        return removed
