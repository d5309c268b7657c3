from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from nutramitra.auth.codes import SqlVerificationCodeStore, VerificationCodeService
from nutramitra.auth.tokens import decode_access_token
from nutramitra.core.config import settings
from nutramitra.core.email import get_mailer
from nutramitra.core.exceptions import AuthenticationError, PermissionDenied
from nutramitra.db.models import User, get_db

bearer_scheme = HTTPBearer(auto_error=False)


def get_code_store(db: AsyncSession = Depends(get_db)):
    return SqlVerificationCodeStore(db)


def get_verification_service(store=Depends(get_code_store), mailer=Depends(get_mailer)):
    return VerificationCodeService(
        store,
        mailer,
        ttl_seconds=settings.OTP_TTL_SECONDS,
        max_attempts=settings.OTP_MAX_ATTEMPTS,
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials)
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise AuthenticationError("Not authenticated")

    user = await db.get(User, user_id)
    if user is None or not user.is_verified:
        raise AuthenticationError("Not authenticated")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise PermissionDenied()
    return user
