import hashlib
import time

import jwt

from nutramitra.core.config import settings

SIGNUP_PURPOSE = "signup"
RESET_PURPOSE = "reset"


def _encode(payload: dict, ttl_seconds: int) -> str:
    now = int(time.time())
    payload = dict(payload, iat=now, exp=now + ttl_seconds)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _decode(token: str) -> dict:
    """Raises jwt.InvalidTokenError (incl. ExpiredSignatureError) on a bad token."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def _decode_purpose(token: str, purpose: str) -> dict:
    payload = _decode(token)
    if payload.get("purpose") != purpose or "sub" not in payload:
        raise jwt.InvalidTokenError(f"Not a {purpose} token")
    return payload


def create_access_token(user) -> str:
    return _encode(
        {"sub": str(user.id), "email": user.email, "role": user.role},
        settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def decode_access_token(token: str) -> dict:
    payload = _decode(token)
    if payload.get("purpose"):
        raise jwt.InvalidTokenError("Not an access token")
    return payload


def create_signup_token(email: str) -> str:
    """Proof that `email` passed code verification, handed to /auth/register."""
    return _encode({"sub": email, "purpose": SIGNUP_PURPOSE}, settings.SIGNUP_TOKEN_EXPIRE_MINUTES * 60)


def decode_signup_token(token: str) -> str:
    return _decode_purpose(token, SIGNUP_PURPOSE)["sub"]


def password_stamp(user) -> str:
    # Changes whenever the password does (fresh salt on every hash)
    return hashlib.sha256(f"{user.salt}:{user.hashed_password}".encode()).hexdigest()[:16]


def create_reset_token(user) -> str:
    return _encode(
        {"sub": user.email, "purpose": RESET_PURPOSE, "pwd": password_stamp(user)},
        settings.RESET_TOKEN_EXPIRE_MINUTES * 60,
    )


def decode_reset_token(token: str) -> dict:
    """Returns the claims; the caller checks `pwd` against the account's current password_stamp."""
    return _decode_purpose(token, RESET_PURPOSE)
