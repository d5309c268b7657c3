import logging

import jwt
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nutramitra.auth.codes import RESET, SIGNUP, VerificationResult
from nutramitra.auth.dependencies import get_current_user, get_verification_service
from nutramitra.auth.passwords import hash_password, verify_password
from nutramitra.auth.tokens import (
    create_access_token,
    create_reset_token,
    create_signup_token,
    decode_reset_token,
    decode_signup_token,
    password_stamp,
)
from nutramitra.core.exceptions import (
    AuthenticationError,
    ConflictError,
    MailDeliveryError,
    NotFoundError,
    ValidationError,
)
from nutramitra.db.models import User, get_db
from nutramitra.schemas import EmailBody, LoginBody, RegisterBody, ResetPasswordBody, VerifyOtpBody

logger = logging.getLogger(__name__)

router = APIRouter()


def serialize_user(user):
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "isVerified": user.is_verified,
        "profilePic": user.profile_pic,
        "createdAt": user.created_at,
        "updatedAt": user.updated_at,
    }


async def _find_user(db: AsyncSession, email: str):
    res = await db.execute(select(User).where(User.email == email.strip().lower()))
    return res.scalars().first()


async def _check_code(service, email: str, otp: str, purpose: str):
    result = await service.verify_code(email, otp, purpose=purpose)
    if result is VerificationResult.EXPIRED:
        raise ValidationError("OTP has expired")
    if result is not VerificationResult.VERIFIED:
        raise ValidationError("Invalid OTP")


@router.post("/send-otp")
async def send_otp(body: EmailBody, service=Depends(get_verification_service)):
    try:
        await service.issue_code(body.email, purpose=SIGNUP)
    except MailDeliveryError:
        raise MailDeliveryError("Failed to send OTP")
    return {"success": True, "message": "OTP sent successfully"}


@router.put("/send-otp")
async def verify_otp(body: VerifyOtpBody, service=Depends(get_verification_service)):
    await _check_code(service, body.email, body.otp, SIGNUP)
    return {
        "success": True,
        "message": "OTP verified successfully",
        "verified": True,
        "signupToken": create_signup_token(body.email),
    }


@router.post("/register")
async def register(body: RegisterBody, db: AsyncSession = Depends(get_db)):
    try:
        verified_email = decode_signup_token(body.signup_token or "")
    except jwt.InvalidTokenError:
        raise ValidationError("Email verification required")
    if verified_email != body.email:
        raise ValidationError("Email verification required")

    if await _find_user(db, body.email):
        raise ConflictError("User with this email already exists")

    hashed, salt = hash_password(body.password)
    new_user = User(
        name=body.name,
        email=body.email,
        hashed_password=hashed,
        salt=salt,
        role="user",
        is_verified=True,
    )
    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User with this email already exists")
    await db.refresh(new_user)

    logger.info("Registered user %s", new_user.email)
    return {
        "success": True,
        "message": "User registered successfully",
        "user": serialize_user(new_user),
    }


@router.post("/login")
async def login(body: LoginBody, db: AsyncSession = Depends(get_db)):
    user = await _find_user(db, body.email)
    # Same answer for unknown, unverified and wrong password
    if not user or not user.is_verified or not verify_password(user.hashed_password, user.salt, body.password):
        raise AuthenticationError("Invalid credentials")

    return {
        "success": True,
        "token": create_access_token(user),
        "user": serialize_user(user),
    }


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return {"user": serialize_user(user)}


@router.post("/forgot-password")
async def forgot_password(body: EmailBody, db: AsyncSession = Depends(get_db),
                          service=Depends(get_verification_service)):
    if await _find_user(db, body.email):
        try:
            await service.issue_code(body.email, purpose=RESET)
        except MailDeliveryError:
            raise MailDeliveryError("Failed to send OTP")
    else:
        logger.info("Password reset requested for unknown email %s", body.email)

    return {"success": True, "message": "If an account exists for this email, a code has been sent"}


@router.post("/reset-password/verify")
async def verify_reset_code(body: VerifyOtpBody, db: AsyncSession = Depends(get_db),
                            service=Depends(get_verification_service)):
    await _check_code(service, body.email, body.otp, RESET)
    user = await _find_user(db, body.email)
    if not user:
        raise NotFoundError("User not found")
    return {"success": True, "verified": True, "resetToken": create_reset_token(user)}


@router.post("/reset-password")
async def reset_password(body: ResetPasswordBody, db: AsyncSession = Depends(get_db)):
    try:
        claims = decode_reset_token(body.reset_token)
    except jwt.InvalidTokenError:
        raise ValidationError("Invalid or expired reset token")

    user = await _find_user(db, claims["sub"])
    if not user:
        raise NotFoundError("User not found")
    # Spent once the password changes
    if claims.get("pwd") != password_stamp(user):
        raise ValidationError("Invalid or expired reset token")

    user.hashed_password, user.salt = hash_password(body.password)
    await db.commit()

    logger.info("Password reset for %s", user.email)
    return {"success": True, "message": "Password reset successfully"}
