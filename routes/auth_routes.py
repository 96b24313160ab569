"""
Authentication routes.

POST /auth/login             — email/username + password → bearer token
POST /auth/register          — create an unverified account, email a code
POST /auth/verify-signup     — confirm the signup code → bearer token
POST /auth/resend-otp        — re-send a signup or reset code
POST /auth/forgot-password   — email a reset code
POST /auth/verify-reset-otp  — check the reset code
POST /auth/reset-password    — spend the reset code and set a new password
POST /auth/change-password   — (auth) change password with the current one
POST /auth/set-password      — (auth) add a local password
POST /auth/verify-password   — (auth) re-check the password
GET  /auth/validate-token    — (auth) return the token's user

Handlers only translate between DTOs and AuthService calls; every rule lives
in the service layer.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from config import AppSettings
from dependencies import (
    client_ip,
    get_auth_service,
    get_current_user,
    get_settings,
    rate_limit,
)
from schemas.dto.requests.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendOtpRequest,
    ResetPasswordRequest,
    SetPasswordRequest,
    VerifyPasswordRequest,
    VerifyResetOtpRequest,
    VerifySignupRequest,
)
from schemas.dto.responses.auth import (
    AuthTokenResponse,
    PasswordResetResponse,
    RegisterResponse,
    UserPublic,
    ValidateTokenResponse,
)
from schemas.dto.responses.common import MessageResponse
from schemas.models.user import UserDoc
from services.auth_service import AuthService, RegistrationProfile
from services.limits import Limits

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=AuthTokenResponse,
    dependencies=[Depends(rate_limit(Limits.LOGIN_IP))],
)
async def login(
    body: LoginRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthTokenResponse:
    """Log in with an email or username.

    Unverified accounts get a fresh signup code and a 403 with
    ``data.requiresVerification``; five wrong passwords lock the account
    for 30 minutes (429).
    """
    session = await auth_service.login(body.identifier, body.password, client_ip(request))
    return AuthTokenResponse(
        message="Login successful",
        token=session.token,
        user=UserPublic.from_doc(session.user),
    )


@router.post(
    "/register",
    status_code=201,
    response_model=RegisterResponse,
    dependencies=[Depends(rate_limit(Limits.REGISTER_IP))],
)
async def register(
    body: RegisterRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    result = await auth_service.register(
        RegistrationProfile(
            first_name=body.first_name,
            last_name=body.last_name,
            username=body.username,
            email=body.email,
            password=body.password,
            age=body.age,
        ),
        client_ip(request),
    )
    if result.verification_sent:
        message = "Registration successful. Please check your email for the verification code"
    else:
        message = (
            "Registration successful, but we could not send the verification email. "
            "Please request a new code"
        )
    return RegisterResponse(
        message=message,
        state=result.state.value,
        email=result.email,
        verification_sent=result.verification_sent,
    )


@router.post(
    "/verify-signup",
    response_model=AuthTokenResponse,
    dependencies=[Depends(rate_limit(Limits.OTP_IP))],
)
async def verify_signup(
    body: VerifySignupRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthTokenResponse:
    session = await auth_service.verify_signup(body.email, body.otp)
    return AuthTokenResponse(
        message="Email verified successfully",
        token=session.token,
        user=UserPublic.from_doc(session.user),
    )


@router.post(
    "/resend-otp",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit(Limits.OTP_IP))],
)
async def resend_otp(
    body: ResendOtpRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.resend_otp(body.email, body.type, client_ip(request))
    return MessageResponse(success=True, message="OTP sent successfully")


@router.post(
    "/forgot-password",
    response_model=PasswordResetResponse,
    response_model_exclude_none=True,
)
async def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> PasswordResetResponse:
    result = await auth_service.forgot_password(body.email, client_ip(request))
    return PasswordResetResponse(
        message="Password reset code sent to your email",
        state=result.state.value,
        email=result.email,
        expires_in_seconds=settings.otp.otp_ttl_seconds,
    )


@router.post(
    "/verify-reset-otp",
    response_model=PasswordResetResponse,
    response_model_exclude_none=True,
)
async def verify_reset_otp(
    body: VerifyResetOtpRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> PasswordResetResponse:
    result = await auth_service.verify_reset_otp(body.email, body.otp)
    return PasswordResetResponse(
        message="OTP verified. You can now reset your password",
        state=result.state.value,
        email=result.email,
    )


@router.post(
    "/reset-password",
    response_model=PasswordResetResponse,
    response_model_exclude_none=True,
)
async def reset_password(
    body: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> PasswordResetResponse:
    result = await auth_service.reset_password(body.email, body.otp, body.new_password)
    return PasswordResetResponse(
        message="Password reset successfully. Please log in with your new password",
        state=result.state.value,
        email=result.email,
    )


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    user: UserDoc = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.change_password(str(user.id), body.current_password, body.new_password)
    return MessageResponse(success=True, message="Password changed successfully")


@router.post("/set-password", response_model=MessageResponse)
async def set_password(
    body: SetPasswordRequest,
    user: UserDoc = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.set_password(str(user.id), body.new_password)
    return MessageResponse(success=True, message="Password set successfully")


@router.post("/verify-password", response_model=MessageResponse)
async def verify_password(
    body: VerifyPasswordRequest,
    user: UserDoc = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.verify_password(str(user.id), body.password)
    return MessageResponse(success=True, message="Password verified")


@router.get("/validate-token", response_model=ValidateTokenResponse)
async def validate_token(user: UserDoc = Depends(get_current_user)) -> ValidateTokenResponse:
    return ValidateTokenResponse(user=UserPublic.from_doc(user))
