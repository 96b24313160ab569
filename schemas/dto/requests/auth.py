"""
Request DTOs for authentication endpoints.

LoginRequest           — POST /auth/login
RegisterRequest        — POST /auth/register
VerifySignupRequest    — POST /auth/verify-signup
ResendOtpRequest       — POST /auth/resend-otp
ForgotPasswordRequest  — POST /auth/forgot-password
VerifyResetOtpRequest  — POST /auth/verify-reset-otp
ResetPasswordRequest   — POST /auth/reset-password
ChangePasswordRequest  — POST /auth/change-password
SetPasswordRequest     — POST /auth/set-password
VerifyPasswordRequest  — POST /auth/verify-password

Fields are deliberately loose (optional strings): shape, length and format
rules live in the service layer so every rejection carries the same
``{success, message, errors}`` body.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Request body for POST /auth/login. ``identifier`` is an email or username."""

    model_config = ConfigDict(populate_by_name=True)

    identifier: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    age: Optional[Union[int, float, str]] = None


class VerifySignupRequest(BaseModel):
    """Request body for POST /auth/verify-signup. ``otp`` is the 6-digit code."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    otp: Optional[str] = None


class ResendOtpRequest(BaseModel):
    """Request body for POST /auth/resend-otp. ``type`` is "signup" or "reset"."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    type: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None


class VerifyResetOtpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    otp: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    otp: Optional[str] = None
    new_password: Optional[str] = Field(default=None, alias="newPassword")


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: Optional[str] = Field(default=None, alias="currentPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")


class SetPasswordRequest(BaseModel):
    """Request body for POST /auth/set-password.

    Used by federated (Google) accounts adding a local password.
    """

    model_config = ConfigDict(populate_by_name=True)

    new_password: Optional[str] = Field(default=None, alias="newPassword")


class VerifyPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: Optional[str] = None
