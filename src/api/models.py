"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Field aliases keep the camelCase names the web client sends (regNumber,
newPassword, userId). Blank values pass schema validation and are rejected
by the domain service with a 400.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SignupRequest(BaseModel):
    """Request model for institutional signup."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: EmailStr
    password: str
    reg_number: str = Field(..., alias="regNumber", description="Institutional registration number")


class SignupResponse(BaseModel):
    """Response model for an accepted signup."""

    message: str
    email: str
    expires_in_seconds: int
    email_sent: bool


class VerifyOtpRequest(BaseModel):
    """Request model for signup OTP verification."""

    email: EmailStr
    otp: str = Field(..., description="6-digit OTP from the signup email")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class SessionResponse(BaseModel):
    """Response model for verify-otp and login."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    token: str
    name: str
    user_id: str = Field(..., serialization_alias="userId")
    handle: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ForgotPasswordResponse(BaseModel):
    message: str
    email_sent: bool


class ResetPasswordRequest(BaseModel):
    """Request model for OTP-gated password reset."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    otp: str
    new_password: str = Field(..., alias="newPassword")


class MessageResponse(BaseModel):
    message: str


class AccountResponse(BaseModel):
    """Public profile of the authenticated account."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., serialization_alias="userId")
    name: str
    email: str
    handle: str
    reg_number: str = Field(..., serialization_alias="regNumber")
    verified: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
