from pydantic import BaseModel, EmailStr, field_validator
from typing import List, Literal, Optional

from stuwork.schemas.user import UserResponse


def check_otp(v):
    if not v.isdigit() or len(v) != 6:
        raise ValueError('OTP must be a 6-digit number')
    return v


def check_password(v):
    if len(v) < 6:
        raise ValueError('Password must be at least 6 characters')
    return v


class SendOTPRequest(BaseModel):
    email: EmailStr


class ResendOTPRequest(BaseModel):
    email: EmailStr
    purpose: Literal["registration", "password_reset"] = "registration"


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class VerifyOTPRegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str
    otp: str
    role: Optional[Literal["student", "employer", "admin"]] = None
    phone: Optional[str] = None
    skills: Optional[List[str]] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name is required')
        return v

    @field_validator('otp')
    @classmethod
    def validate_otp(cls, v):
        return check_otp(v)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return check_password(v)


class LoginRequest(BaseModel):
    email: str
    password: str


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    otp: str
    new_password: str

    @field_validator('otp')
    @classmethod
    def validate_otp(cls, v):
        return check_otp(v)

    @field_validator('new_password')
    @classmethod
    def validate_password(cls, v):
        return check_password(v)


class OTPSentResponse(BaseModel):
    message: str
    email: str


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
