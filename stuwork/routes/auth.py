from fastapi import APIRouter, Depends, status

from stuwork.dependencies import get_auth_service
from stuwork.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    OTPSentResponse,
    ResendOTPRequest,
    ResetPasswordRequest,
    SendOTPRequest,
    VerifyOTPRegisterRequest,
)
from stuwork.schemas.user import ProfileUpdateResponse, UserProfileUpdate, UserResponse
from stuwork.services.auth_service import PASSWORD_RESET, REGISTRATION, AuthService
from stuwork.utils.auth import get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])

# ===========================
# REGISTRATION (OTP)
# ===========================

# ✅ 1. SEND REGISTRATION OTP
@router.post("/send-otp", response_model=OTPSentResponse)
async def send_otp(request: SendOTPRequest, auth: AuthService = Depends(get_auth_service)):
    """Step 1: email a registration OTP (refused if the email is already registered)."""
    email = await auth.send_otp(request.email, REGISTRATION)
    return {"message": "OTP sent successfully to your email", "email": email}


# ✅ 2. RESEND OTP
@router.post("/resend-otp", response_model=OTPSentResponse)
async def resend_otp(request: ResendOTPRequest, auth: AuthService = Depends(get_auth_service)):
    """Issue a fresh code for either purpose; the previous one stops working."""
    email = await auth.send_otp(request.email, request.purpose)
    return {"message": "OTP resent successfully", "email": email}


# ✅ 3. VERIFY OTP & REGISTER
@router.post("/verify-otp-register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def verify_otp_register(request: VerifyOTPRegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Step 2: check the OTP, create the account and log the user in."""
    token, user = await auth.verify_and_register(
        name=request.name,
        email=request.email,
        password=request.password,
        otp=request.otp,
        role=request.role,
        phone=request.phone,
        skills=request.skills,
    )
    return {"message": "User registered successfully", "token": token, "user": user}


# ===========================
# LOGIN
# ===========================

# ✅ 4. LOGIN
@router.post("/login", response_model=AuthResponse)
async def login(credentials: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Login and get a 7-day session token."""
    token, user = await auth.login(credentials.email, credentials.password)
    return {"message": "Login successful", "token": token, "user": user}


# ===========================
# PASSWORD RESET
# ===========================

# ✅ 5. FORGOT PASSWORD
@router.post("/forgot-password", response_model=OTPSentResponse)
async def forgot_password(request: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    """Send a password-reset OTP to an existing account."""
    email = await auth.send_otp(request.email, PASSWORD_RESET)
    return {"message": "Password reset OTP sent successfully", "email": email}


# ✅ 6. RESET PASSWORD
@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    await auth.reset_password(request.email, request.otp, request.new_password)
    return {"message": "Password reset successfully"}


# ===========================
# PROFILE
# ===========================

# ✅ 7. GET MY PROFILE
@router.get("/profile", response_model=UserResponse)
async def get_profile(
    current_user: dict = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.get_profile(current_user)


# ✅ 8. UPDATE MY PROFILE
@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    profile_data: UserProfileUpdate,
    current_user: dict = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    """Update the current user's profile. Email and role cannot be changed here."""
    user = await auth.update_profile(current_user, profile_data.model_dump(exclude_unset=True))
    return {"message": "Profile updated", "user": user}
