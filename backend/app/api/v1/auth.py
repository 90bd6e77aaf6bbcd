"""Authentication endpoints for all roles."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.api.deps import create_access_token, get_current_user
from app.models.user import Profile
from app.schemas.profile import (
    RegisterRequest,
    LoginRequest,
    OTPRequest,
    OTPVerify,
    TokenResponse,
    ProfileResponse,
)
from app.services.auth_service import AuthService
from app.config import get_settings

settings = get_settings()
router = APIRouter()


def _token_response(profile: Profile) -> TokenResponse:
    access_token = create_access_token(subject=str(profile.id), role=profile.role.value)
    return TokenResponse(
        access_token=access_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user_id=profile.id,
        role=profile.role,
        display_name=profile.display_name,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create a client account and sign in."""
    profile = await AuthService(db).register(data)
    return _token_response(profile)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Email/password login for any role."""
    profile = await AuthService(db).authenticate(data.email, data.password)
    return _token_response(profile)


@router.post("/otp/request")
async def request_otp(
    data: OTPRequest,
    db: AsyncSession = Depends(get_db),
):
    """Text a 6-digit login code to the phone."""
    code = await AuthService(db).request_otp(data.phone)

    response = {
        "message": "Verification code sent",
        "expires_in": settings.OTP_EXPIRE_MINUTES * 60,
    }
    # Echo the code in debug mode so local clients can log in without SMS
    if settings.DEBUG:
        response["code"] = code
    return response


@router.post("/otp/verify", response_model=TokenResponse)
async def verify_otp(
    data: OTPVerify,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a valid code for a token; first login creates a client account."""
    profile = await AuthService(db).verify_otp(data.phone, data.code)
    return _token_response(profile)


@router.get("/me", response_model=ProfileResponse)
async def me(user: Profile = Depends(get_current_user)):
    return user
