"""Auth service - sign-up, password login and SMS one-time codes."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID
from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import hash_password, verify_password
from app.models.user import Profile, UserRole, OTPCode
from app.models.address import Address
from app.schemas.profile import RegisterRequest, ProfileUpdate, AddressCreate
from app.integrations.twilio_client import TwilioClient, SMSDeliveryError
from app.exceptions import AuthenticationError, ConflictError, MarketplaceError, NotFoundError
from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class AuthService:
    """Service for account and profile operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: UUID) -> Optional[Profile]:
        result = await self.db.execute(select(Profile).where(Profile.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[Profile]:
        result = await self.db.execute(select(Profile).where(Profile.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone: str) -> Optional[Profile]:
        result = await self.db.execute(
            select(Profile).where(Profile.phone == phone).order_by(Profile.created_at)
        )
        return result.scalars().first()

    async def register(self, data: RegisterRequest) -> Profile:
        """Create a client account. Agents and admins are promoted later."""
        if await self.get_by_email(data.email):
            raise ConflictError("Email already registered", code="auth.email_taken")

        profile = Profile(
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=UserRole.CLIENT,
        )
        self.db.add(profile)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Email already registered", code="auth.email_taken")
        await self.db.refresh(profile)
        logger.info("Registered client %s", profile.id)
        return profile

    async def authenticate(self, email: str, password: str) -> Profile:
        profile = await self.get_by_email(email)
        if not profile or not profile.is_active or not verify_password(password, profile.password_hash):
            raise AuthenticationError("Invalid email or password")

        profile.last_login_at = datetime.utcnow()
        await self.db.commit()
        return profile

    # OTP Methods

    async def request_otp(self, phone: str) -> str:
        """Generate, store and text a 6-digit code."""
        code = "".join([str(secrets.randbelow(10)) for _ in range(6)])

        # Expire any existing OTPs for this phone
        existing = await self.db.execute(
            select(OTPCode).where(
                OTPCode.phone == phone,
                OTPCode.verified == False
            )
        )
        for otp in existing.scalars():
            await self.db.delete(otp)

        otp = OTPCode(
            phone=phone,
            code=code,
            expires_at=datetime.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        )
        self.db.add(otp)
        await self.db.commit()

        try:
            await TwilioClient().send_sms(
                phone,
                f"Your {settings.APP_NAME} code is {code}. It expires in {settings.OTP_EXPIRE_MINUTES} minutes.",
            )
        except SMSDeliveryError as e:
            logger.error("OTP SMS to %s failed: %s", phone, e)
            await self.db.delete(otp)
            await self.db.commit()
            raise MarketplaceError(
                "Could not send the login code",
                code="auth.otp_send_failed",
                status_code=status.HTTP_502_BAD_GATEWAY,
            )
        return code

    async def verify_otp(self, phone: str, code: str) -> Profile:
        """Check the code and return the phone's profile, creating a client on first login."""
        result = await self.db.execute(
            select(OTPCode)
            .where(
                OTPCode.phone == phone,
                OTPCode.verified == False,
                OTPCode.expires_at > datetime.utcnow(),
            )
            .order_by(OTPCode.created_at.desc())
        )
        otp = result.scalars().first()

        if not otp or otp.attempts >= settings.OTP_MAX_ATTEMPTS:
            raise AuthenticationError("Invalid or expired code", code="auth.invalid_otp")

        if not secrets.compare_digest(otp.code, code):
            otp.attempts = (otp.attempts or 0) + 1
            await self.db.commit()
            raise AuthenticationError("Invalid or expired code", code="auth.invalid_otp")

        otp.verified = True
        otp.verified_at = datetime.utcnow()

        profile = await self.get_by_phone(phone)
        if profile is None:
            profile = Profile(phone=phone, role=UserRole.CLIENT)
            self.db.add(profile)
        elif not profile.is_active:
            raise AuthenticationError("Account is disabled", code="auth.disabled")

        profile.phone_verified = True
        profile.last_login_at = datetime.utcnow()
        await self.db.commit()
        await self.db.refresh(profile)
        return profile

    # Profile

    async def update_profile(self, profile: Profile, data: ProfileUpdate) -> Profile:
        update_data = data.model_dump(exclude_unset=True)
        if "phone" in update_data and update_data["phone"] != profile.phone:
            profile.phone_verified = False
        for field, value in update_data.items():
            setattr(profile, field, value)

        profile.updated_at = datetime.utcnow()
        await self.db.commit()
        await self.db.refresh(profile)
        return profile

    async def list_addresses(self, user_id: UUID) -> list:
        result = await self.db.execute(
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.created_at)
        )
        return list(result.scalars())

    async def add_address(self, user_id: UUID, data: AddressCreate) -> Address:
        """Add an address; a new default replaces the old one."""
        if data.is_default:
            for addr in await self.list_addresses(user_id):
                addr.is_default = False

        address = Address(user_id=user_id, **data.model_dump())
        self.db.add(address)
        await self.db.commit()
        await self.db.refresh(address)
        return address

    async def get_address(self, address_id: UUID, user_id: UUID) -> Address:
        result = await self.db.execute(
            select(Address).where(Address.id == address_id, Address.user_id == user_id)
        )
        address = result.scalar_one_or_none()
        if not address:
            raise NotFoundError("Address not found")
        return address

    async def delete_address(self, address_id: UUID, user_id: UUID) -> None:
        address = await self.get_address(address_id, user_id)
        await self.db.delete(address)
        await self.db.commit()
