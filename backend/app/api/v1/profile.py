"""Profile, address book and notification settings for the signed-in user."""

from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.api.deps import get_current_user
from app.models.user import Profile
from app.schemas.profile import ProfileUpdate, ProfileResponse, AddressCreate, AddressResponse
from app.schemas.notification import NotificationPreferencesSchema
from app.services.auth_service import AuthService
from app.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=ProfileResponse)
async def get_profile(user: Profile = Depends(get_current_user)):
    return user


@router.patch("", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return await AuthService(db).update_profile(user, data)


@router.get("/addresses", response_model=List[AddressResponse])
async def list_addresses(
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return await AuthService(db).list_addresses(user.id)


@router.post("/addresses", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def add_address(
    data: AddressCreate,
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return await AuthService(db).add_address(user.id, data)


@router.delete("/addresses/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_address(
    address_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    await AuthService(db).delete_address(address_id, user.id)


@router.get("/notification-preferences", response_model=NotificationPreferencesSchema)
async def get_notification_preferences(
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Defaults (everything on except marketing) until the user saves a choice."""
    prefs = await NotificationService(db).get_preferences(user.id)
    return prefs or NotificationPreferencesSchema()


@router.put("/notification-preferences", response_model=NotificationPreferencesSchema)
async def update_notification_preferences(
    data: NotificationPreferencesSchema,
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return await NotificationService(db).update_preferences(user.id, data.model_dump())
