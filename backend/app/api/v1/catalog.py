"""Public service catalog."""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.catalog import CatalogServiceResponse
from app.services.catalog_service import CatalogService

router = APIRouter()


@router.get("/services", response_model=List[CatalogServiceResponse])
async def list_services(db: AsyncSession = Depends(get_db)):
    """Active services in display order."""
    return await CatalogService(db).list_services(active_only=True)
