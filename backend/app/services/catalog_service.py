"""Catalog service - the priced list of bookable services."""

import re
from datetime import datetime
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.catalog import ServiceCatalogEntry
from app.schemas.catalog import CatalogServiceUpsert
from app.exceptions import NotFoundError


def slugify(name: str) -> str:
    """'TV Mounting (large)' -> 'tv_mounting_large'."""
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")


class CatalogService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_services(self, active_only: bool = True) -> List[ServiceCatalogEntry]:
        query = select(ServiceCatalogEntry).order_by(
            ServiceCatalogEntry.display_order, ServiceCatalogEntry.name
        )
        if active_only:
            query = query.where(ServiceCatalogEntry.is_active == True)
        result = await self.db.execute(query)
        return list(result.scalars())

    async def get(self, service_id: str) -> ServiceCatalogEntry:
        result = await self.db.execute(
            select(ServiceCatalogEntry).where(ServiceCatalogEntry.id == service_id)
        )
        entry = result.scalar_one_or_none()
        if not entry:
            raise NotFoundError("Service not found")
        return entry

    async def upsert(self, data: CatalogServiceUpsert) -> ServiceCatalogEntry:
        result = await self.db.execute(
            select(ServiceCatalogEntry).where(ServiceCatalogEntry.id == data.id)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            entry = ServiceCatalogEntry(id=data.id)
            self.db.add(entry)

        for field, value in data.model_dump(exclude={"id"}).items():
            setattr(entry, field, value)
        entry.updated_at = datetime.utcnow()

        await self.db.commit()
        await self.db.refresh(entry)
        return entry

    async def delete(self, service_id: str) -> None:
        entry = await self.get(service_id)
        await self.db.delete(entry)
        await self.db.commit()
