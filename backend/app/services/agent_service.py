"""Agent service - onboarding, agent profile, earnings and catalog suggestions."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.agent import AgentProfile, AgentStatus, AgentEarning, EarningStatus
from app.models.catalog import ServiceSuggestion
from app.models.user import Profile, UserRole
from app.schemas.agent import AgentRegister, AgentProfileUpdate
from app.schemas.catalog import SuggestionCreate
from app.exceptions import ConflictError, ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


def earning_bucket(earning: AgentEarning, now: datetime) -> str:
    """
    Which total an earning counts towards. Approved earnings still inside
    the hold period count as pending until their available_at passes.
    """
    if earning.status == EarningStatus.PAID_OUT:
        return "paid_out"
    if (
        earning.status == EarningStatus.AVAILABLE
        and earning.available_at is not None
        and earning.available_at <= now
    ):
        return "available"
    return "pending"


class AgentService:
    """Service for agent self-service operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile(self, agent_id: UUID) -> AgentProfile:
        result = await self.db.execute(select(AgentProfile).where(AgentProfile.id == agent_id))
        agent = result.scalar_one_or_none()
        if not agent:
            raise NotFoundError("Agent profile not found")
        return agent

    async def register(self, user: Profile, data: AgentRegister) -> AgentProfile:
        """Apply to work as an agent. The account waits for admin approval."""
        if user.role == UserRole.ADMIN:
            raise ForbiddenError("Admins cannot register as agents")

        result = await self.db.execute(select(AgentProfile).where(AgentProfile.id == user.id))
        if result.scalar_one_or_none():
            raise ConflictError("Already registered as an agent", code="agent.exists")

        agent = AgentProfile(
            id=user.id,
            status=AgentStatus.PENDING,
            bio=data.bio,
            service_types=data.service_types,
        )
        self.db.add(agent)
        user.role = UserRole.AGENT
        await self.db.commit()
        await self.db.refresh(agent)
        logger.info("Profile %s applied as agent", user.id)
        return agent

    async def update_profile(self, agent_id: UUID, data: AgentProfileUpdate) -> AgentProfile:
        agent = await self.get_profile(agent_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(agent, field, value)
        agent.updated_at = datetime.utcnow()
        await self.db.commit()
        await self.db.refresh(agent)
        return agent

    async def earnings_summary(self, agent_id: UUID, now: Optional[datetime] = None) -> dict:
        """Pending, available and paid-out totals plus the individual earnings."""
        now = now or datetime.utcnow()
        result = await self.db.execute(
            select(AgentEarning)
            .where(AgentEarning.agent_id == agent_id)
            .order_by(AgentEarning.created_at.desc())
        )
        earnings = list(result.scalars())

        totals = {"pending": 0, "available": 0, "paid_out": 0}
        for earning in earnings:
            totals[earning_bucket(earning, now)] += earning.amount_cents

        return {
            "pending_cents": totals["pending"],
            "available_cents": totals["available"],
            "paid_out_cents": totals["paid_out"],
            "total_cents": sum(totals.values()),
            "earnings": earnings,
        }

    async def suggest_service(self, agent_id: UUID, data: SuggestionCreate) -> ServiceSuggestion:
        suggestion = ServiceSuggestion(agent_id=agent_id, **data.model_dump())
        self.db.add(suggestion)
        await self.db.commit()
        await self.db.refresh(suggestion)
        logger.info("Agent %s suggested service %r", agent_id, suggestion.suggested_name)
        return suggestion
