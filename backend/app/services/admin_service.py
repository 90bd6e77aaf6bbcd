"""Admin service - verification, moderation, catalog review, calendar and billing."""

import logging
from datetime import datetime, timedelta
from typing import Optional, List, Tuple
from uuid import UUID
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.models.agent import AgentProfile, AgentStatus, AgentEarning, EarningStatus
from app.models.catalog import ServiceCatalogEntry, ServiceSuggestion, SuggestionStatus
from app.models.job import (
    JobAssignment,
    JobStatus,
    AgentCheckin,
    CheckinType,
    Rating,
    RaterType,
)
from app.models.request import ServiceRequest
from app.models.schedule import AvailableSlot
from app.models.user import Profile, UserRole
from app.schemas.admin import RequestAdminUpdate
from app.schemas.agent import AgentAdminUpdate
from app.schemas.catalog import SuggestionReview
from app.schemas.schedule import SlotCreateRequest
from app.services.agent_service import earning_bucket
from app.services.catalog_service import slugify
from app.services.job_lifecycle import JobAction, action_for_target
from app.services.job_service import JobService, apply_transition, release_slots
from app.services.request_service import RequestService
from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

LEGACY_VERIFY_ACTIONS = ("pay", "complete")
SUGGESTION_DEFAULT_ICON = "🔧"

# Actions that only make sense once an agent holds the job
_NEEDS_ASSIGNMENT = {
    JobAction.CHECK_IN,
    JobAction.CHECK_OUT,
    JobAction.REJECT,
    JobAction.VERIFY,
    JobAction.PAY,
    JobAction.COMPLETE,
}


class AdminService:
    """Service for admin console operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Jobs

    async def list_jobs(self, status: Optional[JobStatus] = None) -> List[dict]:
        client = aliased(Profile)
        agent = aliased(Profile)
        query = (
            select(ServiceRequest, JobAssignment, client, agent)
            .join(client, client.id == ServiceRequest.user_id)
            .outerjoin(JobAssignment, JobAssignment.request_id == ServiceRequest.id)
            .outerjoin(agent, agent.id == JobAssignment.agent_id)
            .order_by(ServiceRequest.created_at.desc())
        )
        if status:
            query = query.where(ServiceRequest.status == status)
        result = await self.db.execute(query)
        return [
            {
                "request": request,
                "assignment": assignment,
                "client_name": client_profile.display_name,
                "agent_name": agent_profile.display_name if agent_profile else None,
            }
            for request, assignment, client_profile, agent_profile in result.all()
        ]

    async def _get_assignment(self, assignment_id: UUID) -> JobAssignment:
        result = await self.db.execute(
            select(JobAssignment).where(JobAssignment.id == assignment_id)
        )
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise NotFoundError("Job not found")
        return assignment

    async def _get_request(self, request_id: UUID) -> ServiceRequest:
        result = await self.db.execute(select(ServiceRequest).where(ServiceRequest.id == request_id))
        request = result.scalar_one_or_none()
        if not request:
            raise NotFoundError("Request not found")
        return request

    async def get_verification(self, assignment_id: UUID) -> dict:
        """Everything needed to judge a checked-out job."""
        assignment = await self._get_assignment(assignment_id)
        proofs = await JobService(self.db).list_proofs(assignment.id)

        result = await self.db.execute(
            select(AgentCheckin).where(AgentCheckin.assignment_id == assignment.id)
        )
        checkins = {checkin.type: checkin for checkin in result.scalars()}
        checkin = checkins.get(CheckinType.CHECKIN)
        checkout = checkins.get(CheckinType.CHECKOUT)

        return {
            "assignment": assignment,
            "proofs": proofs,
            "checkout_survey": checkout.survey_data if checkout else None,
            "checkin_distance_meters": checkin.distance_from_job_meters if checkin else None,
            "checkin_location_verified": checkin.location_verified if checkin else None,
        }

    async def verify_job(
        self,
        assignment_id: UUID,
        admin: Profile,
        action: str,
        notes: Optional[str] = None,
    ) -> dict:
        """
        Approve (verify -> pay -> complete in one go) or send work back.
        Approval releases the agent's earning after the hold period.
        """
        if action in LEGACY_VERIFY_ACTIONS:
            raise ValidationError("Use 'approve' action instead", code="job.legacy_action")

        assignment = await self._get_assignment(assignment_id)
        request = await self._get_request(assignment.request_id)

        if action == "reject":
            await apply_transition(
                self.db, request, assignment, JobAction.REJECT, "admin", admin.id, notes,
            )
            assignment.rejection_notes = notes or "Work rejected - please redo"
            assignment.rejected_by = admin.id
            # Agent checks out again after redoing the work
            await self.db.execute(
                delete(AgentCheckin).where(
                    AgentCheckin.assignment_id == assignment.id,
                    AgentCheckin.type == CheckinType.CHECKOUT,
                )
            )
            await self.db.commit()
            logger.info("Admin %s rejected job %s", admin.id, assignment.id)
            return {"status": assignment.status, "message": "Job sent back to agent"}

        for step in (JobAction.VERIFY, JobAction.PAY, JobAction.COMPLETE):
            await apply_transition(self.db, request, assignment, step, "admin", admin.id, notes)
        assignment.verified_by = admin.id
        assignment.verification_notes = notes

        earning = await self._settle_earning(assignment, EarningStatus.AVAILABLE)
        available_at = earning.available_at

        await self.db.commit()
        logger.info("Admin %s approved job %s (payout %s cents)", admin.id, assignment.id, earning.amount_cents)
        return {
            "status": assignment.status,
            "completed_at": assignment.completed_at,
            "earnings_available_at": available_at,
        }

    async def _settle_earning(self, assignment: JobAssignment, status: EarningStatus) -> AgentEarning:
        """
        Move the agent's earning for an approved job to AVAILABLE (after the
        hold) or PAID_OUT. The agent's job count and lifetime total change
        only the first time the earning leaves PENDING.
        """
        now = datetime.utcnow()
        payout = assignment.agent_payout_cents or 0

        result = await self.db.execute(
            select(AgentEarning).where(AgentEarning.assignment_id == assignment.id)
        )
        earning = result.scalar_one_or_none()
        if earning is None:
            earning = AgentEarning(
                agent_id=assignment.agent_id,
                assignment_id=assignment.id,
                status=EarningStatus.PENDING,
            )
            self.db.add(earning)
        first_release = earning.status == EarningStatus.PENDING
        earning.amount_cents = payout

        if status == EarningStatus.PAID_OUT:
            earning.status = EarningStatus.PAID_OUT
            earning.paid_out_at = now
            earning.available_at = earning.available_at or now
        elif first_release:
            earning.status = EarningStatus.AVAILABLE
            earning.available_at = now + timedelta(hours=settings.EARNINGS_HOLD_HOURS)

        if first_release:
            result = await self.db.execute(
                select(AgentProfile).where(AgentProfile.id == assignment.agent_id)
            )
            agent = result.scalar_one_or_none()
            if agent is not None:
                agent.completed_jobs = (agent.completed_jobs or 0) + 1
                agent.total_earnings_cents = (agent.total_earnings_cents or 0) + payout
        return earning

    async def update_request(self, admin: Profile, data: RequestAdminUpdate) -> ServiceRequest:
        """Edit booking fields; a new status must be reachable through the lifecycle."""
        request = await self._get_request(data.request_id)

        for field, value in data.model_dump(
            exclude_unset=True, exclude={"request_id", "status", "reason"}
        ).items():
            setattr(request, field, value)
        if data.preferred_time is not None and data.preferred_date is None:
            request.preferred_date = data.preferred_time.date()

        if data.status is not None and data.status != request.status:
            result = await self.db.execute(
                select(JobAssignment).where(JobAssignment.request_id == request.id)
            )
            assignment = result.scalar_one_or_none()
            current = assignment.status if assignment is not None else request.status
            action = action_for_target(current, data.status)
            if action in _NEEDS_ASSIGNMENT and assignment is None:
                raise ValidationError("Request has no assigned agent", code="request.unassigned")

            await apply_transition(
                self.db, request, assignment, action, "admin", admin.id, data.reason,
            )
            if action == JobAction.CANCEL:
                await release_slots(self.db, request.id)
                await RequestService(self.db).settle_cancellation(request)
            elif action == JobAction.VERIFY:
                await self._settle_earning(assignment, EarningStatus.AVAILABLE)
            elif action in (JobAction.PAY, JobAction.COMPLETE):
                await self._settle_earning(assignment, EarningStatus.PAID_OUT)

        request.updated_at = datetime.utcnow()
        await self.db.commit()
        await self.db.refresh(request)
        return request

    # Agents

    def _agent_query(self):
        average = (
            select(Rating.ratee_id, func.avg(Rating.rating).label("average_rating"))
            .where(Rating.rater_type == RaterType.CLIENT)
            .group_by(Rating.ratee_id)
            .subquery()
        )
        return (
            select(AgentProfile, Profile, average.c.average_rating)
            .join(Profile, Profile.id == AgentProfile.id)
            .outerjoin(average, average.c.ratee_id == AgentProfile.id)
        )

    @staticmethod
    def _agent_view(agent: AgentProfile, profile: Profile, average_rating) -> dict:
        return {
            "id": agent.id,
            "status": agent.status,
            "tier": agent.tier,
            "bio": agent.bio,
            "service_types": agent.service_types,
            "completed_jobs": agent.completed_jobs or 0,
            "total_earnings_cents": agent.total_earnings_cents or 0,
            "suspended_reason": agent.suspended_reason,
            "approved_at": agent.approved_at,
            "created_at": agent.created_at,
            "email": profile.email,
            "phone": profile.phone,
            "first_name": profile.first_name,
            "last_name": profile.last_name,
            "city": profile.city,
            "state": profile.state,
            "average_rating": round(float(average_rating), 2) if average_rating is not None else None,
        }

    async def list_agents(self, status: Optional[AgentStatus] = None) -> List[dict]:
        query = self._agent_query().order_by(AgentProfile.created_at.desc())
        if status:
            query = query.where(AgentProfile.status == status)
        result = await self.db.execute(query)
        return [self._agent_view(*row) for row in result.all()]

    async def get_agent(self, agent_id: UUID) -> dict:
        result = await self.db.execute(self._agent_query().where(AgentProfile.id == agent_id))
        row = result.first()
        if not row:
            raise NotFoundError("Agent not found")
        return self._agent_view(*row)

    async def _get_agent_profile(self, agent_id: UUID) -> AgentProfile:
        result = await self.db.execute(select(AgentProfile).where(AgentProfile.id == agent_id))
        agent = result.scalar_one_or_none()
        if not agent:
            raise NotFoundError("Agent not found")
        return agent

    async def update_agent(self, agent_id: UUID, data: AgentAdminUpdate) -> dict:
        agent = await self._get_agent_profile(agent_id)
        if data.tier is not None:
            agent.tier = data.tier
        if data.status is not None and data.status != agent.status:
            agent.status = data.status
            if data.status == AgentStatus.APPROVED:
                agent.approved_at = datetime.utcnow()
                agent.suspended_reason = None
                agent.suspended_at = None
            elif data.status == AgentStatus.SUSPENDED:
                agent.suspended_at = datetime.utcnow()
        agent.updated_at = datetime.utcnow()
        await self.db.commit()
        logger.info("Agent %s updated: status=%s tier=%s", agent_id, agent.status.value, agent.tier.value)
        return await self.get_agent(agent_id)

    async def suspend_agent(self, agent_id: UUID, reason: str) -> dict:
        agent = await self._get_agent_profile(agent_id)
        agent.status = AgentStatus.SUSPENDED
        agent.suspended_reason = reason
        agent.suspended_at = datetime.utcnow()
        await self.db.commit()
        logger.info("Agent %s suspended: %s", agent_id, reason)
        return await self.get_agent(agent_id)

    # Clients

    async def list_clients(self) -> List[dict]:
        counts = (
            select(ServiceRequest.user_id, func.count(ServiceRequest.id).label("request_count"))
            .group_by(ServiceRequest.user_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Profile, counts.c.request_count)
            .outerjoin(counts, counts.c.user_id == Profile.id)
            .where(Profile.role == UserRole.CLIENT)
            .order_by(Profile.created_at.desc())
        )
        clients = []
        for profile, request_count in result.all():
            clients.append({
                "id": profile.id,
                "email": profile.email,
                "phone": profile.phone,
                "first_name": profile.first_name,
                "last_name": profile.last_name,
                "city": profile.city,
                "state": profile.state,
                "is_active": profile.is_active,
                "created_at": profile.created_at,
                "request_count": request_count or 0,
            })
        return clients

    # Suggestions

    async def list_suggestions(self, status: Optional[SuggestionStatus] = None) -> List[ServiceSuggestion]:
        query = select(ServiceSuggestion).order_by(ServiceSuggestion.created_at.desc())
        if status:
            query = query.where(ServiceSuggestion.status == status)
        result = await self.db.execute(query)
        return list(result.scalars())

    async def review_suggestion(
        self,
        admin: Profile,
        data: SuggestionReview,
    ) -> Tuple[ServiceSuggestion, Optional[ServiceCatalogEntry]]:
        """Approving creates the catalog entry in the same transaction."""
        result = await self.db.execute(
            select(ServiceSuggestion).where(ServiceSuggestion.id == data.suggestion_id)
        )
        suggestion = result.scalar_one_or_none()
        if not suggestion:
            raise NotFoundError("Suggestion not found")
        if suggestion.status != SuggestionStatus.PENDING:
            raise ValidationError("Suggestion has already been reviewed", code="suggestion.reviewed")

        suggestion.status = (
            SuggestionStatus.APPROVED if data.action == "approve" else SuggestionStatus.REJECTED
        )
        suggestion.reviewed_at = datetime.utcnow()
        suggestion.reviewed_by = admin.id
        suggestion.review_notes = data.review_notes

        entry = None
        if data.action == "approve":
            service_id = slugify(suggestion.suggested_name)
            if not service_id:
                raise ValidationError("Suggested name cannot be turned into a service id")
            existing = await self.db.execute(
                select(ServiceCatalogEntry.id).where(ServiceCatalogEntry.id == service_id)
            )
            if existing.scalar_one_or_none():
                raise ConflictError(
                    f"Service '{service_id}' already exists",
                    code="catalog.exists",
                )
            entry = ServiceCatalogEntry(
                id=service_id,
                name=suggestion.suggested_name,
                category=suggestion.suggested_category or "general",
                description=suggestion.description,
                icon=data.icon or SUGGESTION_DEFAULT_ICON,
                base_minutes=data.base_minutes or settings.DEFAULT_SERVICE_MINUTES,
                price_cents=(
                    data.price_cents if data.price_cents is not None
                    else settings.DEFAULT_SUGGESTED_PRICE_CENTS
                ),
                is_active=True,
                display_order=0,
                suggested_by=suggestion.agent_id,
            )
            self.db.add(entry)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Failed to create service", code="catalog.exists")

        await self.db.refresh(suggestion)
        if entry is not None:
            await self.db.refresh(entry)
        logger.info("Suggestion %s %s by %s", suggestion.id, suggestion.status.value, admin.id)
        return suggestion, entry

    # Calendar

    async def list_slots(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_booked: bool = True,
    ) -> List[AvailableSlot]:
        query = select(AvailableSlot).order_by(AvailableSlot.slot_start)
        if start is not None:
            query = query.where(AvailableSlot.slot_start >= start)
        if end is not None:
            query = query.where(AvailableSlot.slot_start < end)
        if not include_booked:
            query = query.where(AvailableSlot.is_booked == False)
        result = await self.db.execute(query)
        return list(result.scalars())

    async def create_slots(self, admin: Profile, data: SlotCreateRequest) -> Tuple[List[AvailableSlot], int]:
        """Add slots, skipping any whose start already exists."""
        windows = [(slot.slot_start, slot.slot_end) for slot in data.slots]
        if data.generate is not None:
            gen = data.generate
            cursor = datetime.combine(gen.date, gen.start_time)
            day_end = datetime.combine(gen.date, gen.end_time)
            step = timedelta(minutes=gen.slot_minutes)
            while cursor + step <= day_end:
                windows.append((cursor, cursor + step))
                cursor += step
        if not windows:
            raise ValidationError("No slots to create")

        starts = [start for start, _ in windows]
        result = await self.db.execute(
            select(AvailableSlot.slot_start).where(AvailableSlot.slot_start.in_(starts))
        )
        existing = set(result.scalars())

        created = []
        for start, end in sorted(windows):
            if start in existing:
                continue
            existing.add(start)
            slot = AvailableSlot(slot_start=start, slot_end=end, created_by=admin.id)
            self.db.add(slot)
            created.append(slot)

        await self.db.commit()
        for slot in created:
            await self.db.refresh(slot)
        return created, len(windows) - len(created)

    # Billing

    async def billing_summary(self) -> dict:
        now = datetime.utcnow()

        charged = await self.db.scalar(
            select(func.coalesce(func.sum(ServiceRequest.total_price_cents), 0))
            .where(ServiceRequest.payment_intent_id.isnot(None))
        )
        refunded = await self.db.scalar(
            select(func.coalesce(func.sum(ServiceRequest.refund_cents), 0))
        )
        fees = await self.db.scalar(
            select(func.coalesce(func.sum(ServiceRequest.cancellation_fee_cents), 0))
            .where(ServiceRequest.status == JobStatus.CANCELLED)
        )
        payouts, platform, completed = (await self.db.execute(
            select(
                func.coalesce(func.sum(JobAssignment.agent_payout_cents), 0),
                func.coalesce(func.sum(JobAssignment.platform_fee_cents), 0),
                func.count(JobAssignment.id),
            ).where(JobAssignment.status == JobStatus.COMPLETED)
        )).one()

        result = await self.db.execute(select(AgentEarning))
        totals = {"pending": 0, "available": 0, "paid_out": 0}
        for earning in result.scalars():
            totals[earning_bucket(earning, now)] += earning.amount_cents

        return {
            "charged_cents": int(charged or 0),
            "refunded_cents": int(refunded or 0),
            "cancellation_fees_cents": int(fees or 0),
            "agent_payouts_cents": int(payouts or 0),
            "platform_fees_cents": int(platform or 0),
            "pending_earnings_cents": totals["pending"],
            "available_earnings_cents": totals["available"],
            "paid_out_earnings_cents": totals["paid_out"],
            "completed_jobs": int(completed or 0),
        }
