"""Job service - the agent's side of a booking: gigs, check-in/out, proof of work."""

import logging
import re
from datetime import datetime
from typing import Optional, List
from uuid import UUID

import stripe
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.agent import AgentProfile, AgentEarning, EarningStatus, AgentTier
from app.models.job import (
    JobAssignment,
    JobStatus,
    JobStatusHistory,
    AgentCheckin,
    CheckinType,
    ProofOfWork,
    RaterType,
    Rating,
)
from app.models.request import ServiceRequest
from app.models.schedule import AvailableSlot
from app.models.user import Profile
from app.schemas.job import CheckoutRequest, ProofCreate
from app.services.job_lifecycle import JobAction, transition
from app.services.pricing import compute_agent_payout_cents
from app.services.geo import distance_meters
from app.services.rating_service import RatingService
from app.integrations.stripe_client import StripeClient
from app.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

REQUIRED_PROOF_TYPES = {"box", "finished"}
OPEN_REQUEST_STATUSES = (JobStatus.PENDING, JobStatus.CONFIRMED)

_PRICE_PATTERNS = (
    re.compile(r"\s*\|\s*Subtotal:\s*\$[\d,]+\.?\d*", re.IGNORECASE),
    re.compile(r"\s*\|\s*Urgency surcharge:\s*\$[\d,]+\.?\d*", re.IGNORECASE),
    re.compile(r"\s*\|\s*(?:Price|Cost|Fee|Total|Amount):\s*\$[\d,]+\.?\d*", re.IGNORECASE),
)


def sanitize_details_for_agent(details: Optional[str]) -> Optional[str]:
    """Strip client-facing price lines from booking notes before an agent sees them."""
    if not details:
        return None
    for pattern in _PRICE_PATTERNS:
        details = pattern.sub("", details)
    details = re.sub(r"\|\s*\|", "|", details).strip().strip("|").strip()
    return details or None


async def apply_transition(
    db: AsyncSession,
    request: ServiceRequest,
    assignment: Optional[JobAssignment],
    action: JobAction,
    changed_by_type: str,
    changed_by_id: Optional[UUID] = None,
    reason: Optional[str] = None,
) -> JobStatus:
    """
    Move a booking (and its assignment, when there is one) through the lifecycle.
    Records history and stamps lifecycle timestamps; the caller commits.
    """
    current = assignment.status if assignment is not None else request.status
    new_status = transition(current, action)
    now = datetime.utcnow()

    if assignment is not None:
        assignment.status = new_status
        assignment.updated_at = now
        if action == JobAction.CHECK_IN:
            assignment.started_at = now
        elif action == JobAction.CHECK_OUT:
            assignment.checked_out_at = now
        elif action == JobAction.REJECT:
            assignment.rejected_at = now
        elif action == JobAction.VERIFY:
            assignment.verified_at = now
        elif action == JobAction.PAY:
            assignment.paid_at = now
        elif action == JobAction.COMPLETE:
            assignment.completed_at = now
        elif action == JobAction.CANCEL:
            assignment.cancellation_reason = reason

    request.status = new_status
    request.updated_at = now
    if action == JobAction.CANCEL:
        request.cancelled_at = now
        request.cancellation_reason = reason

    db.add(JobStatusHistory(
        assignment_id=assignment.id if assignment is not None else None,
        request_id=request.id,
        from_status=JobStatus(current).value,
        to_status=new_status.value,
        action=action.value,
        changed_by_type=changed_by_type,
        changed_by_id=changed_by_id,
        reason=reason,
    ))
    logger.info(
        "Request %s: %s -> %s (%s by %s)",
        request.id, JobStatus(current).value, new_status.value, action.value, changed_by_type,
    )
    return new_status


async def release_slots(db: AsyncSession, request_id: UUID) -> None:
    """Free every calendar slot held by a booking."""
    await db.execute(
        update(AvailableSlot)
        .where(AvailableSlot.request_id == request_id)
        .values(is_booked=False, request_id=None)
    )


class JobService:
    """Service for agent job operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.stripe = StripeClient()

    # Gigs

    async def _agent_tier(self, agent_id: UUID) -> AgentTier:
        result = await self.db.execute(select(AgentProfile.tier).where(AgentProfile.id == agent_id))
        return result.scalar_one_or_none() or AgentTier.BRONZE

    def _payout_for(self, request: ServiceRequest, tier: AgentTier) -> int:
        total = request.total_price_cents or 0
        labor = request.labor_price_cents if request.labor_price_cents is not None else total
        materials = request.materials_cost_cents or 0
        if total <= 0:
            return 0
        return compute_agent_payout_cents(total, labor, materials, tier)

    async def list_gigs(self, agent_id: UUID) -> List[dict]:
        """
        Open, unassigned requests. Only the client's city/state and the
        agent's own payout are exposed until the gig is accepted.
        """
        tier = await self._agent_tier(agent_id)
        result = await self.db.execute(
            select(ServiceRequest, Profile.city, Profile.state)
            .join(Profile, Profile.id == ServiceRequest.user_id)
            .where(
                ServiceRequest.status.in_(OPEN_REQUEST_STATUSES),
                ServiceRequest.assigned_agent_id.is_(None),
            )
            .order_by(ServiceRequest.preferred_time.asc(), ServiceRequest.created_at.asc())
        )

        gigs = []
        for request, city, state in result.all():
            gigs.append({
                "request_id": request.id,
                "service_type": request.service_type,
                "details": sanitize_details_for_agent(request.details),
                "preferred_date": request.preferred_date,
                "preferred_time": request.preferred_time,
                "estimated_minutes": request.estimated_minutes or settings.DEFAULT_SERVICE_MINUTES,
                "city": city,
                "state": state,
                "payout_cents": self._payout_for(request, tier),
                "status": request.status,
            })
        return gigs

    async def accept_gig(self, agent: Profile, request_id: UUID) -> JobAssignment:
        """
        Take an open request: compute the payout split, create the assignment
        and charge the client's card on file. Any failure leaves nothing behind.
        """
        result = await self.db.execute(
            select(ServiceRequest).where(ServiceRequest.id == request_id).with_for_update()
        )
        request = result.scalar_one_or_none()
        if not request:
            raise NotFoundError("Gig not found")

        if request.assigned_agent_id is not None or request.status not in OPEN_REQUEST_STATUSES:
            raise ConflictError("This gig has already been taken", code="gig.taken")

        existing = await self.db.execute(
            select(JobAssignment.id).where(JobAssignment.request_id == request.id)
        )
        if existing.scalar_one_or_none():
            raise ConflictError("This gig has already been taken", code="gig.taken")

        tier = await self._agent_tier(agent.id)
        total = request.total_price_cents or 0
        payout = self._payout_for(request, tier)

        assignment = JobAssignment(
            request_id=request.id,
            agent_id=agent.id,
            assigned_by="agent",
            status=request.status,
            job_price_cents=total,
            agent_payout_cents=payout,
            platform_fee_cents=total - payout,
        )
        self.db.add(assignment)
        request.assigned_agent_id = agent.id
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("This gig has already been taken", code="gig.taken")

        await apply_transition(self.db, request, assignment, JobAction.ASSIGN, "agent", agent.id)

        if request.payment_method_id and total > 0:
            try:
                charge = await self.stripe.charge_card_on_file(
                    amount_cents=total,
                    payment_method_id=request.payment_method_id,
                    metadata={"request_id": str(request.id), "assignment_id": str(assignment.id)},
                )
            except stripe.StripeError as e:
                await self.db.rollback()
                logger.warning("Charge for request %s failed: %s", request_id, e)
                raise PaymentError(
                    getattr(e, "user_message", None) or "The client's card could not be charged",
                )
            request.payment_intent_id = charge["id"]

        await self.db.commit()
        await self.db.refresh(assignment)
        logger.info("Agent %s accepted request %s (payout %s cents)", agent.id, request.id, payout)
        return assignment

    # Assigned jobs

    async def get_assignment(self, agent_id: UUID, assignment_id: UUID) -> JobAssignment:
        result = await self.db.execute(
            select(JobAssignment).where(
                JobAssignment.id == assignment_id,
                JobAssignment.agent_id == agent_id,
            )
        )
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise NotFoundError("Job not found")
        return assignment

    async def _get_request(self, request_id: UUID) -> ServiceRequest:
        result = await self.db.execute(select(ServiceRequest).where(ServiceRequest.id == request_id))
        return result.scalar_one()

    async def list_jobs(self, agent_id: UUID, status: Optional[JobStatus] = None) -> List[dict]:
        query = (
            select(JobAssignment, ServiceRequest, Profile)
            .join(ServiceRequest, ServiceRequest.id == JobAssignment.request_id)
            .join(Profile, Profile.id == ServiceRequest.user_id)
            .where(JobAssignment.agent_id == agent_id)
            .order_by(ServiceRequest.preferred_time.desc(), JobAssignment.created_at.desc())
        )
        if status:
            query = query.where(JobAssignment.status == status)
        result = await self.db.execute(query)
        return [self._job_view(*row) for row in result.all()]

    async def get_job(self, agent_id: UUID, assignment_id: UUID) -> dict:
        result = await self.db.execute(
            select(JobAssignment, ServiceRequest, Profile)
            .join(ServiceRequest, ServiceRequest.id == JobAssignment.request_id)
            .join(Profile, Profile.id == ServiceRequest.user_id)
            .where(JobAssignment.id == assignment_id, JobAssignment.agent_id == agent_id)
        )
        row = result.first()
        if not row:
            raise NotFoundError("Job not found")
        return self._job_view(*row)

    @staticmethod
    def _job_view(assignment: JobAssignment, request: ServiceRequest, client: Profile) -> dict:
        return {
            "id": assignment.id,
            "request_id": assignment.request_id,
            "agent_id": assignment.agent_id,
            "status": assignment.status,
            "job_price_cents": assignment.job_price_cents,
            "agent_payout_cents": assignment.agent_payout_cents,
            "platform_fee_cents": assignment.platform_fee_cents,
            "assigned_at": assignment.assigned_at,
            "started_at": assignment.started_at,
            "checked_out_at": assignment.checked_out_at,
            "verified_at": assignment.verified_at,
            "paid_at": assignment.paid_at,
            "completed_at": assignment.completed_at,
            "rejection_notes": assignment.rejection_notes,
            "cancellation_reason": assignment.cancellation_reason,
            "service_type": request.service_type,
            "details": sanitize_details_for_agent(request.details),
            "preferred_time": request.preferred_time,
            "preferred_date": request.preferred_date,
            "street": client.street,
            "city": client.city,
            "state": client.state,
            "postal_code": client.postal_code,
            "client_name": client.full_name or None,
            "client_phone": client.phone,
        }

    # On site

    async def check_in(
        self,
        agent_id: UUID,
        assignment_id: UUID,
        latitude: float,
        longitude: float,
    ) -> dict:
        """Start the job. When the booking has coordinates the agent must be on site."""
        assignment = await self.get_assignment(agent_id, assignment_id)
        transition(assignment.status, JobAction.CHECK_IN)
        request = await self._get_request(assignment.request_id)

        distance = None
        location_verified = False
        if request.job_latitude is not None and request.job_longitude is not None:
            distance = round(distance_meters(
                latitude, longitude, request.job_latitude, request.job_longitude
            ))
            if distance > settings.MAX_CHECKIN_DISTANCE_METERS:
                raise ValidationError(
                    f"You must be within {settings.MAX_CHECKIN_DISTANCE_METERS} meters "
                    f"of the job location to check in",
                    code="checkin.too_far",
                    extra={"distance_meters": distance},
                )
            location_verified = True

        self.db.add(AgentCheckin(
            assignment_id=assignment.id,
            agent_id=agent_id,
            type=CheckinType.CHECKIN,
            latitude=latitude,
            longitude=longitude,
            location_verified=location_verified,
            distance_from_job_meters=distance,
        ))
        await apply_transition(self.db, request, assignment, JobAction.CHECK_IN, "agent", agent_id)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Already checked in", code="checkin.duplicate")

        return {
            "assignment_id": assignment.id,
            "status": assignment.status,
            "location_verified": location_verified,
            "distance_meters": distance,
            "started_at": assignment.started_at,
        }

    async def add_proof(self, agent_id: UUID, assignment_id: UUID, data: ProofCreate) -> ProofOfWork:
        assignment = await self.get_assignment(agent_id, assignment_id)
        if assignment.status != JobStatus.IN_PROGRESS:
            raise InvalidTransitionError("Must check in first")

        existing = await self.db.execute(
            select(ProofOfWork.id).where(
                ProofOfWork.assignment_id == assignment.id,
                ProofOfWork.type == data.type,
            )
        )
        if existing.scalar_one_or_none():
            raise ValidationError(
                f"A {data.type.value} photo has already been uploaded",
                code="proof.duplicate",
            )

        proof = ProofOfWork(
            assignment_id=assignment.id,
            agent_id=agent_id,
            type=data.type,
            photo_url=data.photo_url,
            notes=data.notes,
        )
        self.db.add(proof)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError(
                f"A {data.type.value} photo has already been uploaded",
                code="proof.duplicate",
            )
        await self.db.refresh(proof)
        return proof

    async def list_proofs(self, assignment_id: UUID) -> List[ProofOfWork]:
        result = await self.db.execute(
            select(ProofOfWork)
            .where(ProofOfWork.assignment_id == assignment_id)
            .order_by(ProofOfWork.uploaded_at)
        )
        return list(result.scalars())

    async def check_out(self, agent_id: UUID, assignment_id: UUID, data: CheckoutRequest) -> dict:
        """Finish on site: both photos required, hands the job to admin review."""
        assignment = await self.get_assignment(agent_id, assignment_id)
        transition(assignment.status, JobAction.CHECK_OUT)

        uploaded = {proof.type.value for proof in await self.list_proofs(assignment.id)}
        missing = REQUIRED_PROOF_TYPES - uploaded
        if missing:
            raise ValidationError(
                "Upload both box and finished photos before checking out",
                code="checkout.missing_proof",
                extra={"missing": sorted(missing)},
            )

        request = await self._get_request(assignment.request_id)

        distance = None
        location_verified = False
        if (
            data.latitude is not None and data.longitude is not None
            and request.job_latitude is not None and request.job_longitude is not None
        ):
            distance = round(distance_meters(
                data.latitude, data.longitude, request.job_latitude, request.job_longitude
            ))
            location_verified = distance <= settings.MAX_CHECKIN_DISTANCE_METERS

        self.db.add(AgentCheckin(
            assignment_id=assignment.id,
            agent_id=agent_id,
            type=CheckinType.CHECKOUT,
            latitude=data.latitude,
            longitude=data.longitude,
            location_verified=location_verified,
            distance_from_job_meters=distance,
            survey_data=data.survey.model_dump(),
        ))
        await apply_transition(self.db, request, assignment, JobAction.CHECK_OUT, "agent", agent_id)

        amount = assignment.agent_payout_cents or 0
        result = await self.db.execute(
            select(AgentEarning).where(AgentEarning.assignment_id == assignment.id)
        )
        earning = result.scalar_one_or_none()
        if earning is None:
            earning = AgentEarning(agent_id=agent_id, assignment_id=assignment.id)
            self.db.add(earning)
        earning.amount_cents = amount
        earning.status = EarningStatus.PENDING
        earning.available_at = None

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Already checked out", code="checkout.duplicate")

        return {
            "assignment_id": assignment.id,
            "status": assignment.status,
            "checked_out_at": assignment.checked_out_at,
            "earning_cents": amount,
        }

    async def cancel(self, agent_id: UUID, assignment_id: UUID, reason: Optional[str] = None) -> JobAssignment:
        """The agent drops the job; the booking is cancelled and its slot freed."""
        reason = (reason or "").strip() or "Cancelled by agent"
        assignment = await self.get_assignment(agent_id, assignment_id)
        request = await self._get_request(assignment.request_id)

        await apply_transition(self.db, request, assignment, JobAction.CANCEL, "agent", agent_id, reason)
        await release_slots(self.db, request.id)

        if request.payment_intent_id and request.total_price_cents:
            try:
                await self.stripe.refund(request.payment_intent_id, request.total_price_cents)
            except stripe.StripeError as e:
                request_id = request.id
                await self.db.rollback()
                logger.error("Refund for request %s failed: %s", request_id, e)
                raise PaymentError("Refund to the client failed", code="payment.refund_failed")
            request.refund_cents = request.total_price_cents

        await self.db.commit()
        await self.db.refresh(assignment)
        return assignment

    # Ratings

    async def rate_client(
        self,
        agent_id: UUID,
        assignment_id: UUID,
        rating: int,
        review: Optional[str] = None,
    ):
        assignment = await self.get_assignment(agent_id, assignment_id)
        request = await self._get_request(assignment.request_id)
        return await RatingService(self.db).rate(
            assignment,
            RaterType.AGENT,
            rater_id=agent_id,
            ratee_id=request.user_id,
            rating=rating,
            review=review,
        )

    async def get_client_rating(self, agent_id: UUID, assignment_id: UUID) -> Optional[Rating]:
        assignment = await self.get_assignment(agent_id, assignment_id)
        rating = await RatingService(self.db).get(assignment.id, RaterType.AGENT)
        return rating
