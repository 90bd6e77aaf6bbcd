"""Request service - client bookings, cancellation and ratings."""

import logging
from datetime import datetime
from typing import Optional, List, Tuple
from uuid import UUID

import stripe
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.catalog import ServiceCatalogEntry
from app.models.job import JobAssignment, RaterType, Rating
from app.models.request import ServiceRequest
from app.models.schedule import AvailableSlot
from app.models.user import Profile, UserRole
from app.schemas.request import RequestCreate, BookingCreate
from app.services.cancellation_policy import (
    cancellation_fee,
    describe_time_until,
    refund_amount,
    resolve_scheduled_at,
)
from app.services.job_lifecycle import CANCELLABLE, JobAction, is_terminal, transition
from app.services.job_service import apply_transition, release_slots
from app.services.pricing import normalize_cents, estimate_labor_cents
from app.services.rating_service import RatingService
from app.services.auth_service import AuthService
from app.integrations.stripe_client import StripeClient
from app.exceptions import (
    ConflictError,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class RequestService:
    """Service for client booking operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_catalog_entry(self, service_type: str) -> ServiceCatalogEntry:
        result = await self.db.execute(
            select(ServiceCatalogEntry).where(
                ServiceCatalogEntry.id == service_type,
                ServiceCatalogEntry.is_active == True,
            )
        )
        entry = result.scalar_one_or_none()
        if not entry:
            raise ValidationError(f"Unknown service: {service_type}", code="request.unknown_service")
        return entry

    async def _check_address(self, address_id: Optional[UUID], user_id: UUID) -> None:
        if address_id is None:
            return
        await AuthService(self.db).get_address(address_id, user_id)

    async def create(self, client: Profile, data: RequestCreate) -> ServiceRequest:
        """Quick request: price and duration come straight from the catalog."""
        entry = await self.get_catalog_entry(data.service_type)
        await self._check_address(data.address_id, client.id)

        preferred_date = data.preferred_date
        if preferred_date is None and data.preferred_time is not None:
            preferred_date = data.preferred_time.date()

        request = ServiceRequest(
            user_id=client.id,
            address_id=data.address_id,
            service_type=entry.id,
            details=data.details,
            preferred_date=preferred_date,
            preferred_time=data.preferred_time,
            estimated_minutes=entry.base_minutes,
            total_price_cents=entry.price_cents,
            labor_price_cents=entry.price_cents,
            materials_cost_cents=0,
            job_latitude=client.location_latitude,
            job_longitude=client.location_longitude,
        )
        self.db.add(request)
        await self.db.commit()
        await self.db.refresh(request)
        logger.info("Client %s created request %s (%s)", client.id, request.id, entry.id)
        return request

    async def book(self, client: Profile, data: BookingCreate) -> ServiceRequest:
        """
        Book into one or more calendar slots, or at a free preferred time.

        Slots are claimed with a single conditional update; if any of them is
        already taken the whole booking is rolled back.
        """
        entry = await self.get_catalog_entry(data.service_type)
        await self._check_address(data.address_id, client.id)

        slot_starts = sorted(set(data.slot_starts))
        if slot_starts:
            preferred_time = slot_starts[0]
        elif data.preferred_time is not None:
            preferred_time = data.preferred_time
        else:
            raise ValidationError("Choose a time slot or a preferred time", code="request.no_time")

        if preferred_time <= datetime.utcnow():
            raise ValidationError("Appointment time must be in the future", code="request.past_time")

        estimated_minutes = data.estimated_minutes or entry.base_minutes or settings.DEFAULT_SERVICE_MINUTES
        labor = normalize_cents(data.labor_price_cents)
        if labor is None:
            labor = estimate_labor_cents(
                entry.price_cents, estimated_minutes, settings.DEFAULT_RATE_PER_MINUTE_CENTS
            )
        materials = normalize_cents(data.materials_cost_cents) or 0
        total = normalize_cents(data.total_price_cents)
        if total is None:
            total = labor + materials

        request = ServiceRequest(
            user_id=client.id,
            address_id=data.address_id,
            service_type=entry.id,
            details=data.details,
            preferred_date=preferred_time.date(),
            preferred_time=preferred_time,
            estimated_minutes=estimated_minutes,
            total_price_cents=total,
            labor_price_cents=labor,
            materials_cost_cents=materials,
            payment_method_id=data.payment_method_id,
            job_latitude=client.location_latitude,
            job_longitude=client.location_longitude,
        )
        self.db.add(request)
        await self.db.flush()

        if slot_starts:
            result = await self.db.execute(
                update(AvailableSlot)
                .where(
                    AvailableSlot.slot_start.in_(slot_starts),
                    AvailableSlot.is_booked == False,
                )
                .values(is_booked=True, request_id=request.id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != len(slot_starts):
                await self.db.rollback()
                raise ConflictError(
                    "One or more selected time slots are no longer available",
                    code="request.slot_unavailable",
                )

        await self.db.commit()
        await self.db.refresh(request)
        logger.info(
            "Client %s booked request %s at %s (%s slots)",
            client.id, request.id, preferred_time, len(slot_starts),
        )
        return request

    async def list_for_client(self, user_id: UUID) -> List[ServiceRequest]:
        result = await self.db.execute(
            select(ServiceRequest)
            .where(ServiceRequest.user_id == user_id)
            .order_by(ServiceRequest.created_at.desc())
        )
        return list(result.scalars())

    async def get_for_user(self, request_id: UUID, user: Profile) -> ServiceRequest:
        """Owner or admin only; anyone else gets a 404."""
        result = await self.db.execute(select(ServiceRequest).where(ServiceRequest.id == request_id))
        request = result.scalar_one_or_none()
        if not request or (request.user_id != user.id and user.role != UserRole.ADMIN):
            raise NotFoundError("Request not found")
        return request

    async def _get_assignment(self, request_id: UUID) -> Optional[JobAssignment]:
        result = await self.db.execute(
            select(JobAssignment).where(JobAssignment.request_id == request_id)
        )
        return result.scalar_one_or_none()

    # Cancellation

    def quote(self, request: ServiceRequest, now: Optional[datetime] = None) -> dict:
        """Fee and refund the client would see if they cancelled right now."""
        now = now or datetime.utcnow()
        scheduled_at = resolve_scheduled_at(request.preferred_time, request.preferred_date)
        fee = cancellation_fee(scheduled_at, now)
        return {
            "request_id": request.id,
            "scheduled_at": scheduled_at,
            "time_until": describe_time_until(scheduled_at, now),
            "cancellation_fee_cents": fee,
            "refund_cents": refund_amount(request.total_price_cents, fee),
            "cancellable": request.status in CANCELLABLE,
        }

    async def cancel(
        self,
        request_id: UUID,
        user: Profile,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceRequest:
        """
        Cancel a booking for its owner (or an admin), charging the late fee.
        A card that was already charged is refunded the total minus the fee.
        """
        request = await self.get_for_user(request_id, user)
        if is_terminal(request.status):
            raise ValidationError("Request is already closed", code="request.closed")
        transition(request.status, JobAction.CANCEL)

        changed_by = "admin" if user.role == UserRole.ADMIN and request.user_id != user.id else "client"

        assignment = await self._get_assignment(request.id)
        await apply_transition(
            self.db, request, assignment, JobAction.CANCEL, changed_by, user.id,
            reason or "Cancelled by client",
        )
        await release_slots(self.db, request.id)
        fee, refund = await self.settle_cancellation(request, now)

        await self.db.commit()
        await self.db.refresh(request)
        logger.info("Request %s cancelled by %s (fee %s, refund %s)", request.id, changed_by, fee, refund)
        return request

    async def settle_cancellation(
        self,
        request: ServiceRequest,
        now: Optional[datetime] = None,
    ) -> Tuple[int, int]:
        """
        Record the late fee on a request being cancelled and refund the rest
        of any charge. A failed refund rolls back the whole cancellation.
        """
        now = now or datetime.utcnow()
        fee = cancellation_fee(resolve_scheduled_at(request.preferred_time, request.preferred_date), now)
        request.cancellation_fee_cents = fee

        refund = 0
        if request.payment_intent_id:
            refund = refund_amount(request.total_price_cents, fee)
            if refund > 0:
                try:
                    await StripeClient().refund(request.payment_intent_id, refund)
                except stripe.StripeError as e:
                    request_id = request.id
                    await self.db.rollback()
                    logger.error("Refund for request %s failed: %s", request_id, e)
                    raise PaymentError("Refund failed, the booking was not cancelled", code="payment.refund_failed")
        request.refund_cents = refund
        return fee, refund

    # Ratings

    async def rate_agent(
        self,
        request_id: UUID,
        client: Profile,
        rating: int,
        review: Optional[str] = None,
    ) -> Rating:
        request = await self.get_for_user(request_id, client)
        if request.user_id != client.id:
            raise NotFoundError("Request not found")
        assignment = await self._get_assignment(request.id)
        if assignment is None:
            raise ValidationError("Can only rate completed jobs", code="rating.job_not_completed")
        return await RatingService(self.db).rate(
            assignment,
            RaterType.CLIENT,
            rater_id=client.id,
            ratee_id=assignment.agent_id,
            rating=rating,
            review=review,
        )

    async def get_agent_rating(self, request_id: UUID, client: Profile) -> Optional[Rating]:
        request = await self.get_for_user(request_id, client)
        assignment = await self._get_assignment(request.id)
        if assignment is None:
            return None
        return await RatingService(self.db).get(assignment.id, RaterType.CLIENT)
