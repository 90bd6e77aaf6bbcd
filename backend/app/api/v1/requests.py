"""Client booking endpoints."""

from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.api.deps import get_current_client
from app.models.user import Profile
from app.schemas.request import (
    RequestCreate,
    BookingCreate,
    CancelRequest,
    CancellationQuote,
    RequestResponse,
    RequestDetailResponse,
    RequestListResponse,
    RatingCreate,
    RatingResponse,
    RatingStatus,
)
from app.services.request_service import RequestService
from app.services.notification_service import NotificationService

router = APIRouter()


async def _send_booking_notifications(db: AsyncSession, request, client: Profile) -> None:
    notification_service = NotificationService(db)
    await notification_service.notify_new_request(request, client)
    await notification_service.notify_booking_confirmed(request, client)


@router.post("/create", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: RequestCreate,
    db: AsyncSession = Depends(get_db),
    client: Profile = Depends(get_current_client),
):
    """Request a catalog service; price and duration come from the catalog."""
    request = await RequestService(db).create(client, data)
    await _send_booking_notifications(db, request, client)
    return request


@router.post("/book", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def book_request(
    data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    client: Profile = Depends(get_current_client),
):
    """
    Book into calendar slots (all or none) or at a free time.
    The card on file is charged when an agent accepts the job.
    """
    request = await RequestService(db).book(client, data)
    await _send_booking_notifications(db, request, client)
    return request


@router.get("", response_model=RequestListResponse)
async def list_requests(
    db: AsyncSession = Depends(get_db),
    client: Profile = Depends(get_current_client),
):
    requests = await RequestService(db).list_for_client(client.id)
    return RequestListResponse(requests=requests, total=len(requests))


@router.get("/{request_id}", response_model=RequestDetailResponse)
async def get_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    client: Profile = Depends(get_current_client),
):
    """Booking detail with the fee the client would pay to cancel now."""
    service = RequestService(db)
    request = await service.get_for_user(request_id, client)
    quote = service.quote(request)

    detail = RequestDetailResponse.model_validate(request)
    if quote["cancellable"]:
        detail.cancellation_fee_preview_cents = quote["cancellation_fee_cents"]
        detail.time_until = quote["time_until"]
    return detail


@router.get("/{request_id}/cancellation-quote", response_model=CancellationQuote)
async def cancellation_quote(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    client: Profile = Depends(get_current_client),
):
    service = RequestService(db)
    request = await service.get_for_user(request_id, client)
    return service.quote(request)


@router.post("/{request_id}/cancel", response_model=RequestResponse)
async def cancel_request(
    request_id: UUID,
    data: Optional[CancelRequest] = None,
    db: AsyncSession = Depends(get_db),
    client: Profile = Depends(get_current_client),
):
    """Cancel a booking. Late cancellations carry a fee."""
    reason = data.reason if data else None
    return await RequestService(db).cancel(request_id, client, reason)


@router.post("/{request_id}/rate", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def rate_request(
    request_id: UUID,
    data: RatingCreate,
    db: AsyncSession = Depends(get_db),
    client: Profile = Depends(get_current_client),
):
    """Rate the agent once the job is completed. One rating per job."""
    return await RequestService(db).rate_agent(request_id, client, data.rating, data.review)


@router.get("/{request_id}/rate", response_model=RatingStatus)
async def get_request_rating(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    client: Profile = Depends(get_current_client),
):
    rating = await RequestService(db).get_agent_rating(request_id, client)
    return RatingStatus(has_rated=rating is not None, rating=rating)
