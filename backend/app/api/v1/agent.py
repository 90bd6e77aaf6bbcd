"""Agent portal endpoints: onboarding, gigs, on-site workflow and earnings."""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.api.deps import get_current_user, get_current_agent, get_approved_agent
from app.models.job import JobStatus
from app.models.request import ServiceRequest
from app.models.user import Profile
from app.schemas.agent import (
    AgentRegister,
    AgentProfileUpdate,
    AgentProfileResponse,
    EarningsSummary,
)
from app.schemas.catalog import SuggestionCreate, SuggestionResponse
from app.schemas.job import (
    GigListResponse,
    AssignmentResponse,
    AgentJobResponse,
    AgentJobListResponse,
    CheckinRequest,
    CheckinResponse,
    CheckoutRequest,
    CheckoutResponse,
    ProofCreate,
    ProofResponse,
    AgentCancelRequest,
)
from app.schemas.request import RatingCreate, RatingResponse, RatingStatus
from app.services.agent_service import AgentService
from app.services.job_service import JobService
from app.services.notification_service import NotificationService

router = APIRouter()


# =============================================================================
# Onboarding & profile
# =============================================================================

@router.post("/register", response_model=AgentProfileResponse, status_code=status.HTTP_201_CREATED)
async def register_agent(
    data: AgentRegister,
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Apply to become an agent. An admin approves the application."""
    return await AgentService(db).register(user, data)


@router.get("/profile", response_model=AgentProfileResponse)
async def get_agent_profile(
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    return await AgentService(db).get_profile(agent.id)


@router.patch("/profile", response_model=AgentProfileResponse)
async def update_agent_profile(
    data: AgentProfileUpdate,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    return await AgentService(db).update_profile(agent.id, data)


# =============================================================================
# Gigs
# =============================================================================

@router.get("/gigs", response_model=GigListResponse)
async def list_gigs(
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_approved_agent),
):
    """Open requests with the general area and this agent's payout only."""
    gigs = await JobService(db).list_gigs(agent.id)
    return GigListResponse(gigs=gigs, total=len(gigs))


@router.post("/gigs/{request_id}/accept", response_model=AssignmentResponse)
async def accept_gig(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_approved_agent),
):
    """Take the job. The client's card on file is charged now."""
    assignment = await JobService(db).accept_gig(agent, request_id)

    result = await db.execute(
        select(ServiceRequest, Profile)
        .join(Profile, Profile.id == ServiceRequest.user_id)
        .where(ServiceRequest.id == assignment.request_id)
    )
    request, client = result.one()
    await NotificationService(db).notify_agent_assigned(request, client, agent)

    return assignment


# =============================================================================
# Assigned jobs
# =============================================================================

@router.get("/jobs", response_model=AgentJobListResponse)
async def list_jobs(
    status: Optional[JobStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    jobs = await JobService(db).list_jobs(agent.id, status=status)
    return AgentJobListResponse(jobs=jobs, total=len(jobs))


@router.get("/jobs/{assignment_id}", response_model=AgentJobResponse)
async def get_job(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    """Full job detail, including the client's address and phone."""
    return await JobService(db).get_job(agent.id, assignment_id)


@router.post("/jobs/{assignment_id}/checkin", response_model=CheckinResponse)
async def check_in(
    assignment_id: UUID,
    data: CheckinRequest,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    """Arrive on site. Must be within the check-in radius when the job has coordinates."""
    return await JobService(db).check_in(agent.id, assignment_id, data.latitude, data.longitude)


@router.post("/jobs/{assignment_id}/proof", response_model=ProofResponse, status_code=status.HTTP_201_CREATED)
async def upload_proof(
    assignment_id: UUID,
    data: ProofCreate,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    """Record a before ("box") or after ("finished") photo."""
    return await JobService(db).add_proof(agent.id, assignment_id, data)


@router.get("/jobs/{assignment_id}/proof", response_model=List[ProofResponse])
async def list_proof(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    service = JobService(db)
    assignment = await service.get_assignment(agent.id, assignment_id)
    return await service.list_proofs(assignment.id)


@router.post("/jobs/{assignment_id}/checkout", response_model=CheckoutResponse)
async def check_out(
    assignment_id: UUID,
    data: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    """Finish on site. Both photos are required; the job then waits for admin review."""
    return await JobService(db).check_out(agent.id, assignment_id, data)


@router.post("/jobs/{assignment_id}/cancel", response_model=AssignmentResponse)
async def cancel_job(
    assignment_id: UUID,
    data: Optional[AgentCancelRequest] = None,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    reason = data.reason if data else None
    return await JobService(db).cancel(agent.id, assignment_id, reason)


@router.post("/jobs/{assignment_id}/rate", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def rate_client(
    assignment_id: UUID,
    data: RatingCreate,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    """Rate the client once the job is completed. One rating per job."""
    return await JobService(db).rate_client(agent.id, assignment_id, data.rating, data.review)


@router.get("/jobs/{assignment_id}/rate", response_model=RatingStatus)
async def get_client_rating(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    rating = await JobService(db).get_client_rating(agent.id, assignment_id)
    return RatingStatus(has_rated=rating is not None, rating=rating)


# =============================================================================
# Earnings & suggestions
# =============================================================================

@router.get("/earnings", response_model=EarningsSummary)
async def get_earnings(
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    return await AgentService(db).earnings_summary(agent.id)


@router.post("/suggest-service", response_model=SuggestionResponse, status_code=status.HTTP_201_CREATED)
async def suggest_service(
    data: SuggestionCreate,
    db: AsyncSession = Depends(get_db),
    agent: Profile = Depends(get_current_agent),
):
    """Propose a new catalog service for admin review."""
    return await AgentService(db).suggest_service(agent.id, data)
