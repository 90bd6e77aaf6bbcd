"""Admin console endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.api.deps import get_current_admin
from app.models.agent import AgentStatus
from app.models.catalog import SuggestionStatus
from app.models.job import JobStatus
from app.models.user import Profile
from app.schemas.admin import (
    RequestAdminUpdate,
    AdminJobListResponse,
    ClientListResponse,
    BillingSummary,
)
from app.schemas.agent import AgentSummary, AgentListResponse, AgentAdminUpdate, AgentSuspend
from app.schemas.catalog import (
    CatalogServiceResponse,
    CatalogServiceUpsert,
    CatalogServiceDelete,
    SuggestionListResponse,
    SuggestionReview,
    SuggestionReviewResponse,
)
from app.schemas.job import VerifyRequest, VerificationDetail
from app.schemas.request import RequestResponse, to_naive_utc
from app.schemas.schedule import SlotCreateRequest, SlotCreateResponse, SlotListResponse
from app.services.admin_service import AdminService
from app.services.catalog_service import CatalogService

router = APIRouter()


# =============================================================================
# Jobs & requests
# =============================================================================

@router.get("/jobs", response_model=AdminJobListResponse)
async def list_jobs(
    status: Optional[JobStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    jobs = await AdminService(db).list_jobs(status=status)
    return AdminJobListResponse(jobs=jobs, total=len(jobs))


@router.get("/jobs/{assignment_id}/verify", response_model=VerificationDetail)
async def get_verification(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    """Photos, survey and check-in result for a checked-out job."""
    return await AdminService(db).get_verification(assignment_id)


@router.post("/jobs/{assignment_id}/verify")
async def verify_job(
    assignment_id: UUID,
    data: VerifyRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    """
    approve/verify: complete the job and release the agent's earning.
    reject: send the job back to the agent to redo.
    """
    return await AdminService(db).verify_job(assignment_id, admin, data.action, data.notes)


@router.post("/requests/update", response_model=RequestResponse)
async def update_request(
    data: RequestAdminUpdate,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    return await AdminService(db).update_request(admin, data)


# =============================================================================
# Agents & clients
# =============================================================================

@router.get("/agents", response_model=AgentListResponse)
async def list_agents(
    status: Optional[AgentStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    agents = await AdminService(db).list_agents(status=status)
    return AgentListResponse(agents=agents, total=len(agents))


@router.get("/agents/{agent_id}", response_model=AgentSummary)
async def get_agent(
    agent_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    return await AdminService(db).get_agent(agent_id)


@router.patch("/agents/{agent_id}", response_model=AgentSummary)
async def update_agent(
    agent_id: UUID,
    data: AgentAdminUpdate,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    """Approve, reject or re-tier an agent."""
    return await AdminService(db).update_agent(agent_id, data)


@router.post("/agents/{agent_id}/suspend", response_model=AgentSummary)
async def suspend_agent(
    agent_id: UUID,
    data: AgentSuspend,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    return await AdminService(db).suspend_agent(agent_id, data.reason)


@router.get("/clients", response_model=ClientListResponse)
async def list_clients(
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    clients = await AdminService(db).list_clients()
    return ClientListResponse(clients=clients, total=len(clients))


# =============================================================================
# Catalog
# =============================================================================

@router.get("/suggestions", response_model=SuggestionListResponse)
async def list_suggestions(
    status: Optional[SuggestionStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    suggestions = await AdminService(db).list_suggestions(status=status)
    return SuggestionListResponse(suggestions=suggestions, total=len(suggestions))


@router.post("/suggestions", response_model=SuggestionReviewResponse)
async def review_suggestion(
    data: SuggestionReview,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    """Approving adds the service to the catalog ($99 / 60 min unless overridden)."""
    suggestion, service = await AdminService(db).review_suggestion(admin, data)
    return SuggestionReviewResponse(suggestion=suggestion, service=service)


@router.post("/services", response_model=CatalogServiceResponse)
async def upsert_service(
    data: CatalogServiceUpsert,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    return await CatalogService(db).upsert(data)


@router.post("/services/delete")
async def delete_service(
    data: CatalogServiceDelete,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    await CatalogService(db).delete(data.id)
    return {"ok": True, "id": data.id}


# =============================================================================
# Calendar & billing
# =============================================================================

@router.get("/availability", response_model=SlotListResponse)
async def list_availability(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    include_booked: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    slots = await AdminService(db).list_slots(
        start=to_naive_utc(start), end=to_naive_utc(end), include_booked=include_booked,
    )
    return SlotListResponse(slots=slots, total=len(slots))


@router.post("/availability", response_model=SlotCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_availability(
    data: SlotCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    created, skipped = await AdminService(db).create_slots(admin, data)
    return SlotCreateResponse(created=created, skipped_existing=skipped)


@router.get("/billing", response_model=BillingSummary)
async def billing(
    db: AsyncSession = Depends(get_db),
    admin: Profile = Depends(get_current_admin),
):
    return await AdminService(db).billing_summary()
