from datetime import datetime, timedelta
from uuid import UUID

import pytest
from sqlalchemy import select

from app.models.agent import AgentEarning, AgentProfile, EarningStatus
from app.models.request import ServiceRequest
from conftest import JOB_LAT, JOB_LNG, auth_headers

BOX = {"type": "box", "photo_url": "https://cdn.example.com/box.jpg"}
FINISHED = {"type": "finished", "photo_url": "https://cdn.example.com/finished.jpg"}


@pytest.fixture
async def booking(client, client_user, catalog, slots):
    response = await client.post(
        "/api/requests/book",
        json={
            "service_type": "tv_mounting",
            "details": "Mount 65in TV | Subtotal: $99.00",
            "slot_starts": [slots[0].isoformat()],
            "payment_method_id": "pm_card_visa",
        },
        headers=auth_headers(client_user),
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def assignment(client, agent_user, booking):
    response = await client.post(
        f"/api/agent/gigs/{booking['id']}/accept", headers=auth_headers(agent_user),
    )
    assert response.status_code == 200, response.text
    return response.json()


async def _check_in(client, agent_user, assignment, lat=JOB_LAT, lng=JOB_LNG):
    return await client.post(
        f"/api/agent/jobs/{assignment['id']}/checkin",
        json={"latitude": lat, "longitude": lng},
        headers=auth_headers(agent_user),
    )


async def _upload_both(client, agent_user, assignment):
    for proof in (BOX, FINISHED):
        response = await client.post(
            f"/api/agent/jobs/{assignment['id']}/proof", json=proof, headers=auth_headers(agent_user),
        )
        assert response.status_code == 201, response.text


async def _check_out(client, agent_user, assignment):
    return await client.post(
        f"/api/agent/jobs/{assignment['id']}/checkout",
        json={"latitude": JOB_LAT, "longitude": JOB_LNG, "survey": {"work_completed": True}},
        headers=auth_headers(agent_user),
    )


async def test_gig_list_hides_client_details(client, agent_user, booking):
    response = await client.get("/api/agent/gigs", headers=auth_headers(agent_user))
    assert response.status_code == 200
    gig = response.json()["gigs"][0]
    assert gig["request_id"] == booking["id"]
    assert gig["city"] == "Austin"
    assert gig["payout_cents"] == 4950
    assert gig["details"] == "Mount 65in TV"
    assert "street" not in gig


async def test_unapproved_agent_cannot_see_gigs(client, pending_agent_user, booking):
    response = await client.get("/api/agent/gigs", headers=auth_headers(pending_agent_user))
    assert response.status_code == 403
    assert response.json()["error"] == "Agent account is not approved"


async def test_clients_cannot_use_agent_portal(client, client_user):
    response = await client.get("/api/agent/jobs", headers=auth_headers(client_user))
    assert response.status_code == 403


async def test_accept_assigns_and_charges(client, db, agent_user, booking, assignment):
    assert assignment["status"] == "assigned"
    assert assignment["agent_payout_cents"] == 4950
    assert assignment["platform_fee_cents"] == 4950

    request = (await db.execute(
        select(ServiceRequest).where(ServiceRequest.id == UUID(booking["id"]))
    )).scalar_one()
    assert request.status.value == "assigned"
    assert request.assigned_agent_id == agent_user.id
    assert request.payment_intent_id == "dev_mode"


async def test_gig_can_only_be_taken_once(client, agent_user, booking, assignment):
    response = await client.post(
        f"/api/agent/gigs/{booking['id']}/accept", headers=auth_headers(agent_user),
    )
    assert response.status_code == 409
    assert response.json()["code"] == "gig.taken"


async def test_proof_before_checkin_is_rejected(client, agent_user, assignment):
    response = await client.post(
        f"/api/agent/jobs/{assignment['id']}/proof", json=BOX, headers=auth_headers(agent_user),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Must check in first"


async def test_checkin_outside_geofence_is_rejected(client, agent_user, assignment):
    # About 1.1 km north of the job
    response = await _check_in(client, agent_user, assignment, lat=JOB_LAT + 0.01)
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "checkin.too_far"
    assert body["distance_meters"] > 1000


async def test_checkin_on_site(client, agent_user, assignment):
    response = await _check_in(client, agent_user, assignment, lat=JOB_LAT + 0.0002)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "in_progress"
    assert data["location_verified"] is True
    assert data["distance_meters"] < 100

    again = await _check_in(client, agent_user, assignment)
    assert again.status_code == 400
    assert again.json()["code"] == "job.invalid_status"


async def test_checkout_requires_both_photos(client, agent_user, assignment):
    await _check_in(client, agent_user, assignment)
    await client.post(
        f"/api/agent/jobs/{assignment['id']}/proof", json=BOX, headers=auth_headers(agent_user),
    )

    response = await _check_out(client, agent_user, assignment)
    assert response.status_code == 400
    assert response.json()["code"] == "checkout.missing_proof"
    assert response.json()["missing"] == ["finished"]


async def test_duplicate_photo_is_rejected(client, agent_user, assignment):
    await _check_in(client, agent_user, assignment)
    await _upload_both(client, agent_user, assignment)

    response = await client.post(
        f"/api/agent/jobs/{assignment['id']}/proof", json=BOX, headers=auth_headers(agent_user),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "proof.duplicate"


async def test_full_job_through_admin_approval(client, db, agent_user, admin_user, client_user, assignment):
    await _check_in(client, agent_user, assignment)
    await _upload_both(client, agent_user, assignment)

    response = await _check_out(client, agent_user, assignment)
    assert response.status_code == 200
    assert response.json()["status"] == "pending_verification"
    assert response.json()["earning_cents"] == 4950

    detail = await client.get(
        f"/api/admin/jobs/{assignment['id']}/verify", headers=auth_headers(admin_user),
    )
    assert detail.status_code == 200
    assert {p["type"] for p in detail.json()["proofs"]} == {"box", "finished"}
    assert detail.json()["checkout_survey"]["work_completed"] is True

    legacy = await client.post(
        f"/api/admin/jobs/{assignment['id']}/verify",
        json={"action": "pay"},
        headers=auth_headers(admin_user),
    )
    assert legacy.status_code == 400
    assert legacy.json()["error"] == "Use 'approve' action instead"

    approved = await client.post(
        f"/api/admin/jobs/{assignment['id']}/verify",
        json={"action": "approve", "notes": "Looks great"},
        headers=auth_headers(admin_user),
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "completed"

    earning = (await db.execute(select(AgentEarning))).scalar_one()
    assert earning.status == EarningStatus.AVAILABLE
    assert earning.amount_cents == 4950
    agent_profile = (await db.execute(
        select(AgentProfile).where(AgentProfile.id == agent_user.id)
    )).scalar_one()
    assert agent_profile.completed_jobs == 1

    # Still inside the hold period
    earnings = await client.get("/api/agent/earnings", headers=auth_headers(agent_user))
    assert earnings.json()["pending_cents"] == 4950
    assert earnings.json()["available_cents"] == 0

    # Both sides can now rate, once
    rate_client = await client.post(
        f"/api/agent/jobs/{assignment['id']}/rate", json={"rating": 4}, headers=auth_headers(agent_user),
    )
    assert rate_client.status_code == 201
    assert rate_client.json()["rater_type"] == "agent"
    rate_agent = await client.post(
        f"/api/requests/{assignment['request_id']}/rate", json={"rating": 5}, headers=auth_headers(client_user),
    )
    assert rate_agent.status_code == 201
    again = await client.post(
        f"/api/agent/jobs/{assignment['id']}/rate", json={"rating": 5}, headers=auth_headers(agent_user),
    )
    assert again.status_code == 400

    agent_view = await client.get(f"/api/admin/agents/{agent_user.id}", headers=auth_headers(admin_user))
    assert agent_view.json()["average_rating"] == 5.0


async def test_admin_rejection_sends_job_back(client, agent_user, admin_user, assignment):
    await _check_in(client, agent_user, assignment)
    await _upload_both(client, agent_user, assignment)
    await _check_out(client, agent_user, assignment)

    rejected = await client.post(
        f"/api/admin/jobs/{assignment['id']}/verify",
        json={"action": "reject"},
        headers=auth_headers(admin_user),
    )
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "in_progress"

    job = await client.get(f"/api/agent/jobs/{assignment['id']}", headers=auth_headers(agent_user))
    assert job.json()["rejection_notes"] == "Work rejected - please redo"
    assert job.json()["street"] == "100 Congress Ave"

    # Redo and check out again
    response = await _check_out(client, agent_user, assignment)
    assert response.status_code == 200
    assert response.json()["status"] == "pending_verification"


async def test_cannot_approve_before_checkout(client, agent_user, admin_user, assignment):
    await _check_in(client, agent_user, assignment)
    response = await client.post(
        f"/api/admin/jobs/{assignment['id']}/verify",
        json={"action": "approve"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Job must be pending verification"


async def test_agent_cancel_frees_slot_and_refunds(client, db, agent_user, booking, assignment, slots):
    response = await client.post(
        f"/api/agent/jobs/{assignment['id']}/cancel",
        json={"reason": "Van broke down"},
        headers=auth_headers(agent_user),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancellation_reason"] == "Van broke down"

    request = (await db.execute(
        select(ServiceRequest).where(ServiceRequest.id == UUID(booking["id"]))
    )).scalar_one()
    assert request.status.value == "cancelled"
    assert request.refund_cents == 9900


async def test_admin_status_edits_release_earning(client, db, agent_user, admin_user, booking, assignment):
    await _check_in(client, agent_user, assignment)
    await _upload_both(client, agent_user, assignment)
    assert (await _check_out(client, agent_user, assignment)).status_code == 200

    verified = await client.post(
        "/api/admin/requests/update",
        json={"request_id": booking["id"], "status": "verified"},
        headers=auth_headers(admin_user),
    )
    assert verified.status_code == 200, verified.text
    assert verified.json()["status"] == "verified"

    earning = (await db.execute(select(AgentEarning))).scalar_one()
    assert earning.status == EarningStatus.AVAILABLE
    assert earning.available_at is not None

    for target in ("paid", "completed"):
        response = await client.post(
            "/api/admin/requests/update",
            json={"request_id": booking["id"], "status": target},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == target

    earnings = await client.get("/api/agent/earnings", headers=auth_headers(agent_user))
    assert earnings.json()["paid_out_cents"] == 4950
    assert earnings.json()["pending_cents"] == 0

    # Counted once across the three edits
    agent_profile = (await db.execute(
        select(AgentProfile).where(AgentProfile.id == agent_user.id)
    )).scalar_one()
    assert agent_profile.completed_jobs == 1
    assert agent_profile.total_earnings_cents == 4950


async def test_admin_cancel_of_charged_job_applies_fee_and_refund(
    client, db, admin_user, client_user, agent_user, catalog,
):
    soon = datetime.utcnow() + timedelta(hours=1)
    booked = await client.post(
        "/api/requests/book",
        json={
            "service_type": "tv_mounting",
            "preferred_time": soon.isoformat(),
            "payment_method_id": "pm_card_visa",
        },
        headers=auth_headers(client_user),
    )
    assert booked.status_code == 201, booked.text
    accepted = await client.post(
        f"/api/agent/gigs/{booked.json()['id']}/accept", headers=auth_headers(agent_user),
    )
    assert accepted.status_code == 200, accepted.text

    response = await client.post(
        "/api/admin/requests/update",
        json={"request_id": booked.json()["id"], "status": "cancelled", "reason": "Client called in"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "cancelled"

    request = (await db.execute(
        select(ServiceRequest).where(ServiceRequest.id == UUID(booked.json()["id"]))
    )).scalar_one()
    assert request.cancellation_fee_cents == 4000
    assert request.refund_cents == 5900


async def test_agent_suggestion_becomes_catalog_service(client, agent_user, admin_user):
    suggested = await client.post(
        "/api/agent/suggest-service",
        json={"suggested_name": "Smart Lock Install", "suggested_category": "installation"},
        headers=auth_headers(agent_user),
    )
    assert suggested.status_code == 201

    reviewed = await client.post(
        "/api/admin/suggestions",
        json={"suggestion_id": suggested.json()["id"], "action": "approve"},
        headers=auth_headers(admin_user),
    )
    assert reviewed.status_code == 200
    body = reviewed.json()
    assert body["suggestion"]["status"] == "approved"
    assert body["service"]["id"] == "smart_lock_install"
    assert body["service"]["price_cents"] == 9900
    assert body["service"]["base_minutes"] == 60

    again = await client.post(
        "/api/admin/suggestions",
        json={"suggestion_id": suggested.json()["id"], "action": "reject"},
        headers=auth_headers(admin_user),
    )
    assert again.status_code == 400

    catalog = await client.get("/api/catalog/services")
    assert "smart_lock_install" in [s["id"] for s in catalog.json()]
