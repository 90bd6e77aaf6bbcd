from datetime import datetime, timedelta

from conftest import auth_headers


async def test_admin_routes_require_admin(client, client_user, agent_user):
    for user in (client_user, agent_user):
        response = await client.get("/api/admin/jobs", headers=auth_headers(user))
        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"


async def test_approve_pending_agent(client, admin_user, pending_agent_user):
    pending = await client.get("/api/admin/agents?status=pending", headers=auth_headers(admin_user))
    assert [a["id"] for a in pending.json()["agents"]] == [str(pending_agent_user.id)]

    response = await client.patch(
        f"/api/admin/agents/{pending_agent_user.id}",
        json={"status": "approved", "tier": "gold"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["tier"] == "gold"
    assert response.json()["approved_at"] is not None

    gigs = await client.get("/api/agent/gigs", headers=auth_headers(pending_agent_user))
    assert gigs.status_code == 200


async def test_suspended_agent_loses_gig_access(client, admin_user, agent_user):
    response = await client.post(
        f"/api/admin/agents/{agent_user.id}/suspend",
        json={"reason": "No-show on two jobs"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "suspended"
    assert response.json()["suspended_reason"] == "No-show on two jobs"

    gigs = await client.get("/api/agent/gigs", headers=auth_headers(agent_user))
    assert gigs.status_code == 403


async def test_unknown_agent_is_404(client, admin_user, client_user):
    response = await client.get(f"/api/admin/agents/{client_user.id}", headers=auth_headers(admin_user))
    assert response.status_code == 404
    assert response.json()["error"] == "Agent not found"


async def test_generate_availability_skips_existing(client, admin_user):
    day = (datetime.utcnow() + timedelta(days=7)).date().isoformat()
    body = {"generate": {"date": day, "start_time": "09:00", "end_time": "12:00", "slot_minutes": 60}}

    first = await client.post("/api/admin/availability", json=body, headers=auth_headers(admin_user))
    assert first.status_code == 201
    assert len(first.json()["created"]) == 3
    assert first.json()["skipped_existing"] == 0

    second = await client.post("/api/admin/availability", json=body, headers=auth_headers(admin_user))
    assert second.json()["created"] == []
    assert second.json()["skipped_existing"] == 3

    listing = await client.get("/api/admin/availability", headers=auth_headers(admin_user))
    assert listing.json()["total"] == 3


async def test_slot_window_must_be_ordered(client, admin_user):
    start = datetime.utcnow() + timedelta(days=2)
    response = await client.post(
        "/api/admin/availability",
        json={"slots": [{"slot_start": start.isoformat(), "slot_end": start.isoformat()}]},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 422


async def test_catalog_upsert_and_delete(client, admin_user, catalog):
    created = await client.post(
        "/api/admin/services",
        json={"id": "gutter_cleaning", "name": "Gutter Cleaning", "price_cents": 14900, "base_minutes": 120},
        headers=auth_headers(admin_user),
    )
    assert created.status_code == 200
    assert created.json()["price_cents"] == 14900

    updated = await client.post(
        "/api/admin/services",
        json={"id": "gutter_cleaning", "name": "Gutter Cleaning", "price_cents": 15900},
        headers=auth_headers(admin_user),
    )
    assert updated.json()["price_cents"] == 15900

    deleted = await client.post(
        "/api/admin/services/delete", json={"id": "gutter_cleaning"}, headers=auth_headers(admin_user),
    )
    assert deleted.json() == {"ok": True, "id": "gutter_cleaning"}

    missing = await client.post(
        "/api/admin/services/delete", json={"id": "gutter_cleaning"}, headers=auth_headers(admin_user),
    )
    assert missing.status_code == 404


async def test_request_update_goes_through_lifecycle(client, admin_user, client_user, catalog, slots):
    booked = await client.post(
        "/api/requests/book",
        json={"service_type": "tv_mounting", "slot_starts": [slots[0].isoformat()]},
        headers=auth_headers(client_user),
    )
    request_id = booked.json()["id"]

    confirmed = await client.post(
        "/api/admin/requests/update",
        json={"request_id": request_id, "status": "confirmed", "details": "Bring a stud finder"},
        headers=auth_headers(admin_user),
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"
    assert confirmed.json()["details"] == "Bring a stud finder"

    # No agent holds the job yet
    started = await client.post(
        "/api/admin/requests/update",
        json={"request_id": request_id, "status": "in_progress"},
        headers=auth_headers(admin_user),
    )
    assert started.status_code == 400
    assert started.json()["code"] == "request.unassigned"

    backwards = await client.post(
        "/api/admin/requests/update",
        json={"request_id": request_id, "status": "pending"},
        headers=auth_headers(admin_user),
    )
    assert backwards.status_code == 400

    cancelled = await client.post(
        "/api/admin/requests/update",
        json={"request_id": request_id, "status": "cancelled", "reason": "Client called in"},
        headers=auth_headers(admin_user),
    )
    assert cancelled.json()["status"] == "cancelled"

    slots_after = await client.get(
        "/api/admin/availability?include_booked=false", headers=auth_headers(admin_user),
    )
    assert slots_after.json()["total"] == 3

    jobs = await client.get("/api/admin/jobs?status=cancelled", headers=auth_headers(admin_user))
    assert jobs.json()["total"] == 1
    assert jobs.json()["jobs"][0]["client_name"] == "Casey Client"
    assert jobs.json()["jobs"][0]["assignment"] is None


async def test_clients_and_billing(client, admin_user, client_user, catalog):
    soon = datetime.utcnow() + timedelta(hours=5)
    booked = await client.post(
        "/api/requests/book",
        json={"service_type": "tv_mounting", "preferred_time": soon.isoformat()},
        headers=auth_headers(client_user),
    )
    await client.post(f"/api/requests/{booked.json()['id']}/cancel", headers=auth_headers(client_user))

    clients = await client.get("/api/admin/clients", headers=auth_headers(admin_user))
    assert clients.json()["clients"][0]["request_count"] == 1

    billing = await client.get("/api/admin/billing", headers=auth_headers(admin_user))
    assert billing.status_code == 200
    summary = billing.json()
    assert summary["cancellation_fees_cents"] == 2000
    assert summary["charged_cents"] == 0
    assert summary["completed_jobs"] == 0
