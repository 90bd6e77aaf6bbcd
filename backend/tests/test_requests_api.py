from datetime import datetime, timedelta
from uuid import UUID

import stripe
from sqlalchemy import select

from app.models.job import JobAssignment, JobStatus, JobStatusHistory
from app.models.request import ServiceRequest
from app.models.schedule import AvailableSlot
from app.models.user import Profile, UserRole
from app.integrations.stripe_client import StripeClient
from conftest import auth_headers


def _booking(slot_starts=None, **overrides):
    body = {
        "service_type": "tv_mounting",
        "details": "65 inch TV on drywall",
        "slot_starts": [s.isoformat() for s in (slot_starts or [])],
    }
    body.update(overrides)
    return body


async def _book(client, user, **kwargs):
    response = await client.post("/api/requests/book", json=_booking(**kwargs), headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


async def test_catalog_lists_active_services(client, catalog):
    response = await client.get("/api/catalog/services")
    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == ["tv_mounting", "furniture_assembly"]


async def test_create_uses_catalog_price(client, client_user, catalog):
    response = await client.post(
        "/api/requests/create",
        json={"service_type": "furniture_assembly", "details": "IKEA wardrobe"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["total_price_cents"] == 12900
    assert data["estimated_minutes"] == 90


async def test_unknown_service_is_rejected(client, client_user, catalog):
    response = await client.post(
        "/api/requests/create",
        json={"service_type": "window_washing"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "request.unknown_service"


async def test_requires_authentication(client, catalog):
    response = await client.get("/api/requests")
    assert response.status_code in (401, 403)
    assert "error" in response.json()


async def test_book_claims_slots(client, db, client_user, catalog, slots):
    data = await _book(client, client_user, slot_starts=slots[:2])

    assert data["preferred_time"].startswith(slots[0].isoformat()[:16])
    assert data["total_price_cents"] == 9900

    result = await db.execute(select(AvailableSlot).order_by(AvailableSlot.slot_start))
    booked = [slot.is_booked for slot in result.scalars()]
    assert booked == [True, True, False]


async def test_book_normalizes_client_prices(client, client_user, catalog, slots):
    data = await _book(
        client, client_user, slot_starts=slots[:1],
        labor_price_cents=8000.4, materials_cost_cents=-20, total_price_cents=None,
    )
    assert data["labor_price_cents"] == 8000
    assert data["materials_cost_cents"] == 0
    assert data["total_price_cents"] == 8000


async def test_double_booking_is_rejected(client, db, client_user, catalog, slots):
    await _book(client, client_user, slot_starts=[slots[1]])

    response = await client.post(
        "/api/requests/book",
        json=_booking(slot_starts=[slots[0], slots[1]]),
        headers=auth_headers(client_user),
    )
    assert response.status_code == 409
    assert response.json()["code"] == "request.slot_unavailable"

    # The free slot was not left half-booked
    result = await db.execute(select(AvailableSlot).where(AvailableSlot.slot_start == slots[0]))
    assert result.scalar_one().is_booked is False
    count = await db.execute(select(ServiceRequest))
    assert len(count.scalars().all()) == 1


async def test_booking_in_the_past_is_rejected(client, client_user, catalog):
    past = datetime.utcnow() - timedelta(hours=1)
    response = await client.post(
        "/api/requests/book",
        json=_booking(preferred_time=past.isoformat()),
        headers=auth_headers(client_user),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "request.past_time"


async def test_booking_needs_a_time(client, client_user, catalog):
    response = await client.post(
        "/api/requests/book", json=_booking(), headers=auth_headers(client_user),
    )
    assert response.status_code == 400


async def test_other_clients_cannot_see_request(client, db, client_user, catalog, slots):
    data = await _book(client, client_user, slot_starts=slots[:1])

    stranger = Profile(email="stranger@example.com", role=UserRole.CLIENT)
    db.add(stranger)
    await db.commit()

    response = await client.get(f"/api/requests/{data['id']}", headers=auth_headers(stranger))
    assert response.status_code == 404


async def test_cancel_far_ahead_is_free(client, db, client_user, catalog, slots):
    data = await _book(client, client_user, slot_starts=slots[:1])

    quote = await client.get(
        f"/api/requests/{data['id']}/cancellation-quote", headers=auth_headers(client_user),
    )
    assert quote.json()["cancellation_fee_cents"] == 0
    assert quote.json()["refund_cents"] == 9900
    assert quote.json()["cancellable"] is True

    response = await client.post(
        f"/api/requests/{data['id']}/cancel",
        json={"reason": "Plans changed"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 200
    cancelled = response.json()
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancellation_fee_cents"] == 0
    assert cancelled["cancellation_reason"] == "Plans changed"

    # Slot is free again and the change is in the audit trail
    result = await db.execute(select(AvailableSlot).where(AvailableSlot.slot_start == slots[0]))
    assert result.scalar_one().is_booked is False
    history = await db.execute(
        select(JobStatusHistory).where(JobStatusHistory.to_status == "cancelled")
    )
    assert history.scalar_one().changed_by_type == "client"


async def test_late_cancel_charges_fee(client, client_user, catalog):
    soon = datetime.utcnow() + timedelta(hours=1)
    data = await _book(client, client_user, preferred_time=soon.isoformat())

    detail = await client.get(f"/api/requests/{data['id']}", headers=auth_headers(client_user))
    assert detail.json()["cancellation_fee_preview_cents"] == 4000

    response = await client.post(f"/api/requests/{data['id']}/cancel", headers=auth_headers(client_user))
    assert response.status_code == 200
    assert response.json()["cancellation_fee_cents"] == 4000


async def _accepted_soon(client, client_user, agent_user):
    soon = datetime.utcnow() + timedelta(hours=1)
    data = await _book(
        client, client_user, preferred_time=soon.isoformat(), payment_method_id="pm_card_visa",
    )
    accepted = await client.post(f"/api/agent/gigs/{data['id']}/accept", headers=auth_headers(agent_user))
    assert accepted.status_code == 200, accepted.text
    return data


async def test_cancel_after_charge_refunds_total_minus_fee(monkeypatch, client, client_user, agent_user, catalog):
    refunds = []

    async def fake_refund(self, payment_intent_id, amount_cents):
        refunds.append((payment_intent_id, amount_cents))
        return {"id": "re_test", "status": "succeeded"}

    monkeypatch.setattr(StripeClient, "refund", fake_refund)
    data = await _accepted_soon(client, client_user, agent_user)

    response = await client.post(f"/api/requests/{data['id']}/cancel", headers=auth_headers(client_user))
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancellation_fee_cents"] == 4000
    assert response.json()["refund_cents"] == 5900
    assert refunds == [("dev_mode", 5900)]


async def test_failed_refund_leaves_booking_open(monkeypatch, client, db, client_user, agent_user, catalog):
    async def failing_refund(self, payment_intent_id, amount_cents):
        raise stripe.StripeError("Refund declined")

    monkeypatch.setattr(StripeClient, "refund", failing_refund)
    data = await _accepted_soon(client, client_user, agent_user)

    response = await client.post(f"/api/requests/{data['id']}/cancel", headers=auth_headers(client_user))
    assert response.status_code == 402
    assert response.json()["code"] == "payment.refund_failed"

    request = (await db.execute(
        select(ServiceRequest).where(ServiceRequest.id == UUID(data["id"]))
    )).scalar_one()
    assert request.status == JobStatus.ASSIGNED
    assert request.cancellation_fee_cents is None
    assert request.refund_cents is None


async def test_cancel_twice_is_rejected(client, client_user, catalog, slots):
    data = await _book(client, client_user, slot_starts=slots[:1])
    await client.post(f"/api/requests/{data['id']}/cancel", headers=auth_headers(client_user))

    response = await client.post(f"/api/requests/{data['id']}/cancel", headers=auth_headers(client_user))
    assert response.status_code == 400
    assert response.json()["code"] == "request.closed"


async def test_rating_before_completion_is_rejected(client, client_user, catalog, slots):
    data = await _book(client, client_user, slot_starts=slots[:1])

    response = await client.post(
        f"/api/requests/{data['id']}/rate", json={"rating": 5}, headers=auth_headers(client_user),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Can only rate completed jobs"


async def test_rating_once_per_job(client, db, client_user, agent_user, catalog, slots):
    data = await _book(client, client_user, slot_starts=slots[:1])

    request = (await db.execute(
        select(ServiceRequest).where(ServiceRequest.id == UUID(data["id"]))
    )).scalar_one()
    request.status = JobStatus.COMPLETED
    request.assigned_agent_id = agent_user.id
    db.add(JobAssignment(
        request_id=request.id,
        agent_id=agent_user.id,
        status=JobStatus.COMPLETED,
        job_price_cents=9900,
        agent_payout_cents=4950,
        platform_fee_cents=4950,
    ))
    await db.commit()

    first = await client.post(
        f"/api/requests/{data['id']}/rate",
        json={"rating": 5, "review": "Great work"},
        headers=auth_headers(client_user),
    )
    assert first.status_code == 201
    assert first.json()["rater_type"] == "client"

    second = await client.post(
        f"/api/requests/{data['id']}/rate", json={"rating": 1}, headers=auth_headers(client_user),
    )
    assert second.status_code == 400
    assert second.json()["error"] == "You have already rated this job"

    status = await client.get(f"/api/requests/{data['id']}/rate", headers=auth_headers(client_user))
    assert status.json()["has_rated"] is True
    assert status.json()["rating"]["rating"] == 5


async def test_rating_out_of_range_is_invalid(client, client_user, catalog, slots):
    data = await _book(client, client_user, slot_starts=slots[:1])
    response = await client.post(
        f"/api/requests/{data['id']}/rate", json={"rating": 6}, headers=auth_headers(client_user),
    )
    assert response.status_code == 422
    assert response.json()["error"] == "Validation error"
