"""
Tests for registration endpoints: FCFS admission, waitlists, quotas and
withdrawal.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient
from sqlalchemy import update

from campus_events.models.event import Event, EventQuota, EventStatus


def register_url(event_id: int) -> str:
    return f"/api/v1/events/{event_id}/registrations"


@pytest.fixture
def students(make_user, make_headers):
    """Factory returning auth headers for `n` fresh students."""

    async def _students(n: int) -> list[dict]:
        return [await make_headers(await make_user()) for _ in range(n)]

    return _students


async def participants(client: AsyncClient, event_id: int, headers: dict) -> int:
    response = await client.get(f"/api/v1/events/{event_id}", headers=headers)
    return response.json()["current_participants"]


@pytest.mark.asyncio
async def test_register_for_event(client: AsyncClient, student_headers, approved_event):
    """Successful registration takes one seat."""
    response = await client.post(
        register_url(approved_event.id),
        json={"details": {"dietary_restrictions": "vegetarian"}},
        headers=student_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["result"] == "admitted"
    assert data["waitlist_position"] is None
    assert data["registration"]["status"] == "registered"
    assert data["registration"]["category"] == "participant"
    assert data["registration"]["details"]["dietary_restrictions"] == "vegetarian"

    assert await participants(client, approved_event.id, student_headers) == 1


@pytest.mark.asyncio
async def test_register_without_body(client: AsyncClient, student_headers, approved_event):
    response = await client.post(register_url(approved_event.id), headers=student_headers)
    assert response.status_code == 201
    assert response.json()["result"] == "admitted"


@pytest.mark.asyncio
async def test_register_unauthenticated(client: AsyncClient, approved_event):
    """Unauthenticated registration returns 401."""
    response = await client.post(register_url(approved_event.id))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_unknown_event(client: AsyncClient, student_headers):
    response = await client.post(register_url(99999), headers=student_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_duplicate_registration(client: AsyncClient, student_headers, approved_event):
    """Same user registering twice gets already_registered."""
    first = await client.post(register_url(approved_event.id), headers=student_headers)
    assert first.status_code == 201

    second = await client.post(register_url(approved_event.id), headers=student_headers)
    assert second.status_code == 409
    assert second.json()["detail"]["reason"] == "already_registered"

    assert await participants(client, approved_event.id, student_headers) == 1


@pytest.mark.asyncio
async def test_full_event_without_waitlist(client: AsyncClient, students, make_event):
    """First come, first served: the third student finds the event full."""
    event = await make_event(max_participants=2)
    first, second, third = await students(3)

    assert (await client.post(register_url(event.id), headers=first)).status_code == 201
    assert (await client.post(register_url(event.id), headers=second)).status_code == 201

    response = await client.post(register_url(event.id), headers=third)
    assert response.status_code == 409
    assert response.json()["detail"] == {"reason": "event_full", "message": "Event is full"}
    assert await participants(client, event.id, first) == 2


@pytest.mark.asyncio
async def test_deadline_passed(client: AsyncClient, student_headers, make_event):
    event = await make_event(deadline_in=timedelta(hours=-1))
    response = await client.post(register_url(event.id), headers=student_headers)
    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "deadline_passed"


@pytest.mark.asyncio
async def test_pending_event_not_open(client: AsyncClient, student_headers, make_event):
    event = await make_event(status=EventStatus.PENDING_APPROVAL)
    response = await client.post(register_url(event.id), headers=student_headers)
    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "event_not_approved"


@pytest.mark.asyncio
async def test_draft_event_not_registrable(client: AsyncClient, student_headers, make_event):
    event = await make_event(status=EventStatus.DRAFT)
    response = await client.post(register_url(event.id), headers=student_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_past_event(client: AsyncClient, student_headers, make_event):
    event = await make_event(start_in=timedelta(minutes=-5), deadline_in=None)
    response = await client.post(register_url(event.id), headers=student_headers)
    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "event_in_past"


@pytest.mark.asyncio
async def test_organizer_cannot_register(client: AsyncClient, officer_headers, approved_event):
    response = await client.post(register_url(approved_event.id), headers=officer_headers)
    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "organizer_not_allowed"


@pytest.mark.asyncio
async def test_waitlist_and_promotion(client: AsyncClient, students, make_event):
    """A freed seat goes to the earliest waitlisted student."""
    event = await make_event(max_participants=1, waitlist_enabled=True)
    first, second, third = await students(3)

    assert (await client.post(register_url(event.id), headers=first)).json()["result"] == "admitted"

    response = await client.post(register_url(event.id), headers=second)
    assert response.status_code == 201
    assert response.json()["result"] == "waitlisted"
    assert response.json()["waitlist_position"] == 1

    response = await client.post(register_url(event.id), headers=third)
    assert response.json()["waitlist_position"] == 2

    response = await client.delete(f"{register_url(event.id)}/me", headers=first)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    mine = (await client.get("/api/v1/registrations/me", headers=second)).json()
    assert mine[0]["status"] == "registered"
    assert mine[0]["promoted_at"] is not None

    mine = (await client.get("/api/v1/registrations/me", headers=third)).json()
    assert mine[0]["status"] == "waitlisted"

    assert await participants(client, event.id, first) == 1


@pytest.mark.asyncio
async def test_withdrawing_from_waitlist_frees_nothing(client: AsyncClient, students, make_event):
    event = await make_event(max_participants=1, waitlist_enabled=True)
    first, second, third = await students(3)
    for headers in (first, second, third):
        await client.post(register_url(event.id), headers=headers)

    await client.delete(f"{register_url(event.id)}/me", headers=second)

    mine = (await client.get("/api/v1/registrations/me", headers=third)).json()
    assert mine[0]["status"] == "waitlisted"
    assert await participants(client, event.id, first) == 1


@pytest.mark.asyncio
async def test_cancel_is_idempotent(client: AsyncClient, student_headers, approved_event):
    await client.post(register_url(approved_event.id), headers=student_headers)

    first = await client.delete(f"{register_url(approved_event.id)}/me", headers=student_headers)
    second = await client.delete(f"{register_url(approved_event.id)}/me", headers=student_headers)
    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert second.json()["status"] == "cancelled"

    assert await participants(client, approved_event.id, student_headers) == 0


@pytest.mark.asyncio
async def test_cancel_without_registration(client: AsyncClient, student_headers, approved_event):
    response = await client.delete(f"{register_url(approved_event.id)}/me", headers=student_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_register_again_after_cancelling(client: AsyncClient, student_headers, approved_event):
    await client.post(register_url(approved_event.id), headers=student_headers)
    await client.delete(f"{register_url(approved_event.id)}/me", headers=student_headers)

    response = await client.post(register_url(approved_event.id), headers=student_headers)
    assert response.status_code == 201
    assert response.json()["result"] == "admitted"

    mine = (await client.get("/api/v1/registrations/me", headers=student_headers)).json()
    assert sorted(r["status"] for r in mine) == ["cancelled", "registered"]


@pytest.mark.asyncio
async def test_volunteer_quota(client: AsyncClient, students, make_event):
    """A full category quota rejects that category only."""
    event = await make_event(
        max_participants=5,
        quotas=[EventQuota(category="volunteer", max_slots=1, filled=0)],
    )
    first, second, third = await students(3)
    volunteer = {"category": "volunteer"}

    assert (await client.post(register_url(event.id), json=volunteer, headers=first)).status_code == 201

    response = await client.post(register_url(event.id), json=volunteer, headers=second)
    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "event_full"

    response = await client.post(register_url(event.id), headers=third)
    assert response.status_code == 201

    data = (await client.get(f"/api/v1/events/{event.id}", headers=first)).json()
    assert data["current_participants"] == 2
    assert data["quotas"][0]["filled"] == 1


@pytest.mark.asyncio
async def test_promotion_skips_candidates_whose_quota_is_full(client: AsyncClient, students, make_event):
    event = await make_event(
        max_participants=2,
        waitlist_enabled=True,
        quotas=[EventQuota(category="volunteer", max_slots=1, filled=0)],
    )
    volunteer_a, participant_a, volunteer_b, participant_b = await students(4)
    volunteer = {"category": "volunteer"}

    await client.post(register_url(event.id), json=volunteer, headers=volunteer_a)
    await client.post(register_url(event.id), headers=participant_a)
    response = await client.post(register_url(event.id), json=volunteer, headers=volunteer_b)
    assert response.json()["result"] == "waitlisted"
    response = await client.post(register_url(event.id), headers=participant_b)
    assert response.json()["result"] == "waitlisted"

    await client.delete(f"{register_url(event.id)}/me", headers=participant_a)

    mine = (await client.get("/api/v1/registrations/me", headers=volunteer_b)).json()
    assert mine[0]["status"] == "waitlisted"
    mine = (await client.get("/api/v1/registrations/me", headers=participant_b)).json()
    assert mine[0]["status"] == "registered"


@pytest.mark.asyncio
async def test_event_ledger_for_organizers(client: AsyncClient, students, officer_headers, make_event):
    event = await make_event(max_participants=1, waitlist_enabled=True)
    first, second = await students(2)
    await client.post(register_url(event.id), headers=first)
    await client.post(register_url(event.id), headers=second)

    response = await client.get(register_url(event.id), headers=first)
    assert response.status_code == 403

    response = await client.get(register_url(event.id), headers=officer_headers)
    assert response.status_code == 200
    assert [r["status"] for r in response.json()] == ["registered", "waitlisted"]

    response = await client.get(f"{register_url(event.id)}?status=waitlisted", headers=officer_headers)
    assert len(response.json()) == 1


@pytest.mark.asyncio
async def test_cancelled_event_closes_registration(client: AsyncClient, student_headers, admin_headers, approved_event):
    await client.post(f"/api/v1/events/{approved_event.id}/cancel", headers=admin_headers)

    response = await client.post(register_url(approved_event.id), headers=student_headers)
    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "event_not_approved"


async def _fill_with_waitlist(client: AsyncClient, event_id: int, students) -> tuple[dict, dict]:
    holder, waiter = await students(2)
    assert (await client.post(register_url(event_id), headers=holder)).json()["result"] == "admitted"
    assert (await client.post(register_url(event_id), headers=waiter)).json()["result"] == "waitlisted"
    return holder, waiter


@pytest.mark.asyncio
async def test_no_promotion_after_deadline(client: AsyncClient, db_session, students, make_event):
    """A seat freed after the deadline stays empty; the waiter is not admitted late."""
    event = await make_event(max_participants=1, waitlist_enabled=True)
    holder, waiter = await _fill_with_waitlist(client, event.id, students)

    await db_session.execute(
        update(Event)
        .where(Event.id == event.id)
        .values(registration_deadline=datetime.now(timezone.utc) - timedelta(minutes=1))
    )
    await db_session.commit()

    response = await client.delete(f"{register_url(event.id)}/me", headers=holder)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    mine = (await client.get("/api/v1/registrations/me", headers=waiter)).json()
    assert mine[0]["status"] == "waitlisted"
    assert mine[0]["promoted_at"] is None
    assert await participants(client, event.id, holder) == 0


@pytest.mark.asyncio
async def test_no_promotion_on_cancelled_event(client: AsyncClient, admin_headers, students, make_event):
    event = await make_event(max_participants=1, waitlist_enabled=True)
    holder, waiter = await _fill_with_waitlist(client, event.id, students)

    response = await client.post(f"/api/v1/events/{event.id}/cancel", headers=admin_headers)
    assert response.status_code == 200

    response = await client.delete(f"{register_url(event.id)}/me", headers=holder)
    assert response.status_code == 200

    mine = (await client.get("/api/v1/registrations/me", headers=waiter)).json()
    assert mine[0]["status"] == "waitlisted"
    assert await participants(client, event.id, admin_headers) == 0
