"""
Tests for event endpoints: proposing events and the approval workflow.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient

from campus_events.models.event import EventStatus


def event_payload(club_id: int, **overrides) -> dict:
    now = datetime.now(timezone.utc)
    payload = {
        "name": "Line Follower Workshop",
        "type": "workshop",
        "description": "Build a line following robot",
        "venue": "Lab 3",
        "start_time": (now + timedelta(days=30)).isoformat(),
        "registration_deadline": (now + timedelta(days=28)).isoformat(),
        "max_participants": 40,
        "club_id": club_id,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_officer_creates_draft_event(client: AsyncClient, officer_headers, club):
    """Club officers can propose events; they start as drafts."""
    response = await client.post("/api/v1/events/", json=event_payload(club.id), headers=officer_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Line Follower Workshop"
    assert data["status"] == "draft"
    assert data["current_participants"] == 0
    assert data["waitlist_enabled"] is False


@pytest.mark.asyncio
async def test_create_event_with_volunteer_quota(client: AsyncClient, officer_headers, club):
    payload = event_payload(club.id, quotas=[{"category": "volunteer", "max_slots": 5}])
    response = await client.post("/api/v1/events/", json=payload, headers=officer_headers)
    assert response.status_code == 201
    assert response.json()["quotas"] == [{"category": "volunteer", "max_slots": 5, "filled": 0}]


@pytest.mark.asyncio
async def test_quota_larger_than_capacity_rejected(client: AsyncClient, officer_headers, club):
    payload = event_payload(club.id, max_participants=3, quotas=[{"category": "volunteer", "max_slots": 5}])
    response = await client.post("/api/v1/events/", json=payload, headers=officer_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_non_officer_cannot_create_event(client: AsyncClient, student_headers, club):
    response = await client.post("/api/v1/events/", json=event_payload(club.id), headers=student_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_event_unauthenticated(client: AsyncClient, club):
    """Unauthenticated request returns 401."""
    response = await client.post("/api/v1/events/", json=event_payload(club.id))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_event_past_date(client: AsyncClient, officer_headers, club):
    """Event with past date returns 400."""
    past = datetime.now(timezone.utc) - timedelta(days=1)
    payload = event_payload(
        club.id,
        start_time=past.isoformat(),
        registration_deadline=(past - timedelta(days=1)).isoformat(),
    )
    response = await client.post("/api/v1/events/", json=payload, headers=officer_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_deadline_after_start_rejected(client: AsyncClient, officer_headers, club):
    now = datetime.now(timezone.utc)
    payload = event_payload(
        club.id,
        start_time=(now + timedelta(days=2)).isoformat(),
        registration_deadline=(now + timedelta(days=3)).isoformat(),
    )
    response = await client.post("/api/v1/events/", json=payload, headers=officer_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_naive_datetime_rejected(client: AsyncClient, officer_headers, club):
    naive = (datetime.now() + timedelta(days=3)).replace(microsecond=0).isoformat()
    payload = event_payload(club.id, start_time=naive, registration_deadline=None)
    response = await client.post("/api/v1/events/", json=payload, headers=officer_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_draft_hidden_from_public(client: AsyncClient, officer_headers, student_headers, make_event):
    event = await make_event(status=EventStatus.DRAFT)

    assert (await client.get(f"/api/v1/events/{event.id}")).status_code == 404
    assert (await client.get(f"/api/v1/events/{event.id}", headers=student_headers)).status_code == 404
    assert (await client.get(f"/api/v1/events/{event.id}", headers=officer_headers)).status_code == 200


@pytest.mark.asyncio
async def test_get_nonexistent_event(client: AsyncClient):
    """Non-existent event returns 404."""
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_full_approval_workflow(client: AsyncClient, officer_headers, admin_headers, club):
    """draft -> pending_approval -> approved, then listed publicly."""
    created = await client.post("/api/v1/events/", json=event_payload(club.id), headers=officer_headers)
    event_id = created.json()["id"]

    response = await client.post(f"/api/v1/events/{event_id}/submit", headers=officer_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "pending_approval"

    pending = await client.get("/api/v1/admin/events/pending", headers=admin_headers)
    assert [e["id"] for e in pending.json()] == [event_id]

    response = await client.post(
        f"/api/v1/events/{event_id}/approve",
        json={"notes": "Looks good"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "approved"
    assert data["review_notes"] == "Looks good"
    assert data["approval_override"] is False

    listing = await client.get("/api/v1/events/")
    assert listing.status_code == 200
    assert [e["id"] for e in listing.json()["events"]] == [event_id]

    history = await client.get(f"/api/v1/events/{event_id}/history", headers=officer_headers)
    assert [(h["from_status"], h["to_status"]) for h in history.json()] == [
        ("draft", "pending_approval"),
        ("pending_approval", "approved"),
    ]


@pytest.mark.asyncio
async def test_only_admin_can_approve(client: AsyncClient, officer_headers, make_event):
    event = await make_event(status=EventStatus.PENDING_APPROVAL)
    response = await client.post(f"/api/v1/events/{event.id}/approve", headers=officer_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_approving_draft_needs_override(client: AsyncClient, admin_headers, make_event):
    event = await make_event(status=EventStatus.DRAFT)

    response = await client.post(f"/api/v1/events/{event.id}/approve", headers=admin_headers)
    assert response.status_code == 409

    response = await client.post(
        f"/api/v1/events/{event.id}/approve",
        json={"override": True},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["approval_override"] is True

    history = await client.get(f"/api/v1/events/{event.id}/history", headers=admin_headers)
    assert history.json()[-1]["override"] is True


@pytest.mark.asyncio
async def test_approve_twice_conflicts(client: AsyncClient, admin_headers, make_event):
    event = await make_event(status=EventStatus.PENDING_APPROVAL)
    first = await client.post(f"/api/v1/events/{event.id}/approve", headers=admin_headers)
    second = await client.post(f"/api/v1/events/{event.id}/approve", headers=admin_headers)
    assert first.status_code == 200
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_reject_pending_event(client: AsyncClient, admin_headers, make_event):
    event = await make_event(status=EventStatus.PENDING_APPROVAL)
    response = await client.post(
        f"/api/v1/events/{event.id}/reject",
        json={"notes": "Venue unavailable"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["review_notes"] == "Venue unavailable"

    # Rejected is terminal
    response = await client.post(f"/api/v1/events/{event.id}/approve", headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancel_approved_event(client: AsyncClient, admin_headers, approved_event):
    response = await client.post(
        f"/api/v1/events/{approved_event.id}/cancel",
        json={"notes": "Speaker unavailable"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    listing = await client.get("/api/v1/events/")
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_past_approved_event_completes_on_read(client: AsyncClient, make_event):
    event = await make_event(start_in=timedelta(hours=-1), deadline_in=None)
    response = await client.get(f"/api/v1/events/{event.id}")
    assert response.status_code == 200
    assert response.json()["status"] == "completed"


@pytest.mark.asyncio
async def test_completion_sweep(client: AsyncClient, admin_headers, student_headers, make_event):
    await make_event(start_in=timedelta(hours=-2), deadline_in=None, name="Past")
    await make_event(name="Future")

    response = await client.post("/api/v1/admin/events/complete-past", headers=student_headers)
    assert response.status_code == 403

    response = await client.post("/api/v1/admin/events/complete-past", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"completed": 1}

    response = await client.post("/api/v1/admin/events/complete-past", headers=admin_headers)
    assert response.json() == {"completed": 0}


@pytest.mark.asyncio
async def test_list_events_pagination(client: AsyncClient, make_event):
    """Pagination returns correct page metadata."""
    for i in range(5):
        await make_event(name=f"Event {i}", start_in=timedelta(days=10 + i), deadline_in=None)
    await make_event(status=EventStatus.PENDING_APPROVAL, name="Not yet approved")

    response = await client.get("/api/v1/events/?page=1&page_size=2")
    assert response.status_code == 200
    data = response.json()
    assert len(data["events"]) == 2
    assert data["total"] == 5
    assert data["page"] == 1
    assert data["events"][0]["name"] == "Event 0"
