import asyncio

import pytest
from httpx import AsyncClient
from fastapi import status
from sqlalchemy import func, select

from app.models import Attendee
from conftest import attendee_payload, event_payload

pytestmark = pytest.mark.asyncio

async def test_create_event_success(client: AsyncClient, organizer, organizer_headers):
    """Test successful event creation."""
    response = await client.post(
        "/api/v1/events/",
        json=event_payload(title="Launch Party", capacity=25),
        headers=organizer_headers
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["title"] == "Launch Party"
    assert data["capacity"] == 25
    assert data["attendee_count"] == 0
    assert data["seats_left"] == 25
    assert data["organizer_id"] == organizer.id
    assert data["organizer"] == organizer.name

async def test_create_event_ignores_client_counter(client: AsyncClient, organizer_headers):
    response = await client.post(
        "/api/v1/events/",
        json=event_payload(attendee_count=7, organizer_id=99),
        headers=organizer_headers
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["attendee_count"] == 0

async def test_guest_cannot_create_event(client: AsyncClient, guest_headers):
    response = await client.post("/api/v1/events/", json=event_payload(), headers=guest_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN

async def test_anonymous_cannot_create_event(client: AsyncClient):
    response = await client.post("/api/v1/events/", json=event_payload())
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

@pytest.mark.parametrize("overrides", [
    {"capacity": -1},
    {"title": ""},
    {"start_time": "2024-03-20T12:00:00Z", "end_time": "2024-03-20T11:00:00Z"},
    {"start_time": "not a date"},
])
async def test_create_event_validation(client: AsyncClient, organizer_headers, overrides):
    response = await client.post(
        "/api/v1/events/",
        json=event_payload(**overrides),
        headers=organizer_headers
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

async def test_get_event(client: AsyncClient, create_event):
    event = await create_event()

    response = await client.get(f"/api/v1/events/{event['id']}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == event["id"]

async def test_get_missing_event(client: AsyncClient):
    response = await client.get("/api/v1/events/999")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["reason"] == "NotFound"

async def test_list_events(client: AsyncClient, create_event):
    await create_event(title="First")
    await create_event(title="Second")

    response = await client.get("/api/v1/events/")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 2
    assert {e["title"] for e in data["items"]} == {"First", "Second"}

async def test_search_events(client: AsyncClient, create_event):
    await create_event(title="Python Meetup", location="Hall B")
    await create_event(title="Rust Night", description="Ownership deep dive")

    response = await client.get("/api/v1/events/search", params={"q": "PYTHON"})
    assert response.status_code == status.HTTP_200_OK
    assert [e["title"] for e in response.json()["items"]] == ["Python Meetup"]

    response = await client.get("/api/v1/events/search", params={"q": "ownership"})
    assert [e["title"] for e in response.json()["items"]] == ["Rust Night"]

    response = await client.get("/api/v1/events/search", params={"q": "hall b"})
    assert [e["title"] for e in response.json()["items"]] == ["Python Meetup"]

async def test_search_treats_wildcards_literally(client: AsyncClient, create_event):
    await create_event(title="Discount day")

    response = await client.get("/api/v1/events/search", params={"q": "%"})

    assert response.json()["total"] == 0

@pytest.mark.parametrize("query", ["", "   "])
async def test_search_requires_query(client: AsyncClient, query):
    response = await client.get("/api/v1/events/search", params={"q": query})
    assert response.status_code == status.HTTP_400_BAD_REQUEST

async def test_update_event(client: AsyncClient, create_event, organizer_headers):
    event = await create_event()

    response = await client.put(
        f"/api/v1/events/{event['id']}",
        json=event_payload(title="Updated Event", location=None, capacity=20),
        headers=organizer_headers
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["title"] == "Updated Event"
    assert data["location"] is None
    assert data["capacity"] == 20

async def test_update_keeps_attendee_count(client: AsyncClient, create_event, organizer_headers):
    event = await create_event(capacity=5)
    for i in range(2):
        await client.post(
            f"/api/v1/events/{event['id']}/register",
            json=attendee_payload(f"guest{i}@example.com")
        )

    response = await client.put(
        f"/api/v1/events/{event['id']}",
        json=event_payload(title="Renamed", capacity=5),
        headers=organizer_headers
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["attendee_count"] == 2

async def test_update_may_reduce_capacity_below_attendees(client: AsyncClient, create_event, organizer_headers):
    event = await create_event(capacity=5)
    for i in range(3):
        await client.post(
            f"/api/v1/events/{event['id']}/register",
            json=attendee_payload(f"guest{i}@example.com")
        )

    response = await client.put(
        f"/api/v1/events/{event['id']}",
        json=event_payload(capacity=1),
        headers=organizer_headers
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["capacity"] == 1
    assert data["attendee_count"] == 3
    assert data["seats_left"] == 0

    # Nobody is evicted, but the event no longer admits anyone
    response = await client.post(
        f"/api/v1/events/{event['id']}/register",
        json=attendee_payload("late@example.com")
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["reason"] == "EventFull"

async def test_update_by_other_organizer_forbidden(client: AsyncClient, create_event, other_organizer_headers):
    event = await create_event()

    response = await client.put(
        f"/api/v1/events/{event['id']}",
        json=event_payload(title="Hijacked"),
        headers=other_organizer_headers
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert (await client.get(f"/api/v1/events/{event['id']}")).json()["title"] == "Test Event"

async def test_admin_can_update_any_event(client: AsyncClient, create_event, admin_headers):
    event = await create_event()

    response = await client.put(
        f"/api/v1/events/{event['id']}",
        json=event_payload(title="Admin Edit"),
        headers=admin_headers
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["title"] == "Admin Edit"

async def test_update_missing_event(client: AsyncClient, organizer_headers):
    response = await client.put("/api/v1/events/999", json=event_payload(), headers=organizer_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND

async def test_delete_event_removes_attendees(client: AsyncClient, create_event, organizer_headers, db_session):
    event = await create_event()
    await client.post(f"/api/v1/events/{event['id']}/register", json=attendee_payload())

    response = await client.delete(f"/api/v1/events/{event['id']}", headers=organizer_headers)

    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert (await client.get(f"/api/v1/events/{event['id']}")).status_code == status.HTTP_404_NOT_FOUND
    remaining = (await db_session.execute(
        select(func.count(Attendee.id)).where(Attendee.event_id == event["id"])
    )).scalar_one()
    assert remaining == 0

async def test_delete_by_guest_forbidden(client: AsyncClient, create_event, guest_headers):
    event = await create_event()

    response = await client.delete(f"/api/v1/events/{event['id']}", headers=guest_headers)

    assert response.status_code == status.HTTP_403_FORBIDDEN

# --- registration ---

async def test_register_anonymous(client: AsyncClient, create_event):
    event = await create_event(capacity=2)

    response = await client.post(
        f"/api/v1/events/{event['id']}/register",
        json=attendee_payload("Sam@Example.com", dietary_restrictions="vegan")
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["attendee_count"] == 1
    assert data["attendee"]["event_id"] == event["id"]
    assert data["attendee"]["email"] == "Sam@example.com"
    assert data["attendee"]["dietary_restrictions"] == "vegan"
    assert (await client.get(f"/api/v1/events/{event['id']}")).json()["attendee_count"] == 1

async def test_register_authenticated(client: AsyncClient, create_event, guest_headers):
    event = await create_event()

    response = await client.post(
        f"/api/v1/events/{event['id']}/register",
        json=attendee_payload(),
        headers=guest_headers
    )

    assert response.status_code == status.HTTP_201_CREATED

async def test_register_with_invalid_token(client: AsyncClient, create_event):
    event = await create_event()

    response = await client.post(
        f"/api/v1/events/{event['id']}/register",
        json=attendee_payload(),
        headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED

async def test_register_full_event(client: AsyncClient, create_event):
    event = await create_event(capacity=1)
    await client.post(f"/api/v1/events/{event['id']}/register", json=attendee_payload("a@example.com"))

    response = await client.post(
        f"/api/v1/events/{event['id']}/register",
        json=attendee_payload("b@example.com")
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["reason"] == "EventFull"

async def test_register_zero_capacity(client: AsyncClient, create_event):
    event = await create_event(capacity=0)

    response = await client.post(f"/api/v1/events/{event['id']}/register", json=attendee_payload())

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["reason"] == "EventFull"

async def test_register_duplicate(client: AsyncClient, create_event):
    event = await create_event(capacity=10)
    await client.post(f"/api/v1/events/{event['id']}/register", json=attendee_payload("a@example.com"))

    response = await client.post(
        f"/api/v1/events/{event['id']}/register",
        json=attendee_payload("A@EXAMPLE.COM", name="Someone Else")
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["reason"] == "DuplicateRegistration"
    assert (await client.get(f"/api/v1/events/{event['id']}")).json()["attendee_count"] == 1

async def test_register_missing_event(client: AsyncClient):
    response = await client.post("/api/v1/events/999/register", json=attendee_payload())

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["reason"] == "NotFound"

@pytest.mark.parametrize("payload", [
    attendee_payload("not-an-email"),
    attendee_payload(name="   "),
    {"name": "Sam Lee", "phone": "+1 555 0100"},
])
async def test_register_validation(client: AsyncClient, create_event, payload):
    event = await create_event()

    response = await client.post(f"/api/v1/events/{event['id']}/register", json=payload)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

async def test_concurrent_registrations_over_http(client: AsyncClient, create_event):
    event = await create_event(capacity=1)

    responses = await asyncio.gather(*(
        client.post(f"/api/v1/events/{event['id']}/register", json=attendee_payload(f"guest{i}@example.com"))
        for i in range(4)
    ))

    codes = sorted(r.status_code for r in responses)
    assert codes == [201, 409, 409, 409]
    assert (await client.get(f"/api/v1/events/{event['id']}")).json()["attendee_count"] == 1

async def test_list_attendees(client: AsyncClient, create_event):
    event = await create_event()
    for email in ("a@example.com", "b@example.com"):
        await client.post(f"/api/v1/events/{event['id']}/register", json=attendee_payload(email))

    response = await client.get(f"/api/v1/events/{event['id']}/attendees")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 2
    assert [a["email"] for a in data["items"]] == ["a@example.com", "b@example.com"]

async def test_list_attendees_missing_event(client: AsyncClient):
    response = await client.get("/api/v1/events/999/attendees")
    assert response.status_code == status.HTTP_404_NOT_FOUND

# --- withdrawal and stats ---

async def test_withdraw_attendee(client: AsyncClient, create_event, organizer_headers):
    event = await create_event(capacity=3)
    registered = (await client.post(
        f"/api/v1/events/{event['id']}/register", json=attendee_payload()
    )).json()
    attendee_id = registered["attendee"]["id"]

    response = await client.delete(
        f"/api/v1/events/{event['id']}/attendees/{attendee_id}",
        headers=organizer_headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["attendee_count"] == 0

    again = await client.delete(
        f"/api/v1/events/{event['id']}/attendees/{attendee_id}",
        headers=organizer_headers
    )
    assert again.status_code == status.HTTP_404_NOT_FOUND
    assert (await client.get(f"/api/v1/events/{event['id']}")).json()["attendee_count"] == 0
    assert (await client.get(f"/api/v1/events/{event['id']}/attendees")).json()["total"] == 0

async def test_withdraw_requires_ownership(client: AsyncClient, create_event, guest_headers, other_organizer_headers):
    event = await create_event()
    registered = (await client.post(
        f"/api/v1/events/{event['id']}/register", json=attendee_payload()
    )).json()
    url = f"/api/v1/events/{event['id']}/attendees/{registered['attendee']['id']}"

    assert (await client.delete(url)).status_code == status.HTTP_401_UNAUTHORIZED
    assert (await client.delete(url, headers=guest_headers)).status_code == status.HTTP_403_FORBIDDEN
    assert (await client.delete(url, headers=other_organizer_headers)).status_code == status.HTTP_403_FORBIDDEN
    assert (await client.get(f"/api/v1/events/{event['id']}")).json()["attendee_count"] == 1

async def test_event_stats(client: AsyncClient, create_event, organizer_headers, admin_headers, guest_headers):
    event = await create_event(capacity=4)
    await client.post(f"/api/v1/events/{event['id']}/register", json=attendee_payload())

    response = await client.get(f"/api/v1/events/{event['id']}/stats", headers=organizer_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "event_id": event["id"],
        "capacity": 4,
        "attendee_count": 1,
        "roster_size": 1,
        "seats_left": 3
    }
    assert (await client.get(f"/api/v1/events/{event['id']}/stats", headers=admin_headers)).status_code == 200
    assert (await client.get(f"/api/v1/events/{event['id']}/stats", headers=guest_headers)).status_code == 403

async def test_list_my_events(client: AsyncClient, create_event, other_organizer_headers, organizer_headers):
    await create_event(title="Mine")
    await create_event(headers=other_organizer_headers, title="Theirs")

    response = await client.get("/api/v1/events/mine", headers=organizer_headers)

    assert response.status_code == status.HTTP_200_OK
    assert [e["title"] for e in response.json()["items"]] == ["Mine"]
