"""
Tests for reviews of completed bookings and the performer rating they feed.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from app.models.booking import BookingStatus
from conftest import auth_headers_for, make_booking

REVIEW = {
    "rating_overall": 5,
    "rating_quality": 4,
    "rating_communication": 3,
    "written_review": "Dave had our guests spellbound all evening.",
    "event_type": "WEDDING",
}


@pytest_asyncio.fixture
async def completed_booking(db_session, accepted_enquiry):
    return await make_booking(
        db_session, accepted_enquiry, deposit_paid=True, balance_paid=True, status=BookingStatus.COMPLETED
    )


@pytest.mark.asyncio
async def test_create_review_updates_rating(
    client: AsyncClient, db_session, performer, completed_booking, client_headers
):
    response = await client.post(f"/api/v1/reviews/{completed_booking.id}", json=REVIEW, headers=client_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["booking_id"] == completed_booking.id
    assert data["performer_id"] == performer.id
    assert data["is_verified"] is True
    assert data["photos"] == []

    await db_session.refresh(performer)
    assert performer.total_reviews == 1
    assert float(performer.average_rating) == 4.0


@pytest.mark.asyncio
async def test_review_requires_completed_booking(client: AsyncClient, booking, client_headers):
    response = await client.post(f"/api/v1/reviews/{booking.id}", json=REVIEW, headers=client_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "BOOKING_NOT_COMPLETED"


@pytest.mark.asyncio
async def test_one_review_per_booking(client: AsyncClient, completed_booking, client_headers):
    url = f"/api/v1/reviews/{completed_booking.id}"
    assert (await client.post(url, json=REVIEW, headers=client_headers)).status_code == 201

    response = await client.post(url, json=REVIEW, headers=client_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "REVIEW_EXISTS"


@pytest.mark.asyncio
async def test_review_by_other_client(client: AsyncClient, completed_booking, other_client):
    response = await client.post(
        f"/api/v1/reviews/{completed_booking.id}", json=REVIEW, headers=auth_headers_for(other_client)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_performer_cannot_review(client: AsyncClient, completed_booking, performer_headers):
    response = await client.post(f"/api/v1/reviews/{completed_booking.id}", json=REVIEW, headers=performer_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"


@pytest.mark.asyncio
@pytest.mark.parametrize("field,value", [
    ("rating_overall", 6),
    ("rating_quality", 0),
    ("written_review", "Great"),
    ("event_type", "FUNERAL"),
])
async def test_review_validation(client: AsyncClient, completed_booking, client_headers, field, value):
    response = await client.post(
        f"/api/v1/reviews/{completed_booking.id}", json={**REVIEW, field: value}, headers=client_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_reviews_with_statistics(client: AsyncClient, performer, completed_booking, client_headers):
    await client.post(f"/api/v1/reviews/{completed_booking.id}", json=REVIEW, headers=client_headers)

    response = await client.get(f"/api/v1/reviews/{performer.id}")
    assert response.status_code == 200
    data = response.json()
    [review] = data["reviews"]
    assert review["client"]["first_name"] == "John"

    stats = data["statistics"]
    assert stats["total_reviews"] == 1
    assert stats["average_overall"] == 5.0
    assert stats["average_quality"] == 4.0
    assert stats["rating_distribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 1}


@pytest.mark.asyncio
async def test_list_reviews_filters(client: AsyncClient, performer, completed_booking, client_headers):
    await client.post(f"/api/v1/reviews/{completed_booking.id}", json=REVIEW, headers=client_headers)

    response = await client.get(f"/api/v1/reviews/{performer.id}", params={"event_type": "CORPORATE"})
    data = response.json()
    assert data["reviews"] == []
    assert data["statistics"]["total_reviews"] == 0
    assert data["statistics"]["average_overall"] == 0.0


@pytest.mark.asyncio
async def test_list_reviews_unknown_performer(client: AsyncClient):
    response = await client.get("/api/v1/reviews/9999")
    assert response.status_code == 404
    assert response.json()["code"] == "PERFORMER_NOT_FOUND"
