"""
Tests for admin-curated testimonials.
"""

import pytest
from httpx import AsyncClient


def build_testimonial(performer_id: int, **overrides) -> dict:
    payload = {
        "performer_id": performer_id,
        "author_name": "Sarah & Tom",
        "quote": "The best entertainment we could have asked for.",
        "event_type": "WEDDING",
        "is_featured": False,
    }
    payload.update(overrides)
    return payload


async def add_testimonial(client: AsyncClient, headers: dict, performer_id: int, **overrides) -> dict:
    response = await client.post(
        "/api/v1/testimonials", json=build_testimonial(performer_id, **overrides), headers=headers
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_testimonial(client: AsyncClient, performer, admin_headers):
    data = await add_testimonial(client, admin_headers, performer.id, is_featured=True)
    assert data["performer_id"] == performer.id
    assert data["is_featured"] is True
    assert data["author_name"] == "Sarah & Tom"


@pytest.mark.asyncio
async def test_create_testimonial_admin_only(client: AsyncClient, performer, performer_headers):
    response = await client.post(
        "/api/v1/testimonials", json=build_testimonial(performer.id), headers=performer_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_testimonial_unknown_performer(client: AsyncClient, admin_headers):
    response = await client.post("/api/v1/testimonials", json=build_testimonial(9999), headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "PERFORMER_NOT_FOUND"


@pytest.mark.asyncio
async def test_single_featured_testimonial(client: AsyncClient, performer, admin_headers):
    first = await add_testimonial(client, admin_headers, performer.id, is_featured=True)
    second = await add_testimonial(
        client, admin_headers, performer.id, is_featured=True, event_type="CORPORATE"
    )

    response = await client.get(f"/api/v1/testimonials/{performer.id}")
    assert response.status_code == 200
    data = response.json()
    featured = {t["id"]: t["is_featured"] for t in data["testimonials"]}
    assert featured == {first["id"]: False, second["id"]: True}
    # Featured first
    assert data["testimonials"][0]["id"] == second["id"]
    assert data["statistics"] == {
        "total": 2,
        "featured": 1,
        "by_event_type": {"WEDDING": 1, "CORPORATE": 1},
    }


@pytest.mark.asyncio
async def test_toggle_featured(client: AsyncClient, performer, admin_headers):
    await add_testimonial(client, admin_headers, performer.id, is_featured=True)
    second = await add_testimonial(client, admin_headers, performer.id)

    response = await client.patch(f"/api/v1/testimonials/{second['id']}/featured", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_featured"] is True

    listing = await client.get(f"/api/v1/testimonials/{performer.id}", params={"is_featured": True})
    assert [t["id"] for t in listing.json()["testimonials"]] == [second["id"]]

    # Toggling the featured one clears it
    response = await client.patch(f"/api/v1/testimonials/{second['id']}/featured", headers=admin_headers)
    assert response.json()["is_featured"] is False
    listing = await client.get(f"/api/v1/testimonials/{performer.id}", params={"is_featured": True})
    assert listing.json()["testimonials"] == []


@pytest.mark.asyncio
async def test_toggle_unknown_testimonial(client: AsyncClient, admin_headers):
    response = await client.patch("/api/v1/testimonials/9999/featured", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "TESTIMONIAL_NOT_FOUND"


@pytest.mark.asyncio
async def test_list_testimonials_unknown_performer(client: AsyncClient):
    response = await client.get("/api/v1/testimonials/9999")
    assert response.status_code == 404
