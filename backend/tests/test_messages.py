"""
Tests for enquiry message threads.
"""

import pytest
from httpx import AsyncClient

from conftest import auth_headers_for


async def open_thread(client: AsyncClient, enquiry_id: int, headers: dict):
    return await client.post(f"/api/v1/messages/threads/{enquiry_id}", headers=headers)


async def send(client: AsyncClient, thread_id: int, headers: dict, content: str = "Is the 7pm start still ok?"):
    return await client.post(
        f"/api/v1/messages/threads/{thread_id}/messages", json={"content": content}, headers=headers
    )


@pytest.mark.asyncio
async def test_open_thread_creates_once(client: AsyncClient, pending_enquiry, client_headers, performer_headers):
    response = await open_thread(client, pending_enquiry.id, client_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["thread"]["enquiry_id"] == pending_enquiry.id
    assert data["thread"]["booking_id"] is None
    assert data["messages"] == []

    again = await open_thread(client, pending_enquiry.id, performer_headers)
    assert again.status_code == 200
    assert again.json()["thread"]["id"] == data["thread"]["id"]


@pytest.mark.asyncio
async def test_thread_links_existing_booking(client: AsyncClient, booking, client_headers):
    response = await open_thread(client, booking.enquiry_id, client_headers)
    assert response.status_code == 201
    assert response.json()["thread"]["booking_id"] == booking.id


@pytest.mark.asyncio
async def test_open_thread_stranger_forbidden(client: AsyncClient, pending_enquiry, other_client):
    response = await open_thread(client, pending_enquiry.id, auth_headers_for(other_client))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_open_thread_unknown_enquiry(client: AsyncClient, client_headers):
    response = await open_thread(client, 9999, client_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_send_and_read_thread(client: AsyncClient, pending_enquiry, client_headers, performer_headers):
    thread_id = (await open_thread(client, pending_enquiry.id, client_headers)).json()["thread"]["id"]

    first = await send(client, thread_id, client_headers, "Hello, are you free?")
    assert first.status_code == 201
    assert first.json()["is_read"] is False
    await send(client, thread_id, performer_headers, "Yes, I am.")

    response = await client.get(f"/api/v1/messages/threads/{thread_id}", headers=client_headers)
    assert response.status_code == 200
    assert [m["content"] for m in response.json()["messages"]] == ["Hello, are you free?", "Yes, I am."]


@pytest.mark.asyncio
async def test_send_empty_message(client: AsyncClient, pending_enquiry, client_headers):
    thread_id = (await open_thread(client, pending_enquiry.id, client_headers)).json()["thread"]["id"]
    response = await send(client, thread_id, client_headers, "")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_send_to_foreign_thread(client: AsyncClient, pending_enquiry, client_headers, other_client):
    thread_id = (await open_thread(client, pending_enquiry.id, client_headers)).json()["thread"]["id"]
    response = await send(client, thread_id, auth_headers_for(other_client))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_thread(client: AsyncClient, client_headers):
    response = await client.get("/api/v1/messages/threads/9999", headers=client_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "THREAD_NOT_FOUND"


@pytest.mark.asyncio
async def test_list_threads_unread_count(client: AsyncClient, pending_enquiry, client_headers, performer_headers):
    thread_id = (await open_thread(client, pending_enquiry.id, client_headers)).json()["thread"]["id"]
    await send(client, thread_id, client_headers, "First")
    await send(client, thread_id, client_headers, "Second")

    response = await client.get("/api/v1/messages/threads", headers=performer_headers)
    assert response.status_code == 200
    [summary] = response.json()["threads"]
    assert summary["unread_count"] == 2
    assert summary["event_type"] == "Wedding"
    assert summary["last_message"]["content"] == "Second"

    # The sender has nothing unread
    [own] = (await client.get("/api/v1/messages/threads", headers=client_headers)).json()["threads"]
    assert own["unread_count"] == 0

    archived = await client.get("/api/v1/messages/threads", params={"is_archived": True}, headers=client_headers)
    assert archived.json()["threads"] == []


@pytest.mark.asyncio
async def test_mark_read(client: AsyncClient, pending_enquiry, client_headers, performer_headers):
    thread_id = (await open_thread(client, pending_enquiry.id, client_headers)).json()["thread"]["id"]
    message_id = (await send(client, thread_id, client_headers)).json()["id"]

    response = await client.patch(f"/api/v1/messages/messages/{message_id}/read", headers=performer_headers)
    assert response.status_code == 200
    assert response.json()["is_read"] is True

    [summary] = (await client.get("/api/v1/messages/threads", headers=performer_headers)).json()["threads"]
    assert summary["unread_count"] == 0


@pytest.mark.asyncio
async def test_mark_own_message_read(client: AsyncClient, pending_enquiry, client_headers):
    thread_id = (await open_thread(client, pending_enquiry.id, client_headers)).json()["thread"]["id"]
    message_id = (await send(client, thread_id, client_headers)).json()["id"]

    response = await client.patch(f"/api/v1/messages/messages/{message_id}/read", headers=client_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "OWN_MESSAGE"


@pytest.mark.asyncio
async def test_mark_read_outsider(client: AsyncClient, pending_enquiry, client_headers, other_client):
    thread_id = (await open_thread(client, pending_enquiry.id, client_headers)).json()["thread"]["id"]
    message_id = (await send(client, thread_id, client_headers)).json()["id"]

    response = await client.patch(
        f"/api/v1/messages/messages/{message_id}/read", headers=auth_headers_for(other_client)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_mark_unknown_message(client: AsyncClient, client_user, client_headers):
    response = await client.patch("/api/v1/messages/messages/9999/read", headers=client_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "MESSAGE_NOT_FOUND"
