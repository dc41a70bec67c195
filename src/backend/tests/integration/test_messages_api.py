"""
Integration tests for the job message endpoints.
"""

import pytest

from tests.factories import servicem8_job_payload


@pytest.fixture
def owned_job(servicem8):
    return servicem8.add_job(servicem8_job_payload(uuid="J-1", company_uuid="CO-1"))


class TestMessageEndpoints:
    @pytest.mark.asyncio
    async def test_post_then_list_in_order(self, api_client, db_session, owned_job, customer, auth_headers):
        headers = await auth_headers(db_session, customer)

        first = await api_client.post("/api/v1/messages/J-1", json={"content": "M1"}, headers=headers)
        await api_client.post("/api/v1/messages/J-1", json={"content": "<em>M2</em>"}, headers=headers)
        listing = await api_client.get("/api/v1/messages/J-1", headers=headers)

        assert first.status_code == 201
        assert first.json()["data"]["senderType"] == "customer"
        assert listing.status_code == 200
        assert [m["content"] for m in listing.json()["data"]] == ["M1", "M2"]
        assert listing.json()["meta"] == {"count": 2}

    @pytest.mark.asyncio
    async def test_too_long_message(self, api_client, db_session, owned_job, customer, auth_headers):
        headers = await auth_headers(db_session, customer)

        response = await api_client.post("/api/v1/messages/J-1", json={"content": "a" * 1001}, headers=headers)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "content"

    @pytest.mark.asyncio
    async def test_whitespace_message(self, api_client, db_session, owned_job, customer, auth_headers):
        headers = await auth_headers(db_session, customer)

        response = await api_client.post("/api/v1/messages/J-1", json={"content": "    "}, headers=headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_foreign_job(self, api_client, db_session, servicem8, customer, auth_headers):
        servicem8.add_job(servicem8_job_payload(uuid="J-9", company_uuid="CO-2"))
        headers = await auth_headers(db_session, customer)

        response = await api_client.get("/api/v1/messages/J-9", headers=headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_message_field_alias(self, api_client, db_session, owned_job, customer, auth_headers):
        headers = await auth_headers(db_session, customer)

        response = await api_client.post(
            "/api/v1/messages/J-1", json={"message": "Tom & Jerry, 3 < 5"}, headers=headers
        )

        assert response.status_code == 201
        assert response.json()["data"]["content"] == "Tom & Jerry, 3 < 5"

    @pytest.mark.asyncio
    async def test_booking_id_from_listing_works_for_messages(
        self, api_client, db_session, owned_job, customer, auth_headers
    ):
        headers = await auth_headers(db_session, customer)
        listing = await api_client.get("/api/v1/bookings", headers=headers)
        booking_id = listing.json()["data"][0]["id"]

        posted = await api_client.post(f"/api/v1/messages/{booking_id}", json={"content": "Hi"}, headers=headers)
        thread = await api_client.get(f"/api/v1/messages/{booking_id}", headers=headers)

        assert posted.status_code == 201
        assert posted.json()["data"]["jobUuid"] == "J-1"
        assert [m["content"] for m in thread.json()["data"]] == ["Hi"]
