"""
Integration tests for the job write endpoints.
"""

import pytest

from tests.factories import servicem8_job_payload


class TestJobEndpoints:
    @pytest.mark.asyncio
    async def test_create_update_delete(self, api_client, db_session, servicem8, customer, auth_headers):
        headers = await auth_headers(db_session, customer)

        created = await api_client.post(
            "/api/v1/jobs",
            json={"jobAddress": "1 Main St", "jobDescription": "Service the air conditioner"},
            headers=headers,
        )
        assert created.status_code == 201
        job_uuid = created.json()["data"]["uuid"]
        assert created.json()["data"]["status"] == "Quote"
        assert servicem8.jobs[job_uuid]["company_uuid"] == "CO-1"

        updated = await api_client.put(
            f"/api/v1/jobs/{job_uuid}",
            json={"jobDescription": "Service both air conditioners"},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["description"] == "Service both air conditioners"

        deleted = await api_client.delete(f"/api/v1/jobs/{job_uuid}", headers=headers)
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Job deleted"
        assert servicem8.jobs[job_uuid]["active"] == 0

    @pytest.mark.asyncio
    async def test_missing_address_is_rejected(self, api_client, db_session, servicem8, customer, auth_headers):
        headers = await auth_headers(db_session, customer)

        response = await api_client.post(
            "/api/v1/jobs", json={"jobDescription": "No address"}, headers=headers
        )

        assert response.status_code == 400
        assert servicem8.jobs == {}

    @pytest.mark.asyncio
    async def test_cannot_touch_another_customers_job(self, api_client, db_session, servicem8, customer, auth_headers):
        servicem8.add_job(servicem8_job_payload(uuid="J-9", company_uuid="CO-2"))
        headers = await auth_headers(db_session, customer)

        update = await api_client.put("/api/v1/jobs/J-9", json={"status": "Complete"}, headers=headers)
        delete = await api_client.delete("/api/v1/jobs/J-9", headers=headers)

        assert update.status_code == 403
        assert delete.status_code == 403
        assert servicem8.jobs["J-9"]["active"] == 1

    @pytest.mark.asyncio
    async def test_servicem8_rejection_is_an_upstream_error(
        self, api_client, db_session, servicem8, customer, auth_headers
    ):
        servicem8.fail("POST", "/job.json", 400)
        headers = await auth_headers(db_session, customer)

        response = await api_client.post(
            "/api/v1/jobs",
            json={"jobAddress": "1 Main St", "jobDescription": "Install a ceiling fan"},
            headers=headers,
        )

        assert response.status_code == 500
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_booking_id_from_listing_works_for_writes(
        self, api_client, db_session, servicem8, customer, auth_headers
    ):
        servicem8.add_job(servicem8_job_payload(uuid="J-1", company_uuid="CO-1"))
        headers = await auth_headers(db_session, customer)
        listing = await api_client.get("/api/v1/bookings", headers=headers)
        booking_id = listing.json()["data"][0]["id"]

        updated = await api_client.put(f"/api/v1/jobs/{booking_id}", json={"status": "Scheduled"}, headers=headers)
        deleted = await api_client.delete(f"/api/v1/jobs/{booking_id}", headers=headers)

        assert updated.status_code == 200
        assert updated.json()["data"]["uuid"] == "J-1"
        assert deleted.status_code == 200
        assert servicem8.jobs["J-1"]["active"] == 0
