"""
ServiceM8 Client - typed HTTP client for the ServiceM8 REST API (api_1.0).

Key principles:
- One pooled httpx.AsyncClient per process, created in the lifespan
- Fixed per-call timeout, no retries
- "Not found" on a get-by-id is an absent result, not an error
- Every other failure is translated into the ServiceM8Error family
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from api.schemas.servicem8 import (
    ServiceM8Attachment,
    ServiceM8Company,
    ServiceM8Job,
)
from core.config import ServiceM8Settings
from core.exceptions import MalformedUpstreamResponseError
from core.metrics import servicem8_request_duration, servicem8_requests_total

logger = logging.getLogger(__name__)


class ServiceM8Error(Exception):
    """A ServiceM8 call failed."""

    def __init__(self, message: str, *, operation: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class ServiceM8TimeoutError(ServiceM8Error):
    """The call exceeded the configured timeout."""


class ServiceM8ResponseError(ServiceM8Error):
    """ServiceM8 answered with an error status or an unreadable body."""


def extract_record_uuid(headers: httpx.Headers) -> Optional[str]:
    """
    Read the UUID of a newly created record from response headers.

    ServiceM8 sends ``x-record-uuid``; older endpoints only send a
    ``location`` URL whose last path segment is ``<uuid>.json``.
    """
    record_uuid = headers.get("x-record-uuid") or headers.get("location")
    if not record_uuid:
        return None
    if "/" in record_uuid:
        record_uuid = record_uuid.rstrip("/").split("/")[-1]
    if record_uuid.endswith(".json"):
        record_uuid = record_uuid[: -len(".json")]
    return record_uuid.strip() or None


class ServiceM8Client:
    """Async client for the ServiceM8 job, company and attachment endpoints."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.servicem8.com/api_1.0",
        timeout_seconds: float = 10.0,
        max_connections: int = 20,
        max_keepalive_connections: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers={
                "X-API-Key": api_key,
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_keepalive_connections,
            ),
            event_hooks={
                "request": [self._log_request],
                "response": [self._log_response],
            },
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        config: ServiceM8Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ServiceM8Client":
        if not config.api_key:
            logger.warning("SERVICEM8_API_KEY is not set; ServiceM8 calls will be rejected")
        return cls(
            config.api_key,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            max_connections=config.max_connections,
            max_keepalive_connections=config.max_keepalive_connections,
            transport=transport,
        )

    async def close(self) -> None:
        """Close pooled connections (call during shutdown)."""
        if not self._client.is_closed:
            await self._client.aclose()

    # ==================== Transport ====================

    @staticmethod
    async def _log_request(request: httpx.Request) -> None:
        logger.debug(f"ServiceM8 request | {request.method} {request.url.path}")

    @staticmethod
    async def _log_response(response: httpx.Response) -> None:
        request = response.request
        if response.is_error:
            logger.error(
                f"ServiceM8 error | {request.method} {request.url.path} | "
                f"Status: {response.status_code}"
            )
        else:
            logger.debug(
                f"ServiceM8 success | {request.method} {request.url.path} | "
                f"Status: {response.status_code}"
            )

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> Optional[httpx.Response]:
        """
        Issue one call and translate failures.

        Returns:
            The response, or None when ``allow_not_found`` and ServiceM8
            answered 404
        """
        start = time.perf_counter()
        status = "error"
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            status = "timeout"
            raise ServiceM8TimeoutError(
                f"ServiceM8 {operation} timed out", operation=operation
            ) from e
        except httpx.HTTPError as e:
            status = "transport_error"
            raise ServiceM8Error(
                f"ServiceM8 {operation} failed: {e}", operation=operation
            ) from e
        else:
            status = str(response.status_code)
        finally:
            servicem8_request_duration.labels(operation=operation).observe(time.perf_counter() - start)
            servicem8_requests_total.labels(operation=operation, status=status).inc()

        if allow_not_found and response.status_code == 404:
            return None
        if response.is_error:
            raise ServiceM8ResponseError(
                f"ServiceM8 {operation} returned HTTP {response.status_code}",
                operation=operation,
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ServiceM8ResponseError(
                f"ServiceM8 {operation} returned a non-JSON body",
                operation=operation,
                status_code=response.status_code,
            ) from e

    def _json_list(self, response: httpx.Response, operation: str) -> List[Dict[str, Any]]:
        data = self._json(response, operation)
        if not isinstance(data, list):
            raise ServiceM8ResponseError(
                f"ServiceM8 {operation} did not return a list", operation=operation
            )
        return data

    # ==================== Jobs ====================

    async def get_all_jobs(self) -> List[ServiceM8Job]:
        """Fetch the full job collection."""
        response = await self._request("list_jobs", "GET", "/job.json")
        jobs = [ServiceM8Job.from_payload(item) for item in self._json_list(response, "list_jobs")]
        logger.info(f"Fetched jobs from ServiceM8 | Count: {len(jobs)}")
        return jobs

    async def get_job(self, job_uuid: str) -> Optional[ServiceM8Job]:
        """Fetch one job, or None if ServiceM8 does not know it."""
        response = await self._request(
            "get_job", "GET", f"/job/{job_uuid}.json", allow_not_found=True
        )
        if response is None:
            logger.debug(f"Job not found in ServiceM8 | UUID: {job_uuid}")
            return None
        return ServiceM8Job.from_payload(self._json(response, "get_job"))

    async def create_job(self, payload: Dict[str, Any]) -> ServiceM8Job:
        """
        Create a job and return the stored record.

        ``active`` is forced to 1 and ``status`` defaults to Quote.

        Raises:
            MalformedUpstreamResponseError: no record UUID in the response
            ServiceM8Error: the call failed
        """
        body = {key: value for key, value in payload.items() if value is not None}
        body["status"] = body.get("status") or "Quote"
        body["active"] = 1

        response = await self._request("create_job", "POST", "/job.json", json=body)
        job_uuid = extract_record_uuid(response.headers)
        if not job_uuid:
            logger.error("ServiceM8 create job response missing record uuid")
            raise MalformedUpstreamResponseError()

        logger.info(f"Created job in ServiceM8 | UUID: {job_uuid}")
        created = await self.get_job(job_uuid)
        if created is None:
            # Not yet readable; fall back to what was sent
            return ServiceM8Job.from_payload({**body, "uuid": job_uuid})
        return created

    async def update_job(self, job_uuid: str, changes: Dict[str, Any]) -> ServiceM8Job:
        """
        Update a job.

        ServiceM8 expects a full record on update, so the current record is
        read and the supplied fields are merged over it. ``active`` is kept
        unless explicitly changed.
        """
        existing = await self.get_job(job_uuid)
        if existing is None:
            raise ServiceM8ResponseError(
                f"Job {job_uuid} not found in ServiceM8",
                operation="update_job",
                status_code=404,
            )

        merged = {**existing.raw, **changes, "uuid": job_uuid}
        if "active" not in changes:
            merged["active"] = existing.active

        await self._request("update_job", "POST", f"/job/{job_uuid}.json", json=merged)
        logger.info(f"Updated job in ServiceM8 | UUID: {job_uuid} | Fields: {sorted(changes)}")

        updated = await self.get_job(job_uuid)
        return updated or ServiceM8Job.from_payload(merged)

    # ==================== Companies ====================

    async def get_company(self, company_uuid: str) -> Optional[ServiceM8Company]:
        response = await self._request(
            "get_company", "GET", f"/company/{company_uuid}.json", allow_not_found=True
        )
        if response is None:
            return None
        return ServiceM8Company.from_payload(self._json(response, "get_company"))

    async def create_company(
        self,
        *,
        name: str,
        email: Optional[str] = None,
        mobile: Optional[str] = None,
        address: Optional[str] = None,
    ) -> ServiceM8Company:
        """Create a company (ServiceM8 client) record and return it."""
        body = {
            "name": name,
            "email": email,
            "mobile": mobile,
            "address": address,
            "active": 1,
        }
        body = {key: value for key, value in body.items() if value is not None}

        response = await self._request("create_company", "POST", "/company.json", json=body)
        company_uuid = extract_record_uuid(response.headers)
        if not company_uuid:
            logger.error("ServiceM8 create company response missing record uuid")
            raise MalformedUpstreamResponseError()

        logger.info(f"Created company in ServiceM8 | UUID: {company_uuid}")
        created = await self.get_company(company_uuid)
        return created or ServiceM8Company.from_payload({**body, "uuid": company_uuid})

    # ==================== Attachments ====================

    async def get_job_attachments(self, job_uuid: str) -> List[ServiceM8Attachment]:
        response = await self._request(
            "list_attachments",
            "GET",
            "/attachment.json",
            params={"related_object": "job", "related_object_uuid": job_uuid},
        )
        return [
            ServiceM8Attachment.from_payload(item)
            for item in self._json_list(response, "list_attachments")
        ]

    # ==================== Health ====================

    async def test_connection(self) -> bool:
        """Cheap authenticated probe used by the health endpoint."""
        try:
            await self._request("health", "GET", "/company.json")
            return True
        except ServiceM8Error as e:
            logger.warning(f"ServiceM8 connection check failed: {e}")
            return False
