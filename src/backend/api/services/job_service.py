"""
Job service: two-phase writes against ServiceM8 and the local cache.

ServiceM8 is written first and is the source of truth. The local mirror
is written second on a best-effort basis: when it fails the operation
still succeeds, and the inconsistency is logged and counted.
"""

import logging
from typing import Any, Dict
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.booking import BookingRead
from api.schemas.job import JobCreate, JobUpdate
from api.schemas.servicem8 import format_servicem8_datetime
from api.services.message_service import MessageService
from api.services.ownership_guard import OwnershipGuard
from core.exceptions import (
    JobCreationError,
    JobDeletionError,
    JobUpdateError,
    MalformedUpstreamResponseError,
    ValidationError,
)
from core.logging_config import SyncLogger
from core.metrics import partial_write_failures
from db.enums import JobStatus
from db.models import Customer
from repositories.attachment_repository import AttachmentRepository
from repositories.customer_repository import CustomerRepository
from repositories.job_cache_repository import JobCacheRepository
from services.servicem8_client import ServiceM8Client, ServiceM8Error

logger = logging.getLogger(__name__)

# Portal field name -> ServiceM8 job field
SERVICEM8_FIELD_MAP = {
    "job_address": "job_address",
    "job_description": "job_description",
    "status": "status",
    "scheduled_date": "scheduled_date",
    "contact_name": "job_contact_name",
    "contact_email": "job_contact_email",
    "contact_phone": "job_contact_mobile",
}


def build_servicem8_payload(data: JobCreate | JobUpdate) -> Dict[str, Any]:
    """
    Translate a job schema into ServiceM8 fields.

    Only fields the caller explicitly supplied with a value are included,
    so an update never overwrites what was left out.
    """
    payload: Dict[str, Any] = {}
    for field, value in data.model_dump(exclude_unset=True).items():
        target = SERVICEM8_FIELD_MAP.get(field)
        if target is None or value is None:
            continue
        if field == "scheduled_date":
            value = format_servicem8_datetime(value)
        elif isinstance(value, JobStatus):
            value = value.value
        payload[target] = value
    return payload


class JobService:
    """Create, update and cancel ServiceM8 jobs on behalf of a customer."""

    def __init__(
        self,
        client: ServiceM8Client,
        guard: OwnershipGuard,
        message_service: MessageService,
    ):
        self.client = client
        self.guard = guard
        self.message_service = message_service
        self.sync_logger = SyncLogger("jobs")

    async def _record_notice(self, db: AsyncSession, job_uuid: str, customer_id: UUID, text: str) -> None:
        """Post a system message on the job thread; never fails the write."""
        try:
            await self.message_service.create_system_message(db, job_uuid, customer_id, text)
        except Exception as e:
            await db.rollback()
            logger.warning(f"Could not record '{text}' notice on job {job_uuid}: {e}")

    async def ensure_company(self, db: AsyncSession, customer: Customer) -> str:
        """
        Return the customer's ServiceM8 company UUID, creating the company
        first if the customer does not have one yet.

        Raises:
            JobCreationError: the company could not be created or linked
        """
        if customer.servicem8_company_uuid:
            return customer.servicem8_company_uuid

        try:
            company = await self.client.create_company(
                name=customer.display_name,
                email=customer.email,
                mobile=customer.phone,
                address=customer.address,
            )
        except (ServiceM8Error, MalformedUpstreamResponseError) as e:
            logger.error(f"Failed to create ServiceM8 company for customer {customer.id}: {e}")
            raise JobCreationError("Failed to create customer account in ServiceM8") from e

        try:
            await CustomerRepository.set_company_uuid(db, customer, company.uuid)
        except Exception as e:
            logger.error(f"Failed to link company {company.uuid} to customer {customer.id}: {e}")
            raise JobCreationError() from e

        logger.info(f"Linked customer {customer.id} to ServiceM8 company {company.uuid}")
        return company.uuid

    async def create_job(self, db: AsyncSession, data: JobCreate, customer: Customer) -> BookingRead:
        """
        Create a job for the customer.

        Phase 1 links a ServiceM8 company if needed, phase 2 creates the
        job in ServiceM8 (status defaults to Quote), phase 3 writes the
        local shadow row on a best-effort basis.

        Raises:
            JobCreationError: company or job creation failed
            MalformedUpstreamResponseError: ServiceM8 returned no job UUID
        """
        # Attributes expire on rollback; keep the id for the best-effort phases
        customer_id = customer.id
        company_uuid = await self.ensure_company(db, customer)

        payload = build_servicem8_payload(data)
        payload["company_uuid"] = company_uuid
        payload.setdefault("status", JobStatus.QUOTE.value)

        try:
            job = await self.client.create_job(payload)
        except MalformedUpstreamResponseError:
            raise
        except ServiceM8Error as e:
            logger.error(f"Failed to create job for customer {customer.id}: {e}")
            raise JobCreationError() from e

        if not job.uuid:
            raise MalformedUpstreamResponseError()

        cached = None
        try:
            # New job is not in the list cache yet; force the next listing to resync
            await JobCacheRepository.invalidate_for_customer(db, customer_id)
            cached = await JobCacheRepository.upsert(
                db,
                servicem8_uuid=job.uuid,
                customer_id=customer_id,
                fields=job.to_cache_fields(),
            )
        except Exception as e:
            await db.rollback()
            partial_write_failures.labels(operation="create_mirror").inc()
            self.sync_logger.partial_failure("create_mirror", job.uuid, e)

        await self._record_notice(db, job.uuid, customer_id, "Job created")

        logger.info(f"Job created | UUID: {job.uuid} | Customer: {customer_id}")
        return BookingRead.from_servicem8(job, cached)

    async def update_job(
        self,
        db: AsyncSession,
        job_id: str,
        data: JobUpdate,
        customer: Customer,
    ) -> BookingRead:
        """
        Update the supplied fields of a job the customer owns.

        Raises:
            ValidationError: nothing to update
            NotFoundError / ForbiddenError: from the ownership guard
            JobUpdateError: ServiceM8 rejected the update
        """
        job_uuid = (await self.guard.verify_job(db, job_id, customer)).uuid

        changes = build_servicem8_payload(data)
        if not changes:
            raise ValidationError("No fields to update")

        try:
            job = await self.client.update_job(job_uuid, changes)
        except ServiceM8Error as e:
            logger.error(f"Failed to update job {job_uuid}: {e}")
            raise JobUpdateError() from e

        cached = None
        try:
            cached = await JobCacheRepository.update_if_present(db, job_uuid, job.to_cache_fields())
        except Exception as e:
            await db.rollback()
            partial_write_failures.labels(operation="update_mirror").inc()
            self.sync_logger.partial_failure("update_mirror", job_uuid, e)

        logger.info(f"Job updated | UUID: {job_uuid} | Fields: {sorted(changes)}")
        return BookingRead.from_servicem8(job, cached)

    async def delete_job(self, db: AsyncSession, job_id: str, customer: Customer) -> None:
        """
        Cancel a job the customer owns.

        ServiceM8 has no hard delete: the job is marked inactive and
        Cancelled there on a best-effort basis, then the local shadow and
        its attachments are removed.

        Raises:
            NotFoundError / ForbiddenError: from the ownership guard
            JobDeletionError: the local removal failed
        """
        customer_id = customer.id
        job_uuid = (await self.guard.verify_job(db, job_id, customer)).uuid

        try:
            await self.client.update_job(
                job_uuid, {"active": 0, "status": JobStatus.CANCELLED.value}
            )
        except ServiceM8Error as e:
            partial_write_failures.labels(operation="delete_external").inc()
            self.sync_logger.partial_failure("delete_external", job_uuid, e)

        try:
            await AttachmentRepository.delete_for_job(db, job_uuid)
            await JobCacheRepository.delete_by_servicem8_uuid(db, job_uuid)
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to remove local job {job_uuid}: {e}")
            raise JobDeletionError() from e

        await self._record_notice(db, job_uuid, customer_id, "Job cancelled")

        logger.info(f"Job deleted | UUID: {job_uuid} | Customer: {customer_id}")
