"""
Ownership guard for job-scoped operations.

Every operation that touches a job (booking detail, attachments, update,
delete, messages) runs the same three steps before any dependent fetch:

1. resolve the job from ServiceM8 (a local cache id owned by the customer
   maps to its ServiceM8 UUID first)
2. treat inactive jobs as missing
3. require the job's company to equal the customer's company
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.servicem8 import ServiceM8Job
from core.exceptions import ForbiddenError, NotFoundError, UpstreamServiceError
from core.logging_config import SyncLogger
from core.metrics import ownership_denials
from db.models import Customer
from repositories.job_cache_repository import JobCacheRepository
from services.servicem8_client import ServiceM8Client, ServiceM8Error

logger = logging.getLogger(__name__)


class OwnershipGuard:
    """Resolves a ServiceM8 job and verifies the customer may act on it."""

    def __init__(self, client: ServiceM8Client):
        self.client = client
        self.sync_logger = SyncLogger("ownership")

    async def verify(self, job_uuid: str, customer: Customer, *, resource: str = "Job") -> ServiceM8Job:
        """
        Return the job if the customer owns it.

        Args:
            job_uuid: ServiceM8 job UUID
            customer: Authenticated customer
            resource: Name used in the not-found message ("Job", "Booking")

        Raises:
            NotFoundError: unknown or inactive job
            ForbiddenError: job belongs to another company
            UpstreamServiceError: ServiceM8 could not be reached
        """
        try:
            job = await self.client.get_job(job_uuid)
        except ServiceM8Error as e:
            logger.error(f"Failed to resolve job {job_uuid} from ServiceM8: {e}")
            raise UpstreamServiceError(f"Failed to fetch {resource.lower()}") from e

        if job is None or not job.is_active:
            raise NotFoundError(resource)

        customer_company = customer.servicem8_company_uuid
        if not customer_company or job.company_uuid != customer_company:
            self.sync_logger.ownership_denied(job_uuid, job.company_uuid, customer_company)
            ownership_denials.inc()
            raise ForbiddenError(
                context={
                    "job_uuid": job_uuid,
                    "job_company_uuid": job.company_uuid,
                    "customer_company_uuid": customer_company,
                    "customer_id": str(customer.id),
                }
            )

        return job

    async def resolve_job_uuid(self, db: AsyncSession, job_id: str, customer: Customer) -> str:
        """
        Map a job identifier to a ServiceM8 job UUID.

        A local cache id only resolves when the row belongs to the customer;
        anything else is taken to be a ServiceM8 UUID.
        """
        try:
            local_id = UUID(job_id)
        except ValueError:
            return job_id

        cached = await JobCacheRepository.find_for_customer(db, local_id, customer.id)
        if cached is not None:
            return cached.servicem8_uuid
        return job_id

    async def verify_job(
        self,
        db: AsyncSession,
        job_id: str,
        customer: Customer,
        *,
        resource: str = "Job",
    ) -> ServiceM8Job:
        """Resolve a local id or ServiceM8 UUID, then verify ownership."""
        job_uuid = await self.resolve_job_uuid(db, job_id, customer)
        return await self.verify(job_uuid, customer, resource=resource)
