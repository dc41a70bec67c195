"""
Booking service: reconciles ServiceM8 jobs into the local cache.

Listing is served from job_cache while the customer's rows are inside the
freshness window; otherwise the full ServiceM8 job collection is fetched,
filtered to the customer and upserted. Detail views always refresh from
ServiceM8 after the ownership guard has passed.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.booking import AttachmentRead, BookingList, BookingRead
from api.services.job_matching import MATCH_BY_COMPANY, filter_jobs_for_customer
from api.services.ownership_guard import OwnershipGuard
from core.config import BookingSettings
from core.exceptions import BookingSyncError
from core.logging_config import SyncLogger
from core.metrics import booking_cache_lookups, booking_jobs_synced
from db.models import Customer, JobCache, utc_now
from repositories.attachment_repository import AttachmentRepository
from repositories.job_cache_repository import JobCacheRepository
from services.servicem8_client import ServiceM8Client, ServiceM8Error

logger = logging.getLogger(__name__)


class BookingService:
    """Reconciliation engine behind the booking list and detail views."""

    def __init__(
        self,
        client: ServiceM8Client,
        guard: OwnershipGuard,
        config: Optional[BookingSettings] = None,
    ):
        self.client = client
        self.guard = guard
        self.config = config or BookingSettings()
        self.sync_logger = SyncLogger("bookings")

    @property
    def freshness_window(self) -> timedelta:
        return timedelta(minutes=self.config.cache_ttl_minutes)

    async def list_bookings(self, db: AsyncSession, customer: Customer) -> BookingList:
        """
        List the customer's bookings.

        Returns cached rows (scheduled date, newest first) when any were
        synced inside the freshness window. Otherwise syncs from ServiceM8
        and returns the matched jobs in ServiceM8's order.

        Raises:
            BookingSyncError: ServiceM8 could not be read; nothing is cached
        """
        cutoff = utc_now() - self.freshness_window
        fresh = await JobCacheRepository.find_fresh_for_customer(db, customer.id, cutoff)
        if fresh:
            booking_cache_lookups.labels(result="hit").inc()
            self.sync_logger.cache_hit(customer.id, len(fresh))
            return BookingList(bookings=[BookingRead.from_cache(row) for row in fresh], cached=True)

        booking_cache_lookups.labels(result="miss").inc()
        self.sync_logger.cache_miss(customer.id)

        synced = await self._sync_from_servicem8(db, customer)
        return BookingList(bookings=[BookingRead.from_cache(row) for row in synced], cached=False)

    async def _sync_from_servicem8(self, db: AsyncSession, customer: Customer) -> List[JobCache]:
        if self.config.match_strategy == MATCH_BY_COMPANY and not customer.servicem8_company_uuid:
            # No company yet means no job can belong to this customer
            return []

        try:
            jobs = await self.client.get_all_jobs()
        except ServiceM8Error as e:
            logger.error(f"Failed to fetch jobs for customer {customer.id}: {e}")
            raise BookingSyncError() from e

        matched = filter_jobs_for_customer(jobs, customer, self.config.match_strategy)

        synced_at = utc_now()
        rows = []
        for job in matched:
            row = await JobCacheRepository.upsert(
                db,
                servicem8_uuid=job.uuid,
                customer_id=customer.id,
                fields=job.to_cache_fields(),
                synced_at=synced_at,
            )
            rows.append(row)

        booking_jobs_synced.inc(len(rows))
        self.sync_logger.jobs_synced(customer.id, len(rows), len(jobs))
        return rows

    async def get_booking_detail(self, db: AsyncSession, id_or_uuid: str, customer: Customer) -> BookingRead:
        """
        Get one booking, always refreshed from ServiceM8, with attachments.

        Raises:
            NotFoundError: unknown or inactive job
            ForbiddenError: job belongs to another company
        """
        job = await self.guard.verify_job(db, id_or_uuid, customer, resource="Booking")

        cached = await JobCacheRepository.update_if_present(db, job.uuid, job.to_cache_fields())

        booking = BookingRead.from_servicem8(job, cached)
        booking.attachments = await self.get_attachments(db, job.uuid)
        return booking

    async def get_attachments(self, db: AsyncSession, job_uuid: str) -> List[AttachmentRead]:
        """
        Cache-aside attachment lookup.

        Local rows are returned as-is once present. On a miss they are
        fetched from ServiceM8 and stored; a ServiceM8 failure yields an
        empty list because attachments are optional.
        """
        cached = await AttachmentRepository.list_for_job(db, job_uuid)
        if cached:
            return [AttachmentRead.from_cache(row) for row in cached]

        try:
            remote = await self.client.get_job_attachments(job_uuid)
        except ServiceM8Error as e:
            logger.warning(f"Could not fetch attachments for job {job_uuid}: {e}")
            return []

        stored = []
        for attachment in remote:
            if not attachment.is_active:
                continue
            row = await AttachmentRepository.upsert(
                db,
                servicem8_uuid=attachment.uuid,
                fields=attachment.to_cache_fields(job_uuid),
            )
            stored.append(AttachmentRead.from_cache(row))
        return stored
