"""Repository for the ServiceM8 job cache."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import JobCache, utc_now
from repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class JobCacheRepository(BaseRepository[JobCache]):
    """Repository for locally cached ServiceM8 jobs."""

    model = JobCache

    @classmethod
    async def find_by_servicem8_uuid(cls, db: AsyncSession, servicem8_uuid: str) -> Optional[JobCache]:
        return await cls.find_one(db, filters={"servicem8_uuid": servicem8_uuid})

    @classmethod
    async def find_for_customer(
        cls,
        db: AsyncSession,
        job_id: UUID,
        customer_id: UUID,
    ) -> Optional[JobCache]:
        """Find a cache row by local id, only if it belongs to the customer."""
        return await cls.find_one(db, filters={"id": job_id, "customer_id": customer_id})

    @classmethod
    async def find_fresh_for_customer(
        cls,
        db: AsyncSession,
        customer_id: UUID,
        synced_after: datetime,
    ) -> List[JobCache]:
        """
        Get the customer's rows synced by list reconciliation after a cutoff.

        Args:
            db: Database session
            customer_id: Owning customer
            synced_after: Freshness cutoff (naive UTC)

        Returns:
            Rows ordered by scheduled date, newest first, unscheduled last
        """
        stmt = (
            select(JobCache)
            .where(
                JobCache.customer_id == customer_id,
                JobCache.synced_at.is_not(None),
                JobCache.synced_at > synced_after,
            )
            .order_by(JobCache.scheduled_date.desc().nulls_last(), JobCache.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def upsert(
        cls,
        db: AsyncSession,
        *,
        servicem8_uuid: str,
        customer_id: UUID,
        fields: Dict[str, Any],
        synced_at: Optional[datetime] = None,
    ) -> JobCache:
        """
        Insert or fully replace the mutable fields of a cached job.

        Keyed by ``servicem8_uuid``; repeated calls with the same data leave a
        single row. A concurrent insert of the same UUID is resolved by
        retrying as an update (last write wins).
        """
        values = dict(fields)
        values["customer_id"] = customer_id
        values["updated_at"] = utc_now()
        if synced_at is not None:
            values["synced_at"] = synced_at

        existing = await cls.find_by_servicem8_uuid(db, servicem8_uuid)
        if existing:
            return await cls.update(db, db_obj=existing, obj_in=values)

        try:
            return await cls.create(db, obj_in={"servicem8_uuid": servicem8_uuid, **values})
        except IntegrityError:
            await db.rollback()
            logger.info(f"Concurrent insert for job {servicem8_uuid}, retrying as update")
            existing = await cls.find_by_servicem8_uuid(db, servicem8_uuid)
            if existing is None:
                raise
            return await cls.update(db, db_obj=existing, obj_in=values)

    @classmethod
    async def update_if_present(
        cls,
        db: AsyncSession,
        servicem8_uuid: str,
        fields: Dict[str, Any],
    ) -> Optional[JobCache]:
        """Refresh a cached row without creating one. Leaves ``synced_at`` alone."""
        existing = await cls.find_by_servicem8_uuid(db, servicem8_uuid)
        if existing is None:
            return None
        return await cls.update(db, db_obj=existing, obj_in={**fields, "updated_at": utc_now()})

    @classmethod
    async def invalidate_for_customer(cls, db: AsyncSession, customer_id: UUID) -> None:
        """Expire the customer's list cache so the next listing resyncs."""
        await db.execute(
            update(JobCache)
            .where(JobCache.customer_id == customer_id)
            .values(synced_at=None)
        )
        await db.commit()

    @classmethod
    async def delete_by_servicem8_uuid(cls, db: AsyncSession, servicem8_uuid: str) -> bool:
        result = await db.execute(
            delete(JobCache).where(JobCache.servicem8_uuid == servicem8_uuid)
        )
        await db.commit()
        return result.rowcount > 0
