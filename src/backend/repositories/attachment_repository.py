"""Repository for mirrored ServiceM8 attachments."""

import logging
from typing import Any, Dict, List

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Attachment, utc_now
from repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AttachmentRepository(BaseRepository[Attachment]):
    """Repository for job attachment metadata."""

    model = Attachment

    @classmethod
    async def list_for_job(cls, db: AsyncSession, job_uuid: str) -> List[Attachment]:
        return await cls.find_all(
            db,
            filters={"job_uuid": job_uuid},
            order_by=Attachment.created_at.asc(),
        )

    @classmethod
    async def upsert(
        cls,
        db: AsyncSession,
        *,
        servicem8_uuid: str,
        fields: Dict[str, Any],
    ) -> Attachment:
        """Insert or replace an attachment keyed by its ServiceM8 UUID."""
        values = {**fields, "updated_at": utc_now()}

        existing = await cls.find_one(db, filters={"servicem8_uuid": servicem8_uuid})
        if existing:
            return await cls.update(db, db_obj=existing, obj_in=values)

        try:
            return await cls.create(db, obj_in={"servicem8_uuid": servicem8_uuid, **values})
        except IntegrityError:
            await db.rollback()
            existing = await cls.find_one(db, filters={"servicem8_uuid": servicem8_uuid})
            if existing is None:
                raise
            return await cls.update(db, db_obj=existing, obj_in=values)

    @classmethod
    async def delete_for_job(cls, db: AsyncSession, job_uuid: str) -> int:
        result = await db.execute(delete(Attachment).where(Attachment.job_uuid == job_uuid))
        await db.commit()
        return result.rowcount
