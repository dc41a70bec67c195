"""Repository for job Message database operations."""

from typing import List
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.enums import SenderType
from db.models import Message
from repositories.base_repository import BaseRepository


class MessageRepository(BaseRepository[Message]):
    """Repository for append-only job messages."""

    model = Message

    @classmethod
    async def list_for_job(cls, db: AsyncSession, job_uuid: str) -> List[Message]:
        """
        Get all messages for a job, oldest first.

        Args:
            db: Database session
            job_uuid: ServiceM8 job UUID

        Returns:
            Messages ordered by creation time, then per-job sequence
        """
        return await cls.find_all(
            db,
            filters={"job_uuid": job_uuid},
            order_by=(Message.created_at.asc(), Message.sequence_number.asc()),
        )

    @classmethod
    async def next_sequence_number(cls, db: AsyncSession, job_uuid: str) -> int:
        result = await db.execute(
            select(func.max(Message.sequence_number)).where(Message.job_uuid == job_uuid)
        )
        current = result.scalar()
        return (current or 0) + 1

    @classmethod
    async def create_message(
        cls,
        db: AsyncSession,
        *,
        job_uuid: str,
        customer_id: UUID,
        content: str,
        sender_type: SenderType = SenderType.CUSTOMER,
    ) -> Message:
        sequence_number = await cls.next_sequence_number(db, job_uuid)
        return await cls.create(
            db,
            obj_in={
                "job_uuid": job_uuid,
                "customer_id": customer_id,
                "content": content,
                "sender_type": sender_type.value,
                "sequence_number": sequence_number,
            },
        )
