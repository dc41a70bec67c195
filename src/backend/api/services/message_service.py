"""
Message service: append-only conversation threads attached to jobs.

Messages are stored locally only and are never forwarded to ServiceM8.
Customer messages go through the ownership guard; system notices are
written internally by the job service.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from api.services.ownership_guard import OwnershipGuard
from core.config import MessageSettings
from core.exceptions import ValidationError
from core.sanitizer import sanitize_message_content
from db.enums import SenderType
from db.models import Customer, Message
from repositories.message_repository import MessageRepository

logger = logging.getLogger(__name__)


class MessageService:
    """Lists and appends job messages."""

    def __init__(self, guard: OwnershipGuard, config: Optional[MessageSettings] = None):
        self.guard = guard
        self.config = config or MessageSettings()

    async def list_messages(self, db: AsyncSession, job_id: str, customer: Customer) -> List[Message]:
        """
        Get a job's messages, oldest first.

        ``job_id`` is a local booking id or a ServiceM8 UUID; messages are
        always keyed by the ServiceM8 UUID.

        Raises:
            NotFoundError / ForbiddenError: from the ownership guard
        """
        job = await self.guard.verify_job(db, job_id, customer)
        return await MessageRepository.list_for_job(db, job.uuid)

    async def send_message(
        self,
        db: AsyncSession,
        job_id: str,
        customer: Customer,
        content: str,
    ) -> Message:
        """
        Append a customer message to a job thread.

        Raises:
            NotFoundError / ForbiddenError: from the ownership guard
            ValidationError: content is empty after sanitization or too long
        """
        job_uuid = (await self.guard.verify_job(db, job_id, customer)).uuid

        try:
            sanitized = sanitize_message_content(content, self.config.max_length)
        except ValueError as e:
            raise ValidationError.for_field("content", str(e)) from e

        if not sanitized:
            raise ValidationError.for_field("content", "Message content is required")

        message = await MessageRepository.create_message(
            db,
            job_uuid=job_uuid,
            customer_id=customer.id,
            content=sanitized,
            sender_type=SenderType.CUSTOMER,
        )
        logger.info(f"Message {message.id} posted on job {job_uuid} (seq {message.sequence_number})")
        return message

    async def create_system_message(
        self,
        db: AsyncSession,
        job_uuid: str,
        customer_id: UUID,
        content: str,
    ) -> Message:
        """Record an internal notice on a job thread. No ownership check."""
        return await MessageRepository.create_message(
            db,
            job_uuid=job_uuid,
            customer_id=customer_id,
            content=content,
            sender_type=SenderType.SYSTEM,
        )
