"""
Job message schemas for API validation and serialization.
"""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, Field

from core.schema_base import HTTPSchemaModel


class MessageCreate(HTTPSchemaModel):
    """Schema for sending a message on a job.

    The body may name the text ``content`` or ``message``; older web
    clients post ``{"message": ...}``.
    """

    content: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        validation_alias=AliasChoices("content", "message"),
    )


class MessageRead(HTTPSchemaModel):
    """Schema for reading a job message."""

    id: UUID
    job_uuid: str
    customer_id: UUID
    content: str
    sender_type: str
    sequence_number: int
    created_at: datetime
