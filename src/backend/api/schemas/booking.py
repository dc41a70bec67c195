"""
Booking schemas.

A booking is the customer's view of a ServiceM8 job, built either from a
job_cache row or straight from a ServiceM8 record.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from api.schemas.servicem8 import ServiceM8Job
from core.schema_base import HTTPSchemaModel
from db.models import Attachment, JobCache


class AttachmentRead(HTTPSchemaModel):
    """Attachment metadata; content is fetched from ``file_url``."""

    id: Optional[UUID] = None
    uuid: str = Field(..., description="ServiceM8 attachment UUID")
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_url: Optional[str] = None
    thumbnail_url: Optional[str] = None

    @classmethod
    def from_cache(cls, attachment: Attachment) -> "AttachmentRead":
        return cls(
            id=attachment.id,
            uuid=attachment.servicem8_uuid,
            file_name=attachment.file_name,
            file_type=attachment.file_type,
            file_url=attachment.file_url,
            thumbnail_url=attachment.thumbnail_url,
        )


class BookingRead(HTTPSchemaModel):
    """Schema for reading a booking."""

    id: Optional[UUID] = Field(None, description="Local cache id, when cached")
    uuid: str = Field(..., description="ServiceM8 job UUID")
    job_number: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    status: str
    scheduled_date: Optional[datetime] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    updated_at: Optional[datetime] = None
    attachments: Optional[List[AttachmentRead]] = None

    @classmethod
    def from_cache(cls, job: JobCache) -> "BookingRead":
        return cls(
            id=job.id,
            uuid=job.servicem8_uuid,
            job_number=job.generated_job_id,
            address=job.job_address,
            description=job.job_description,
            status=job.status,
            scheduled_date=job.scheduled_date,
            contact_name=job.contact_name,
            contact_email=job.contact_email,
            contact_phone=job.contact_phone,
            updated_at=job.updated_at,
        )

    @classmethod
    def from_servicem8(cls, job: ServiceM8Job, cached: Optional[JobCache] = None) -> "BookingRead":
        return cls(
            id=cached.id if cached else None,
            uuid=job.uuid,
            job_number=job.generated_job_id,
            address=job.job_address,
            description=job.job_description,
            status=job.status or "Quote",
            scheduled_date=job.scheduled_at,
            contact_name=job.job_contact_name,
            contact_email=job.job_contact_email,
            contact_phone=job.job_contact_mobile,
            updated_at=cached.updated_at if cached else None,
        )


class BookingList(HTTPSchemaModel):
    """Result of a booking listing and whether it came from the cache."""

    bookings: List[BookingRead]
    cached: bool
