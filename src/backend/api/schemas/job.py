"""
Job write schemas.

Field names follow ServiceM8 (job_address, job_description) so the
frontend can post the same shape it reads from the booking views.
"""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from core.schema_base import HTTPSchemaModel
from db.enums import JobStatus


class JobFields(HTTPSchemaModel):
    """Optional fields shared by create and update."""

    scheduled_date: Optional[datetime] = None
    status: Optional[JobStatus] = None
    contact_name: Optional[str] = Field(None, max_length=255)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)


class JobCreate(JobFields):
    """Schema for creating a job."""

    job_address: str = Field(..., min_length=1, max_length=1000)
    job_description: str = Field(..., min_length=1, max_length=5000)

    @field_validator("job_address", "job_description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class JobUpdate(JobFields):
    """Schema for a partial job update. Omitted fields are left untouched."""

    job_address: Optional[str] = Field(None, min_length=1, max_length=1000)
    job_description: Optional[str] = Field(None, min_length=1, max_length=5000)
