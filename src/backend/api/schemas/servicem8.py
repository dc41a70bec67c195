"""
ServiceM8 record schemas.

ServiceM8 returns loosely typed JSON. Each record keeps the untouched
payload in ``raw`` and exposes typed accessors only for the fields the
portal reads, so upstream shape changes surface as validation errors
rather than silent drift.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SERVICEM8_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# ServiceM8 uses this in place of null for unset dates
SERVICEM8_NULL_DATE = "0000-00-00"


def parse_servicem8_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a ServiceM8 date string into a naive datetime.

    Returns None for empty values, the ``0000-00-00`` placeholder and
    anything unparseable.
    """
    if not value or value.startswith(SERVICEM8_NULL_DATE):
        return None
    value = value.strip()
    try:
        return datetime.strptime(value, SERVICEM8_DATETIME_FORMAT)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_servicem8_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(SERVICEM8_DATETIME_FORMAT)


class ServiceM8Record(BaseModel):
    """Base for ServiceM8 records: typed subset plus the opaque payload."""

    model_config = ConfigDict(extra="ignore")

    uuid: str
    active: int = 1
    raw: Dict[str, Any] = Field(default_factory=dict, exclude=True)

    @field_validator("active", mode="before")
    @classmethod
    def coerce_active(cls, v):
        if v is None or v == "":
            return 1
        return int(v)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]):
        record = cls.model_validate(payload)
        record.raw = dict(payload)
        return record

    @property
    def is_active(self) -> bool:
        return self.active == 1


class ServiceM8Job(ServiceM8Record):
    """A ServiceM8 job record."""

    status: Optional[str] = None
    job_address: Optional[str] = None
    job_description: Optional[str] = None
    job_contact_name: Optional[str] = None
    job_contact_mobile: Optional[str] = None
    job_contact_email: Optional[str] = None
    generated_job_id: Optional[str] = None
    scheduled_date: Optional[str] = None
    edit_date: Optional[str] = None
    company_uuid: Optional[str] = None

    @field_validator("generated_job_id", mode="before")
    @classmethod
    def stringify_job_number(cls, v):
        return None if v is None else str(v)

    @property
    def scheduled_at(self) -> Optional[datetime]:
        return parse_servicem8_datetime(self.scheduled_date)

    def to_cache_fields(self) -> Dict[str, Any]:
        """Mutable job_cache columns derived from this record."""
        return {
            "company_uuid": self.company_uuid or None,
            "job_address": self.job_address,
            "job_description": self.job_description,
            "status": self.status or "Quote",
            "generated_job_id": self.generated_job_id,
            "scheduled_date": self.scheduled_at,
            "contact_name": self.job_contact_name,
            "contact_email": self.job_contact_email,
            "contact_phone": self.job_contact_mobile,
            "raw_data": self.raw or self.model_dump(),
        }


class ServiceM8Company(ServiceM8Record):
    """A ServiceM8 company (client) record."""

    name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None


class ServiceM8Attachment(ServiceM8Record):
    """A ServiceM8 attachment record. ``file`` is the content URL."""

    related_object: Optional[str] = None
    related_object_uuid: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    content_type: Optional[str] = None
    file: Optional[str] = None

    def to_cache_fields(self, job_uuid: str) -> Dict[str, Any]:
        return {
            "job_uuid": job_uuid,
            "file_name": self.file_name,
            "file_type": self.file_type or self.content_type,
            "file_url": self.file,
            "thumbnail_url": self.file,
        }
