"""
Model enums for database models.

Both sets are fixed by the external platform or by the portal itself and
are never managed at runtime, so they are stored as plain strings.
"""
from enum import Enum


class JobStatus(str, Enum):
    """
    ServiceM8 job status values.

    Used by JobCache.status and the job create/update payloads.
    """
    QUOTE = "Quote"
    WORK_ORDER = "Work Order"
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETE = "Complete"
    CANCELLED = "Cancelled"


class SenderType(str, Enum):
    """
    Who authored a job message.

    Used by Message.sender_type field.
    """
    CUSTOMER = "customer"
    SYSTEM = "system"
