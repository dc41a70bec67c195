"""
Database models using SQLModel.

Customer-owned tables (customers, customer_sessions, messages) and the
ServiceM8 shadow tables (job_cache, attachments).
"""
from .enums import JobStatus, SenderType
from .models import (
    Attachment,
    Customer,
    CustomerSession,
    JobCache,
    Message,
    TableModel,
    utc_now,
)

__all__ = [
    "Attachment",
    "Customer",
    "CustomerSession",
    "JobCache",
    "JobStatus",
    "Message",
    "SenderType",
    "TableModel",
    "utc_now",
]
