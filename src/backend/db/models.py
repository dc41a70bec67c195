"""
Database models for the customer portal.

Customers and their sessions are owned locally. Jobs and attachments are
shadows of ServiceM8 records keyed by the external UUID; messages are
local-only and hang off the external job UUID.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy import Uuid as SAUuid
from sqlmodel import Field, SQLModel

from db.enums import JobStatus, SenderType


def utc_now() -> datetime:
    """
    Get current time in UTC (timezone-naive) for database storage.

    All columns store naive UTC; the API layer appends the 'Z' marker when
    serializing.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TableModel(SQLModel):
    """Base table model with common functionality."""

    pass


class Customer(TableModel, table=True):
    """Portal customer, linked to exactly one ServiceM8 company."""

    __tablename__ = "customers"

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(SAUuid(as_uuid=True), primary_key=True),
    )
    email: Optional[str] = Field(
        default=None,
        max_length=255,
        sa_column=Column(String(255), unique=True, nullable=True),
        description="Lowercased, trimmed email address",
    )
    phone: Optional[str] = Field(
        default=None,
        max_length=50,
        sa_column=Column(String(50), unique=True, nullable=True),
        description="Trimmed phone number",
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="bcrypt hash",
    )
    first_name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
    )
    last_name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
    )
    address: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True),
    )
    servicem8_company_uuid: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True, index=True),
        description="ServiceM8 company that owns this customer's jobs",
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False),
    )

    @property
    def identity(self) -> str:
        """Email if present, otherwise phone."""
        return self.email or self.phone or ""

    @property
    def display_name(self) -> str:
        """Name used for the ServiceM8 company record."""
        full = " ".join(p for p in (self.first_name, self.last_name) if p).strip()
        return full or self.email or self.phone or "Customer"


class JobCache(TableModel, table=True):
    """
    Local shadow of a ServiceM8 job.

    Never authoritative. ``synced_at`` is only stamped by list
    reconciliation and drives the booking-list freshness window; detail
    refreshes and write mirrors touch ``updated_at`` only.
    """

    __tablename__ = "job_cache"
    __table_args__ = (
        Index("ix_job_cache_customer_synced", "customer_id", "synced_at"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(SAUuid(as_uuid=True), primary_key=True),
    )
    servicem8_uuid: str = Field(
        sa_column=Column(String(64), unique=True, nullable=False),
        description="ServiceM8 job UUID",
    )
    customer_id: UUID = Field(
        sa_column=Column(
            SAUuid(as_uuid=True),
            ForeignKey("customers.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    company_uuid: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True, index=True),
    )
    job_address: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )
    job_description: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )
    status: str = Field(
        default=JobStatus.QUOTE.value,
        sa_column=Column(String(50), nullable=False),
        description="Quote, Work Order, Scheduled, In Progress, Complete or Cancelled",
    )
    generated_job_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True),
    )
    scheduled_date: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    contact_name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )
    contact_email: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )
    contact_phone: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True),
    )
    raw_data: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Unmodified ServiceM8 payload",
    )
    synced_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False),
    )


class Message(TableModel, table=True):
    """Job message. Append-only, listed oldest-first."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_job_created", "job_uuid", "created_at"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(SAUuid(as_uuid=True), primary_key=True),
    )
    job_uuid: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="ServiceM8 job UUID this message belongs to",
    )
    customer_id: UUID = Field(
        sa_column=Column(
            SAUuid(as_uuid=True),
            ForeignKey("customers.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    content: str = Field(
        sa_column=Column(Text, nullable=False),
    )
    sender_type: str = Field(
        default=SenderType.CUSTOMER.value,
        sa_column=Column(String(20), nullable=False),
    )
    sequence_number: int = Field(
        default=1,
        sa_column=Column(Integer, nullable=False),
        description="Per-job ordering tiebreaker",
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False),
    )


class Attachment(TableModel, table=True):
    """Mirror of a ServiceM8 job attachment. Content is served by URL only."""

    __tablename__ = "attachments"

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(SAUuid(as_uuid=True), primary_key=True),
    )
    servicem8_uuid: str = Field(
        sa_column=Column(String(64), unique=True, nullable=False),
    )
    job_uuid: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
    )
    file_name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )
    file_type: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
    )
    file_url: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )
    thumbnail_url: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False),
    )


class CustomerSession(TableModel, table=True):
    """
    Issued bearer token bound to a customer.

    Only the SHA-256 of the token is stored. Rows past ``expires_at`` are
    ignored by lookups and purged by the scheduler.
    """

    __tablename__ = "customer_sessions"

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(SAUuid(as_uuid=True), primary_key=True),
    )
    customer_id: UUID = Field(
        sa_column=Column(
            SAUuid(as_uuid=True),
            ForeignKey("customers.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    token_hash: str = Field(
        sa_column=Column(String(64), unique=True, nullable=False),
        description="SHA-256 hex digest of the issued token",
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False, index=True),
    )
    ip_address: Optional[str] = Field(
        default=None,
        sa_column=Column(String(45), nullable=True),
    )
    user_agent: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False),
    )
