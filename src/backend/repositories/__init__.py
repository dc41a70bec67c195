"""
Repository layer for database operations.

This package contains all data access logic isolated from business logic.
Each repository handles CRUD operations for a specific entity.
"""

from repositories.attachment_repository import AttachmentRepository
from repositories.base_repository import BaseRepository
from repositories.customer_repository import CustomerRepository
from repositories.job_cache_repository import JobCacheRepository
from repositories.message_repository import MessageRepository
from repositories.session_repository import SessionRepository

__all__ = [
    "AttachmentRepository",
    "BaseRepository",
    "CustomerRepository",
    "JobCacheRepository",
    "MessageRepository",
    "SessionRepository",
]
