"""Repository for CustomerSession database operations."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import CustomerSession, utc_now
from repositories.base_repository import BaseRepository


class SessionRepository(BaseRepository[CustomerSession]):
    """Repository for issued-token sessions."""

    model = CustomerSession

    @classmethod
    async def create_session(
        cls,
        db: AsyncSession,
        *,
        customer_id: UUID,
        token_hash: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> CustomerSession:
        return await cls.create(
            db,
            obj_in={
                "customer_id": customer_id,
                "token_hash": token_hash,
                "expires_at": expires_at,
                "ip_address": ip_address,
                "user_agent": user_agent[:500] if user_agent else None,
            },
        )

    @classmethod
    async def find_active_by_token_hash(
        cls,
        db: AsyncSession,
        token_hash: str,
    ) -> Optional[CustomerSession]:
        """Return the session for a token hash unless it has expired."""
        stmt = select(CustomerSession).where(
            CustomerSession.token_hash == token_hash,
            CustomerSession.expires_at > utc_now(),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @classmethod
    async def delete_by_token_hash(cls, db: AsyncSession, token_hash: str) -> bool:
        result = await db.execute(
            delete(CustomerSession).where(CustomerSession.token_hash == token_hash)
        )
        await db.commit()
        return result.rowcount > 0

    @classmethod
    async def delete_expired(cls, db: AsyncSession) -> int:
        """
        Purge sessions past their expiry.

        Returns:
            Number of deleted rows
        """
        result = await db.execute(
            delete(CustomerSession).where(CustomerSession.expires_at <= utc_now())
        )
        await db.commit()
        return result.rowcount
