"""Repository for Customer database operations."""

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Customer, utc_now
from repositories.base_repository import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    """Repository for customer operations."""

    model = Customer

    @classmethod
    async def find_by_identity(
        cls,
        db: AsyncSession,
        *,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Optional[Customer]:
        """
        Find a customer whose email or phone matches either value.

        Args:
            db: Database session
            email: Normalized email (lowercase, trimmed)
            phone: Trimmed phone number

        Returns:
            First matching customer or None
        """
        clauses = []
        if email:
            clauses.append(Customer.email == email)
        if phone:
            clauses.append(Customer.phone == phone)
        if not clauses:
            return None

        result = await db.execute(select(Customer).where(or_(*clauses)))
        return result.scalars().first()

    @classmethod
    async def set_company_uuid(
        cls,
        db: AsyncSession,
        customer: Customer,
        company_uuid: str,
    ) -> Customer:
        """Back-fill the ServiceM8 company link on a customer."""
        return await cls.update(
            db,
            db_obj=customer,
            obj_in={"servicem8_company_uuid": company_uuid, "updated_at": utc_now()},
        )
