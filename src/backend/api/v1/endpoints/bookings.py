"""
Booking endpoints.

Read-only views over the customer's ServiceM8 jobs: the cached list and a
detail view that is always refreshed from ServiceM8.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.envelope import success_response
from api.services.booking_service import BookingService
from core.database import get_session
from core.dependencies import get_booking_service, get_current_customer
from db.models import Customer

router = APIRouter()


@router.get("")
async def list_bookings(
    db: AsyncSession = Depends(get_session),
    customer: Customer = Depends(get_current_customer),
    booking_service: BookingService = Depends(get_booking_service),
):
    """List the customer's bookings.

    ``meta.cached`` tells whether the list came from the local cache.
    """
    result = await booking_service.list_bookings(db, customer)
    return success_response(
        result.bookings,
        meta={"cached": result.cached, "count": len(result.bookings)},
    )


@router.get("/{booking_id}")
async def get_booking(
    booking_id: str,
    db: AsyncSession = Depends(get_session),
    customer: Customer = Depends(get_current_customer),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Get one booking by local id or ServiceM8 UUID, with attachments."""
    booking = await booking_service.get_booking_detail(db, booking_id, customer)
    return success_response(booking)
