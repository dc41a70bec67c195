"""
Job write endpoints.

Each write goes to ServiceM8 first; the local cache is updated afterwards
on a best-effort basis (see JobService).
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.envelope import success_response
from api.schemas.job import JobCreate, JobUpdate
from api.services.job_service import JobService
from core.config import settings
from core.database import get_session
from core.dependencies import get_current_customer, get_job_service
from core.rate_limit import limiter
from db.models import Customer

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit.write)
async def create_job(
    request: Request,
    data: JobCreate,
    db: AsyncSession = Depends(get_session),
    customer: Customer = Depends(get_current_customer),
    job_service: JobService = Depends(get_job_service),
):
    """Create a job. Status defaults to Quote."""
    booking = await job_service.create_job(db, data, customer)
    return success_response(booking, message="Job created")


@router.put("/{job_id}")
@limiter.limit(settings.rate_limit.write)
async def update_job(
    request: Request,
    job_id: str,
    data: JobUpdate,
    db: AsyncSession = Depends(get_session),
    customer: Customer = Depends(get_current_customer),
    job_service: JobService = Depends(get_job_service),
):
    """Update the supplied fields of a job the customer owns."""
    booking = await job_service.update_job(db, job_id, data, customer)
    return success_response(booking, message="Job updated")


@router.delete("/{job_id}")
@limiter.limit(settings.rate_limit.write)
async def delete_job(
    request: Request,
    job_id: str,
    db: AsyncSession = Depends(get_session),
    customer: Customer = Depends(get_current_customer),
    job_service: JobService = Depends(get_job_service),
):
    """Cancel a job the customer owns."""
    await job_service.delete_job(db, job_id, customer)
    return success_response(message="Job deleted")
