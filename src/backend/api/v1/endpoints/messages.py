"""
Job message endpoints.

Messages live in the portal only; ServiceM8 never sees them.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.envelope import success_response
from api.schemas.message import MessageCreate, MessageRead
from api.services.message_service import MessageService
from core.config import settings
from core.database import get_session
from core.dependencies import get_current_customer, get_message_service
from core.rate_limit import limiter
from db.models import Customer

router = APIRouter()


@router.get("/{job_id}")
async def list_messages(
    job_id: str,
    db: AsyncSession = Depends(get_session),
    customer: Customer = Depends(get_current_customer),
    message_service: MessageService = Depends(get_message_service),
):
    """Messages on a job, oldest first."""
    messages = await message_service.list_messages(db, job_id, customer)
    return success_response(
        [MessageRead.model_validate(message) for message in messages],
        meta={"count": len(messages)},
    )


@router.post("/{job_id}", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit.write)
async def send_message(
    request: Request,
    job_id: str,
    data: MessageCreate,
    db: AsyncSession = Depends(get_session),
    customer: Customer = Depends(get_current_customer),
    message_service: MessageService = Depends(get_message_service),
):
    """Post a message on a job. HTML is stripped before storage."""
    message = await message_service.send_message(db, job_id, customer, data.content)
    return success_response(MessageRead.model_validate(message), message="Message sent")
