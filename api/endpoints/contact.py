"""
PantryPal Contact Endpoint
Relays contact-form messages to the team by email
"""

from fastapi import APIRouter, Request

from core.exceptions import InternalError, ValidationError
from middleware.logging import log_business_event
from schemas.auth_schemas import ContactMessage
from schemas.common import MessageResponse
from services.email_service import email_service
from utils.rate_limiter import rate_limiter
from utils.request_utils import get_client_ip

router = APIRouter()


@router.post("", response_model=MessageResponse)
async def send_contact_message(contact: ContactMessage, request: Request):
    """Forward the message and send the sender a confirmation copy"""
    if not (contact.name and contact.email and contact.message):
        raise ValidationError("All fields are required")

    await rate_limiter.enforce(
        f"contact:{get_client_ip(request)}", max_attempts=5, window_minutes=60,
        message="Too many messages. Please try again later."
    )

    if not await email_service.send_contact_message(contact.name, contact.email, contact.message):
        raise InternalError("Failed to send message")

    log_business_event("contact_message_sent", {"sender": contact.email})
    return MessageResponse(message="Message sent successfully")
