"""
Contact form route.
"""

import logging
import re
from datetime import datetime

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_sanity_client
from ..errors import InvalidRequestError
from ..schemas.contact import ContactRequest
from ...clients import SanityClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["Contact"])

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def client_ip(request: Request) -> str:
    return (
        request.headers.get("x-forwarded-for")
        or request.headers.get("x-real-ip")
        or "unknown"
    )


@router.post("")
async def submit_contact(
    body: ContactRequest,
    request: Request,
    sanity: SanityClient = Depends(get_sanity_client),
):
    """Store a contact message for the support team. No sign-in required."""
    if not (body.name and body.email and body.subject and body.message):
        raise InvalidRequestError("All fields are required")
    if not EMAIL_RE.match(body.email):
        raise InvalidRequestError("Please provide a valid email address")

    created = await sanity.create(
        {
            "_type": "contact",
            "name": body.name.strip(),
            "email": body.email.strip().lower(),
            "subject": body.subject.strip(),
            "message": body.message.strip(),
            "status": "new",
            "priority": "medium",
            "submittedAt": datetime.utcnow().isoformat() + "Z",
            "ipAddress": client_ip(request),
            "userAgent": request.headers.get("user-agent") or "unknown",
        }
    )

    logger.info(f"Contact message {created.get('_id')} received from {body.email}")
    return {"message": "Message sent successfully! We'll get back to you soon.", "id": created.get("_id")}
