"""Public contact form."""

from fastapi import APIRouter, HTTPException

from ..schemas import ContactRequest
from ..services import mailer

router = APIRouter(tags=["contact"])


@router.post("/contact")
async def contact(payload: ContactRequest):
    """Forward a contact form submission by email."""
    try:
        await mailer.send_contact_message(
            payload.name, payload.email, payload.subject, payload.message
        )
    except mailer.MailerError:
        raise HTTPException(status_code=500, detail="Your message could not be sent, please try again later")

    return {"success": True, "message": "Your message has been sent"}
