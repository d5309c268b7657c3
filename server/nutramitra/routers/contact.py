import logging

from fastapi import APIRouter, Depends

from nutramitra.core import templates
from nutramitra.core.config import settings
from nutramitra.core.email import get_mailer
from nutramitra.core.exceptions import MailDeliveryError
from nutramitra.schemas import ContactBody

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def contact(body: ContactBody, mailer=Depends(get_mailer)):
    """Forward a contact form to the site operator and confirm receipt to the sender."""
    try:
        subject, html, text = templates.contact_notification_email(
            body.name, body.email, body.subject, body.message
        )
        await mailer.send(settings.contact_inbox, subject, html, text)

        subject, html, text = templates.contact_auto_reply_email(body.name, body.subject, body.message)
        await mailer.send(body.email, subject, html, text)
    except MailDeliveryError:
        raise MailDeliveryError("Failed to send message. Please try again later.")

    logger.info("Contact form from %s delivered", body.email)
    return {"success": True, "message": "Message sent successfully! We'll get back to you soon."}
