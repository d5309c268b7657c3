import logging
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from nutramitra.core.config import settings
from nutramitra.core.exceptions import MailDeliveryError

logger = logging.getLogger(__name__)


class SmtpMailer:
    """Sends HTML mail through the configured SMTP relay."""

    def __init__(self, hostname: str, port: int, username: str, password: str,
                 sender: str, timeout: float = 10):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout

    async def send(self, to_email: str, subject: str, html: str, text: Optional[str] = None):
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(text or "This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        try:
            await aiosmtplib.send(
                message,
                hostname=self.hostname,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                use_tls=(self.port == 465),
                start_tls=(self.port != 465),
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            # SMTPTimeoutError is an SMTPException; socket failures surface as OSError
            logger.warning("Mail to %s failed: %s", to_email, e)
            raise MailDeliveryError() from e

        logger.info("Mail sent to %s (%s)", to_email, subject)


mailer = SmtpMailer(
    hostname=settings.MAIL_SERVER,
    port=settings.MAIL_PORT,
    username=settings.MAIL_USERNAME,
    password=settings.MAIL_PASSWORD,
    sender=settings.MAIL_FROM,
    timeout=settings.MAIL_TIMEOUT,
)


def get_mailer():
    return mailer
