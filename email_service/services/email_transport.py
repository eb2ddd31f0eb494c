import asyncio
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from email_service.core.config import settings
from email_service.core.logging import get_logger
from email_service.schemas.email import RenderedEmail

logger = get_logger(__name__)


class SMTPTransport:
    """
    Sends rendered emails over SMTP.

    ``send`` reports delivery as a boolean so the queue can decide whether to
    retry. Port 465 uses implicit TLS; other ports upgrade with STARTTLS when
    the server offers it.
    """

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_address: str = "wagr <noreply@wagr.app>",
        reject_unauthorized: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.reject_unauthorized = reject_unauthorized
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "SMTPTransport":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            from_address=settings.SMTP_FROM,
            reject_unauthorized=settings.SMTP_REJECT_UNAUTHORIZED,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    def build_message(self, email: RenderedEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = email.to
        message["Subject"] = email.subject
        message.set_content(email.text)
        message.add_alternative(email.html, subtype="html")
        return message

    async def send(self, email: RenderedEmail) -> bool:
        if not self.is_configured:
            logger.warning("SMTP not configured, email not sent", to=email.to, subject=email.subject)
            return False

        message = self.build_message(email)
        try:
            await asyncio.wait_for(
                aiosmtplib.send(
                    message,
                    hostname=self.host,
                    port=self.port,
                    username=self.username,
                    password=self.password,
                    use_tls=self.port == 465,
                    validate_certs=self.reject_unauthorized,
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error("SMTP send timed out", to=email.to, timeout=self.timeout)
            return False
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP send failed: {e}", to=email.to)
            return False

        logger.info("Email sent", to=email.to, subject=email.subject)
        return True
