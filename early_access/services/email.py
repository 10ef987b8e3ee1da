import asyncio
import logging
import os
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

import logfire
from jinja2 import Environment, FileSystemLoader, select_autoescape

from early_access.core.config import Settings

logger = logging.getLogger(__name__)

_templates_dir = os.path.join(os.path.dirname(__file__), "..", "templates", "emails")
_jinja_env = Environment(
    loader=FileSystemLoader(_templates_dir),
    autoescape=select_autoescape(["html", "xml"]),
)

OTP_VALIDITY_MINUTES = 15


class EmailNotConfiguredError(RuntimeError):
    pass


def render_email(template_name: str, **context) -> str:
    return _jinja_env.get_template(template_name).render(**context)


class EmailService:
    """Sends verification emails over authenticated SMTP."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        return self.settings.smtp_configured

    def tracking_pixel_url(self, tracking_token: str) -> str:
        return f"{self.settings.BACKEND_URL.rstrip('/')}/api/e/{tracking_token}.png"

    def build_verification_message(self, email: str, code: str, tracking_token: str) -> EmailMessage:
        context = {
            "app_name": self.settings.PROJECT_NAME,
            "code": code,
            "validity_minutes": OTP_VALIDITY_MINUTES,
            "pixel_url": self.tracking_pixel_url(tracking_token),
        }

        msg = EmailMessage()
        msg["Subject"] = f"Your {self.settings.PROJECT_NAME} Verification Code"
        msg["From"] = formataddr((self.settings.FROM_NAME, self.settings.FROM_EMAIL))
        msg["To"] = email
        sender_domain = self.settings.FROM_EMAIL.split("@")[-1] if "@" in self.settings.FROM_EMAIL else None
        msg["Message-ID"] = make_msgid(domain=sender_domain)
        # Plain text first, HTML as the preferred alternative
        msg.set_content(render_email("verification.txt", **context))
        msg.add_alternative(render_email("verification.html", **context), subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        host = self.settings.SMTP_HOST
        port = self.settings.SMTP_PORT
        timeout = self.settings.SMTP_TIMEOUT
        context = ssl.create_default_context()

        if port == 465:
            with smtplib.SMTP_SSL(host, port, timeout=timeout, context=context) as server:
                server.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD)
                server.send_message(msg)
            return

        with smtplib.SMTP(host, port, timeout=timeout) as server:
            server.starttls(context=context)
            server.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD)
            server.send_message(msg)

    async def send_email(self, msg: EmailMessage) -> None:
        if not self.is_configured:
            logger.warning(f"Skipping email send (not configured): {msg['Subject']} to {msg['To']}")
            raise EmailNotConfiguredError("email service not configured")

        with logfire.span("email.send", subject=msg["Subject"]):
            await asyncio.to_thread(self._deliver, msg)
        logger.info(f"Email sent: {msg['Subject']} to {msg['To']}")

    async def send_verification_email(self, email: str, code: str, tracking_token: str) -> bool:
        """Send the one-time code to the signer. Returns False instead of raising."""
        try:
            msg = self.build_verification_message(email, code, tracking_token)
            await self.send_email(msg)
            return True
        except EmailNotConfiguredError:
            return False
        except Exception as e:
            logger.error(f"Failed to send verification email to {email}: {str(e)}")
            return False
