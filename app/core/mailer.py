import asyncio
import logging
import resend
from app.core.config import settings

logger = logging.getLogger(__name__)


class MailerError(Exception):
    pass


class Mailer:
    """Thin wrapper over the Resend SDK; the SDK call is blocking so it runs in a worker thread."""

    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    def _send_sync(self, to: str, subject: str, html: str, text: str | None) -> str | None:
        resend.api_key = self.api_key
        params = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            params["text"] = text
        response = resend.Emails.send(params)
        return response.get("id") if isinstance(response, dict) else getattr(response, "id", None)

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> str | None:
        try:
            message_id = await asyncio.to_thread(self._send_sync, to, subject, html, text)
        except Exception as e:
            logger.error(f"Email send to {to} failed: {e}")
            raise MailerError(str(e)) from e
        logger.info(f"Email sent to {to} (id={message_id})")
        return message_id


def get_mailer() -> Mailer | None:
    if not settings.RESEND_API_KEY:
        return None
    return Mailer(settings.RESEND_API_KEY, f"{settings.CLINIC_NAME} <{settings.FROM_EMAIL}>")
