"""Outbound message dispatch using the Resend API."""

import asyncio
import html
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4

import resend

from src.leadflow.core.config import Settings, get_settings
from src.leadflow.core.exceptions import DispatchError
from src.leadflow.core.logging import get_logger

logger = get_logger(__name__)

# Thread pool for the blocking Resend SDK, so sends can time out
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)


@dataclass(frozen=True)
class OutboundMessage:
    """What the dispatcher needs to deliver one draft."""

    to: str
    subject: str
    body: str
    draft_id: str


class MessageDispatcher(Protocol):
    async def send(self, message: OutboundMessage) -> str:
        """Deliver a message and return the provider message id.

        Raises:
            DispatchError: on any delivery failure
        """
        ...


def _render_html(body: str) -> str:
    paragraphs = "".join(
        f"<p>{html.escape(chunk).replace(chr(10), '<br>')}</p>"
        for chunk in body.split("\n\n")
        if chunk.strip()
    )
    return f'<html><body style="{_BODY_STYLE}">{paragraphs}</body></html>'


class ResendDispatcher:
    """Sends drafts through Resend.

    Without RESEND_API_KEY the send is only logged and a synthetic id returned,
    matching how the rest of the stack behaves in development.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def send(self, message: OutboundMessage) -> str:
        settings = self.settings

        if not settings.resend_api_key:
            logger.warning(
                "RESEND_API_KEY not set - message not sent",
                draft_id=message.draft_id,
            )
            return f"dev-{uuid4()}"

        resend.api_key = settings.resend_api_key

        def _send() -> str:
            response = resend.Emails.send(
                {
                    "from": settings.email_from,
                    "to": [message.to],
                    "subject": message.subject,
                    "html": _render_html(message.body),
                    "text": message.body,
                    "tags": [{"name": "draft_id", "value": message.draft_id}],
                }
            )
            return str(response["id"])

        loop = asyncio.get_running_loop()
        try:
            message_id = await asyncio.wait_for(
                loop.run_in_executor(_email_executor, _send),
                timeout=settings.email_send_timeout_seconds,
            )
        except TimeoutError as e:
            logger.error(
                "Email send timed out",
                draft_id=message.draft_id,
                timeout=settings.email_send_timeout_seconds,
            )
            raise DispatchError("Email send timed out") from e
        except Exception as e:
            logger.error("Failed to send email", draft_id=message.draft_id, error=str(e))
            raise DispatchError(f"Failed to send email: {e}") from e

        logger.info("Email sent", draft_id=message.draft_id, message_id=message_id)
        return message_id
