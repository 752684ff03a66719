"""Resend email API client adapter."""

import base64
import logging
from dataclasses import dataclass

import httpx

from photo_kiosk.domain.delivery import OutboundMessage
from photo_kiosk.errors import DeliveryFailed
from photo_kiosk.services.delivery import EmailGateway

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass
class HttpxResendEmailClient(EmailGateway):
    """Email gateway implemented against the Resend REST API with httpx."""

    api_key: str
    sender: str
    http_client: httpx.AsyncClient
    timeout: float = 15.0

    @classmethod
    def create(
        cls, api_key: str, sender: str, timeout: float = 15.0
    ) -> "HttpxResendEmailClient":
        """Create a Resend client with a managed httpx session."""
        return cls(
            api_key=api_key,
            sender=sender,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def send(self, message: OutboundMessage) -> str:
        """Send the message and return Resend's email id."""
        payload: dict[str, object] = {
            "from": self.sender,
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
        }
        if message.attachments:
            payload["attachments"] = [
                {
                    "filename": attachment.filename,
                    "content": base64.b64encode(attachment.content).decode("ascii"),
                    "content_type": attachment.content_type,
                    **(
                        {"content_id": attachment.content_id}
                        if attachment.content_id
                        else {}
                    ),
                }
                for attachment in message.attachments
            ]
        try:
            response = await self.http_client.post(
                RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Email provider rejected message",
                extra={
                    "status_code": exc.response.status_code,
                    "body": exc.response.text,
                },
            )
            raise DeliveryFailed(str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.error("Email provider unreachable", extra={"error": str(exc)})
            raise DeliveryFailed(str(exc)) from exc
        message_id = response.json().get("id")
        if not message_id:
            raise DeliveryFailed("Email provider returned no message id")
        return str(message_id)

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()
