"""Email delivery of transformed photos.

Two independent commit points: the analytics record is written first and the
email is sent second. An email failure never rolls the record back.
"""

import html
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from photo_kiosk.domain.delivery import (
    ContactFields,
    DeliveryReceipt,
    DeliveryRecord,
    EmailAttachment,
    OutboundMessage,
)
from photo_kiosk.domain.images import ImagePayload, decode_data_url
from photo_kiosk.errors import FieldError, UpstreamUnavailable, ValidationError
from photo_kiosk.services.validation import DeliverPayload

logger = logging.getLogger(__name__)

IMAGE_CONTENT_ID = "transformed-photo"
DEFAULT_SUBJECT = "🎉 Your photo transformation is here!"
FOOTER_TEXT = (
    "This photo was created using <strong>Snap &amp; Transform</strong> - an "
    "AI-powered photo kiosk that turns ordinary photos into extraordinary art! "
    "We do not store your photo."
)


class EmailGateway(Protocol):
    """Interface for the outbound email provider."""

    async def send(self, message: OutboundMessage) -> str:
        """Send the message and return the provider message id."""


class ImageFetcher(Protocol):
    """Interface for downloading remotely hosted images."""

    async def fetch(self, url: str) -> ImagePayload:
        """Download ``url`` and return its bytes and MIME type."""


class DeliveryRepository(Protocol):
    """Persistence interface for analytics records."""

    def create_delivery(self, record: DeliveryRecord) -> UUID:
        """Insert a delivery row and return its id."""


@dataclass(frozen=True)
class DeliveryMetadata:
    """Optional text that accompanies the image in the email."""

    instruction: str | None = None
    note: str | None = None


@dataclass
class DeliveryComposer:
    """Builds the outbound email and the image-free analytics record."""

    image_fetcher: ImageFetcher

    def compose(
        self, contact: ContactFields, image: ImagePayload, metadata: DeliveryMetadata
    ) -> OutboundMessage:
        """Return a message whose only attachment is the given image."""
        attachment = EmailAttachment(
            filename=f"transformed-photo.{image.extension}",
            content=image.content,
            content_type=image.mime_type,
            content_id=IMAGE_CONTENT_ID,
        )
        return OutboundMessage(
            to=[contact.email],
            subject=DEFAULT_SUBJECT,
            html=render_html(contact, metadata),
            attachments=[attachment],
        )

    def build_record(
        self,
        session_id: str,
        contact: ContactFields,
        consent_given: bool,
        instruction: str | None,
    ) -> DeliveryRecord:
        """Build the analytics record; it has no way to carry an image."""
        return DeliveryRecord(
            session_id=session_id,
            contact=contact,
            consent_given=consent_given,
            instruction_used=instruction,
        )

    async def resolve_image(self, image_url: str) -> ImagePayload:
        """Decode a data URL or download a remote image."""
        if image_url.startswith("data:image/"):
            try:
                return decode_data_url(image_url)
            except ValueError as exc:
                raise ValidationError(
                    [FieldError(field="imageUrl", message=str(exc))]
                ) from exc
        return await self.image_fetcher.fetch(image_url)


@dataclass
class DeliveryService:
    """Records the delivery and then emails the photo to the visitor."""

    composer: DeliveryComposer
    repository: DeliveryRepository
    email_gateway: EmailGateway

    async def deliver(self, payload: DeliverPayload) -> DeliveryReceipt:
        """Resolve the image, persist the analytics record, then send the email.

        An image that cannot be decoded or fetched rejects the request before
        anything is written.
        """
        session_id = str(payload.session_id)
        image = await self.composer.resolve_image(payload.image_url)
        contact = ContactFields(
            email=payload.email, name=payload.name, company=payload.company
        )
        record = self.composer.build_record(
            session_id=session_id,
            contact=contact,
            consent_given=payload.consent_given,
            instruction=payload.prompt,
        )
        try:
            record_id = self.repository.create_delivery(record)
        except Exception as exc:
            logger.exception(
                "Failed to store delivery record", extra={"session_id": session_id}
            )
            raise UpstreamUnavailable(str(exc)) from exc

        message = self.composer.compose(
            contact,
            image,
            DeliveryMetadata(instruction=payload.prompt, note=payload.message),
        )
        message_id = await self.email_gateway.send(message)
        logger.info(
            "Email sent",
            extra={
                "session_id": session_id,
                "record_id": str(record_id),
                "message_id": message_id,
            },
        )
        return DeliveryReceipt(message_id=message_id)


def render_html(contact: ContactFields, metadata: DeliveryMetadata) -> str:
    """Render the email body; all visitor text is escaped."""
    greeting = f"Hi {html.escape(contact.name)}!" if contact.name else "Hi there!"
    sections = [
        '<div style="font-family: Arial, sans-serif; max-width: 600px; '
        'margin: 0 auto; padding: 20px;">',
        '<h1 style="color: #7c3aed; text-align: center;">'
        "✨ Photo Transformation Magic! ✨</h1>",
        f'<p style="font-size: 18px;">{greeting}</p>',
    ]
    if metadata.instruction:
        sections.append(
            "<p>Your transformation: "
            f"<em>{html.escape(metadata.instruction)}</em></p>"
        )
    if metadata.note:
        sections.append(
            '<p style="font-size: 16px; line-height: 1.6;">'
            f"&quot;{html.escape(metadata.note)}&quot;</p>"
        )
    sections.extend(
        [
            '<div style="text-align: center; margin: 30px 0;">'
            f'<img src="cid:{IMAGE_CONTENT_ID}" alt="Transformed photo" '
            'style="max-width: 100%; height: auto; border-radius: 15px;" /></div>',
            '<div style="background: #f9fafb; padding: 20px; border-radius: 15px; '
            'text-align: center;"><p style="color: #6b7280; font-size: 14px;">'
            f"{FOOTER_TEXT}</p></div>",
            "</div>",
        ]
    )
    return "\n".join(sections)
