"""Models for email delivery and the analytics record."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ContactFields:
    """Contact details typed in by the kiosk visitor."""

    email: str
    name: str | None = None
    company: str | None = None


@dataclass(frozen=True)
class DeliveryRecord:
    """Analytics row persisted for every delivery attempt.

    Holds contact and consent data only, never an image reference. Photos
    travel inside the one-shot email and nowhere else.
    """

    session_id: str
    contact: ContactFields
    consent_given: bool
    instruction_used: str | None

    def to_row(self) -> dict[str, object]:
        return {
            "session_id": self.session_id,
            "email": self.contact.email,
            "name": self.contact.name,
            "company": self.contact.company,
            "consent_given": self.consent_given,
            "prompt_used": self.instruction_used,
        }


@dataclass(frozen=True)
class EmailAttachment:
    """Binary attachment embedded in an outbound email."""

    filename: str
    content: bytes
    content_type: str
    content_id: str | None = None


@dataclass(frozen=True)
class OutboundMessage:
    """Email ready to hand to the gateway."""

    to: list[str]
    subject: str
    html: str
    attachments: list[EmailAttachment] = field(default_factory=list)


@dataclass(frozen=True)
class DeliveryReceipt:
    """Outcome of a delivery: the gateway's message id."""

    message_id: str
