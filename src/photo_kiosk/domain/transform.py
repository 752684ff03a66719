"""Models for captures and AI transformations."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Capture:
    """A photo taken at the kiosk for the current flow."""

    image_bytes: bytes
    captured_at: datetime


@dataclass(frozen=True)
class TransformRequest:
    """Image plus instruction for a single outbound AI call."""

    image_url: str
    instruction: str
    session_id: str | None = None


@dataclass(frozen=True)
class TransformResult:
    """The edited image and the instruction that produced it."""

    image_url: str
    instruction: str
