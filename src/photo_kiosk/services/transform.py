"""AI photo transformation service."""

import logging
from dataclasses import dataclass
from typing import Protocol

from photo_kiosk.domain.transform import TransformRequest, TransformResult
from photo_kiosk.errors import NoImageProduced

logger = logging.getLogger(__name__)

EDIT_PROMPT_TEMPLATE = (
    "EDIT MODE: Modify this existing photograph. Keep the EXACT same person "
    "with their EXACT facial features, face shape, skin tone, and all "
    "identifying characteristics completely unchanged. Only add these "
    "costume/transformation elements on top of the existing person: "
    "{instruction}. This is a photo editing task - do NOT generate a new "
    "person, do NOT change who the person is. Add the transformation while "
    "preserving the person's complete identity and appearance."
)


class ImageEditClient(Protocol):
    """Interface for the external image-generation gateway."""

    async def edit_image(
        self, *, model: str, prompt: str, image_url: str
    ) -> dict[str, object]:
        """Send one multimodal edit request and return the raw response."""


@dataclass
class TransformService:
    """Packages a capture and instruction into a single edit request."""

    client: ImageEditClient
    model: str

    async def transform(self, request: TransformRequest) -> TransformResult:
        """Return the edited image or raise an ``UpstreamUnavailable`` error."""
        logger.info(
            "Transforming image",
            extra={
                "session_id": request.session_id,
                "instruction": request.instruction,
            },
        )
        raw = await self.client.edit_image(
            model=self.model,
            prompt=build_edit_prompt(request.instruction),
            image_url=request.image_url,
        )
        edited_url = extract_image_url(raw)
        if not edited_url:
            logger.error(
                "AI response contained no image",
                extra={"session_id": request.session_id},
            )
            raise NoImageProduced("No edited image received from AI")
        return TransformResult(image_url=edited_url, instruction=request.instruction)


def build_edit_prompt(instruction: str) -> str:
    """Frame the instruction as an identity-preserving edit."""
    return EDIT_PROMPT_TEMPLATE.format(instruction=instruction)


def extract_image_url(raw: dict[str, object]) -> str | None:
    """Pull ``choices[0].message.images[0].image_url.url`` from a response."""
    choices = raw.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        return None
    images = message.get("images")
    if not isinstance(images, list) or not images or not isinstance(images[0], dict):
        return None
    image_url = images[0].get("image_url")
    if not isinstance(image_url, dict):
        return None
    url = image_url.get("url")
    return url if isinstance(url, str) and url else None
