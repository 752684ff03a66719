"""OpenAI-compatible chat completions client for image edits."""

import logging
from dataclasses import dataclass

from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from photo_kiosk.errors import (
    UpstreamQuotaExhausted,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from photo_kiosk.services.transform import ImageEditClient

logger = logging.getLogger(__name__)


@dataclass
class OpenAIImageEditClient(ImageEditClient):
    """Image edit client backed by an OpenAI-compatible AI gateway."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, base_url: str, timeout: float
    ) -> "OpenAIImageEditClient":
        """Create a client with retries disabled; failures surface to the caller."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
            )
        )

    async def edit_image(
        self, *, model: str, prompt: str, image_url: str
    ) -> dict[str, object]:
        """Send the prompt and photo together in one multimodal request."""
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": image_url}},
                        ],
                    }
                ],
                extra_body={"modalities": ["image", "text"]},
            )
        except APIStatusError as exc:
            logger.error(
                "AI gateway error",
                extra={"status_code": exc.status_code, "body": exc.response.text},
            )
            if exc.status_code == 429:
                raise UpstreamRateLimited(str(exc)) from exc
            if exc.status_code == 402:
                raise UpstreamQuotaExhausted(str(exc)) from exc
            raise UpstreamUnavailable(str(exc)) from exc
        except APIConnectionError as exc:
            logger.error("AI gateway unreachable", extra={"error": str(exc)})
            raise UpstreamUnavailable(str(exc)) from exc
        logger.info("AI response received")
        return response.model_dump()

    async def close(self) -> None:
        await self.client.close()
