"""HTTP client the kiosk uses to reach the transform and deliver endpoints."""

import logging
from dataclasses import dataclass

import httpx

from photo_kiosk.domain.images import to_data_url
from photo_kiosk.errors import (
    FieldError,
    NoImageProduced,
    RateLimited,
    UpstreamQuotaExhausted,
    UpstreamUnavailable,
    ValidationError,
)
from photo_kiosk.services.flow import DeliveryForm, KioskBackend

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 3600.0


@dataclass
class HttpxKioskApiClient(KioskBackend):
    """Kiosk backend implemented with httpx against the kiosk API."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 45.0

    @classmethod
    def create(cls, base_url: str, timeout: float = 45.0) -> "HttpxKioskApiClient":
        """Create an API client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def transform(
        self, image_bytes: bytes, instruction: str, session_id: str
    ) -> str:
        """Send the captured photo as a data URL and return the edited image URL."""
        data = await self._post(
            "/transform",
            {
                "imageUrl": to_data_url(image_bytes),
                "prompt": instruction,
                "sessionId": session_id,
            },
        )
        edited = data.get("editedImageUrl")
        if not isinstance(edited, str) or not edited:
            raise NoImageProduced("No edited image received")
        return edited

    async def deliver(  # noqa: PLR0913
        self,
        *,
        session_id: str,
        form: DeliveryForm,
        image_url: str,
        instruction: str | None,
    ) -> str:
        """Ask the API to record the delivery and email the photo."""
        payload: dict[str, object] = {
            "sessionId": session_id,
            "email": form.email,
            "consentGiven": form.consent_given,
            "imageUrl": image_url,
        }
        optional = {
            "name": form.name,
            "company": form.company,
            "message": form.message,
            "prompt": instruction,
        }
        payload.update({key: value for key, value in optional.items() if value})
        data = await self._post("/deliver", payload)
        return str(data.get("id", ""))

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _post(self, path: str, payload: dict[str, object]) -> dict[str, object]:
        try:
            response = await self.http_client.post(
                f"{self.base_url}{path}", json=payload, timeout=self.timeout
            )
        except httpx.HTTPError as exc:
            logger.error(
                "Kiosk API unreachable", extra={"path": path, "error": str(exc)}
            )
            raise UpstreamUnavailable(str(exc)) from exc
        if response.is_success:
            return response.json()
        raise _error_from_response(response)


def _error_from_response(response: httpx.Response) -> Exception:
    """Map an API error response back into the kiosk error taxonomy."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    status = response.status_code
    if status == httpx.codes.BAD_REQUEST:
        details = body.get("details") or []
        return ValidationError(
            [
                FieldError(
                    field=str(item.get("field", "body")),
                    message=str(item.get("message", "")),
                )
                for item in details
                if isinstance(item, dict)
            ]
        )
    if status == httpx.codes.TOO_MANY_REQUESTS:
        retry_after = body.get("retryAfter", DEFAULT_RETRY_AFTER_SECONDS)
        if not isinstance(retry_after, int | float):
            retry_after = DEFAULT_RETRY_AFTER_SECONDS
        return RateLimited(retry_after=float(retry_after))
    if status == httpx.codes.PAYMENT_REQUIRED:
        return UpstreamQuotaExhausted(str(body.get("error", "")))
    logger.error(
        "Kiosk API error", extra={"status_code": status, "body": response.text}
    )
    return UpstreamUnavailable(str(body.get("error", "")))
