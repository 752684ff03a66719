"""Error taxonomy shared by the API and the kiosk flow.

Every failure that crosses a component boundary is normalized into one of
these types. ``public_message`` is safe to show on the kiosk screen; raw
upstream detail stays in the logs.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A single violated field in an inbound payload."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class KioskError(Exception):
    """Base class for all normalized kiosk failures."""

    status_code = 500
    public_message = "Something went wrong. Please try again."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.public_message)
        self.detail = detail


class ValidationError(KioskError):
    """Caller-correctable input problem carrying every violated field."""

    status_code = 400
    public_message = "Invalid input data"

    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__(", ".join(f"{e.field}: {e.message}" for e in errors))
        self.errors = errors


class RateLimited(KioskError):
    """The caller key exhausted its window; retry after ``retry_after`` seconds."""

    status_code = 429
    public_message = "Too many requests. Please try again later."

    def __init__(self, retry_after: float) -> None:
        super().__init__(f"retry after {retry_after:.0f}s")
        self.retry_after = retry_after


class UpstreamUnavailable(KioskError):
    """AI or email provider failed; not caller-correctable."""

    status_code = 500
    public_message = "The service is temporarily unavailable. Please try again."


class UpstreamRateLimited(UpstreamUnavailable):
    status_code = 429
    public_message = "Rate limits exceeded, please try again later."


class UpstreamQuotaExhausted(UpstreamUnavailable):
    status_code = 402
    public_message = "The transformation service is out of credits."


class NoImageProduced(UpstreamUnavailable):
    """Upstream answered successfully but returned no image."""

    public_message = "No edited image was produced. Please try again."


class DeliveryFailed(UpstreamUnavailable):
    public_message = "Failed to send email. Please try again."


class StorageUnavailable(KioskError):
    """Local session storage cannot be read or written."""

    public_message = "Session storage is unavailable."
