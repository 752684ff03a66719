"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from photo_kiosk.config import Settings
from photo_kiosk.containers import AppContainer
from photo_kiosk.domain.delivery import DeliveryRecord, OutboundMessage
from photo_kiosk.domain.images import ImagePayload, to_data_url
from photo_kiosk.errors import DeliveryFailed, KioskError, UpstreamUnavailable
from photo_kiosk.services.delivery import (
    DeliveryComposer,
    DeliveryRepository,
    DeliveryService,
    EmailGateway,
    ImageFetcher,
)
from photo_kiosk.services.flow import DeliveryForm, KioskBackend
from photo_kiosk.services.rate_limit import RateLimiter
from photo_kiosk.services.transform import ImageEditClient, TransformService

TINY_JPEG = (
    b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    + bytes(range(100))
)
EDITED_PNG = b"\x89PNG\r\n\x1a\n" + b"wizard-hat-pixels"


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = field(
        default_factory=lambda: datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class FakeImageEditClient(ImageEditClient):
    """Fake AI gateway returning a fixed edited image."""

    edited_url: str = field(default_factory=lambda: to_data_url(EDITED_PNG))
    calls: list[dict[str, str]] = field(default_factory=list)

    async def edit_image(
        self, *, model: str, prompt: str, image_url: str
    ) -> dict[str, object]:
        self.calls.append({"model": model, "prompt": prompt, "image_url": image_url})
        return {
            "choices": [
                {
                    "message": {
                        "role": "assistant",
                        "content": "Here you go",
                        "images": [
                            {"type": "image_url", "image_url": {"url": self.edited_url}}
                        ],
                    }
                }
            ]
        }


@dataclass
class FailingImageEditClient(ImageEditClient):
    """Fake AI gateway that raises the configured error."""

    error: Exception

    async def edit_image(
        self, *, model: str, prompt: str, image_url: str
    ) -> dict[str, object]:
        raise self.error


@dataclass
class FakeEmailGateway(EmailGateway):
    """Fake email gateway that records messages."""

    sent: list[OutboundMessage] = field(default_factory=list)
    fail: bool = False

    async def send(self, message: OutboundMessage) -> str:
        if self.fail:
            raise DeliveryFailed("provider down")
        self.sent.append(message)
        return f"msg-{len(self.sent)}"


@dataclass
class FakeImageFetcher(ImageFetcher):
    """Fake fetcher serving fixed bytes for any URL."""

    content: bytes = EDITED_PNG
    mime_type: str = "image/png"
    fetched: list[str] = field(default_factory=list)

    async def fetch(self, url: str) -> ImagePayload:
        self.fetched.append(url)
        return ImagePayload(content=self.content, mime_type=self.mime_type)


@dataclass
class FailingImageFetcher(ImageFetcher):
    """Fake fetcher whose downloads always fail."""

    async def fetch(self, url: str) -> ImagePayload:
        raise UpstreamUnavailable(f"GET {url} failed")


@dataclass
class InMemoryDeliveryRepository(DeliveryRepository):
    """In-memory delivery analytics repository for tests."""

    rows: dict[UUID, dict[str, object]] = field(default_factory=dict)
    fail: bool = False

    def create_delivery(self, record: DeliveryRecord) -> UUID:
        if self.fail:
            raise RuntimeError("Failed to create delivery record")
        record_id = uuid4()
        self.rows[record_id] = record.to_row()
        return record_id


@dataclass
class FakeKioskBackend(KioskBackend):
    """Scriptable kiosk backend for flow tests."""

    edited_url: str = field(default_factory=lambda: to_data_url(EDITED_PNG))
    transform_error: KioskError | None = None
    deliver_error: KioskError | None = None
    transforms: list[tuple[bytes, str, str]] = field(default_factory=list)
    deliveries: list[dict[str, object]] = field(default_factory=list)

    async def transform(
        self, image_bytes: bytes, instruction: str, session_id: str
    ) -> str:
        self.transforms.append((image_bytes, instruction, session_id))
        if self.transform_error is not None:
            raise self.transform_error
        return self.edited_url

    async def deliver(  # noqa: PLR0913
        self,
        *,
        session_id: str,
        form: DeliveryForm,
        image_url: str,
        instruction: str | None,
    ) -> str:
        self.deliveries.append(
            {
                "session_id": session_id,
                "form": form,
                "image_url": image_url,
                "instruction": instruction,
            }
        )
        if self.deliver_error is not None:
            raise self.deliver_error
        return "msg-1"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        ai_gateway_api_key="ai-key",
        resend_api_key="resend-key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def image_edit_client() -> FakeImageEditClient:
    return FakeImageEditClient()


@pytest.fixture
def email_gateway() -> FakeEmailGateway:
    return FakeEmailGateway()


@pytest.fixture
def delivery_repository() -> InMemoryDeliveryRepository:
    return InMemoryDeliveryRepository()


@pytest.fixture
def container(
    settings: Settings,
    image_edit_client: FakeImageEditClient,
    email_gateway: FakeEmailGateway,
    delivery_repository: InMemoryDeliveryRepository,
) -> AppContainer:
    transform_service = TransformService(
        client=image_edit_client, model=settings.ai_model
    )
    delivery_service = DeliveryService(
        composer=DeliveryComposer(image_fetcher=FakeImageFetcher()),
        repository=delivery_repository,
        email_gateway=email_gateway,
    )
    window = timedelta(seconds=settings.rate_window_seconds)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        transform_service=transform_service,
        delivery_service=delivery_service,
        transform_limiter=RateLimiter(
            name="transform",
            limit=settings.transform_rate_limit,
            window=window,
        ),
        deliver_limiter=RateLimiter(
            name="deliver",
            limit=settings.deliver_rate_limit,
            window=window,
        ),
        close_resources=close_resources,
    )
