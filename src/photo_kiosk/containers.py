"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from photo_kiosk.adapters.file_session_store import JsonFileSessionStore
from photo_kiosk.adapters.http_image_fetcher import HttpxImageFetcher
from photo_kiosk.adapters.kiosk_api_client import HttpxKioskApiClient
from photo_kiosk.adapters.openai_image_client import OpenAIImageEditClient
from photo_kiosk.adapters.resend_email_client import HttpxResendEmailClient
from photo_kiosk.adapters.supabase_delivery_repository import (
    SupabaseDeliveryRepository,
)
from photo_kiosk.config import KioskSettings, Settings
from photo_kiosk.services.delivery import DeliveryComposer, DeliveryService
from photo_kiosk.services.flow import KioskFlow
from photo_kiosk.services.rate_limit import RateLimiter
from photo_kiosk.services.session_provider import SessionProvider
from photo_kiosk.services.transform import TransformService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    transform_service: TransformService
    delivery_service: DeliveryService
    transform_limiter: RateLimiter
    deliver_limiter: RateLimiter
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    ai_client = OpenAIImageEditClient.create(
        api_key=resolved_settings.ai_gateway_api_key,
        base_url=resolved_settings.ai_gateway_base_url,
        timeout=resolved_settings.ai_timeout_seconds,
    )
    email_client = HttpxResendEmailClient.create(
        api_key=resolved_settings.resend_api_key,
        sender=resolved_settings.email_from,
        timeout=resolved_settings.email_timeout_seconds,
    )
    image_fetcher = HttpxImageFetcher.create(
        timeout=resolved_settings.image_fetch_timeout_seconds
    )
    transform_service = TransformService(
        client=ai_client, model=resolved_settings.ai_model
    )
    delivery_service = DeliveryService(
        composer=DeliveryComposer(image_fetcher=image_fetcher),
        repository=SupabaseDeliveryRepository(supabase_client),
        email_gateway=email_client,
    )
    window = timedelta(seconds=resolved_settings.rate_window_seconds)
    transform_limiter = RateLimiter(
        name="transform", limit=resolved_settings.transform_rate_limit, window=window
    )
    deliver_limiter = RateLimiter(
        name="deliver", limit=resolved_settings.deliver_rate_limit, window=window
    )

    async def close_resources() -> None:
        await ai_client.close()
        await email_client.close()
        await image_fetcher.close()

    return AppContainer(
        settings=resolved_settings,
        transform_service=transform_service,
        delivery_service=delivery_service,
        transform_limiter=transform_limiter,
        deliver_limiter=deliver_limiter,
        close_resources=close_resources,
    )


def build_kiosk_flow(
    settings: KioskSettings | None = None,
) -> tuple[KioskFlow, Callable[[], Awaitable[None]]]:
    """Create the kiosk-side flow and a callback that closes its HTTP session."""
    resolved_settings = settings or KioskSettings()
    api_client = HttpxKioskApiClient.create(
        base_url=resolved_settings.api_base_url,
        timeout=resolved_settings.api_timeout_seconds,
    )
    sessions = SessionProvider(
        store=JsonFileSessionStore(resolved_settings.session_store_path),
        ttl=timedelta(hours=resolved_settings.session_ttl_hours),
    )
    flow = KioskFlow(
        backend=api_client,
        sessions=sessions,
        idle_timeout=timedelta(seconds=resolved_settings.idle_timeout_seconds),
        delivered_display=timedelta(
            seconds=resolved_settings.delivered_display_seconds
        ),
    )
    return flow, api_client.close
