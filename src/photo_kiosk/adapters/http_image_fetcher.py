"""Download remotely hosted images for email attachments."""

import asyncio
import ipaddress
import logging
import socket
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from photo_kiosk.domain.images import ImagePayload
from photo_kiosk.errors import FieldError, UpstreamUnavailable, ValidationError
from photo_kiosk.services.delivery import ImageFetcher

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_REDIRECTS = 3

HostResolver = Callable[[str, int], Awaitable[list[str]]]


async def resolve_host(host: str, port: int) -> list[str]:
    """Return every address ``host`` resolves to."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


def is_public_address(address: str) -> bool:
    ip = ipaddress.ip_address(address.split("%", maxsplit=1)[0])
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return ip.is_global and not ip.is_multicast


def _rejected(message: str) -> ValidationError:
    return ValidationError([FieldError(field="imageUrl", message=message)])


@dataclass
class HttpxImageFetcher(ImageFetcher):
    """Image fetcher using httpx.

    Only public hosts are contacted, every redirect hop is re-checked, the
    response must declare an ``image/*`` type, and the body is streamed and
    abandoned once it passes ``max_bytes``.
    """

    http_client: httpx.AsyncClient
    timeout: float = 15.0
    max_bytes: int = MAX_IMAGE_BYTES
    resolver: HostResolver = resolve_host

    @classmethod
    def create(cls, timeout: float = 15.0) -> "HttpxImageFetcher":
        """Create a fetcher with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(), timeout=timeout)

    async def fetch(self, url: str) -> ImagePayload:
        """Download ``url`` and return its bytes and MIME type."""
        target = httpx.URL(url)
        for _ in range(MAX_REDIRECTS + 1):
            await self._check_host(target)
            try:
                async with self.http_client.stream(
                    "GET", target, timeout=self.timeout, follow_redirects=False
                ) as response:
                    if response.is_redirect:
                        target = target.join(response.headers["location"])
                        continue
                    response.raise_for_status()
                    return await self._read_image(response)
            except httpx.HTTPError as exc:
                logger.error(
                    "Image download failed", extra={"url": url, "error": str(exc)}
                )
                raise UpstreamUnavailable(str(exc)) from exc
        raise UpstreamUnavailable(f"Too many redirects fetching {url}")

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _check_host(self, target: httpx.URL) -> None:
        if target.scheme not in {"http", "https"} or not target.host:
            raise _rejected("must be an http(s) URL")
        port = target.port or (443 if target.scheme == "https" else 80)
        try:
            addresses = [str(ipaddress.ip_address(target.host))]
        except ValueError:
            try:
                addresses = await self.resolver(target.host, port)
            except OSError as exc:
                raise UpstreamUnavailable(f"Cannot resolve {target.host}") from exc
        if not addresses or not all(is_public_address(a) for a in addresses):
            logger.warning("Refused image host", extra={"host": target.host})
            raise _rejected("host is not allowed")

    async def _read_image(self, response: httpx.Response) -> ImagePayload:
        content_type = response.headers.get("content-type", "").split(";")[0]
        content_type = content_type.strip().lower()
        if not content_type.startswith("image/"):
            raise UpstreamUnavailable(f"Unexpected content type {content_type!r}")
        declared = response.headers.get("content-length")
        if declared is not None and declared.isdigit():
            if int(declared) > self.max_bytes:
                raise UpstreamUnavailable(f"Image exceeds {self.max_bytes} bytes")
        content = bytearray()
        async for chunk in response.aiter_bytes():
            content.extend(chunk)
            if len(content) > self.max_bytes:
                raise UpstreamUnavailable(f"Image exceeds {self.max_bytes} bytes")
        return ImagePayload(content=bytes(content), mime_type=content_type)
