"""Async acquisition of image payloads.

Supported locators:
- ``data:`` URIs (decoded in place, no network)
- ``http://`` / ``https://`` URLs (fetched with httpx)
- opaque asset pointers (``file-service://...``, ``sediment://...``), mapped
  to a fetchable URL through an optional ``asset_resolver`` hook
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from types import TracebackType

import httpx
from loguru import logger

from chatexporter.config import FetchConfig
from chatexporter.constants import DEFAULT_BASE_URL
from chatexporter.errors import ImageFetchError
from chatexporter.images.utils import decode_base64
from chatexporter.utils.mime import guess_mime_type, sniff_image

AssetResolver = Callable[[str], Awaitable[str | None] | str | None]


@dataclass(frozen=True)
class FetchedImage:
    """Raw bytes of one image plus what could be learned about them."""

    data: bytes
    mime_type: str
    width: int | None = None
    height: int | None = None


def _resolve_mime(locator: str, content_type: str | None, sniffed: str | None) -> str:
    """Pick a MIME type: response header, then payload signature, then locator."""
    if content_type:
        clean = content_type.lower().split(";")[0].strip()
        if clean.startswith("image/"):
            return clean
    if sniffed:
        return sniffed
    return guess_mime_type(locator)


class ImageFetcher:
    """Fetch image payloads for the strategies.

    The fetcher owns an ``httpx.AsyncClient`` unless one is injected; use it
    as an async context manager so the owned client is closed. The access
    token is attached per request, only for ``base_url`` and its subdomains
    or for URLs returned by the asset resolver.

    Usage:
        async with ImageFetcher(config) as fetcher:
            image = await fetcher.fetch("https://example.com/a.png")
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        client: httpx.AsyncClient | None = None,
        asset_resolver: AssetResolver | None = None,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self.config = config or FetchConfig()
        self.asset_resolver = asset_resolver
        self.base_host = httpx.URL(base_url).host
        self._client = client
        self._owns_client = client is None

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.config.user_agent, **self.config.headers}

    def _is_trusted_host(self, url: str) -> bool:
        host = httpx.URL(url).host
        return bool(self.base_host) and (
            host == self.base_host or host.endswith(f".{self.base_host}")
        )

    def _auth_headers(self, url: str, resolved: bool = False) -> dict[str, str]:
        """Bearer header for the backend host and resolved asset URLs only."""
        token = self.config.get_resolved_access_token()
        if not token or not (resolved or self._is_trusted_host(url)):
            return {}
        return {"Authorization": f"Bearer {token}"}

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers(),
            timeout=self.config.timeout,
            follow_redirects=True,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ImageFetcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def fetch(self, locator: str) -> FetchedImage:
        """Fetch one image.

        Raises:
            ImageFetchError: If the locator is empty, unsupported, cannot be
                resolved, the request fails or the payload is empty.
        """
        if not locator:
            raise ImageFetchError(locator, "empty locator")

        if locator.startswith("data:"):
            return self._decode_data_uri(locator)

        url = locator
        resolved = not locator.startswith(("http://", "https://"))
        if resolved:
            url = await self._resolve_asset(locator)

        try:
            response = await self.client.get(url, headers=self._auth_headers(url, resolved))
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ImageFetchError(locator, "timeout") from e
        except httpx.HTTPStatusError as e:
            raise ImageFetchError(locator, f"HTTP {e.response.status_code}") from e
        except httpx.InvalidURL as e:
            raise ImageFetchError(locator, "invalid URL") from e
        except httpx.HTTPError as e:
            raise ImageFetchError(locator, str(e) or type(e).__name__) from e

        data = response.content
        if not data:
            raise ImageFetchError(locator, "empty response body")

        sniffed, width, height = sniff_image(data)
        mime_type = _resolve_mime(url, response.headers.get("content-type"), sniffed)
        logger.debug(f"Fetched image {url[:80]} ({len(data)} bytes, {mime_type})")
        return FetchedImage(data=data, mime_type=mime_type, width=width, height=height)

    def _decode_data_uri(self, locator: str) -> FetchedImage:
        try:
            data = decode_base64(locator)
        except ValueError as e:
            raise ImageFetchError(locator, str(e)) from e
        if not data:
            raise ImageFetchError(locator, "empty data URI")
        _, width, height = sniff_image(data)
        mime_type = guess_mime_type(locator)
        return FetchedImage(data=data, mime_type=mime_type, width=width, height=height)

    async def _resolve_asset(self, locator: str) -> str:
        if self.asset_resolver is None:
            raise ImageFetchError(locator, "no resolver for asset pointer")

        resolved = self.asset_resolver(locator)
        if inspect.isawaitable(resolved):
            resolved = await resolved
        if not resolved:
            raise ImageFetchError(locator, "asset pointer could not be resolved")
        return resolved
