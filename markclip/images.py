"""Image embedding: fetch an image URL and return it as a ``data:`` URI.

Bounded in time (``asyncio.wait_for``), size (streamed byte count) and type
(content-type allow-list).  Successful conversions are memoized for the
lifetime of the :class:`ImageEmbedder`; failures are not, so a later call may
retry.  :meth:`ImageEmbedder.embed` never raises.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import re
from types import TracebackType

import httpx

from markclip import settings

logger = logging.getLogger(__name__)


class ImageEmbedder:
    """Convert image URLs to ``data:`` URIs over a shared httpx client.

    *cookies* and *headers* are credentials for image hosts that need the
    reader's session; they are only sent when ``use_credentials`` is on.
    Pass *client* to control transport (tests use ``httpx.MockTransport``);
    otherwise one is created lazily and closed by :meth:`aclose`.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        cookies: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._cookies = dict(cookies or {})
        self._headers = dict(headers or {})
        self._cache: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                headers={"User-Agent": settings.EMBED_USER_AGENT},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            logger.debug("Closing image embedding client")
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ImageEmbedder:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def cached(self, url: str) -> str | None:
        return self._cache.get(url)

    def clear_cache(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    async def embed(
        self,
        url: str,
        *,
        timeout_ms: int | None = None,
        max_bytes: int | None = None,
        allowed_mime: str | re.Pattern[str] | None = None,
        use_credentials: bool | None = None,
    ) -> str | None:
        """Return *url* as a ``data:<type>;base64,...`` URI, or None.

        ``data:`` URLs are returned unchanged.  None means any of: empty URL,
        non-2xx response, disallowed content type, body larger than
        *max_bytes*, no answer within *timeout_ms*, or a transport error.
        """
        if not url:
            return None
        if url.startswith("data:"):
            return url
        hit = self._cache.get(url)
        if hit is not None:
            return hit

        timeout = (settings.EMBED_TIMEOUT_MS if timeout_ms is None else timeout_ms) / 1000
        limit = settings.EMBED_MAX_BYTES if max_bytes is None else max_bytes
        credentials = settings.EMBED_USE_CREDENTIALS if use_credentials is None else use_credentials

        try:
            pattern = _mime_pattern(allowed_mime)
        except re.error as exc:
            logger.debug("Invalid MIME pattern %r: %s", allowed_mime, exc)
            return None

        try:
            data_url = await asyncio.wait_for(
                self._fetch(url, limit, pattern, credentials), timeout=timeout,
            )
        except TimeoutError:
            logger.debug("Image embed timed out after %.1fs: %s", timeout, url)
            return None
        except Exception as exc:
            logger.debug("Image embed failed for %s: %s", url, exc)
            return None

        if data_url is not None:
            self._cache[url] = data_url
        return data_url

    def _request_headers(self, use_credentials: bool) -> dict[str, str]:
        if not use_credentials:
            return {}
        headers = dict(self._headers)
        if self._cookies:
            headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in self._cookies.items())
        return headers

    async def _fetch(
        self,
        url: str,
        max_bytes: int,
        allowed: re.Pattern[str],
        use_credentials: bool,
    ) -> str | None:
        client = self._get_client()
        headers = self._request_headers(use_credentials)

        async with client.stream("GET", url, headers=headers) as response:
            if not response.is_success:
                logger.debug("Image %s answered HTTP %d", url, response.status_code)
                return None

            content_type = (
                response.headers.get("content-type", "").split(";")[0].strip().lower()
            )
            if not allowed.search(content_type):
                logger.debug("Image %s has disallowed type %r", url, content_type)
                return None

            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > max_bytes:
                logger.debug("Image %s declares %s bytes (limit %d)", url, declared, max_bytes)
                return None

            received = 0
            chunks: list[bytes] = []
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > max_bytes:
                    logger.debug("Image %s exceeded %d bytes", url, max_bytes)
                    return None
                chunks.append(chunk)

        encoded = base64.b64encode(b"".join(chunks)).decode("ascii")
        return f"data:{content_type};base64,{encoded}"


def _mime_pattern(allowed: str | re.Pattern[str] | None) -> re.Pattern[str]:
    if isinstance(allowed, re.Pattern):
        return allowed
    return re.compile(allowed or settings.EMBED_ALLOWED_MIME, re.IGNORECASE)


def data_url_info(data_url: str) -> tuple[str | None, int | None]:
    """Return ``(content_type, decoded byte count)`` of a base64 ``data:`` URI."""
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        return None, None
    content_type = header[len("data:"):-len(";base64")] or None
    padding = len(payload) - len(payload.rstrip("="))
    return content_type, len(payload) * 3 // 4 - padding
