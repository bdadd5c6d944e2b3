"""Tests for markclip.images.ImageEmbedder (HTTP faked with httpx.MockTransport)."""

from __future__ import annotations

import asyncio
import base64
import re

import httpx
import pytest

from markclip.images import ImageEmbedder, data_url_info

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


def _embedder(handler, **kwargs) -> ImageEmbedder:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ImageEmbedder(client, **kwargs)


def _png_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, headers={"content-type": "image/png"}, content=PNG)


class TestEmbed:
    async def test_success(self):
        embedder = _embedder(_png_handler)
        result = await embedder.embed("https://img.test/a.png")
        assert result == "data:image/png;base64," + base64.b64encode(PNG).decode()

    async def test_content_type_parameters_dropped(self):
        def handler(request):
            return httpx.Response(
                200, headers={"content-type": "Image/SVG+XML; charset=utf-8"}, content=b"<svg/>",
            )

        result = await _embedder(handler).embed("https://img.test/a.svg")
        assert result is not None
        assert result.startswith("data:image/svg+xml;base64,")

    async def test_data_url_passthrough(self):
        embedder = _embedder(lambda r: pytest.fail("no request expected"))
        assert await embedder.embed("data:image/gif;base64,R0lG") == "data:image/gif;base64,R0lG"

    async def test_empty_url(self):
        assert await _embedder(_png_handler).embed("") is None

    async def test_wrong_content_type(self):
        def handler(request):
            return httpx.Response(200, headers={"content-type": "text/html"}, content=b"<html>")

        assert await _embedder(handler).embed("https://img.test/a.png") is None

    async def test_non_success_status(self):
        def handler(request):
            return httpx.Response(404, headers={"content-type": "image/png"}, content=PNG)

        assert await _embedder(handler).embed("https://img.test/a.png") is None

    async def test_declared_length_over_limit(self):
        def handler(request):
            return httpx.Response(
                200,
                headers={"content-type": "image/png", "content-length": "999999"},
                content=PNG,
            )

        assert await _embedder(handler).embed("https://img.test/a.png", max_bytes=1000) is None

    async def test_streamed_body_over_limit(self):
        def handler(request):
            # no content-length: the limit is enforced while streaming
            return httpx.Response(
                200,
                headers={"content-type": "image/png"},
                stream=httpx.ByteStream(b"x" * 2048),
            )

        assert await _embedder(handler).embed("https://img.test/a.png", max_bytes=1024) is None

    async def test_timeout(self):
        async def handler(request):
            await asyncio.sleep(1)
            return _png_handler(request)

        assert await _embedder(handler).embed("https://img.test/a.png", timeout_ms=20) is None

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert await _embedder(handler).embed("https://img.test/a.png") is None

    async def test_custom_mime_pattern(self):
        def handler(request):
            return httpx.Response(200, headers={"content-type": "application/pdf"}, content=b"%PDF")

        embedder = _embedder(handler)
        assert await embedder.embed("https://x.test/a.pdf", allowed_mime=r"^application/pdf$")

    async def test_compiled_mime_pattern_used_as_is(self):
        embedder = _embedder(_png_handler)
        result = await embedder.embed("https://img.test/a.png", allowed_mime=re.compile(r"^image/"))
        assert result is not None
        assert result.startswith("data:image/png;base64,")

    async def test_compiled_mime_pattern_rejects(self):
        embedder = _embedder(_png_handler)
        assert await embedder.embed(
            "https://img.test/a.png", allowed_mime=re.compile(r"^video/"),
        ) is None

    async def test_invalid_mime_pattern_returns_none(self):
        embedder = _embedder(lambda r: pytest.fail("no request expected"))
        assert await embedder.embed("https://img.test/a.png", allowed_mime="(") is None


class TestCache:
    async def test_success_cached(self):
        calls: list[str] = []

        def handler(request):
            calls.append(str(request.url))
            return _png_handler(request)

        embedder = _embedder(handler)
        first = await embedder.embed("https://img.test/a.png")
        second = await embedder.embed("https://img.test/a.png")
        assert first == second
        assert len(calls) == 1
        assert embedder.cached("https://img.test/a.png") == first

    async def test_failure_not_cached(self):
        calls: list[str] = []

        def handler(request):
            calls.append(str(request.url))
            return httpx.Response(500)

        embedder = _embedder(handler)
        await embedder.embed("https://img.test/a.png")
        await embedder.embed("https://img.test/a.png")
        assert len(calls) == 2

    async def test_clear_cache(self):
        embedder = _embedder(_png_handler)
        await embedder.embed("https://img.test/a.png")
        embedder.clear_cache()
        assert embedder.cached("https://img.test/a.png") is None


class TestCredentials:
    async def test_cookies_sent_by_default(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return _png_handler(request)

        embedder = _embedder(handler, cookies={"sid": "abc"}, headers={"Authorization": "Bearer t"})
        await embedder.embed("https://img.test/a.png")
        assert seen[0].headers["cookie"] == "sid=abc"
        assert seen[0].headers["authorization"] == "Bearer t"

    async def test_credentials_omitted_when_disabled(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return _png_handler(request)

        embedder = _embedder(handler, cookies={"sid": "abc"})
        await embedder.embed("https://img.test/a.png", use_credentials=False)
        assert "cookie" not in seen[0].headers


class TestLifecycle:
    async def test_owned_client_closed(self):
        embedder = ImageEmbedder()
        client = embedder._get_client()
        await embedder.aclose()
        assert client.is_closed

    async def test_injected_client_left_open(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(_png_handler))
        async with ImageEmbedder(client):
            pass
        assert not client.is_closed
        await client.aclose()


class TestDataUrlInfo:
    def test_base64(self):
        assert data_url_info("data:image/png;base64,AAAA") == ("image/png", 3)

    def test_padding(self):
        assert data_url_info("data:image/png;base64,AA==") == ("image/png", 1)

    def test_not_base64(self):
        assert data_url_info("data:text/plain,hello") == (None, None)
