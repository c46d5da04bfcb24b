"""Tests for template_service.py.

Template downloads are mocked with respx; the store is the in-memory
implementation (or a variant that fails on demand).
"""

import httpx
import pytest

from core.cache import InMemoryTemplateStore
from core.errors import (
    CacheError,
    EmptyTemplateError,
    FetchError,
    TemplateDownloadError,
    TemplateStatusError,
)
from services.template_service import TemplateCache
from tests.conftest import FailingTemplateStore
from tests.factories import LANDSCAPE_TEMPLATE_URL, PORTRAIT_TEMPLATE_URL

pytestmark = pytest.mark.unit

TEMPLATE_BYTES = b"%PDF-1.4 template"


class TestTemplateCacheFetch:
    """Tests for TemplateCache.fetch()."""

    @pytest.mark.asyncio
    async def test_downloads_on_miss_and_stores(
        self, respx_mock, template_cache, template_store
    ):
        """Should download the template and store it without expiry."""
        route = respx_mock.get(LANDSCAPE_TEMPLATE_URL).mock(
            return_value=httpx.Response(200, content=TEMPLATE_BYTES)
        )

        content = await template_cache.fetch(LANDSCAPE_TEMPLATE_URL)

        assert content == TEMPLATE_BYTES
        assert route.call_count == 1
        assert await template_store.get(LANDSCAPE_TEMPLATE_URL) == TEMPLATE_BYTES

    @pytest.mark.asyncio
    async def test_second_fetch_is_served_from_cache(self, respx_mock, template_cache):
        """Should hit the network once for repeated fetches of one URL."""
        route = respx_mock.get(LANDSCAPE_TEMPLATE_URL).mock(
            return_value=httpx.Response(200, content=TEMPLATE_BYTES)
        )

        first = await template_cache.fetch(LANDSCAPE_TEMPLATE_URL)
        second = await template_cache.fetch(LANDSCAPE_TEMPLATE_URL)

        assert first == second == TEMPLATE_BYTES
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_cached_bytes_skip_network(self, respx_mock, template_cache, template_store):
        """Should return pre-populated bytes without any request."""
        await template_store.set_without_expiry(LANDSCAPE_TEMPLATE_URL, b"cached")

        assert await template_cache.fetch(LANDSCAPE_TEMPLATE_URL) == b"cached"
        assert respx_mock.calls.call_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [404, 500, 204, 301])
    async def test_non_200_raises_and_is_not_cached(
        self, respx_mock, template_cache, template_store, status_code
    ):
        """Should raise TemplateStatusError and leave the cache empty."""
        respx_mock.get(LANDSCAPE_TEMPLATE_URL).mock(
            return_value=httpx.Response(status_code, content=b"nope")
        )

        with pytest.raises(TemplateStatusError) as exc_info:
            await template_cache.fetch(LANDSCAPE_TEMPLATE_URL)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.url == LANDSCAPE_TEMPLATE_URL
        assert f"non 200 response code {status_code}" in str(exc_info.value)
        assert len(template_store) == 0

    @pytest.mark.asyncio
    async def test_empty_body_raises_and_is_not_cached(
        self, respx_mock, template_cache, template_store
    ):
        """Should treat a 200 with no content as an invalid template URL."""
        respx_mock.get(LANDSCAPE_TEMPLATE_URL).mock(
            return_value=httpx.Response(200, content=b"")
        )

        with pytest.raises(EmptyTemplateError, match="received empty content"):
            await template_cache.fetch(LANDSCAPE_TEMPLATE_URL)

        assert len(template_store) == 0

    @pytest.mark.asyncio
    async def test_transport_error_raises_fetch_error(
        self, respx_mock, template_cache, template_store
    ):
        """Should wrap connection failures in TemplateDownloadError."""
        respx_mock.get(LANDSCAPE_TEMPLATE_URL).mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(TemplateDownloadError, match="connection refused"):
            await template_cache.fetch(LANDSCAPE_TEMPLATE_URL)

        assert len(template_store) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["http://[::1/t.pdf", "not a url at all"])
    async def test_malformed_url_raises_fetch_error(
        self, template_cache, template_store, url
    ):
        """Should report an unusable template URL as a download failure carrying the URL."""
        with pytest.raises(TemplateDownloadError) as exc_info:
            await template_cache.fetch(url)

        assert exc_info.value.url == url
        assert url in str(exc_info.value)
        assert len(template_store) == 0

    @pytest.mark.asyncio
    async def test_timeout_is_a_fetch_error(self, respx_mock, template_cache):
        """Should surface timeouts through the FetchError base class."""
        respx_mock.get(LANDSCAPE_TEMPLATE_URL).mock(
            side_effect=httpx.ReadTimeout("timed out")
        )

        with pytest.raises(FetchError):
            await template_cache.fetch(LANDSCAPE_TEMPLATE_URL)

    @pytest.mark.asyncio
    async def test_failed_download_can_be_retried(
        self, respx_mock, template_cache, template_store
    ):
        """Should download again after a failure since nothing was cached."""
        route = respx_mock.get(LANDSCAPE_TEMPLATE_URL)
        route.side_effect = [
            httpx.Response(503),
            httpx.Response(200, content=TEMPLATE_BYTES),
        ]

        with pytest.raises(TemplateStatusError):
            await template_cache.fetch(LANDSCAPE_TEMPLATE_URL)
        content = await template_cache.fetch(LANDSCAPE_TEMPLATE_URL)

        assert content == TEMPLATE_BYTES
        assert route.call_count == 2
        assert len(template_store) == 1


class TestTemplateCacheStoreFailures:
    """Tests for store failures during fetch()."""

    @pytest.mark.asyncio
    async def test_read_failure_falls_back_to_download(self, respx_mock, http_client):
        """Should log a cache read error and download the template instead."""
        store = FailingTemplateStore(fail_reads=True)
        cache = TemplateCache(store, http_client)
        route = respx_mock.get(LANDSCAPE_TEMPLATE_URL).mock(
            return_value=httpx.Response(200, content=TEMPLATE_BYTES)
        )

        assert await cache.fetch(LANDSCAPE_TEMPLATE_URL) == TEMPLATE_BYTES
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_write_failure_raises_cache_error(self, respx_mock, http_client):
        """Should fail the fetch when the downloaded template cannot be stored."""
        store = FailingTemplateStore(fail_writes=True)
        cache = TemplateCache(store, http_client)
        respx_mock.get(LANDSCAPE_TEMPLATE_URL).mock(
            return_value=httpx.Response(200, content=TEMPLATE_BYTES)
        )

        with pytest.raises(CacheError):
            await cache.fetch(LANDSCAPE_TEMPLATE_URL)

    @pytest.mark.asyncio
    async def test_urls_are_cached_independently(self, respx_mock, http_client):
        """Should key cached bytes by the full URL."""
        store = InMemoryTemplateStore()
        cache = TemplateCache(store, http_client)
        other_url = PORTRAIT_TEMPLATE_URL
        respx_mock.get(LANDSCAPE_TEMPLATE_URL).mock(
            return_value=httpx.Response(200, content=b"one")
        )
        respx_mock.get(other_url).mock(return_value=httpx.Response(200, content=b"two"))

        assert await cache.fetch(LANDSCAPE_TEMPLATE_URL) == b"one"
        assert await cache.fetch(other_url) == b"two"
        assert len(store) == 2
