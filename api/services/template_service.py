"""Certificate template acquisition with caching.

Templates are large, rarely-changing PDFs hosted at arbitrary URLs. The
cache stores each URL's bytes without expiry, so a template is downloaded
at most once per store lifetime (concurrent first requests may both
download; they write identical bytes).

Failure semantics:
- cache read errors are logged and treated as a miss
- transport errors, non-200 responses and empty bodies raise distinct
  ``FetchError`` subclasses and leave the cache untouched
- a failed cache write after a successful download raises ``CacheError``
Nothing is retried here; retry policy belongs to the caller.
"""

import logging

import httpx

from core.cache import TemplateStore
from core.errors import (
    CacheError,
    EmptyTemplateError,
    TemplateDownloadError,
    TemplateStatusError,
)

logger = logging.getLogger(__name__)


class TemplateCache:
    """Cache-or-fetch access to template bytes by URL."""

    def __init__(self, store: TemplateStore, client: httpx.AsyncClient):
        self._store = store
        self._client = client

    async def _download(self, url: str) -> bytes:
        logger.info("template.download.started", extra={"url": url})
        try:
            response = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("template.download.failed", extra={"url": url, "error": str(e)})
            raise TemplateDownloadError(url, str(e)) from e

        if response.status_code != 200:
            logger.error(
                "template.download.bad_status",
                extra={"url": url, "status_code": response.status_code},
            )
            raise TemplateStatusError(url, response.status_code)

        content = response.content
        if not content:
            logger.error("template.download.empty", extra={"url": url})
            raise EmptyTemplateError(url)

        return content

    async def _read_cached(self, url: str) -> bytes | None:
        try:
            return await self._store.get(url)
        except CacheError as e:
            logger.error("template.cache.read_failed", extra={"url": url, "error": str(e)})
            return None

    async def fetch(self, url: str) -> bytes:
        """Return the template at ``url``, downloading it on a cache miss.

        Raises:
            FetchError: If the download fails (transport, status, empty body).
            CacheError: If the downloaded template cannot be stored.
        """
        cached = await self._read_cached(url)
        if cached:
            logger.debug("template.cache.hit", extra={"url": url})
            return cached

        content = await self._download(url)
        try:
            await self._store.set_without_expiry(url, content)
        except CacheError:
            logger.error("template.cache.write_failed", extra={"url": url})
            raise

        logger.info(
            "template.cached", extra={"url": url, "size_bytes": len(content)}
        )
        return content
