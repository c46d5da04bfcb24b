"""Pytest configuration and shared fixtures.

This module provides:
- Test settings (no .env, URL policy by default)
- Blank template PDFs built with reportlab
- Sample credential JSON and certificate requests
- Template stores, including one that fails on demand
- A FastAPI test client with the renderer wired in
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from reportlab.lib.pagesizes import A4, landscape

from core.cache import InMemoryTemplateStore
from core.config import Settings, clear_settings_cache
from core.errors import CacheError
from schemas import CertificateRequest
from services.certificates_service import CertificateRenderer
from services.template_service import TemplateCache
from tests.factories import (
    CertificateRequestFactory,
    build_template_pdf,
    credential_json,
)


@pytest.fixture(autouse=True)
def _clear_settings():
    """Reset cached settings between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        qr_type="URL",
        cert_domain_url="https://verify.example.com",
        additional_query_params="&lang=en",
    )


@pytest.fixture
def certificate_json() -> str:
    return credential_json()


@pytest.fixture
def certificate_request() -> CertificateRequest:
    return CertificateRequestFactory.build()


@pytest.fixture
def landscape_template() -> bytes:
    return build_template_pdf(landscape(A4))


@pytest.fixture
def portrait_template() -> bytes:
    return build_template_pdf(A4)


class FailingTemplateStore(InMemoryTemplateStore):
    """In-memory store whose reads and/or writes can be made to fail."""

    def __init__(self, fail_reads: bool = False, fail_writes: bool = False):
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def get(self, key: str) -> bytes | None:
        if self.fail_reads:
            raise CacheError("cache unavailable")
        return await super().get(key)

    async def set_without_expiry(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise CacheError("cache unavailable")
        await super().set_without_expiry(key, value)


@pytest.fixture
def template_store() -> InMemoryTemplateStore:
    return InMemoryTemplateStore()


@pytest_asyncio.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=5.0) as client:
        yield client


@pytest.fixture
def template_cache(
    template_store: InMemoryTemplateStore, http_client: httpx.AsyncClient
) -> TemplateCache:
    return TemplateCache(template_store, http_client)


@pytest.fixture
def renderer(settings: Settings, template_cache: TemplateCache) -> CertificateRenderer:
    return CertificateRenderer(settings=settings, template_cache=template_cache)


@pytest_asyncio.fixture
async def client(renderer: CertificateRenderer) -> AsyncGenerator[AsyncClient]:
    """Test client for the app with the renderer set on app state.

    ASGITransport does not run the lifespan, so the renderer is wired here.
    """
    from main import app

    app.state.renderer = renderer
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.state.renderer = None
