"""Application configuration using pydantic-settings."""

from functools import cached_property, lru_cache
from pathlib import Path
from typing import Self

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # QR payload policy: "URL", "URL_W3C_VC", anything else embeds the
    # compressed credential directly (offline verification)
    qr_type: str = "URL"

    # Base domain of the certificate verification site
    cert_domain_url: str = "http://localhost:8000"

    # Appended verbatim to every generated link, e.g. "&lang=en"
    additional_query_params: str = ""

    qr_image_size: int = 380

    http_timeout: float = 10.0

    # "memory://" keeps templates in-process; "redis://host:port/db"
    # shares them across workers
    template_cache_url: str = "memory://"
    template_cache_max_entries: int = 256

    # Base-14 font name, or a TTF registered under this name when
    # font_path is set
    font_name: str = "Helvetica"
    font_path: str = ""

    # Markup template for the svg/html output path
    markup_template_path: str = ""

    debug: bool = False
    enable_docs: bool = False

    @field_validator("cert_domain_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def validate_config(self) -> Self:
        if self.qr_image_size <= 0:
            raise ValueError("QR_IMAGE_SIZE must be a positive number of pixels.")
        if self.template_cache_max_entries <= 0:
            raise ValueError("TEMPLATE_CACHE_MAX_ENTRIES must be positive.")
        if not self.template_cache_url.startswith(
            ("memory://", "redis://", "rediss://")
        ):
            raise ValueError(
                "TEMPLATE_CACHE_URL must be memory:// or a redis:// URL."
            )
        return self

    @property
    def use_redis_cache(self) -> bool:
        return not self.template_cache_url.startswith("memory://")

    @cached_property
    def markup_template_file(self) -> Path:
        """Defaults to api/templates/certificate.svg if MARKUP_TEMPLATE_PATH not set."""
        if self.markup_template_path:
            return Path(self.markup_template_path)
        return Path(__file__).resolve().parent.parent / "templates" / "certificate.svg"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this in tests to reset settings between test cases.
    After clearing, the next get_settings() call will create
    a fresh Settings instance with current environment variables.

    Example:
        def test_something(monkeypatch):
            monkeypatch.setenv("QR_TYPE", "URL_W3C_VC")
            clear_settings_cache()
            settings = get_settings()  # Fresh instance
    """
    get_settings.cache_clear()
