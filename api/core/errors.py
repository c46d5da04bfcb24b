"""Error hierarchy for the certificate rendering pipeline.

Top-level stage failures (decode, fetch, cache, encoding, document surface)
abort a render and propagate to the caller. Failures of a single overlay
placement never surface here; the overlay engine logs and skips them.
"""


class CertificateServiceError(Exception):
    """Base class for all rendering pipeline errors."""


class DecodeError(CertificateServiceError):
    """Raised when certificate JSON or entity data does not match the expected shape."""


class EncodingError(CertificateServiceError):
    """Raised when QR generation or archive compression fails."""


class FetchError(CertificateServiceError):
    """Raised when a template cannot be downloaded."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(message)


class TemplateDownloadError(FetchError):
    """Raised on a transport-level failure (DNS, connect, timeout)."""

    def __init__(self, url: str, reason: str):
        super().__init__(url, f"Error downloading template {url}: {reason}")


class TemplateStatusError(FetchError):
    """Raised when the template server answers with a non-200 status."""

    def __init__(self, url: str, status_code: int):
        self.status_code = status_code
        super().__init__(
            url, f"Received non 200 response code {status_code} for URL {url}"
        )


class EmptyTemplateError(FetchError):
    """Raised when the template server answers 200 with an empty body."""

    def __init__(self, url: str):
        super().__init__(url, f"Invalid template URL {url}, received empty content")


class CacheError(CertificateServiceError):
    """Raised when the template store cannot be read from or written to."""


class RenderError(CertificateServiceError):
    """Raised when the document surface cannot be prepared (bad template, font)."""
