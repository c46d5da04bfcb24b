"""QR payload derivation.

Decides what a certificate's QR code carries, under one of three policies
selected by the QR_TYPE setting:

- ``URL``: a verification link; the verifier fetches the credential.
- ``URL_W3C_VC``: the same link plus a ``data=`` parameter carrying the
  compressed credential.
- anything else (offline): the compressed credential itself, so the QR code
  is fully self-contained.

The compressed form is a ZIP archive holding one ``certificate.json`` entry
deflated at maximum effort. Archives are built with a fixed entry timestamp
so the same credential always yields the same QR code.
"""

import base64
import binascii
import io
import json
import logging
import zipfile
import zlib
from enum import Enum

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError

from core.config import Settings
from core.errors import DecodeError, EncodingError
from schemas import CertificateRequest

logger = logging.getLogger(__name__)

ARCHIVE_ENTRY_NAME = "certificate.json"
_ARCHIVE_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
_DEFLATE_LEVEL = 9


class QrPolicy(str, Enum):
    """What the QR code embeds."""

    URL = "URL"
    URL_W3C_VC = "URL_W3C_VC"
    OFFLINE = "OFFLINE"

    @classmethod
    def from_setting(cls, qr_type: str) -> "QrPolicy":
        """Case-insensitive lookup; unknown values select the offline policy."""
        upper = qr_type.upper()
        if upper == cls.URL.value:
            return cls.URL
        if upper == cls.URL_W3C_VC.value:
            return cls.URL_W3C_VC
        return cls.OFFLINE


def compress_certificate(certificate_text: str) -> bytes:
    """Pack certificate JSON into a single-entry deflate ZIP archive.

    Raises:
        DecodeError: If the text is not valid JSON.
        EncodingError: If the archive cannot be written.
    """
    try:
        json.loads(certificate_text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Certificate is not valid JSON: {e}") from e

    entry = zipfile.ZipInfo(ARCHIVE_ENTRY_NAME, date_time=_ARCHIVE_TIMESTAMP)
    entry.compress_type = zipfile.ZIP_DEFLATED

    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, mode="w") as archive:
            archive.writestr(
                entry,
                certificate_text.encode("utf-8"),
                compresslevel=_DEFLATE_LEVEL,
            )
    except (OSError, ValueError, zlib.error) as e:
        logger.error("payload.compress.failed", extra={"error": str(e)})
        raise EncodingError(f"Error compressing certificate data: {e}") from e

    return buffer.getvalue()


def decompress_certificate(blob: bytes) -> dict[str, str]:
    """Read every entry of a compressed certificate archive.

    Entry contents are logged at debug level; this is a diagnostic helper,
    not part of the render path.

    Returns:
        Mapping of entry name to its UTF-8 text.

    Raises:
        EncodingError: If the archive is corrupt or an entry is unreadable.
    """
    contents: dict[str, str] = {}
    try:
        with zipfile.ZipFile(io.BytesIO(blob)) as archive:
            for name in archive.namelist():
                text = archive.read(name).decode("utf-8")
                logger.debug(
                    "payload.archive.entry", extra={"entry": name, "content": text}
                )
                contents[name] = text
    except (zipfile.BadZipFile, zlib.error, OSError, UnicodeDecodeError) as e:
        logger.error("payload.decompress.failed", extra={"error": str(e)})
        raise EncodingError(f"Error reading certificate archive: {e}") from e
    return contents


def encode_data_param(blob: bytes) -> str:
    """Render archive bytes as an unpadded URL-safe base64 string."""
    return base64.urlsafe_b64encode(blob).rstrip(b"=").decode("ascii")


def decode_data_param(value: str) -> bytes:
    """Inverse of ``encode_data_param``."""
    padding = "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(value + padding)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(f"Invalid data parameter: {e}") from e


def build_verification_url(
    request: CertificateRequest, settings: Settings, data: str | None = None
) -> str:
    """Build the certificate verification link.

    Format: {domain}/certs/{entityId}?t={qr_type}[&data={data}]&entity={entityName}{extra}
    """
    url = f"{settings.cert_domain_url}/certs/{request.entity_id}?t={settings.qr_type}"
    if data is not None:
        url += f"&data={data}"
    return f"{url}&entity={request.entity_name}{settings.additional_query_params}"


def build_qr_payload(request: CertificateRequest, settings: Settings) -> str | bytes:
    """Compute what the QR code embeds for this request.

    Returns a link (``str``) for the URL policies and the raw archive
    (``bytes``) for the offline policy.
    """
    policy = QrPolicy.from_setting(settings.qr_type)
    if policy is QrPolicy.URL:
        return build_verification_url(request, settings)

    compressed = compress_certificate(request.certificate)
    if policy is QrPolicy.URL_W3C_VC:
        return build_verification_url(
            request, settings, data=encode_data_param(compressed)
        )
    return compressed


def render_qr_png(payload: str | bytes, size: int = 380) -> bytes:
    """Encode a payload as a square QR PNG of ``size`` pixels.

    Uses medium error correction. Binary payloads are encoded in byte mode.

    Raises:
        EncodingError: If the payload does not fit in a QR symbol or the
            image cannot be written.
    """
    try:
        qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=4)
        qr.add_data(payload)
        qr.make(fit=True)
        image = qr.make_image(fill_color="black", back_color="white").get_image()
        image = image.convert("L").resize((size, size), Image.Resampling.NEAREST)

        output = io.BytesIO()
        image.save(output, format="PNG")
    except (DataOverflowError, ValueError, OSError) as e:
        logger.error("payload.qr.failed", extra={"error": str(e)})
        raise EncodingError(f"Error creating QR code image: {e}") from e
    return output.getvalue()


def create_qr_code_image(request: CertificateRequest, settings: Settings) -> bytes:
    """Build the QR payload for a request and render it as PNG."""
    payload = build_qr_payload(request, settings)
    return render_qr_png(payload, size=settings.qr_image_size)
