"""Certificate overlay rendering.

Paints credential fields onto the first page of a template PDF:

1. The template page is read with pypdf; its media box gives the page size.
2. Each placement is drawn, in order, on a transparent reportlab canvas of
   the same size (later placements paint over earlier ones).
3. The canvas is merged onto the template page and the document serialized.

Rendering is best-effort per field: a placement whose template, formatter
or image fails is logged and skipped, and the rest of the certificate is
still produced. Only document-level problems (unreadable template, missing
font) abort the render with ``RenderError``.

All functions here are synchronous and CPU-bound; async callers should run
them in a worker thread.
"""

import io
import logging
from collections.abc import Sequence

from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen import canvas

from core.errors import RenderError
from rendering.placements import FieldPlacement, PlacementKind
from schemas import CredentialRecord

logger = logging.getLogger(__name__)

LINE_SPACING = 1.2

# Errors a single placement may raise while resolving its value or image
_PLACEMENT_ERRORS = (
    AttributeError,
    IndexError,
    KeyError,
    OSError,
    TypeError,
    ValueError,
)


def text_x(placement: FieldPlacement, text_width: float) -> float:
    """Left edge of a text line.

    Centered text is centered within ``[x, x + width]``, or around ``x``
    when the placement has no width. Other text starts at ``x``.
    """
    if not placement.center:
        return placement.x
    if placement.width > 0:
        return placement.x + (placement.width - text_width) / 2
    return placement.x - text_width / 2


def render_placement_text(placement: FieldPlacement, record: CredentialRecord) -> str:
    """Resolve a text placement's template and formatter against a record."""
    text = placement.template.format_map(record.template_fields())
    return placement.formatter.apply(text)


def resolve_placement_image(
    placement: FieldPlacement, record: CredentialRecord
) -> bytes:
    """Static image bytes, else the record attribute named by the template."""
    if placement.image is not None:
        return placement.image
    data = getattr(record, placement.template)
    if not data:
        raise ValueError(f"No image data in record field {placement.template!r}")
    return data


class OverlayEngine:
    """Draws placement lists onto template PDFs."""

    def __init__(self, font_name: str = "Helvetica", font_path: str = ""):
        self.font_name = font_name
        self.font_path = font_path

    def _ensure_font(self) -> None:
        if self.font_name in pdfmetrics.getRegisteredFontNames():
            return
        if self.font_path:
            try:
                pdfmetrics.registerFont(TTFont(self.font_name, self.font_path))
            except (TTFError, OSError) as e:
                raise RenderError(
                    f"Error loading font {self.font_name} from {self.font_path}: {e}"
                ) from e
            return
        try:
            pdfmetrics.getFont(self.font_name)
        except KeyError as e:
            raise RenderError(f"Unknown font {self.font_name}") from e

    def _load_template_page(self, template_bytes: bytes) -> PageObject:
        try:
            reader = PdfReader(io.BytesIO(template_bytes))
            return reader.pages[0]
        except (PdfReadError, IndexError, KeyError, ValueError, OSError) as e:
            raise RenderError(f"Error reading certificate template: {e}") from e

    def _draw_text(
        self,
        surface: canvas.Canvas,
        placement: FieldPlacement,
        text: str,
        left: float,
        top: float,
    ) -> None:
        size = placement.font_size
        if placement.width > 0:
            lines = simpleSplit(text, self.font_name, size, placement.width)
        else:
            lines = [text]

        baseline = top - placement.y - pdfmetrics.getAscent(self.font_name, size)
        surface.setFont(self.font_name, size)
        for line in lines:
            line_width = stringWidth(line, self.font_name, size)
            surface.drawString(left + text_x(placement, line_width), baseline, line)
            baseline -= size * LINE_SPACING

    def _draw_image(
        self,
        surface: canvas.Canvas,
        placement: FieldPlacement,
        data: bytes,
        left: float,
        top: float,
    ) -> None:
        image = ImageReader(io.BytesIO(data))
        natural_width, natural_height = image.getSize()
        width = placement.width or natural_width
        height = placement.height or natural_height
        surface.drawImage(
            image, left + placement.x, top - placement.y - height, width, height
        )

    def _draw_placement(
        self,
        surface: canvas.Canvas,
        placement: FieldPlacement,
        record: CredentialRecord,
        left: float,
        top: float,
    ) -> None:
        if placement.kind is PlacementKind.IMAGE:
            data = resolve_placement_image(placement, record)
            self._draw_image(surface, placement, data, left, top)
        else:
            text = render_placement_text(placement, record)
            self._draw_text(surface, placement, text, left, top)

    def render(
        self,
        template_bytes: bytes,
        record: CredentialRecord,
        placements: Sequence[FieldPlacement],
    ) -> bytes:
        """Overlay ``placements`` onto the template and return PDF bytes.

        Raises:
            RenderError: If the template cannot be read or the font loaded.
        """
        self._ensure_font()
        page = self._load_template_page(template_bytes)

        box = page.mediabox
        left, top = float(box.left), float(box.top)

        overlay_buffer = io.BytesIO()
        surface = canvas.Canvas(
            overlay_buffer, pagesize=(float(box.width), float(box.height))
        )
        drawn = 0
        for index, placement in enumerate(placements):
            try:
                self._draw_placement(surface, placement, record, left, top)
            except _PLACEMENT_ERRORS as e:
                logger.warning(
                    "overlay.placement.skipped",
                    extra={
                        "index": index,
                        "kind": placement.kind.value,
                        "template": placement.template,
                        "error": str(e),
                    },
                )
                continue
            drawn += 1

        writer = PdfWriter()
        output_page = writer.add_page(page)
        if drawn:
            surface.showPage()
            surface.save()
            output_page.merge_page(PdfReader(overlay_buffer).pages[0])

        output = io.BytesIO()
        writer.write(output)

        logger.debug(
            "overlay.rendered",
            extra={"placements": len(placements), "drawn": drawn},
        )
        return output.getvalue()
