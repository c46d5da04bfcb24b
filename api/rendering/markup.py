"""SVG/HTML certificate rendering.

Minimal path: the certificate JSON is exposed to a Jinja2 template as a
plain mapping with an extra ``qrCode`` key, and the template file named by
MARKUP_TEMPLATE_PATH is rendered as-is. There is no per-template layout
logic here; all positioning lives in the template itself.
"""

import base64
from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from core.errors import RenderError


def png_to_data_uri(png_bytes: bytes) -> str:
    """Convert PNG bytes to a base64 data URI for embedding in markup."""
    encoded = base64.b64encode(png_bytes).decode("ascii")
    return f"data:image/png;base64,{encoded}"


@lru_cache(maxsize=8)
def _get_environment(template_dir: str) -> Environment:
    return Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=select_autoescape(["html", "svg", "xml"]),
    )


def render_markup(template_file: Path, data: dict[str, Any]) -> str:
    """Render a markup template file against certificate data.

    Raises:
        RenderError: If the template is missing or fails to render.
    """
    environment = _get_environment(str(template_file.parent))
    try:
        template = environment.get_template(template_file.name)
        return template.render(data)
    except TemplateError as e:
        raise RenderError(f"Error rendering template {template_file}: {e}") from e
