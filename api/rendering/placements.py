"""Declarative field placements for certificate templates.

A placement maps one credential-derived value, or an image, onto fixed
coordinates of a template page. Layouts are plain data: tuples of frozen
placements, built once at startup and handed to the render pipeline.

Coordinates use a top-left origin in PDF points. A width or height of 0
means "size to content".
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class PlacementKind(str, Enum):
    TEXT = "Text"
    IMAGE = "Image"


class ValueFormatter(str, Enum):
    """Named transformations applied to rendered template text."""

    IDENTITY = "identity"
    DATE = "date"

    def apply(self, text: str) -> str:
        """Format ``text``.

        Raises:
            ValueError: If the text cannot be parsed by this formatter.
        """
        if self is ValueFormatter.DATE:
            return format_rfc3339_date(text)
        return text


# RFC3339 date-time: full-date "T" full-time, with a mandatory offset
_RFC3339_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(\.\d+)?(Z|[+-](\d{2}):(\d{2}))",
    re.ASCII,
)

# Month names are fixed English, independent of LC_TIME
_MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def format_rfc3339_date(text: str) -> str:
    """Format an RFC3339 timestamp as e.g. ``01 May 2023``.

    The date is the wall-clock date at the timestamp's own offset.

    Raises:
        ValueError: If ``text`` is not a strict RFC3339 date-time.
    """
    match = _RFC3339_PATTERN.fullmatch(text)
    if match is None:
        raise ValueError(f"Not an RFC3339 timestamp: {text!r}")
    year, month, day, hour, minute, second = (int(part) for part in match.groups()[:6])
    offset_hours, offset_minutes = match.group(9), match.group(10)
    if offset_hours is not None and (int(offset_hours) > 23 or int(offset_minutes) > 59):
        raise ValueError(f"RFC3339 timestamp has an invalid offset: {text!r}")
    # Range-checks every component
    datetime(year, month, day, hour, minute, second)
    return f"{day:02d} {_MONTH_ABBREVIATIONS[month - 1]} {year:04d}"


@dataclass(frozen=True)
class FieldPlacement:
    """One overlay rule.

    ``template`` is a ``str.format`` template over the credential record's
    attributes (e.g. ``{credential_subject.name}``). For image placements
    without a static ``image`` it names the record attribute that holds
    the image bytes (e.g. ``qr_code``).
    """

    x: float
    y: float
    template: str = ""
    font_size: float = 0
    width: float = 0
    height: float = 0
    image: bytes | None = field(default=None, repr=False)
    formatter: ValueFormatter = ValueFormatter.IDENTITY
    kind: PlacementKind = PlacementKind.TEXT
    center: bool = False


Layout = tuple[FieldPlacement, ...]


LANDSCAPE_PLACEMENTS: Layout = (
    FieldPlacement(
        x=350,
        y=290,
        font_size=18,
        template="{credential_subject.name}",
        center=True,
    ),
    FieldPlacement(
        x=180,
        y=370,
        font_size=11,
        template="{credential_subject.pledge.cause_name}",
        width=580,
    ),
    FieldPlacement(
        x=630,
        y=480,
        font_size=14,
        template="{issuance_date}",
        formatter=ValueFormatter.DATE,
    ),
    FieldPlacement(
        x=130,
        y=390,
        width=120,
        height=120,
        template="qr_code",
        kind=PlacementKind.IMAGE,
    ),
)

# Portrait templates carry no overlays yet
PORTRAIT_PLACEMENTS: Layout = ()


@dataclass(frozen=True)
class PlacementLayouts:
    """Per-orientation placement lists."""

    landscape: Layout = LANDSCAPE_PLACEMENTS
    portrait: Layout = PORTRAIT_PLACEMENTS

    def for_template(self, template_url: str) -> Layout:
        """Portrait templates are recognised by "portrait" in their URL."""
        if "portrait" in template_url:
            return self.portrait
        return self.landscape
