from __future__ import annotations

import base64
import binascii
import mimetypes
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union
from urllib.parse import unquote_to_bytes

from cert_errors import AssetError


class TemplateId(str, Enum):
    TEMPLATE1 = "template1"
    TEMPLATE2 = "template2"
    TEMPLATE3 = "template3"
    CUSTOM = "custom"


@dataclass(frozen=True)
class GradientPaint:
    """CSS-style linear gradient. ``angle`` follows CSS: 0deg points up, 90deg to the right."""

    name: str
    angle: float
    stops: tuple[tuple[str, float], ...]

    @property
    def css(self) -> str:
        stops = ", ".join(f"{color} {offset:g}%" for color, offset in self.stops)
        return f"linear-gradient({self.angle:g}deg, {stops})"


@dataclass(frozen=True)
class ImagePaint:
    data_uri: str
    fit: str = "cover"
    position: str = "center"

    @property
    def css(self) -> str:
        return f"url({self.data_uri}) {self.position} / {self.fit}"


BackgroundPaint = Union[GradientPaint, ImagePaint]


BUILTIN_BACKGROUNDS: dict[TemplateId, GradientPaint] = {
    TemplateId.TEMPLATE1: GradientPaint(
        name="Classic Gold",
        angle=90,
        stops=(("#f6d365", 0), ("#fda085", 100)),
    ),
    TemplateId.TEMPLATE2: GradientPaint(
        name="Blue Sky",
        angle=120,
        stops=(("#a1c4fd", 0), ("#c2e9fb", 100)),
    ),
    TemplateId.TEMPLATE3: GradientPaint(
        name="Colorful Gradient",
        angle=90,
        stops=(
            ("#eea2a2", 0),
            ("#bbc1bf", 19),
            ("#57c6e1", 42),
            ("#b49fda", 79),
            ("#7ac5d8", 100),
        ),
    ),
}


def normalize_template_id(template_id: str | TemplateId | None) -> TemplateId:
    """Unknown identifiers fall back to template1."""
    try:
        return TemplateId(template_id)
    except ValueError:
        return TemplateId.TEMPLATE1


def resolve_background(template_id: str | TemplateId | None, custom_payload: str | None = None) -> BackgroundPaint:
    template = normalize_template_id(template_id)
    if template is TemplateId.CUSTOM:
        if custom_payload:
            return ImagePaint(data_uri=custom_payload)
        return BUILTIN_BACKGROUNDS[TemplateId.TEMPLATE1]
    return BUILTIN_BACKGROUNDS[template]


_DATA_URI_RE = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<data>.*)$", re.DOTALL)


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """Return ``(mime_type, payload_bytes)`` for a ``data:`` URI."""
    if not isinstance(uri, str):
        raise AssetError("Asset payload must be a data URI string.")
    m = _DATA_URI_RE.match(uri.strip())
    if not m:
        raise AssetError("Asset payload is not a data URI.")
    mime = m.group("mime") or "text/plain"
    data = m.group("data")
    if ";base64" in m.group("params").lower():
        try:
            return mime, base64.b64decode(data, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise AssetError(f"Invalid base64 data in {mime} data URI.") from exc
    return mime, unquote_to_bytes(data)


def bytes_to_data_uri(payload: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


def file_to_data_uri(path: Path) -> str:
    """Read an image (or PDF) file into an embeddable data URI."""
    mime, _ = mimetypes.guess_type(path.name)
    return bytes_to_data_uri(path.read_bytes(), mime or "application/octet-stream")
