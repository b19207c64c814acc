"""
Conversions between percentage space and editor pixel space.

Positions live in percentage space. The interactive editor works in pixels on
a container whose measured width is clamped to DESIGN_WIDTH, with the height
derived from the fixed document aspect ratio, so drag behaviour matches the
exported framing at any viewport size.
"""

from __future__ import annotations

from typing import NamedTuple

from cert_layout import Position

DESIGN_WIDTH = 800.0
# A4 landscape.
ASPECT_RATIO = 1.414


class PixelPoint(NamedTuple):
    x: float
    y: float


class Size(NamedTuple):
    width: float
    height: float


def effective_size(container_width: float) -> Size:
    width = max(0.0, min(float(container_width), DESIGN_WIDTH))
    return Size(width, width / ASPECT_RATIO)


def _usable(size: Size) -> bool:
    return size.width > 0 and size.height > 0


def to_percent(
    point: PixelPoint | tuple[float, float],
    size: Size | tuple[float, float],
    last_known: Position | None = None,
) -> Position:
    """Pixel point on a container of ``size`` -> percentage Position.

    A zero-sized container cannot be transformed; ``last_known`` (or the origin)
    is returned unchanged.
    """
    size = Size(*size)
    if not _usable(size):
        return last_known if last_known is not None else Position(x=0, y=0)
    x, y = point
    return Position(x=x / size.width * 100, y=y / size.height * 100)


def to_pixel(
    position: Position,
    container_width: float,
    last_known: PixelPoint | None = None,
) -> PixelPoint:
    """Percentage Position -> pixel point on the effective canvas of ``container_width``."""
    size = effective_size(container_width)
    if not _usable(size):
        return last_known if last_known is not None else PixelPoint(0.0, 0.0)
    return PixelPoint(position.x * size.width / 100, position.y * size.height / 100)


class CanvasTransform:
    """Two-way transform bound to one measured editor container.

    Both directions use the effective (clamped) canvas so a drop followed by a
    redraw lands exactly where the element was released.
    """

    def __init__(self, container_width: float = DESIGN_WIDTH) -> None:
        self.container_width = float(container_width)
        self._last_pixels: dict[str, PixelPoint] = {}
        self._last_positions: dict[str, Position] = {}

    @property
    def size(self) -> Size:
        return effective_size(self.container_width)

    def resize(self, container_width: float) -> None:
        self.container_width = float(container_width)

    def to_percent(self, key: str, point: PixelPoint | tuple[float, float]) -> Position:
        position = to_percent(point, self.size, self._last_positions.get(key))
        self._last_positions[key] = position
        return position

    def to_pixel(self, key: str, position: Position) -> PixelPoint:
        point = to_pixel(position, self.container_width, self._last_pixels.get(key))
        self._last_pixels[key] = point
        return point
