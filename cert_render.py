"""
Pillow renderer for composed certificates.

Draws a VisualTree onto a fixed-aspect canvas: background paint, the double
border and title, every positioned text node, and the optional signature and
seal blocks. Rendering only reads the tree, so separate trees can be drawn
concurrently.
"""

from __future__ import annotations

import io
import logging
import math
from functools import lru_cache
from pathlib import Path

from PIL import Image, ImageColor, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from cert_compose import SealNode, SignatureNode, TextNode, VisualNode, VisualTree
from cert_coords import ASPECT_RATIO, DESIGN_WIDTH
from cert_errors import AssetError
from cert_layout import FontFamily, FontStyle, FontWeight
from cert_settings import get_settings
from cert_templates import BackgroundPaint, GradientPaint, ImagePaint, decode_data_uri

logger = logging.getLogger(__name__)

LINE_HEIGHT = 1.2
BORDER_WIDTH = 12
BORDER_COLOR = (31, 41, 55, 77)
TITLE_STYLE = FontStyle(size=24, family="sans-serif", color="#000000", weight="bold")
TITLE_TOP = 10.0
TITLE_BAR = (128, 4)

_FONT_CANDIDATES: dict[tuple[FontFamily, FontWeight], list[str]] = {
    (FontFamily.SERIF, FontWeight.NORMAL): [
        "DejaVuSerif.ttf",
        "LiberationSerif-Regular.ttf",
        "Times New Roman.ttf",
        "times.ttf",
    ],
    (FontFamily.SERIF, FontWeight.BOLD): [
        "DejaVuSerif-Bold.ttf",
        "LiberationSerif-Bold.ttf",
        "Times New Roman Bold.ttf",
        "timesbd.ttf",
    ],
    (FontFamily.SANS_SERIF, FontWeight.NORMAL): [
        "DejaVuSans.ttf",
        "LiberationSans-Regular.ttf",
        "Arial.ttf",
        "arial.ttf",
    ],
    (FontFamily.SANS_SERIF, FontWeight.BOLD): [
        "DejaVuSans-Bold.ttf",
        "LiberationSans-Bold.ttf",
        "Arial Bold.ttf",
        "arialbd.ttf",
    ],
    (FontFamily.SANS_SERIF, FontWeight.LIGHTER): ["DejaVuSans-ExtraLight.ttf"],
    (FontFamily.MONOSPACE, FontWeight.NORMAL): [
        "DejaVuSansMono.ttf",
        "LiberationMono-Regular.ttf",
        "Courier New.ttf",
        "cour.ttf",
    ],
    (FontFamily.MONOSPACE, FontWeight.BOLD): [
        "DejaVuSansMono-Bold.ttf",
        "LiberationMono-Bold.ttf",
        "Courier New Bold.ttf",
        "courbd.ttf",
    ],
    (FontFamily.CURSIVE, FontWeight.NORMAL): [
        "ComicNeue-Regular.ttf",
        "Comic Sans MS.ttf",
        "comic.ttf",
        "URWChanceryL-MediItal.ttf",
        "DejaVuSerif-Italic.ttf",
    ],
    (FontFamily.CURSIVE, FontWeight.BOLD): [
        "ComicNeue-Bold.ttf",
        "Comic Sans MS Bold.ttf",
        "comicbd.ttf",
        "DejaVuSerif-BoldItalic.ttf",
    ],
}


def _normalize_font_name(name: str) -> str:
    return "".join(ch for ch in name.lower() if ch.isalnum())


def register_fonts_from_directory(fonts_dir: Path) -> dict[str, Path]:
    """Index every TTF/OTF font in a directory by its normalized file stem."""
    font_map: dict[str, Path] = {}
    if not fonts_dir.exists():
        return font_map
    for pattern in ("*.ttf", "*.otf"):
        for font_file in sorted(fonts_dir.glob(pattern)):
            font_map[_normalize_font_name(font_file.stem)] = font_file
            logger.debug("Registered font: %s", font_file.name)
    return font_map


def _candidate_names(family: FontFamily, weight: FontWeight) -> list[tuple[str, bool]]:
    """(file name, needs synthetic bold) in preference order."""
    names = [(f"{family.value}-{weight.value}.ttf", False), (f"{family.value}.ttf", weight is FontWeight.BOLD)]
    names += [(fn, False) for fn in _FONT_CANDIDATES.get((family, weight), [])]
    if weight is not FontWeight.NORMAL:
        synthetic = weight is FontWeight.BOLD
        names += [(fn, synthetic) for fn in _FONT_CANDIDATES[(family, FontWeight.NORMAL)]]
    return names


@lru_cache(maxsize=256)
def resolve_font(
    family: FontFamily,
    weight: FontWeight,
    size: int,
    fonts_dir: Path | None = None,
) -> tuple[ImageFont.FreeTypeFont, bool]:
    """Return ``(font, synthetic_bold)`` for a family/weight at a pixel size.

    Fonts from ``fonts_dir`` win over system fonts. When nothing matches, Pillow's
    bundled default font is used and a warning is logged.
    """
    fonts_dir = fonts_dir if fonts_dir is not None else get_settings().fonts_dir
    registered = register_fonts_from_directory(fonts_dir)
    for file_name, synthetic_bold in _candidate_names(family, weight):
        local = registered.get(_normalize_font_name(Path(file_name).stem))
        try:
            if local is not None:
                return ImageFont.truetype(str(local), size), synthetic_bold
            return ImageFont.truetype(file_name, size), synthetic_bold
        except OSError:
            continue

    logger.warning(
        "Font family '%s' (%s) is unavailable. Falling back to the default font.",
        family.value,
        weight.value,
    )
    return ImageFont.load_default(size=size), weight is FontWeight.BOLD


def parse_css_color(value: str, fallback: tuple[int, int, int] = (0, 0, 0)) -> tuple[int, int, int]:
    if not isinstance(value, str) or not value.strip():
        return fallback
    try:
        return ImageColor.getrgb(value.strip())[:3]
    except ValueError:
        return fallback


def wrap_text_to_lines(font: ImageFont.FreeTypeFont, text: str, max_width: float) -> list[str]:
    """Break *text* into lines that each fit within *max_width* pixels.

    Preserves explicit newlines and performs greedy word-wrap within each
    paragraph. A single word wider than max_width is kept as its own line.
    """
    result: list[str] = []
    for paragraph in text.replace("\r\n", "\n").split("\n"):
        if not paragraph:
            result.append("")
            continue
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}" if current else word
            if not current or font.getlength(candidate) <= max_width:
                current = candidate
            else:
                result.append(current)
                current = word
        if current:
            result.append(current)
    return result if result else [""]


def canvas_size(scale: float = 1.0) -> tuple[int, int]:
    width = DESIGN_WIDTH * scale
    return round(width), round(width / ASPECT_RATIO)


def _gradient_lut(stops: tuple[tuple[str, float], ...]) -> tuple[list[int], list[int], list[int]]:
    points = sorted((offset, parse_css_color(color)) for color, offset in stops)
    channels: tuple[list[int], list[int], list[int]] = ([], [], [])
    for i in range(256):
        pct = i / 255 * 100
        if pct <= points[0][0]:
            rgb = points[0][1]
        elif pct >= points[-1][0]:
            rgb = points[-1][1]
        else:
            for (o0, c0), (o1, c1) in zip(points, points[1:]):
                if o0 <= pct <= o1:
                    f = (pct - o0) / (o1 - o0) if o1 > o0 else 0.0
                    rgb = tuple(round(a + (b - a) * f) for a, b in zip(c0, c1))
                    break
        for channel, value in zip(channels, rgb):
            channel.append(value)
    return channels


def render_gradient(paint: GradientPaint, size: tuple[int, int]) -> Image.Image:
    width, height = size
    rad = math.radians(paint.angle)
    dx, dy = math.sin(rad), -math.cos(rad)
    # CSS gradient line length: the corners sit exactly on 0% and 100%.
    length = abs(width * dx) + abs(height * dy) or 1.0
    cx, cy = width / 2, height / 2
    # Sample a vertical 0..255 ramp so each output pixel reads its own offset along the gradient line.
    ramp = Image.linear_gradient("L")
    k = 254 / length
    t_map = ramp.transform(
        size,
        Image.Transform.AFFINE,
        (0, 0, 128, dx * k, dy * k, 0.5 + 127 - (cx * dx + cy * dy) * k),
        resample=Image.Resampling.BILINEAR,
    )
    r, g, b = _gradient_lut(paint.stops)
    return Image.merge("RGB", (t_map.point(r), t_map.point(g), t_map.point(b)))


def _render_pdf_page(payload: bytes) -> Image.Image:
    try:
        import fitz
    except ImportError as exc:
        raise RuntimeError("PyMuPDF is required for PDF templates. Install pymupdf.") from exc

    doc = fitz.open(stream=payload, filetype="pdf")
    try:
        if len(doc) == 0:
            raise AssetError("PDF template has no pages.")
        pix = doc[0].get_pixmap(dpi=150, alpha=False)
        return Image.open(io.BytesIO(pix.tobytes("png"))).convert("RGBA")
    finally:
        doc.close()


@lru_cache(maxsize=32)
def _decode_image(data_uri: str) -> Image.Image:
    mime, payload = decode_data_uri(data_uri)
    if mime == "application/pdf" or payload.startswith(b"%PDF"):
        return _render_pdf_page(payload)
    try:
        with Image.open(io.BytesIO(payload)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise AssetError(f"Could not decode {mime} image payload.") from exc


def load_image(data_uri: str) -> Image.Image:
    return _decode_image(data_uri).copy()


@lru_cache(maxsize=16)
def _render_background(paint: BackgroundPaint, size: tuple[int, int]) -> Image.Image:
    if isinstance(paint, GradientPaint):
        return render_gradient(paint, size)
    if isinstance(paint, ImagePaint):
        return ImageOps.fit(
            _decode_image(paint.data_uri).convert("RGB"),
            size,
            method=Image.Resampling.LANCZOS,
            centering=(0.5, 0.5),
        )
    raise TypeError(f"Unsupported background paint: {paint!r}")


def render_background(paint: BackgroundPaint, size: tuple[int, int]) -> Image.Image:
    return _render_background(paint, size).copy()


def _font_for(style: FontStyle, scale: float) -> tuple[ImageFont.FreeTypeFont, bool, float]:
    size = max(1, round(style.size * scale))
    font, synthetic_bold = resolve_font(style.family, style.weight, size)
    return font, synthetic_bold, size


def _draw_lines(
    draw: ImageDraw.ImageDraw,
    lines: list[str],
    font: ImageFont.FreeTypeFont,
    size: float,
    center_x: float,
    top: float,
    fill: tuple[int, int, int],
    synthetic_bold: bool,
) -> None:
    ascent, descent = font.getmetrics()
    line_height = size * LINE_HEIGHT
    pad = (line_height - (ascent + descent)) / 2
    for i, line in enumerate(lines):
        if not line:
            continue
        x = center_x - font.getlength(line) / 2
        y = top + i * line_height + pad
        draw.text(
            (x, y),
            line,
            font=font,
            fill=fill,
            stroke_width=1 if synthetic_bold else 0,
            stroke_fill=fill,
        )


def draw_text_node(draw: ImageDraw.ImageDraw, node: TextNode, size: tuple[int, int], scale: float) -> None:
    width, height = size
    font, synthetic_bold, font_px = _font_for(node.style, scale)
    lines = wrap_text_to_lines(font, node.text, node.max_width / 100 * width)
    block_height = len(lines) * font_px * LINE_HEIGHT
    center_x = node.position.x / 100 * width
    center_y = node.position.y / 100 * height
    _draw_lines(
        draw,
        lines,
        font,
        font_px,
        center_x,
        center_y - block_height / 2,
        parse_css_color(node.style.color),
        synthetic_bold,
    )


def _paste(canvas: Image.Image, img: Image.Image, left: float, top: float) -> None:
    # paste() clips off-canvas placements; alpha_composite() rejects negative offsets.
    canvas.paste(img, (round(left), round(top)), img)


def draw_signature(canvas: Image.Image, node: SignatureNode, scale: float) -> None:
    width, height = canvas.size
    signature = load_image(node.image)
    img_h = max(1, round(node.image_height * scale))
    img_w = max(1, round(signature.width * img_h / signature.height))
    signature = signature.resize((img_w, img_h), Image.Resampling.LANCZOS)

    font, synthetic_bold, font_px = _font_for(node.caption_style, scale)
    caption_h = font_px * LINE_HEIGHT
    gap = node.gap * scale
    divider_h = max(1, round(node.divider_height * scale))
    block_w = max(img_w, font.getlength(node.caption))
    block_h = img_h + gap + divider_h + gap + caption_h

    left = node.position.x / 100 * width - block_w / 2
    top = node.position.y / 100 * height - block_h / 2
    center_x = left + block_w / 2

    _paste(canvas, signature, center_x - img_w / 2, top)
    draw = ImageDraw.Draw(canvas)
    divider_top = top + img_h + gap
    draw.rectangle(
        (left, divider_top, left + block_w - 1, divider_top + divider_h - 1),
        fill=parse_css_color(node.divider_color),
    )
    _draw_lines(
        draw,
        [node.caption],
        font,
        font_px,
        center_x,
        divider_top + divider_h + gap,
        parse_css_color(node.caption_style.color),
        synthetic_bold,
    )


def draw_seal(canvas: Image.Image, node: SealNode, scale: float) -> None:
    width, height = canvas.size
    box = max(1, round(node.box * scale))
    seal = ImageOps.contain(load_image(node.image), (box, box), Image.Resampling.LANCZOS)
    cx = node.position.x / 100 * width
    cy = node.position.y / 100 * height
    _paste(canvas, seal, cx - seal.width / 2, cy - seal.height / 2)


def draw_chrome(canvas: Image.Image, tree: VisualTree, scale: float) -> None:
    width, height = canvas.size
    if tree.border:
        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        odraw = ImageDraw.Draw(overlay)
        stroke = max(1, round(BORDER_WIDTH * scale / 3))
        for inset in (0, 2 * stroke):
            odraw.rounded_rectangle(
                (inset, inset, width - 1 - inset, height - 1 - inset),
                radius=round(8 * scale),
                outline=BORDER_COLOR,
                width=stroke,
            )
        canvas.alpha_composite(overlay)

    if tree.title:
        draw = ImageDraw.Draw(canvas)
        font, synthetic_bold, font_px = _font_for(TITLE_STYLE, scale)
        top = TITLE_TOP / 100 * height
        _draw_lines(
            draw,
            [tree.title],
            font,
            font_px,
            width / 2,
            top,
            parse_css_color(TITLE_STYLE.color),
            synthetic_bold,
        )
        bar_w, bar_h = (max(1, round(v * scale)) for v in TITLE_BAR)
        bar_top = top + font_px * LINE_HEIGHT + round(4 * scale)
        draw.rectangle(
            (width / 2 - bar_w / 2, bar_top, width / 2 + bar_w / 2 - 1, bar_top + bar_h - 1),
            fill=BORDER_COLOR[:3],
        )


def draw_node(canvas: Image.Image, node: VisualNode, scale: float) -> None:
    if isinstance(node, TextNode):
        draw_text_node(ImageDraw.Draw(canvas), node, canvas.size, scale)
    elif isinstance(node, SignatureNode):
        draw_signature(canvas, node, scale)
    elif isinstance(node, SealNode):
        draw_seal(canvas, node, scale)
    else:
        raise TypeError(f"Unsupported visual node: {node!r}")


def render_tree(tree: VisualTree, scale: float | None = None) -> Image.Image:
    """Draw a composed certificate and return it as an RGB image."""
    scale = scale if scale is not None else get_settings().render_scale
    size = canvas_size(scale)
    canvas = render_background(tree.background, size).convert("RGBA")
    draw_chrome(canvas, tree, scale)
    for node in tree.nodes:
        draw_node(canvas, node, scale)
    return canvas.convert("RGB")
