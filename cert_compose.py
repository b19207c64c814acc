"""
Document composition.

``compose`` turns a record plus the shared template/layout/asset context into a
VisualTree: the ordered, positioned, styled nodes that the preview, the editor
and every exporter draw. It is a pure function of its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, Optional, Union

from cert_layout import (
    AssetSlot,
    CertificateRecord,
    ElementKey,
    Field,
    FontStyle,
    LayoutState,
    Position,
    element_key,
)
from cert_templates import BackgroundPaint, TemplateId, resolve_background

TITLE = "Certificate of Achievement"
INVALID_DATE = "Invalid Date"

# Widest share of the document width the additional text may occupy.
ADDITIONAL_TEXT_MAX_WIDTH = 80.0

CAPTION_STYLE = FontStyle(size=14, family="sans-serif", color="#000000", weight="normal")
DIVIDER_COLOR = "#1f2937"

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%B %d, %Y", "%b %d, %Y", "%d %B %Y")


@dataclass(frozen=True)
class Assets:
    signature: Optional[str] = None
    seal: Optional[str] = None
    custom_template: Optional[str] = None


@dataclass(frozen=True)
class TextNode:
    key: Field
    text: str
    style: FontStyle
    position: Position
    # Percent of the document width available before the text wraps.
    max_width: float = 100.0


@dataclass(frozen=True)
class SignatureNode:
    image: str
    caption: str
    position: Position
    caption_style: FontStyle = CAPTION_STYLE
    image_height: int = 64
    divider_height: int = 2
    divider_color: str = DIVIDER_COLOR
    gap: int = 4
    key: AssetSlot = AssetSlot.SIGNATURE


@dataclass(frozen=True)
class SealNode:
    image: str
    position: Position
    box: int = 80
    key: AssetSlot = AssetSlot.SEAL


VisualNode = Union[TextNode, SignatureNode, SealNode]


@dataclass(frozen=True)
class VisualTree:
    background: BackgroundPaint
    nodes: tuple[VisualNode, ...]
    title: str = TITLE
    border: bool = True

    def node(self, key: str | ElementKey) -> VisualNode | None:
        wanted = element_key(key)
        for node in self.nodes:
            if node.key is wanted:
                return node
        return None

    @property
    def keys(self) -> list[str]:
        return [node.key.value for node in self.nodes]


def format_long_date(value: str) -> str:
    """``"2023-05-15"`` -> ``"May 15, 2023"``; unparseable input -> ``"Invalid Date"``."""
    text = (value or "").strip()
    if not text:
        return INVALID_DATE
    parsed: date | None = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt).date()
                break
            except ValueError:
                continue
    if parsed is None:
        return INVALID_DATE
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def display_text(record: CertificateRecord, key: Field) -> str:
    value = record.value(key)
    if key is Field.COMPLETION_DATE:
        return format_long_date(value)
    if key is Field.CERTIFICATE_ID:
        return f"ID: {value}"
    return value


def _available_width(key: Field, position: Position) -> float:
    # An element anchored at x% can only grow into the remaining (100 - x)%.
    width = max(0.0, 100.0 - position.x)
    if key is Field.ADDITIONAL_TEXT:
        width = min(width, ADDITIONAL_TEXT_MAX_WIDTH)
    return width


def compose(
    record: CertificateRecord,
    template_id: str | TemplateId,
    layout: LayoutState,
    assets: Assets = Assets(),
) -> VisualTree:
    nodes: list[VisualNode] = []
    for key in Field:
        position = layout.position(key)
        nodes.append(
            TextNode(
                key=key,
                text=display_text(record, key),
                style=layout.font_style(key),
                position=position,
                max_width=_available_width(key, position),
            )
        )
    if assets.signature:
        nodes.append(
            SignatureNode(
                image=assets.signature,
                caption=record.issuer_name,
                position=layout.position(AssetSlot.SIGNATURE),
            )
        )
    if assets.seal:
        nodes.append(SealNode(image=assets.seal, position=layout.position(AssetSlot.SEAL)))

    return VisualTree(
        background=resolve_background(template_id, assets.custom_template),
        nodes=tuple(nodes),
    )


def apply_editor_overlay(tree: VisualTree, hidden: Iterable[str | ElementKey] = ()) -> VisualTree:
    """Drop hidden elements from an editor view. Exports always use the full tree."""
    hidden_keys = {element_key(key) for key in hidden}
    if not hidden_keys:
        return tree
    return replace(tree, nodes=tuple(node for node in tree.nodes if node.key not in hidden_keys))
