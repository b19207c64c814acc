"""
Layout model for certificate documents.

Positions are stored in percentage space (0-100 of the document width/height)
and denote the visual centre of an element. Every known element has its own
attribute, so a mistyped element name fails loudly instead of silently
returning nothing.

All models are frozen. State changes go through ``set_position`` /
``set_font_style``, which return a new LayoutState that shares every untouched
entry with the previous one.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Union

from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, PositiveInt, field_validator
from pydantic.alias_generators import to_camel, to_snake


class Field(str, Enum):
    """Textual certificate fields, in composition order."""

    RECIPIENT_NAME = "recipientName"
    COURSE_NAME = "courseName"
    COMPLETION_DATE = "completionDate"
    ISSUER_NAME = "issuerName"
    CERTIFICATE_ID = "certificateId"
    ADDITIONAL_TEXT = "additionalText"

    @property
    def attr(self) -> str:
        return to_snake(self.value)


class AssetSlot(str, Enum):
    SIGNATURE = "signature"
    SEAL = "seal"

    @property
    def attr(self) -> str:
        return self.value


ElementKey = Union[Field, AssetSlot]


class FontFamily(str, Enum):
    SERIF = "serif"
    SANS_SERIF = "sans-serif"
    MONOSPACE = "monospace"
    CURSIVE = "cursive"


class FontWeight(str, Enum):
    NORMAL = "normal"
    BOLD = "bold"
    LIGHTER = "lighter"


FONT_STYLE_PROPERTIES = ("size", "family", "color", "weight")


def element_key(name: str | Field | AssetSlot) -> ElementKey:
    """Resolve ``"recipientName"``, ``"recipient_name"`` or ``"seal"`` to its enum member."""
    if isinstance(name, (Field, AssetSlot)):
        return name
    for enum_cls in (Field, AssetSlot):
        for member in enum_cls:
            if name in (member.value, member.attr):
                return member
    raise ValueError(f"Unknown certificate element: {name!r}")


def field_key(name: str | Field) -> Field:
    key = element_key(name)
    if not isinstance(key, Field):
        raise ValueError(f"{key.value!r} has no font style; only text fields do.")
    return key


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CertificateRecord(_CamelModel):
    """One certificate's textual content. Unknown CSV columns are kept as extras."""

    model_config = ConfigDict(extra="allow")

    recipient_name: str
    course_name: str
    completion_date: str
    issuer_name: str
    certificate_id: str
    additional_text: str

    def value(self, field: Field) -> str:
        return getattr(self, field.attr)


class Position(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    x: float
    y: float


class FontStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: PositiveInt
    family: FontFamily
    color: str
    weight: FontWeight

    @field_validator("color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        value = value.strip()
        ImageColor.getrgb(value)
        return value


class FieldPositions(_CamelModel):
    recipient_name: Position
    course_name: Position
    completion_date: Position
    issuer_name: Position
    certificate_id: Position
    additional_text: Position
    signature: Position
    seal: Position


class FieldFontStyles(_CamelModel):
    recipient_name: FontStyle
    course_name: FontStyle
    completion_date: FontStyle
    issuer_name: FontStyle
    certificate_id: FontStyle
    additional_text: FontStyle


class LayoutState(_CamelModel):
    positions: FieldPositions
    font_styles: FieldFontStyles

    def position(self, key: str | ElementKey) -> Position:
        return getattr(self.positions, element_key(key).attr)

    def font_style(self, field: str | Field) -> FontStyle:
        return getattr(self.font_styles, field_key(field).attr)


DEFAULT_LAYOUT = LayoutState(
    positions=FieldPositions(
        recipient_name=Position(x=50, y=40),
        course_name=Position(x=50, y=50),
        completion_date=Position(x=50, y=60),
        issuer_name=Position(x=50, y=70),
        certificate_id=Position(x=50, y=80),
        additional_text=Position(x=50, y=65),
        signature=Position(x=70, y=75),
        seal=Position(x=30, y=75),
    ),
    font_styles=FieldFontStyles(
        recipient_name=FontStyle(size=36, family="serif", color="#000000", weight="bold"),
        course_name=FontStyle(size=24, family="serif", color="#333333", weight="normal"),
        completion_date=FontStyle(size=16, family="serif", color="#555555", weight="normal"),
        issuer_name=FontStyle(size=18, family="serif", color="#333333", weight="normal"),
        certificate_id=FontStyle(size=12, family="monospace", color="#777777", weight="normal"),
        additional_text=FontStyle(size=14, family="serif", color="#555555", weight="normal"),
    ),
)


def reset_layout() -> LayoutState:
    """Return a fresh copy of the default positions and font styles."""
    return DEFAULT_LAYOUT.model_copy(deep=True)


def reset_positions(state: LayoutState) -> LayoutState:
    """Restore default positions, keeping the current font styles."""
    return state.model_copy(update={"positions": DEFAULT_LAYOUT.positions.model_copy(deep=True)})


def _as_position(pos: Position | dict | tuple | list) -> Position:
    if isinstance(pos, Position):
        return pos
    if isinstance(pos, (tuple, list)):
        x, y = pos
        return Position(x=x, y=y)
    return Position.model_validate(pos)


def set_position(state: LayoutState, key: str | ElementKey, pos: Position | dict | tuple) -> LayoutState:
    attr = element_key(key).attr
    positions = state.positions.model_copy(update={attr: _as_position(pos)})
    return state.model_copy(update={"positions": positions})


def set_font_style(state: LayoutState, field: str | Field, prop: str, value: Any) -> LayoutState:
    if prop not in FONT_STYLE_PROPERTIES:
        raise ValueError(f"Unknown font style property: {prop!r}")
    attr = field_key(field).attr
    current: FontStyle = getattr(state.font_styles, attr)
    updated = FontStyle.model_validate({**current.model_dump(), prop: value})
    font_styles = state.font_styles.model_copy(update={attr: updated})
    return state.model_copy(update={"font_styles": font_styles})


def _deep_merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def dump_layout(state: LayoutState) -> dict:
    return state.model_dump(mode="json", by_alias=True)


def layout_from_dict(overrides: dict) -> LayoutState:
    """Build a layout from a partial camelCase mapping laid over the defaults."""
    return LayoutState.model_validate(_deep_merge(dump_layout(DEFAULT_LAYOUT), overrides))


def load_layout(path: Path) -> LayoutState:
    with path.open("r", encoding="utf-8") as f:
        return layout_from_dict(json.load(f))
