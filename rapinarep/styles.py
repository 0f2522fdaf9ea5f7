"""Cell style descriptions that serialise to the workbook's JSON style form."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any


class Format(IntEnum):
    """Number formats and text positions used when styling cells."""

    DEFAULT = 1
    GENERAL = 2
    NUMBER = 3
    INDEX = 4
    PERCENT = 5
    EMPTY = 6
    LEFT = 7
    RIGHT = 8
    CENTER = 9


PERCENT_FORMAT = "0%;-0%;- "
INDEX_FORMAT = "0.00;-0.00;-"
NUMBER_FORMAT = '_-* #,##0,_-;_-* (#,##0,);_-* "-"_-;_-@_-'

CUSTOM_FORMATS = {
    Format.PERCENT: PERCENT_FORMAT,
    Format.INDEX: INDEX_FORMAT,
    Format.NUMBER: NUMBER_FORMAT,
}


@dataclass
class Font:
    bold: bool = False
    italic: bool = False
    underline: str = ""
    family: str = ""
    size: int = 0
    color: str = ""


@dataclass
class Alignment:
    horizontal: str = ""
    indent: int = 0
    justify_last_line: bool = False
    reading_order: int = 0
    relative_indent: int = 0
    shrink_to_fit: bool = False
    text_rotation: int = 0
    vertical: str = ""
    wrap_text: bool = False


@dataclass
class Border:
    type: str = ""
    color: str = ""
    style: int = 0


@dataclass
class Fill:
    type: str = ""
    pattern: int = 0
    color: list[str] | None = None
    shading: int = 0


@dataclass
class CellStyle:
    """Full description of a cell style."""

    border: list[Border] | None = None
    fill: Fill = field(default_factory=Fill)
    font: Font | None = None
    alignment: Alignment | None = None
    protection: dict[str, Any] | None = None
    number_format: int = 0
    decimal_places: int = 0
    custom_number_format: str | None = None
    lang: str = ""
    negred: bool = False

    def set_size(self, size: int) -> None:
        """Replace the font with a plain one of the given size."""
        self.font = Font(size=size)

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"), ensure_ascii=False)

    def register(self, workbook: Any) -> int:
        """Add this style to ``workbook`` and return its id, or 0 if it is rejected."""
        try:
            return workbook.add_style(self.to_json())
        except ValueError:
            return 0


def new_format(fmt: int, position: int, bold: bool) -> CellStyle:
    """Build a style from a number format, a text position and boldness."""
    style = CellStyle(custom_number_format=CUSTOM_FORMATS.get(fmt))
    if position == Format.RIGHT:
        style.alignment = Alignment(horizontal="right")
    elif position == Format.CENTER:
        style.alignment = Alignment(horizontal="center")
    if bold:
        style.font = Font(bold=True)
    return style