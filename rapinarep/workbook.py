"""In-memory spreadsheet workbook that saves as an .xlsx file."""

from __future__ import annotations

import json
import math
import re
import zipfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from xml.sax.saxutils import escape, quoteattr

from .styles import CUSTOM_FORMATS, Format

DEFAULT_SHEET = "Sheet1"
_COLS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_CELL_RE = re.compile(r"^([A-Z]+)([0-9]+)$")

_TITLE_STYLE = (
    '{"number_format": 0,"font":{"bold":true},"alignment":{"horizontal":"center"},'
    '"border":[{"type":"bottom","color":"333333","style":3}]}'
)

_NS_MAIN = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
_NS_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
_NS_PKG_REL = "http://schemas.openxmlformats.org/package/2006/relationships"
_NS_TYPES = "http://schemas.openxmlformats.org/package/2006/content-types"
_CT_PREFIX = "application/vnd.openxmlformats-officedocument.spreadsheetml"
_XML_DECL = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'


class WorkbookError(Exception):
    """Raised when a sheet cannot be created or the workbook cannot be saved."""


def col_letter(col: int) -> str:
    """Turn a zero-based column index into its letters: 0 -> 'A', 2 -> 'C'."""
    if col < 0:
        raise ValueError(f"invalid column index: {col}")
    letters = ""
    n = col + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = _COLS[rem] + letters
    return letters


def _col_index(letters: str) -> int:
    n = 0
    for ch in letters:
        n = n * 26 + ord(ch) - ord("A") + 1
    return n - 1


def axis(col: int, row: int) -> str:
    """Cell reference from a zero-based column and a one-based row."""
    return f"{col_letter(col)}{row}"


def cell_to_axis(cell: str) -> tuple[int, int]:
    """Split a cell reference into (zero-based column, row)."""
    match = _CELL_RE.match(cell.upper())
    if match is None:
        raise ValueError(f"invalid cell reference: {cell!r}")
    return _col_index(match[1]), int(match[2])


def json_style(size: int, fmt: int, bold: bool) -> str:
    """JSON style with the given font size, number format or alignment and boldness."""
    style: dict[str, Any] = {"font": {"size": size, "bold": bold}}
    if fmt in CUSTOM_FORMATS:
        style["custom_number_format"] = CUSTOM_FORMATS[fmt]
    elif fmt == Format.RIGHT:
        style["alignment"] = {"horizontal": "right"}
    return json.dumps(style, sort_keys=True, separators=(",", ":"))


@dataclass
class _Cell:
    value: Any = None
    formula: str | None = None
    style: int = 0


class Sheet:
    """One worksheet: cells keyed by reference, column widths and merged ranges."""

    def __init__(self, workbook: Workbook, name: str) -> None:
        self.workbook = workbook
        self.name = name
        self.cells: dict[str, _Cell] = {}
        self.widths: dict[int, float] = {}
        self.merged: list[tuple[str, str]] = []

    def _cell(self, ref: str) -> _Cell:
        col, row = cell_to_axis(ref)
        return self.cells.setdefault(axis(col, row), _Cell())

    def _set_row(self, cell: str, values: Sequence[Any]) -> None:
        col, row = cell_to_axis(cell)
        for offset, value in enumerate(values):
            target = self._cell(axis(col + offset, row))
            target.value = value
            target.formula = None

    def _set_style(self, first: str, last: str, style: int) -> None:
        c1, r1 = cell_to_axis(first)
        c2, r2 = cell_to_axis(last)
        for col in range(min(c1, c2), max(c1, c2) + 1):
            for row in range(min(r1, r2), max(r1, r2) + 1):
                self._cell(axis(col, row)).style = style

    def print_cell(self, row: int, col: int, value: Any, style_id: int) -> None:
        """Set a value and a style on the cell at (col, row)."""
        ref = axis(col, row)
        self._set_row(ref, [value])
        self._cell(ref).style = style_id

    def print_title(self, cell: str, title: str) -> None:
        """Write a bold, centred, underlined column title."""
        self._set_row(cell, [title])
        self._cell(cell).style = self.workbook.add_style(_TITLE_STYLE)

    def print_row(self, cell: str, values: Sequence[Any], fmt: int, bold: bool) -> None:
        """Write values along a row starting at ``cell``."""
        style = self.workbook.add_style(json_style(10, fmt, bold))
        if style > 0:
            col, row = cell_to_axis(cell)
            self._set_style(cell, axis(col + len(values), row), style)
        self._set_row(cell, values)

    def print_value(self, cell: str, value: float, fmt: int, bold: bool) -> None:
        """Write a number with the given format."""
        self._set_row(cell, [float(value)])
        self._cell(cell).style = self.workbook.add_style(json_style(10, fmt, bold))

    def print_formula(self, cell: str, formula: str, fmt: int, bold: bool) -> None:
        """Write a formula with the given format."""
        target = self._cell(cell)
        target.formula = formula
        target.value = None
        target.style = self.workbook.add_style(json_style(9, fmt, bold))

    def merge_cells(self, first: str, last: str) -> None:
        c1, r1 = cell_to_axis(first)
        c2, r2 = cell_to_axis(last)
        self.merged.append(
            (axis(min(c1, c2), min(r1, r2)), axis(max(c1, c2), max(r1, r2)))
        )

    def cell_value(self, cell: str) -> str:
        """Text of a cell's stored value; empty for blank and formula cells."""
        col, row = cell_to_axis(cell)
        target = self.cells.get(axis(col, row))
        if target is None or target.value is None:
            return ""
        value = target.value
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, (int, float)):
            return _number_text(value)
        return str(value)

    def auto_width(self) -> None:
        """Size the code, description, value and analysis columns."""
        self._set_col_range("A", "A", 16)
        self._set_col_range("B", "B", 48)
        spaced = next(
            (c for c in range(2, len(_COLS)) if not self.cell_value(axis(c, 1))),
            len(_COLS) - 1,
        )
        self._set_col_range("C", _COLS[spaced - 1], 9.5)
        self._set_col_range(_COLS[spaced], "AC", 4.64)

    def set_col_width(self, col: int, width: float) -> None:
        self.widths[col] = width

    def _set_col_range(self, first: str, last: str, width: float) -> None:
        lo, hi = sorted((_col_index(first), _col_index(last)))
        for col in range(lo, hi + 1):
            self.widths[col] = width

    def _xml(self, selected: bool) -> str:
        rows: dict[int, list[tuple[int, str, _Cell]]] = {}
        for ref, cell in self.cells.items():
            col, row = cell_to_axis(ref)
            rows.setdefault(row, []).append((col, ref, cell))

        parts = [_XML_DECL, f'<worksheet xmlns="{_NS_MAIN}" xmlns:r="{_NS_REL}">']
        tab = ' tabSelected="1"' if selected else ""
        parts.append(f'<sheetViews><sheetView workbookViewId="0"{tab}/></sheetViews>')
        if self.widths:
            parts.append("<cols>")
            for col, width in sorted(self.widths.items()):
                parts.append(
                    f'<col min="{col + 1}" max="{col + 1}" width="{width}" customWidth="1"/>'
                )
            parts.append("</cols>")
        parts.append("<sheetData>")
        for row in sorted(rows):
            parts.append(f'<row r="{row}">')
            for _, ref, cell in sorted(rows[row], key=lambda item: item[0]):
                parts.append(_cell_xml(ref, cell))
            parts.append("</row>")
        parts.append("</sheetData>")
        if self.merged:
            parts.append(f'<mergeCells count="{len(self.merged)}">')
            parts.extend(f'<mergeCell ref="{a}:{b}"/>' for a, b in self.merged)
            parts.append("</mergeCells>")
        parts.append("</worksheet>")
        return "".join(parts)


def _number_text(value: float) -> str:
    if isinstance(value, int):
        return str(value)
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _cell_xml(ref: str, cell: _Cell) -> str:
    style = f' s="{cell.style}"' if cell.style else ""
    if cell.formula is not None:
        formula = cell.formula[1:] if cell.formula.startswith("=") else cell.formula
        return f'<c r="{ref}"{style}><f>{escape(formula)}</f></c>'
    value = cell.value
    if value is None:
        return f'<c r="{ref}"{style}/>'
    if isinstance(value, bool):
        return f'<c r="{ref}"{style} t="b"><v>{int(value)}</v></c>'
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return f'<c r="{ref}"{style} t="e"><v>#NUM!</v></c>'
        return f'<c r="{ref}"{style}><v>{_number_text(value)}</v></c>'
    text = escape(str(value))
    return (
        f'<c r="{ref}"{style} t="inlineStr"><is>'
        f'<t xml:space="preserve">{text}</t></is></c>'
    )


_BORDER_STYLES = (
    "none", "thin", "medium", "dashed", "dotted", "thick", "double", "hair",
    "mediumDashed", "dashDot", "mediumDashDot", "dashDotDot",
    "mediumDashDotDot", "slantDashDot",
)
_PATTERNS = (
    "none", "solid", "mediumGray", "darkGray", "lightGray", "darkHorizontal",
    "darkVertical", "darkDown", "darkUp", "darkGrid", "darkTrellis",
    "lightHorizontal", "lightVertical", "lightDown", "lightUp", "lightGrid",
    "lightTrellis", "gray125", "gray0625",
)
_SIDES = ("left", "right", "top", "bottom", "diagonal")
_DEFAULT_FONT = '<font><sz val="11"/><name val="Calibri"/></font>'
_EMPTY_BORDER = "<border>" + "".join(f"<{s}/>" for s in _SIDES) + "</border>"


def _rgb(color: Any) -> str:
    text = str(color).lstrip("#").upper()
    return text if len(text) == 8 else "FF" + text


def _font_xml(font: Mapping[str, Any] | None) -> str:
    if not font:
        return _DEFAULT_FONT
    parts = []
    if font.get("bold"):
        parts.append("<b/>")
    if font.get("italic"):
        parts.append("<i/>")
    if font.get("underline"):
        parts.append(f"<u val={quoteattr(str(font['underline']))}/>")
    parts.append(f'<sz val="{font.get("size") or 11}"/>')
    if font.get("color"):
        parts.append(f'<color rgb="{_rgb(font["color"])}"/>')
    parts.append(f"<name val={quoteattr(str(font.get('family') or 'Calibri'))}/>")
    return "<font>" + "".join(parts) + "</font>"


def _fill_xml(fill: Mapping[str, Any] | None) -> str | None:
    if not fill or fill.get("type") != "pattern":
        return None
    pattern = fill.get("pattern") or 0
    if not 0 < pattern < len(_PATTERNS):
        return None
    colors = fill.get("color") or []
    fg = f'<fgColor rgb="{_rgb(colors[0])}"/>' if colors else ""
    return f'<fill><patternFill patternType="{_PATTERNS[pattern]}">{fg}</patternFill></fill>'


def _border_xml(borders: Sequence[Mapping[str, Any]] | None) -> str | None:
    if not borders:
        return None
    by_side = {b.get("type"): b for b in borders}
    parts = []
    for side in _SIDES:
        border = by_side.get(side)
        style = (border.get("style") or 0) if border else 0
        if border and 0 < style < len(_BORDER_STYLES):
            color = border.get("color")
            inner = f'<color rgb="{_rgb(color)}"/>' if color else ""
            parts.append(f'<{side} style="{_BORDER_STYLES[style]}">{inner}</{side}>')
        else:
            parts.append(f"<{side}/>")
    return "<border>" + "".join(parts) + "</border>"


def _alignment_xml(alignment: Mapping[str, Any] | None) -> str:
    if not alignment:
        return ""
    attrs = []
    for key in ("horizontal", "vertical"):
        if alignment.get(key):
            attrs.append(f"{key}={quoteattr(str(alignment[key]))}")
    for key, name in (("text_rotation", "textRotation"), ("indent", "indent")):
        if alignment.get(key):
            attrs.append(f'{name}="{int(alignment[key])}"')
    for key, name in (("wrap_text", "wrapText"), ("shrink_to_fit", "shrinkToFit")):
        if alignment.get(key):
            attrs.append(f'{name}="1"')
    return f"<alignment {' '.join(attrs)}/>" if attrs else ""


class _StyleTable:
    def __init__(self) -> None:
        self.fonts = [_DEFAULT_FONT]
        self.fills = [
            '<fill><patternFill patternType="none"/></fill>',
            '<fill><patternFill patternType="gray125"/></fill>',
        ]
        self.borders = [_EMPTY_BORDER]
        self.num_fmts: dict[str, int] = {}
        self.xfs = ['<xf numFmtId="0" fontId="0" fillId="0" borderId="0" xfId="0"/>']

    @staticmethod
    def _intern(items: list[str], xml: str) -> int:
        if xml not in items:
            items.append(xml)
        return items.index(xml)

    def add(self, style: Mapping[str, Any]) -> None:
        custom = style.get("custom_number_format")
        if custom:
            num_id = self.num_fmts.setdefault(custom, 164 + len(self.num_fmts))
        else:
            num_id = int(style.get("number_format") or 0)
        font_id = self._intern(self.fonts, _font_xml(style.get("font")))
        fill = _fill_xml(style.get("fill"))
        fill_id = self._intern(self.fills, fill) if fill else 0
        border = _border_xml(style.get("border"))
        border_id = self._intern(self.borders, border) if border else 0
        alignment = _alignment_xml(style.get("alignment"))
        attrs = (
            f'numFmtId="{num_id}" fontId="{font_id}" fillId="{fill_id}" '
            f'borderId="{border_id}" xfId="0" applyNumberFormat="1" applyFont="1" '
            f'applyFill="1" applyBorder="1"'
        )
        if alignment:
            self.xfs.append(f'<xf {attrs} applyAlignment="1">{alignment}</xf>')
        else:
            self.xfs.append(f"<xf {attrs}/>")

    def xml(self) -> str:
        parts = [_XML_DECL, f'<styleSheet xmlns="{_NS_MAIN}">']
        if self.num_fmts:
            parts.append(f'<numFmts count="{len(self.num_fmts)}">')
            parts.extend(
                f'<numFmt numFmtId="{i}" formatCode={quoteattr(code)}/>'
                for code, i in self.num_fmts.items()
            )
            parts.append("</numFmts>")
        for tag, items in (("fonts", self.fonts), ("fills", self.fills), ("borders", self.borders)):
            parts.append(f'<{tag} count="{len(items)}">{"".join(items)}</{tag}>')
        parts.append(
            '<cellStyleXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0"/>'
            "</cellStyleXfs>"
        )
        parts.append(f'<cellXfs count="{len(self.xfs)}">{"".join(self.xfs)}</cellXfs>')
        parts.append('<cellStyles count="1"><cellStyle name="Normal" xfId="0" builtinId="0"/></cellStyles>')
        parts.append("</styleSheet>")
        return "".join(parts)


class Workbook:
    """A set of named sheets and the styles they share."""

    def __init__(self) -> None:
        self.sheets: dict[str, Sheet] = {DEFAULT_SHEET: Sheet(self, DEFAULT_SHEET)}
        self.styles: list[dict[str, Any]] = []
        self._style_ids: dict[str, int] = {}

    def new_sheet(self, name: str) -> Sheet:
        """Add a sheet; a name already in use is an error."""
        if not name or name.lower() in (n.lower() for n in self.sheets):
            raise WorkbookError(f"erro ao criar planilha {name}")
        sheet = Sheet(self, name)
        self.sheets[name] = sheet
        return sheet

    def add_style(self, style: str | Mapping[str, Any]) -> int:
        """Register a JSON style (text or mapping) and return its id, starting at 1."""
        if isinstance(style, str):
            try:
                style = json.loads(style)
            except json.JSONDecodeError as exc:
                raise ValueError(f"invalid style: {exc}") from exc
        if not isinstance(style, Mapping):
            raise ValueError("style must be a JSON object")
        key = json.dumps(style, sort_keys=True)
        if key not in self._style_ids:
            self.styles.append(dict(style))
            self._style_ids[key] = len(self.styles)
        return self._style_ids[key]

    def save(self, filename: str) -> None:
        """Drop the default sheet, make the first sheet active and write the file."""
        if len(self.sheets) > 1:
            self.sheets.pop(DEFAULT_SHEET, None)
        sheets = list(self.sheets.values())
        table = _StyleTable()
        for style in self.styles:
            table.add(style)
        try:
            with zipfile.ZipFile(filename, "w", zipfile.ZIP_DEFLATED) as archive:
                archive.writestr("[Content_Types].xml", _content_types(len(sheets)))
                archive.writestr(
                    "_rels/.rels",
                    f'{_XML_DECL}<Relationships xmlns="{_NS_PKG_REL}">'
                    f'<Relationship Id="rId1" Type="{_NS_REL}/officeDocument" '
                    'Target="xl/workbook.xml"/></Relationships>',
                )
                archive.writestr("xl/workbook.xml", _workbook_xml(sheets))
                archive.writestr("xl/_rels/workbook.xml.rels", _workbook_rels(len(sheets)))
                archive.writestr("xl/styles.xml", table.xml())
                for number, sheet in enumerate(sheets, start=1):
                    archive.writestr(
                        f"xl/worksheets/sheet{number}.xml", sheet._xml(number == 1)
                    )
        except OSError as exc:
            raise WorkbookError(f"erro ao salvar planilha: {exc}") from exc


def _content_types(count: int) -> str:
    overrides = "".join(
        f'<Override PartName="/xl/worksheets/sheet{i}.xml" '
        f'ContentType="{_CT_PREFIX}.worksheet+xml"/>'
        for i in range(1, count + 1)
    )
    return (
        f'{_XML_DECL}<Types xmlns="{_NS_TYPES}">'
        '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
        '<Default Extension="xml" ContentType="application/xml"/>'
        f'<Override PartName="/xl/workbook.xml" ContentType="{_CT_PREFIX}.sheet.main+xml"/>'
        f'<Override PartName="/xl/styles.xml" ContentType="{_CT_PREFIX}.styles+xml"/>'
        f"{overrides}</Types>"
    )


def _workbook_xml(sheets: list[Sheet]) -> str:
    entries = "".join(
        f'<sheet name={quoteattr(sheet.name)} sheetId="{i}" r:id="rId{i}"/>'
        for i, sheet in enumerate(sheets, start=1)
    )
    return (
        f'{_XML_DECL}<workbook xmlns="{_NS_MAIN}" xmlns:r="{_NS_REL}">'
        '<bookViews><workbookView activeTab="0"/></bookViews>'
        f"<sheets>{entries}</sheets></workbook>"
    )


def _workbook_rels(count: int) -> str:
    rels = "".join(
        f'<Relationship Id="rId{i}" Type="{_NS_REL}/worksheet" '
        f'Target="worksheets/sheet{i}.xml"/>'
        for i in range(1, count + 1)
    )
    rels += (
        f'<Relationship Id="rId{count + 1}" Type="{_NS_REL}/styles" Target="styles.xml"/>'
    )
    return f'{_XML_DECL}<Relationships xmlns="{_NS_PKG_REL}">{rels}</Relationships>'