"""Data for the web pages: request parsing and fund dividend payloads."""

from __future__ import annotations

import re
import sys
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from .fii_terminal import FIISource
from .ptformat import pt_format
from .stock import StockStorage

_SEPARATORS = re.compile(r"[ ,;\n]")
_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64 = 2**63
_ERRORS = (LookupError, ValueError, OSError)


@dataclass
class FIIValue:
    date: str
    dividend: float
    quote: float
    yeld: float = 0.0
    yeld_year: float = 0.0


@dataclass
class FIIData:
    code: str
    name: str = ""
    website: str = ""
    values: list[FIIValue] = field(default_factory=list)


def _error(message: str) -> None:
    sys.stderr.write(f"[x] {message}\n")


def parse_codes(text: str) -> list[str]:
    """Fund codes (six characters, like ABCD11) separated by spaces, commas,
    semicolons or new lines."""
    codes = []
    for piece in _SEPARATORS.split(text):
        piece = piece.strip()
        if piece and len(piece.encode()) == 6:
            codes.append(piece)
    return codes


def parse_numeric(numeric: str, alt: int) -> int:
    """Decimal integer in ``numeric``, or ``alt`` if it is not one."""
    if not _INTEGER.fullmatch(numeric):
        return alt
    number = int(numeric)
    return number if -_INT64 <= number < _INT64 else alt


def pt_fmt_float(value: float) -> str:
    """Value with two decimals in Brazilian Portuguese style."""
    return pt_format(value, 2)


def _website(site: str) -> str:
    """Site with https added when it has no scheme; empty when it has one."""
    if not site:
        return ""
    try:
        parts = urlsplit(site)
    except ValueError:
        return ""
    if parts.scheme:
        return ""
    return "https://" + site.lstrip("/")


def fii_dividends(
    fii: FIISource, stock: StockStorage, codes: Iterable[str], n: int
) -> list[FIIData]:
    """Dividends, quotes and yields of the last ``n`` months for each fund.

    When ``fii`` also offers ``details(code)``, returning an object with
    ``company_name`` and ``website``, the fund's name and site are filled in.
    """
    dataset = []
    details = getattr(fii, "details", None)
    for code in codes:
        code = code.upper()
        try:
            dividends = fii.dividends(code, n)
        except _ERRORS as exc:
            _error(f"{code}: {exc}")
            continue

        values = []
        for div in dividends:
            try:
                quote = stock.quote(code, div.date)
            except _ERRORS as exc:
                _error(f"Cotação de {code} ({div.date}): {exc}")
                continue
            value = FIIValue(div.date, div.val, quote)
            if quote > 0:
                rate = div.val / quote
                value.yeld = 100 * rate
                value.yeld_year = 100 * ((1 + rate) ** 12 - 1)
            values.append(value)

        name = website = ""
        if details is not None:
            try:
                info = details(code)
                name = info.company_name
                website = _website(info.website)
            except (AttributeError, *_ERRORS):
                name = website = ""

        dataset.append(FIIData(code, name, website, values))
    return dataset


def fii_dividends_payload(
    fii: FIISource, stock: StockStorage, codes: list[str], months: int
) -> dict[str, Any]:
    """Data for the fund page: the codes, the number of months and the dividends."""
    return {
        "codes": " ".join(codes),
        "months": months,
        "data": fii_dividends(fii, stock, codes, months),
    }