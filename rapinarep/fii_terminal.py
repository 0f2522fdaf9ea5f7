"""Terminal reports of real-estate fund (FII) dividends."""

from __future__ import annotations

import abc
import datetime
import sys
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import IntEnum
from typing import TextIO

from .ptformat import pt_format
from .stock import StockStorage

LINE = "-" * 67
CSV_HEADER = "Código,Data Com,Rendimento,Cotação,Yeld,Yeld a.a."

_QUOTE_ERRORS = (LookupError, ValueError, OSError)


@dataclass(frozen=True)
class Dividend:
    date: str
    val: float


class FIISource(abc.ABC):
    """Source of fund dividends."""

    @abc.abstractmethod
    def dividends(self, code: str, n: int) -> list[Dividend]:
        """Dividends of fund ``code`` paid in the last ``n`` months."""


class ReportFormat(IntEnum):
    TABLE = 1
    CSV = 2
    CSVREND = 3


_FORMAT_NAMES = {
    "table": ReportFormat.TABLE,
    "tabela": ReportFormat.TABLE,
    "tab": ReportFormat.TABLE,
    "csv": ReportFormat.CSV,
    "csvrend": ReportFormat.CSVREND,
}


def rev_months_from_today(n: int, today: datetime.date | None = None) -> list[str]:
    """The last ``n`` months up to today's, oldest first, as YYYY-MM."""
    today = today or datetime.date.today()
    current = today.year * 12 + today.month - 1
    months = []
    for back in range(n - 1, -1, -1):
        year, month = divmod(current - back, 12)
        months.append(f"{year:04d}-{month + 1:02d}")
    return months


class FIITerminal:
    """Prints fund dividend reports as a table or as CSV."""

    def __init__(
        self,
        fii: FIISource,
        stock: StockStorage,
        report_format: ReportFormat = ReportFormat.TABLE,
        *,
        err: TextIO | None = None,
        today: datetime.date | None = None,
    ) -> None:
        self.fii = fii
        self.stock = stock
        self.report_format = report_format
        self.err = err
        self.today = today
        self.verbose = False

    def set_parms(self, parms: Mapping[str, str]) -> None:
        """Apply "verbose" and "format" (table, tabela, tab, csv, csvrend) settings."""
        if "verbose" in parms:
            self.verbose = True
        fmt = parms.get("format")
        if fmt in _FORMAT_NAMES:
            self.report_format = _FORMAT_NAMES[fmt]

    def _error(self, message: str) -> None:
        (sys.stderr if self.err is None else self.err).write(f"[x] {message}\n")

    def _quote(self, code: str, date: str) -> float | None:
        try:
            return self.stock.quote(code, date)
        except _QUOTE_ERRORS as exc:
            self._error(f"Cotação de {code} ({date}): {exc}")
            return None

    def _fetch(self, code: str, n: int) -> list[Dividend] | None:
        try:
            return list(self.fii.dividends(code, n))
        except Exception as exc:  # reported and skipped, like any failed fund
            self._error(f"{code}: {exc}")
            return None

    def dividends(self, codes: Iterable[str], n: int, out: TextIO | None = None) -> None:
        """Fetch and print the dividends of the last ``n`` months for each fund code."""
        out = sys.stdout if out is None else out
        if self.report_format == ReportFormat.CSV:
            out.write(CSV_HEADER + "\n")
        if self.report_format == ReportFormat.CSVREND:
            months = rev_months_from_today(n, self.today)
            out.write("Código/Data-Com" + "".join(f",{m}" for m in months) + "\n")

        valid = []
        for code in codes:
            if len(code) == 6:
                valid.append(code)
            else:
                self._error(f"Código inválido: {code}. Padrão esperado: ABCD11.")

        with ThreadPoolExecutor() as pool:
            fetched = dict(zip(valid, pool.map(self._fetch, valid, [n] * len(valid))))

        for code in valid:
            divs = fetched.get(code)
            if divs is None:
                continue
            if self.report_format == ReportFormat.CSV:
                out.write(self.csv_dividends(code, divs))
            elif self.report_format == ReportFormat.CSVREND:
                out.write(self.csv_dividends_only(code, n, divs))
            else:
                out.write(self.table_dividends(code, divs))

        if self.report_format == ReportFormat.TABLE:
            out.write(LINE + "\n")

    def table_dividends(self, code: str, dividends: Sequence[Dividend]) -> str:
        """Table of dividends with quote and yields on the date of each payment."""
        lines = [
            LINE,
            code,
            LINE,
            "  DATA COM       RENDIMENTO     COTAÇÃO       YELD      YELD a.a.",
            "  ----------     ----------     ----------    ------    ---------",
        ]
        for div in dividends:
            text = f"  {div.date}     R${pt_format(div.val, 2).rjust(8)}     "
            quote = self._quote(code, div.date)
            if quote is not None and quote > 0:
                rate = div.val / quote
                text += (
                    f"R${pt_format(quote, 2).rjust(8)} "
                    f"{pt_format(100 * rate, 2).rjust(8)}%    "
                    f"{pt_format(100 * ((1 + rate) ** 12 - 1), 2).rjust(8)}%"
                )
            lines.append(text)
        return "\n".join(lines) + "\n"

    def csv_dividends(self, code: str, dividends: Sequence[Dividend]) -> str:
        """CSV lines: code, date, dividend, quote, yield and yearly yield."""
        lines = []
        for div in dividends:
            text = f'{code},{div.date},"{pt_format(div.val, 6)}",'
            quote = self._quote(code, div.date)
            if quote is not None and quote > 0:
                rate = div.val / quote
                text += (
                    f'"{pt_format(quote, 6)}","{pt_format(100 * rate, 6)}%",'
                    f'"{pt_format(100 * ((1 + rate) ** 12 - 1), 6)}%"'
                )
            else:
                text += '"","",""'
            lines.append(text + "\n")
        return "".join(lines)

    def csv_dividends_only(self, code: str, n: int, dividends: Sequence[Dividend]) -> str:
        """One CSV line with the dividend of each of the last ``n`` months."""
        parts = [code]
        for month in rev_months_from_today(n, self.today):
            found = next((d for d in dividends if d.date[:7] == month), None)
            parts.append(f',"{pt_format(found.val, 6)}"' if found else ',""')
        return "".join(parts) + "\n"