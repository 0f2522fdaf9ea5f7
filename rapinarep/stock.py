"""Storage of stock quotes and trading codes."""

from __future__ import annotations

import abc
import datetime
from collections.abc import Iterable, Mapping
from typing import IO


class StockNotFoundError(LookupError):
    """Raised when a quote or a trading code is not stored."""


class StockStorage(abc.ABC):
    """Parses, saves and retrieves stock data to and from a storage."""

    @abc.abstractmethod
    def quote(self, code: str, date: str) -> float:
        """Closing price of ``code`` on ``date`` (YYYY-MM-DD)."""

    @abc.abstractmethod
    def code(self, company_name: str, stock_type: str) -> str:
        """Trading code of a company's stock of the given type (e.g. "ON")."""

    @abc.abstractmethod
    def save(self, stream: IO[str] | IO[bytes] | Iterable[str | bytes], code: str) -> int:
        """Read quotes for ``code`` from ``stream``, store them and return how many."""


def _normalise_date(text: str) -> str:
    try:
        return datetime.date.fromisoformat(text.strip()).isoformat()
    except ValueError as exc:
        raise ValueError(f"invalid date: {text!r}") from exc


class MemoryStockStorage(StockStorage):
    """Keeps quotes and trading codes in memory.

    ``save`` reads lines of the form ``YYYY-MM-DD,price``; blank lines and a
    leading ``date,...`` header line are ignored.
    """

    def __init__(self, codes: Mapping[tuple[str, str], str] | None = None) -> None:
        self._quotes: dict[tuple[str, str], float] = {}
        self._codes: dict[tuple[str, str], str] = {}
        for (company, stock_type), code in (codes or {}).items():
            self.add_code(company, stock_type, code)

    def add_code(self, company_name: str, stock_type: str, code: str) -> None:
        """Record the trading code of a company's stock type."""
        self._codes[(company_name.strip().upper(), stock_type.strip().upper())] = (
            code.strip().upper()
        )

    def quote(self, code: str, date: str) -> float:
        key = (code.strip().upper(), _normalise_date(date))
        try:
            return self._quotes[key]
        except KeyError:
            raise StockNotFoundError(f"cotação de {code} em {date} não encontrada") from None

    def code(self, company_name: str, stock_type: str) -> str:
        key = (company_name.strip().upper(), stock_type.strip().upper())
        try:
            return self._codes[key]
        except KeyError:
            raise StockNotFoundError(
                f"código de {company_name} ({stock_type}) não encontrado"
            ) from None

    def save(self, stream: IO[str] | IO[bytes] | Iterable[str | bytes], code: str) -> int:
        code = code.strip().upper()
        if not code:
            raise ValueError("stock code not set")
        parsed: list[tuple[str, float]] = []
        for number, raw in enumerate(stream, start=1):
            line = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            line = line.strip()
            if not line:
                continue
            fields = [f.strip() for f in line.split(",")]
            if number == 1 and fields[0].lower() == "date":
                continue
            if len(fields) != 2:
                raise ValueError(f"line {number}: expected 'date,price', got {line!r}")
            date = _normalise_date(fields[0])
            try:
                price = float(fields[1])
            except ValueError as exc:
                raise ValueError(f"line {number}: invalid price {fields[1]!r}") from exc
            parsed.append((date, price))
        for date, price in parsed:
            self._quotes[(code, date)] = price
        return len(parsed)