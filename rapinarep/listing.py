"""Company lists: names in collation order and the growing-profits report."""

from __future__ import annotations

import math
import sqlite3
import sys
import unicodedata
from typing import TextIO

from .database import (
    DatabaseError,
    DataNotFoundError,
    companies,
    company_profits,
    time_range,
)
from .ptformat import pt_format


class ListingError(Exception):
    """Raised when a company listing cannot be built."""


def _collation_key(name: str) -> tuple[str, str]:
    decomposed = unicodedata.normalize("NFD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), name


def list_companies(conn: sqlite3.Connection) -> list[str]:
    """Names of all companies stored, sorted ignoring accents and case."""
    names = [info.name for info in companies(conn)]
    if not names:
        raise DataNotFoundError("lista vazia")
    return sorted(names, key=_collation_key)


def companies_profits_report(conn: sqlite3.Connection, rate: float) -> str:
    """Companies whose net profit grew by at least ``rate`` every year, with CAGR."""
    try:
        infos = companies(conn)
    except DatabaseError as exc:
        raise ListingError(f"falha ao obter a lista de empresas ({exc})") from exc
    try:
        yi, yf = time_range(conn)
    except (DataNotFoundError, ValueError, sqlite3.Error) as exc:
        raise ListingError(f"falha ao obter a faixa de datas ({exc})") from exc

    years = range(yi, yf + 1)
    sep = "".join("-" * 10 + " " for _ in years) + "-" * 10 + " "
    lines = [
        " " * 20 + " " + "".join(f"{y:10d} " for y in years) + f"{'CAGR':>10}\n",
        f"{' ':>20} {sep}\n",
    ]

    for info in infos:
        try:
            profits = company_profits(conn, info.id)
        except DatabaseError as exc:
            raise ListingError(f"falha ao obter lucros de {info.name} ({exc})") from exc

        if len(profits) < 4 or profits[-1].year < yf - 1:
            continue
        pi, pf = profits[0].profit, profits[-1].profit
        if pf < pi:
            continue
        if any(
            cur.profit < 0 or cur.profit < (1 + rate) * prev.profit
            for prev, cur in zip(profits, profits[1:])
        ):
            continue

        parts = [f"{info.name[:20]:<20} "]
        by_year = iter(profits)
        pending = next(by_year, None)
        for year in years:
            if pending is not None and pending.year == year:
                parts.append(pt_format(pending.profit, 0).rjust(10) + " ")
                pending = next(by_year, None)
            else:
                parts.append(" " * 10 + " ")

        span = yf - yi - 1
        if pi != 0 and pf != 0 and pf * pi >= 0 and span != 0:
            cagr = math.pow(pf / pi, 1 / span) - 1
            parts.append(pt_format(cagr * 100, 1).rjust(10) + "%")
        lines.append("".join(parts) + "\n")

    lines.append(
        f"\nEmpresas com lucros crescentes e variação mínima de {rate * 100:.0f}% "
        "de um ano para o outro.\n\n"
    )
    return "".join(lines)


def print_companies_profits(
    conn: sqlite3.Connection, rate: float, out: TextIO | None = None
) -> None:
    """Write the growing-profits report to ``out`` (standard output by default)."""
    report = companies_profits_report(conn, rate)
    (sys.stdout if out is None else out).write(report)