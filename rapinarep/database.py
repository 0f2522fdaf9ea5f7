"""Queries on the financial statements database (dfp, itr, fre and companies tables)."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .metrics import AccountCode

_TABLES = ("dfp", "itr")


class DataNotFoundError(LookupError):
    """Raised when the requested data is not stored in the database."""


class DatabaseError(Exception):
    """Raised when the database cannot be read."""


@dataclass(frozen=True)
class AccountItem:
    code: int
    cd_conta: str
    ds_conta: str


@dataclass(frozen=True)
class CompanyInfo:
    id: int
    name: str


@dataclass(frozen=True)
class Profit:
    year: int
    profit: float


@dataclass(frozen=True)
class CompanyRecord:
    id: int
    name: str
    cnpj: str


def avg(*args: float) -> float:
    """Average of the numbers, ignoring those <= 0; 0 if none is left."""
    positives = [n for n in args if n > 0]
    if not positives:
        return 0.0
    return sum(positives) / len(positives)


def remove_duplicates(elements: Iterable[str]) -> list[str]:
    """Elements without repetitions, keeping the first occurrence order."""
    return list(dict.fromkeys(elements))


def _require_cid(cid: int) -> None:
    if not cid:
        raise ValueError("customer ID not set")


def _check_table(table: str) -> None:
    if table not in _TABLES:
        raise ValueError(f"table {table} is not allowed")


def _fetch_one(conn: sqlite3.Connection, query: str, params: Any = ()) -> tuple | None:
    return conn.execute(query, params).fetchone()


def _code_values(rows: Iterable[tuple]) -> dict[int, float]:
    return {
        int(code): float(value)
        for code, value in rows
        if code is not None and value is not None
    }


def account_items(conn: sqlite3.Connection, cid: int) -> list[AccountItem]:
    """All account codes and descriptions of a company, e.g. 1 Ativo Total, 1.01 ..."""
    query = """
    SELECT DISTINCT
        CODE, CD_CONTA, DS_CONTA
    FROM
        dfp a
    WHERE
        ID_CIA = ?
        AND VERSAO = (SELECT MAX(VERSAO) FROM dfp WHERE ID_CIA = a.ID_CIA AND YEAR = a.YEAR)
    ORDER BY
        CD_CONTA, DS_CONTA;"""
    items = []
    for code, cd_conta, ds_conta in conn.execute(query, (cid,)):
        if code is None or cd_conta is None or ds_conta is None:
            break
        items.append(AccountItem(int(code), str(cd_conta), str(ds_conta)))
    return items


def last_year(conn: sqlite3.Connection, cid: int) -> tuple[int, bool]:
    """Latest year stored for a company and whether it comes from the itr table."""
    _require_cid(cid)

    def max_year(table: str) -> int | None:
        try:
            row = _fetch_one(
                conn,
                f"SELECT MAX(CAST(YEAR AS INTEGER)) FROM {table} WHERE ID_CIA = ?;",
                (cid,),
            )
        except sqlite3.Error:
            return None
        return None if row is None or row[0] is None else int(row[0])

    dfp = max_year("dfp")
    itr = max_year("itr")
    if dfp is None and itr is None:
        raise DataNotFoundError("no rows in result set")
    dfp, itr = dfp or 0, itr or 0
    if itr > dfp:
        return itr, True
    return dfp, False


def last_year_range(conn: sqlite3.Connection, cid: int) -> tuple[int, int]:
    """First and last closing dates (unix epoch) of the two newest dfp statements."""
    _require_cid(cid)
    query = """
        SELECT DISTINCT DT_FIM_EXERC
        FROM dfp
        WHERE ID_CIA = ?
        ORDER BY DT_FIM_EXERC DESC
        LIMIT 2;"""
    dates = [row[0] for row in conn.execute(query, (cid,))]
    if len(dates) < 2 or any(not d for d in dates):
        raise DataNotFoundError("range not found")
    return int(dates[1]), int(dates[0])


def dfp_values(conn: sqlite3.Connection, cid: int, year: int) -> dict[int, float]:
    """Account values from the newest dfp version of a year, keyed by code."""
    query = """
    SELECT
        CODE, VL_CONTA
    FROM
        dfp a
    WHERE
        ID_CIA = :cid
        AND YEAR = :year
        AND VERSAO = (SELECT MAX(VERSAO) FROM dfp WHERE ID_CIA = a.ID_CIA AND YEAR = a.YEAR);"""
    return _code_values(conn.execute(query, {"cid": cid, "year": year}))


def last_date(conn: sqlite3.Connection, cid: int) -> tuple[int, str]:
    """Newest closing date of a company and the table ("dfp" or "itr") holding it."""
    dates = {}
    for table in _TABLES:
        row = _fetch_one(
            conn, f"SELECT MAX(DT_FIM_EXERC) FROM {table} WHERE ID_CIA = ? LIMIT 1;", (cid,)
        )
        if row is None or row[0] is None:
            raise DataNotFoundError(f"no closing date in {table} for company {cid}")
        dates[table] = int(row[0])
    if dates["dfp"] >= dates["itr"]:
        return dates["dfp"], "dfp"
    return dates["itr"], "itr"


def last_balance(conn: sqlite3.Connection, cid: int) -> dict[int, float]:
    """Balance sheet values with the newest date found on the dfp or itr tables."""
    date, table = last_date(conn, cid)
    _check_table(table)
    query = f"""
        SELECT
            date(DT_FIM_EXERC, 'unixepoch') DT, CODE, SUM(VL_CONTA) TOTAL
        FROM {table} t
        WHERE
            ID_CIA = :cid
            AND DT_FIM_EXERC = :date
            AND VERSAO = (SELECT MAX(VERSAO) FROM {table}
                          WHERE ID_CIA = t.ID_CIA AND DT_FIM_EXERC = t.DT_FIM_EXERC)
            AND CAST(substr(CD_CONTA, 1, 1) as decimal) <= 2
        GROUP BY
            DT_FIM_EXERC, CODE, CD_CONTA;"""
    rows = conn.execute(query, {"cid": cid, "date": date})
    return _code_values((code, total) for _, code, total in rows)


_TTM_QUERY = """SELECT CODE, sum(VAL) FROM (
    -- Last quarter from last year
    SELECT CODE, sum(VAL) VAL FROM (
        SELECT CODE, VL_CONTA VAL -- Year total
        FROM dfp d
        WHERE
            ID_CIA = :cid
            AND YEAR = :year
            AND VERSAO = (SELECT max(VERSAO) FROM dfp WHERE ID_CIA = d.ID_CIA AND YEAR = d.YEAR)
            AND CAST(substr(CD_CONTA, 1, 1) as decimal) > 2

        UNION

        SELECT CODE, -1*VL_CONTA VAL -- Minus 3 quarters
        FROM itr i
        WHERE
            ID_CIA = :cid
            AND YEAR <= :year
            AND CAST(substr(CD_CONTA, 1, 1) as decimal) > 2
            AND VERSAO = (SELECT MAX(VERSAO) FROM itr WHERE ID_CIA = i.ID_CIA
                          AND CODE = i.CODE AND DT_FIM_EXERC = i.DT_FIM_EXERC)
            AND ID IN (SELECT ID FROM itr WHERE ID_CIA = i.ID_CIA AND CODE = i.CODE
                       AND DT_FIM_EXERC = i.DT_FIM_EXERC ORDER BY DT_FIM_EXERC desc LIMIT 3)
    )
    GROUP BY CODE

    UNION

    -- Last 3 quarters
    SELECT CODE, sum(VL_CONTA) VAL
    FROM itr i
    WHERE
        ID_CIA = :cid
        AND CAST(substr(CD_CONTA, 1, 1) as decimal) > 2
        AND VERSAO = (SELECT MAX(VERSAO) FROM itr WHERE ID_CIA = i.ID_CIA
                      AND CODE = i.CODE AND DT_FIM_EXERC = i.DT_FIM_EXERC)
        AND ID IN (SELECT ID FROM itr WHERE ID_CIA = i.ID_CIA AND CODE = i.CODE
                   ORDER BY DT_FIM_EXERC desc LIMIT 3)
    GROUP BY CODE
)
GROUP BY CODE
ORDER BY CODE;"""


def ttm_values(conn: sqlite3.Connection, cid: int) -> dict[int, float]:
    """Twelve trailing months: the last four quarters summed per account,
    plus the newest balance sheet."""
    year = last_dfp_year(conn, cid)
    values = _code_values(conn.execute(_TTM_QUERY, {"cid": cid, "year": year}))
    values.update(last_balance(conn, cid))
    return values


def last_dfp_year(conn: sqlite3.Connection, cid: int) -> int:
    """Latest year stored on the dfp table for a company."""
    _require_cid(cid)
    row = _fetch_one(conn, "SELECT MAX(YEAR) FROM dfp WHERE ID_CIA = ?;", (cid,))
    if row is None or row[0] is None:
        raise DataNotFoundError(f"no dfp year for company {cid}")
    return int(row[0])


def shares(conn: sqlite3.Connection, cid: int, year: int) -> tuple[float, float]:
    """Number of shares and free float of a company in a year; zeros if not stored."""
    query = """
        SELECT
            Quantidade_Total_Acoes_Circulacao, Percentual_Total_Acoes_Circulacao
        FROM fre f
        WHERE
            ID_CIA = :cid
            AND YEAR = :year
            AND Versao = (SELECT MAX(Versao) FROM fre WHERE ID_CIA = f.ID_CIA AND YEAR = f.YEAR);"""
    row = _fetch_one(conn, query, {"cid": cid, "year": year})
    if row is None:
        return 0.0, 0.0
    if row[0] is None or row[1] is None:
        raise DataNotFoundError(f"shares of company {cid} in {year} are empty")
    return float(row[0]), float(row[1])


def account_value(conn: sqlite3.Connection, cid: int, year: int, code: int) -> float:
    """Value of an account for a company and year; 0 if not stored."""
    query = """
    SELECT
        VL_CONTA
    FROM
        dfp a
    WHERE
        ID_CIA = :cid
        AND YEAR = :year
        AND CODE = :code
        AND VERSAO = (SELECT MAX(VERSAO) FROM dfp WHERE ID_CIA = a.ID_CIA AND YEAR = a.YEAR);"""
    row = _fetch_one(conn, query, {"cid": cid, "year": year, "code": int(code)})
    if row is None:
        return 0.0
    if row[0] is None:
        raise DataNotFoundError(f"account {code} of company {cid} in {year} is empty")
    return float(row[0])


def scale(conn: sqlite3.Connection, cid: int, year: int, table: str) -> float:
    """Financial scale of the values (unit, thousands or millions); 1000 by default."""
    _check_table(table)
    try:
        row = _fetch_one(
            conn,
            f"SELECT ESCALA_MOEDA FROM {table} WHERE ID_CIA = :cid AND YEAR = :year LIMIT 1;",
            {"cid": cid, "year": year},
        )
    except sqlite3.Error:
        return 1000.0
    if row is None:
        return 1000.0
    return {"UNIDADE": 1.0, "MIL": 1000.0, "MILHAO": 1000000.0}.get(row[0], 1000.0)


def companies(conn: sqlite3.Connection) -> list[CompanyInfo]:
    """Companies stored on the database, ordered by name."""
    try:
        rows = conn.execute("SELECT ID, NAME FROM companies ORDER BY NAME;").fetchall()
    except sqlite3.Error as exc:
        raise DatabaseError(f"falha ao ler banco de dados: {exc}") from exc
    return [
        CompanyInfo(int(cid), str(name))
        for cid, name in rows
        if cid is not None and name is not None
    ]


def find_company(conn: sqlite3.Connection, company: str) -> CompanyRecord:
    """ID, stored name and CNPJ of the first company whose name contains ``company``."""
    if not company:
        raise ValueError("company name not set")
    row = _fetch_one(
        conn,
        "SELECT DISTINCT ID, NAME, CNPJ FROM companies WHERE NAME LIKE ?",
        (f"%{company}%",),
    )
    if row is None or None in row:
        raise DataNotFoundError(f"empresa '{company}' não encontrada no banco de dados")
    return CompanyRecord(int(row[0]), str(row[1]), str(row[2]))


def company_id(conn: sqlite3.Connection, company_name: str) -> int:
    """ID of the first company whose name contains ``company_name``."""
    row = _fetch_one(
        conn,
        "SELECT DISTINCT ID FROM companies WHERE NAME LIKE ?",
        (f"%{company_name}%",),
    )
    if row is None or row[0] is None:
        raise DataNotFoundError(f"empresa '{company_name}' não encontrada no banco de dados")
    return int(row[0])


def time_range(conn: sqlite3.Connection) -> tuple[int, int]:
    """First and last years stored on the database (itr may extend the last one)."""
    row = _fetch_one(
        conn, "SELECT MIN(CAST(YEAR AS INTEGER)), MAX(CAST(YEAR AS INTEGER)) FROM dfp;"
    )
    if row is None or row[0] is None or row[1] is None:
        raise DataNotFoundError("no years stored on dfp")
    begin, end = int(row[0]), int(row[1])

    try:
        itr = _fetch_one(conn, "SELECT MAX(CAST(YEAR AS INTEGER)) FROM itr;")
    except sqlite3.Error:
        itr = None
    if itr is not None and itr[0] is not None and int(itr[0]) > end:
        end = int(itr[0])

    if not (1900 <= begin <= 2100 and 1900 <= end <= 2100):
        raise ValueError("ano inválido")
    return min(begin, end), max(begin, end)


def company_profits(conn: sqlite3.Connection, company_id: int) -> list[Profit]:
    """Net profit of a company for every stored year, oldest first."""
    query = """
    SELECT
        YEAR, VL_CONTA
    FROM
        dfp a
    WHERE
        ID_CIA = :cid
        AND CODE = :code
        AND VERSAO = (SELECT MAX(VERSAO) FROM dfp WHERE ID_CIA = a.ID_CIA AND YEAR = a.YEAR)
    ORDER BY
        YEAR;"""
    try:
        rows = conn.execute(
            query, {"cid": company_id, "code": int(AccountCode.LUC_LIQ)}
        ).fetchall()
    except sqlite3.Error as exc:
        raise DatabaseError(f"falha ao ler banco de dados: {exc}") from exc
    return [
        Profit(int(year), float(value))
        for year, value in rows
        if year is not None and value is not None
    ]