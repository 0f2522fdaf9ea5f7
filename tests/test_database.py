import calendar
import datetime
import sqlite3

import pytest

from rapinarep.database import (
    AccountItem,
    CompanyInfo,
    CompanyRecord,
    DataNotFoundError,
    Profit,
    account_items,
    account_value,
    avg,
    companies,
    company_id,
    company_profits,
    dfp_values,
    find_company,
    last_balance,
    last_date,
    last_dfp_year,
    last_year,
    last_year_range,
    remove_duplicates,
    scale,
    shares,
    time_range,
    ttm_values,
)
from rapinarep.metrics import AccountCode

SCHEMA = """
CREATE TABLE dfp (ID INTEGER PRIMARY KEY, ID_CIA INTEGER, YEAR INTEGER, VERSAO INTEGER,
    CODE INTEGER, CD_CONTA TEXT, DS_CONTA TEXT, VL_CONTA REAL, DT_FIM_EXERC INTEGER,
    ESCALA_MOEDA TEXT);
CREATE TABLE itr (ID INTEGER PRIMARY KEY, ID_CIA INTEGER, YEAR INTEGER, VERSAO INTEGER,
    CODE INTEGER, CD_CONTA TEXT, DS_CONTA TEXT, VL_CONTA REAL, DT_FIM_EXERC INTEGER,
    ESCALA_MOEDA TEXT);
CREATE TABLE fre (ID_CIA INTEGER, YEAR INTEGER, Versao INTEGER,
    Quantidade_Total_Acoes_Circulacao REAL, Percentual_Total_Acoes_Circulacao REAL);
CREATE TABLE companies (ID INTEGER, NAME TEXT, CNPJ TEXT);
"""


def epoch(date):
    return calendar.timegm(datetime.date.fromisoformat(date).timetuple())


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    connection.executescript(SCHEMA)
    yield connection
    connection.close()


def add(conn, table, cid, year, code, cd, vl, dt=None, versao=1, ds="Conta", escala="MIL"):
    dt = dt or f"{year}-12-31"
    conn.execute(
        f"INSERT INTO {table} (ID_CIA, YEAR, VERSAO, CODE, CD_CONTA, DS_CONTA, VL_CONTA,"
        " DT_FIM_EXERC, ESCALA_MOEDA) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (cid, year, versao, code, cd, ds, vl, epoch(dt), escala),
    )


@pytest.mark.parametrize(
    "nums, want",
    [
        ([1, 2, 3], 2),
        ([10, 2, 18], 10),
        ([6, 20.4, 18.1, 6.32], 12.705),
        ([5.5, 0], 5.5),
    ],
)
def test_avg(nums, want):
    assert avg(*nums) == pytest.approx(want)


def test_avg_without_positive_numbers_is_zero():
    assert avg() == 0
    assert avg(-1, 0, -3) == 0


def test_remove_duplicates_keeps_first_order():
    assert remove_duplicates(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]
    assert remove_duplicates([]) == []


def test_account_items_uses_latest_version(conn):
    add(conn, "dfp", 1, 2020, 99, "3.99", 1.0, versao=1, ds="Antiga")
    add(conn, "dfp", 1, 2020, 19, "3.11", 100.0, versao=2, ds="Lucro")
    add(conn, "dfp", 1, 2020, 7, "1", 900.0, versao=2, ds="Ativo Total")
    add(conn, "dfp", 1, 2020, 13, "2.03", 500.0, versao=2, ds="PL")
    assert account_items(conn, 1) == [
        AccountItem(7, "1", "Ativo Total"),
        AccountItem(13, "2.03", "PL"),
        AccountItem(19, "3.11", "Lucro"),
    ]


def test_last_year_prefers_newer_itr(conn):
    add(conn, "dfp", 1, 2020, 19, "3.11", 100.0)
    assert last_year(conn, 1) == (2020, False)
    add(conn, "itr", 1, 2021, 19, "3.11", 40.0, dt="2021-03-31")
    assert last_year(conn, 1) == (2021, True)


def test_last_year_errors(conn):
    with pytest.raises(ValueError):
        last_year(conn, 0)
    with pytest.raises(DataNotFoundError):
        last_year(conn, 5)


def test_last_year_range(conn):
    add(conn, "dfp", 1, 2019, 19, "3.11", 80.0)
    with pytest.raises(DataNotFoundError):
        last_year_range(conn, 1)
    add(conn, "dfp", 1, 2020, 19, "3.11", 100.0)
    add(conn, "dfp", 1, 2018, 19, "3.11", 60.0)
    assert last_year_range(conn, 1) == (epoch("2019-12-31"), epoch("2020-12-31"))


def test_dfp_values_latest_version(conn):
    add(conn, "dfp", 1, 2020, 19, "3.11", 90.0, versao=1)
    add(conn, "dfp", 1, 2020, 19, "3.11", 100.0, versao=2)
    add(conn, "dfp", 1, 2020, 13, "2.03", 500.0, versao=2)
    add(conn, "dfp", 1, 2019, 19, "3.11", 70.0)
    assert dfp_values(conn, 1, 2020) == {19: 100.0, 13: 500.0}


def test_last_date(conn):
    add(conn, "dfp", 1, 2020, 19, "3.11", 100.0)
    add(conn, "itr", 1, 2020, 19, "3.11", 20.0, dt="2020-03-31")
    assert last_date(conn, 1) == (epoch("2020-12-31"), "dfp")
    add(conn, "itr", 1, 2021, 19, "3.11", 40.0, dt="2021-03-31")
    assert last_date(conn, 1) == (epoch("2021-03-31"), "itr")


def test_last_date_missing(conn):
    add(conn, "dfp", 1, 2020, 19, "3.11", 100.0)
    with pytest.raises(DataNotFoundError):
        last_date(conn, 1)


def test_last_balance_keeps_balance_accounts(conn):
    add(conn, "dfp", 1, 2019, 13, "2.03", 400.0)
    add(conn, "dfp", 1, 2020, 13, "2.03", 500.0)
    add(conn, "dfp", 1, 2020, 7, "1", 900.0)
    add(conn, "dfp", 1, 2020, 19, "3.11", 100.0)
    add(conn, "itr", 1, 2020, 13, "2.03", 450.0, dt="2020-09-30")
    assert last_balance(conn, 1) == {13: 500.0, 7: 900.0}


def test_ttm_values(conn):
    add(conn, "dfp", 1, 2020, 19, "3.11", 100.0)
    add(conn, "dfp", 1, 2020, 13, "2.03", 500.0)
    for dt, val in (("2020-03-31", 20.0), ("2020-06-30", 25.0), ("2020-09-30", 30.0)):
        add(conn, "itr", 1, 2020, 19, "3.11", val, dt=dt)
    for dt, val in (("2021-03-31", 40.0), ("2021-06-30", 45.0), ("2021-09-30", 50.0)):
        add(conn, "itr", 1, 2021, 19, "3.11", val, dt=dt)
    add(conn, "itr", 1, 2021, 13, "2.03", 700.0, dt="2021-09-30")
    assert ttm_values(conn, 1) == {19: 160.0, 13: 700.0}


def test_last_dfp_year(conn):
    add(conn, "dfp", 1, 2019, 19, "3.11", 80.0)
    add(conn, "dfp", 1, 2020, 19, "3.11", 100.0)
    assert last_dfp_year(conn, 1) == 2020
    with pytest.raises(DataNotFoundError):
        last_dfp_year(conn, 2)
    with pytest.raises(ValueError):
        last_dfp_year(conn, 0)


def test_shares(conn):
    conn.execute("INSERT INTO fre VALUES (1, 2020, 1, 1000, 0.3)")
    conn.execute("INSERT INTO fre VALUES (1, 2020, 2, 2000, 0.4)")
    assert shares(conn, 1, 2020) == (2000.0, pytest.approx(0.4))
    assert shares(conn, 1, 2019) == (0.0, 0.0)


def test_account_value(conn):
    add(conn, "dfp", 1, 2019, int(AccountCode.ESTOQUE), "1.01.04", 300.0)
    assert account_value(conn, 1, 2019, AccountCode.ESTOQUE) == 300.0
    assert account_value(conn, 1, 2018, AccountCode.ESTOQUE) == 0.0


def test_scale(conn):
    add(conn, "dfp", 1, 2019, 19, "3.11", 1.0, escala="UNIDADE")
    add(conn, "dfp", 1, 2020, 19, "3.11", 1.0, escala="MILHAO")
    add(conn, "itr", 1, 2020, 19, "3.11", 1.0, escala="MIL", dt="2020-03-31")
    assert scale(conn, 1, 2019, "dfp") == 1
    assert scale(conn, 1, 2020, "dfp") == 1000000
    assert scale(conn, 1, 2020, "itr") == 1000
    assert scale(conn, 1, 2015, "dfp") == 1000
    with pytest.raises(ValueError):
        scale(conn, 1, 2020, "companies")


def test_companies_sorted(conn):
    conn.executemany(
        "INSERT INTO companies VALUES (?, ?, ?)",
        [(2, "VALE", "00.000.000/0000-00"), (1, "AMBEV", "00.000.000/0000-00")],
    )
    assert companies(conn) == [CompanyInfo(1, "AMBEV"), CompanyInfo(2, "VALE")]


def test_find_company_and_company_id(conn):
    conn.execute(
        "INSERT INTO companies VALUES (7, 'PETROLEO BRASILEIRO', '00.000.000/0000-00')"
    )
    assert find_company(conn, "BRASIL") == CompanyRecord(
        7, "PETROLEO BRASILEIRO", "00.000.000/0000-00"
    )
    assert company_id(conn, "PETROLEO") == 7
    with pytest.raises(ValueError):
        find_company(conn, "")
    with pytest.raises(DataNotFoundError):
        find_company(conn, "INEXISTENTE")
    with pytest.raises(DataNotFoundError):
        company_id(conn, "INEXISTENTE")


def test_time_range(conn):
    with pytest.raises(DataNotFoundError):
        time_range(conn)
    add(conn, "dfp", 1, 2018, 19, "3.11", 1.0)
    add(conn, "dfp", 2, 2020, 19, "3.11", 1.0)
    assert time_range(conn) == (2018, 2020)
    add(conn, "itr", 1, 2021, 19, "3.11", 1.0, dt="2021-03-31")
    assert time_range(conn) == (2018, 2021)


def test_time_range_invalid_year(conn):
    add(conn, "dfp", 1, 1800, 19, "3.11", 1.0, dt="2000-12-31")
    with pytest.raises(ValueError, match="ano inválido"):
        time_range(conn)


def test_company_profits(conn):
    luc = int(AccountCode.LUC_LIQ)
    add(conn, "dfp", 1, 2020, luc, "3.11", 120.0, versao=1)
    add(conn, "dfp", 1, 2020, luc, "3.11", 130.0, versao=2)
    add(conn, "dfp", 1, 2019, luc, "3.11", 100.0)
    add(conn, "dfp", 1, 2019, 13, "2.03", 999.0)
    assert company_profits(conn, 1) == [Profit(2019, 100.0), Profit(2020, 130.0)]
    assert company_profits(conn, 2) == []