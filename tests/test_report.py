import datetime
import io
import sqlite3
import zipfile

import pytest

from rapinarep.database import DataNotFoundError, avg
from rapinarep.metrics import AccountCode, Group, metrics_list
from rapinarep.report import Report, last_business_day_of_year, report_to_xlsx
from rapinarep.stock import MemoryStockStorage
from rapinarep.workbook import Workbook

COMPANY = "EMPRESA TESTE SA"

ACCOUNTS = [
    (AccountCode.ATIVO_TOTAL, "1", "Ativo Total", 900.0, 1000.0),
    (AccountCode.ATIVO_CIRC, "1.01", "Ativo Circulante", 400.0, 500.0),
    (AccountCode.ESTOQUE, "1.01.04", "Estoques", 100.0, 300.0),
    (AccountCode.EQUITY, "2.03", "Patrimonio Liquido", 600.0, 700.0),
    (AccountCode.VENDAS, "3.01", "Receita", 2000.0, 2500.0),
    (AccountCode.LUC_LIQ, "3.11", "Lucro", 400.0, 500.0),
]


def _build_db() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    cols = (
        "ID INTEGER, ID_CIA INTEGER, YEAR TEXT, VERSAO INTEGER, CODE INTEGER, "
        "CD_CONTA TEXT, DS_CONTA TEXT, VL_CONTA REAL, DT_FIM_EXERC INTEGER, ESCALA_MOEDA TEXT"
    )
    conn.execute(f"CREATE TABLE dfp ({cols})")
    conn.execute(f"CREATE TABLE itr ({cols})")
    conn.execute(
        "CREATE TABLE fre (ID_CIA INTEGER, YEAR TEXT, Versao INTEGER, "
        "Quantidade_Total_Acoes_Circulacao REAL, Percentual_Total_Acoes_Circulacao REAL)"
    )
    conn.execute("CREATE TABLE companies (ID INTEGER, NAME TEXT, CNPJ TEXT)")
    conn.execute("INSERT INTO companies VALUES (1, ?, '00.000.000/0000-00')", (COMPANY,))
    row_id = 0
    for year, epoch, index in (("2019", 1577750400, 3), ("2020", 1609372800, 4)):
        for code, cd, ds, *vals in ACCOUNTS:
            row_id += 1
            conn.execute(
                "INSERT INTO dfp VALUES (?, 1, ?, 1, ?, ?, ?, ?, ?, 'MIL')",
                (row_id, year, int(code), cd, ds, vals[index - 3], epoch),
            )
    conn.execute("INSERT INTO fre VALUES (1, '2020', 1, 1000000, 0.4)")
    conn.commit()
    return conn


def _stock() -> MemoryStockStorage:
    stock = MemoryStockStorage({(COMPANY, "ON"): "ABCD3"})
    stock.save(io.StringIO(f"{last_business_day_of_year(2020)},25.5\n"), "ABCD3")
    return stock


@pytest.fixture
def conn():
    connection = _build_db()
    yield connection
    connection.close()


@pytest.fixture
def report(conn):
    rep = Report(conn, _stock(), "Teste")
    rep.set_company("Teste")
    return rep


def test_last_business_day_pinned():
    assert last_business_day_of_year(2022) == "2022-12-30"


@pytest.mark.parametrize("year", range(2015, 2030))
def test_last_business_day_invariants(year):
    day = datetime.date.fromisoformat(last_business_day_of_year(year))
    assert day.year == year and day.month == 12
    assert day.weekday() < 5
    later = day + datetime.timedelta(days=1)
    while later.year == year:
        assert later.weekday() >= 5
        later += datetime.timedelta(days=1)


def test_set_company(report):
    assert report.cid == 1
    assert report.company == COMPANY
    assert report.cnpj == "00.000.000/0000-00"
    assert report.code == "ABCD3"


def test_set_company_errors(conn):
    with pytest.raises(ValueError):
        Report(conn, _stock()).set_company("")
    with pytest.raises(ValueError):
        Report(conn, None).set_company("Teste")
    with pytest.raises(DataNotFoundError):
        Report(conn, _stock()).set_company("Inexistente")


def test_set_company_without_stock_code(conn, capsys):
    rep = Report(conn, MemoryStockStorage())
    rep.set_company("Teste")
    assert rep.code == ""
    assert rep.cid == 1
    assert "[x] Erro obtendo código negociação" in capsys.readouterr().out


def test_accounts_values(report):
    values = report.accounts_values(2020)
    for code, _, _, _, current in ACCOUNTS:
        assert values[code] == current
    assert values[AccountCode.ESCALA] == 1000.0
    assert values[AccountCode.SHARES] == 1000000
    assert values[AccountCode.FREE_FLOAT] == 0.4
    assert values[AccountCode.ESTOQUE_MEDIO] == avg(300.0, 100.0)
    assert values[AccountCode.EQUITY_AVG] == avg(700.0, 600.0)
    assert values[AccountCode.QUOTE] == 25.5


def test_accounts_values_empty_year(report):
    assert report.accounts_values(2010) == {}


def test_accounts_values_without_company(conn):
    with pytest.raises(ValueError):
        Report(conn, _stock()).accounts_values(2020)


@pytest.mark.parametrize("show_shares", [False, True])
def test_print_codes_and_descriptions(report, show_shares):
    report.groups = {Group.ACCOUNTS} | ({Group.SHARES} if show_shares else set())
    from rapinarep.database import account_items

    accounts = account_items(report.conn, report.cid)
    sheet = Workbook().new_sheet("x")
    base, last_stmt, last_metric = report.print_codes_and_descriptions(
        sheet, accounts, "A", 2
    )
    assert last_stmt == 2 + len(accounts) - 1
    enabled = [m for m in metrics_list(None) if m.group in report.groups]
    assert last_metric == last_stmt + 2 + len(enabled)
    assert sheet.cell_value("A2") == "1"
    assert sheet.cell_value("A3") == "  1.01"
    assert sheet.cell_value("A4") == "    1.01.04"
    assert base[2:5] == [True, True, False]
    assert sheet.cell_value(f"B{last_stmt + 3}") == "Patrimônio Líquido"
    texts = {sheet.cell_value(f"B{r}") for r in range(last_stmt + 3, last_metric + 1)}
    assert ("Total de Ações" in texts) is show_shares


def test_to_xlsx(conn, tmp_path, capsys):
    filename = tmp_path / "out.xlsx"
    Report(conn, _stock(), "Teste", str(filename)).to_xlsx()
    assert "Dados salvos em" in capsys.readouterr().out
    with zipfile.ZipFile(filename) as archive:
        workbook_xml = archive.read("xl/workbook.xml").decode("utf-8")
        sheet_xml = archive.read("xl/worksheets/sheet1.xml").decode("utf-8")
    assert f'name="{COMPANY}"' in workbook_xml
    assert "Sheet1" not in workbook_xml
    for text in ("[2019]", "[2020]", "ANÁLISE  VERTICAL", "ANÁLISE  HORIZONTAL", "CAGR"):
        assert text in sheet_xml
    assert "IfError(" in sheet_xml


def test_to_xlsx_unknown_company(conn, tmp_path):
    rep = Report(conn, _stock(), "Inexistente", str(tmp_path / "x.xlsx"))
    with pytest.raises(DataNotFoundError, match="Inexistente"):
        rep.to_xlsx()


def test_report_to_xlsx_function(conn, tmp_path):
    filename = tmp_path / "f.xlsx"
    report_to_xlsx(conn, _stock(), "Teste", str(filename), show_shares=True)
    with zipfile.ZipFile(filename) as archive:
        sheet_xml = archive.read("xl/worksheets/sheet1.xml").decode("utf-8")
    assert "Total de Ações" in sheet_xml


def test_summary(conn):
    rep = Report(conn, _stock())
    result = rep.summary("Teste")
    assert result["Lucro Líquido"] == "500.00"
    assert result["Receita Líquida"] == "2500.00"
    assert "Total de Ações" not in result
    assert "" not in result