"""Company financial report: yearly statements, metrics and analyses in a workbook."""

from __future__ import annotations

import datetime
import sqlite3
from collections.abc import Sequence

from .database import (
    AccountItem,
    DataNotFoundError,
    account_items,
    account_value,
    avg,
    dfp_values,
    find_company,
    last_year,
    scale,
    shares,
    time_range,
    ttm_values,
)
from .metrics import AccountCode, Group, ident, metrics_list, total
from .stock import StockStorage
from .styles import Format, new_format
from .workbook import Sheet, Workbook, axis, col_letter

_LOOKUP_ERRORS = (LookupError, ValueError, OSError)


def last_business_day_of_year(year: int) -> str:
    """Last weekday (Monday to Friday) of ``year`` as YYYY-MM-DD."""
    day = datetime.date(year, 12, 31)
    while day.weekday() >= 5:
        day -= datetime.timedelta(days=1)
    return day.isoformat()


class Report:
    """Financial report of one company read from the statements database."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        stock: StockStorage | None = None,
        company: str = "",
        filename: str = "",
        *,
        show_shares: bool = False,
        extra_ratios: bool = False,
        fleuriet: bool = False,
    ) -> None:
        self.conn = conn
        self.stock = stock
        self.company = company
        self.filename = filename
        self.groups = {Group.ACCOUNTS}
        if show_shares:
            self.groups.add(Group.SHARES)
        if extra_ratios:
            self.groups.add(Group.EXTRA)
        if fleuriet:
            self.groups.add(Group.FLEURIET)
        self.cid = 0
        self.cnpj = ""
        self.code = ""

    def set_company(self, company: str) -> None:
        """Look up the company by name and set its id, stored name, CNPJ and stock code."""
        if not company:
            raise ValueError("company name not set")
        if self.stock is None:
            raise ValueError("fetchStock not set")

        self.cid = 0
        self.cnpj = ""
        self.code = ""

        record = find_company(self.conn, company)
        self.cid = record.id
        self.company = record.name
        self.cnpj = record.cnpj

        try:
            self.code = self.stock.code(self.company, "ON")
        except _LOOKUP_ERRORS as exc:
            print(f"\n[x] Erro obtendo código negociação: {exc}")

    def accounts_values(self, year: int) -> dict[int, float]:
        """Account and derived values of the current company for ``year``, keyed by code."""
        latest, is_itr = last_year(self.conn, self.cid)
        if year == latest and is_itr:
            values = ttm_values(self.conn, self.cid)
        else:
            values = dfp_values(self.conn, self.cid, year)
        if total(values) == 0:
            return values

        table = "itr" if is_itr else "dfp"
        values[AccountCode.ESCALA] = scale(self.conn, self.cid, year, table)

        try:
            n_shares, free_float = shares(self.conn, self.cid, year)
        except (DataNotFoundError, sqlite3.Error):
            pass
        else:
            values[AccountCode.SHARES] = n_shares
            values[AccountCode.FREE_FLOAT] = free_float

        for code, target in (
            (AccountCode.ESTOQUE, AccountCode.ESTOQUE_MEDIO),
            (AccountCode.EQUITY, AccountCode.EQUITY_AVG),
        ):
            try:
                previous = account_value(self.conn, self.cid, year - 1, code)
            except (DataNotFoundError, sqlite3.Error):
                continue
            values[target] = avg(values.get(code, 0.0), previous)

        if self.code and self.stock is not None:
            try:
                quote = self.stock.quote(self.code, last_business_day_of_year(year))
            except _LOOKUP_ERRORS:
                pass
            else:
                values[AccountCode.QUOTE] = float(quote)

        return values

    def print_codes_and_descriptions(
        self, sheet: Sheet, accounts: Sequence[AccountItem], col: str, row: int
    ) -> tuple[list[bool], int, int]:
        """Print account codes and descriptions on ``col`` and the next column.

        Returns which rows hold base items, the last statement row and the
        last metric row.
        """
        base_items = [False] * (len(accounts) + row)
        for item in accounts:
            spaces, base_items[row] = ident(item.cd_conta)
            sheet.print_row(
                f"{col}{row}",
                [spaces + item.cd_conta, spaces + item.ds_conta],
                Format.LEFT,
                base_items[row],
            )
            row += 1
        last_statements_row = row - 1
        row += 2

        descr_col = chr(ord(col) + 1)
        for metric in metrics_list(None):
            if metric.group not in self.groups:
                continue
            if metric.descr:
                sheet.print_row(f"{descr_col}{row}", [metric.descr], Format.RIGHT, False)
            row += 1
        last_metrics_row = row - 1

        return base_items, last_statements_row, last_metrics_row

    def to_xlsx(self) -> None:
        """Write the company's statements, metrics and analyses to ``filename``."""
        try:
            self.set_company(self.company)
        except (ValueError, DataNotFoundError) as exc:
            raise DataNotFoundError(
                f"empresa '{self.company}' não encontrada no banco de dados"
            ) from exc

        workbook = Workbook()
        sheet = workbook.new_sheet(self.company)

        sheet.merge_cells("A1", "B1")
        sheet.print_row("A1", [self.company], Format.LEFT, True)

        accounts = account_items(self.conn, self.cid)
        base_items, last_statements_row, last_metrics_row = (
            self.print_codes_and_descriptions(sheet, accounts, "A", 2)
        )

        begin, end = time_range(self.conn)
        try:
            latest, is_ttm = last_year(self.conn, self.cid)
        except (DataNotFoundError, ValueError):
            latest, is_ttm = 0, False

        for year in range(begin, end + 1):
            row = 2
            col = col_letter(2 + year - begin)
            title = f"[TTM/{year}]" if year == latest and is_ttm else f"[{year}]"

            try:
                values = self.accounts_values(year)
            except (DataNotFoundError, ValueError, sqlite3.Error) as exc:
                print("[x]", exc)
                continue
            if year == end and total(values) == 0:
                end -= 1
                break

            sheet.print_title(f"{col}1", title)
            for item in accounts:
                sheet.print_value(
                    f"{col}{row}", values.get(item.code, 0.0), Format.NUMBER, base_items[row]
                )
                row += 1

            row += 1
            sheet.print_title(f"{col}{row}", title)
            row += 1
            for metric in metrics_list(values):
                if metric.group not in self.groups:
                    continue
                if metric.format != Format.EMPTY:
                    sheet.print_value(f"{col}{row}", metric.val, metric.format, False)
                row += 1

        wide = end - begin
        self._vertical_analysis(sheet, workbook, accounts, base_items,
                                last_statements_row, begin, wide)
        self._horizontal_analysis(sheet, last_statements_row, last_metrics_row, begin, wide)

        sheet.auto_width()
        workbook.save(self.filename)
        print(f"[√] Dados salvos em {self.filename}")

    def _rotated_style(self, workbook: Workbook) -> int:
        style = new_format(Format.DEFAULT, Format.RIGHT, True)
        style.alignment.vertical = "top"
        style.alignment.text_rotation = 90
        return style.register(workbook)

    def _vertical_analysis(
        self,
        sheet: Sheet,
        workbook: Workbook,
        accounts: Sequence[AccountItem],
        base_items: list[bool],
        last_statements_row: int,
        begin: int,
        wide: int,
    ) -> None:
        top = 2
        bottom = top
        for offset, col in enumerate(range(2, 3 + wide)):
            v_col = col + wide + 2
            sheet.print_title(axis(v_col, 1), f"'{begin + offset}")
            ref = ""
            for row in range(top, last_statements_row + 1):
                idx = row - top
                if idx >= len(accounts) or not accounts[idx].cd_conta:
                    break
                cd_conta = accounts[idx].cd_conta
                first = cd_conta[:1]
                if (int(first) if first.isdigit() else 0) > 3:
                    break
                if cd_conta in ("1", "2", "3.01"):
                    ref = axis(col, row)
                formula = f'=IfError({axis(col, row)}/{ref}, "-")'
                sheet.print_formula(axis(v_col, row), formula, Format.PERCENT, base_items[row])
                bottom = row

        self._rotated = self._rotated_style(workbook)
        sheet.merge_cells(axis(1 + wide + 2, top), axis(1 + wide + 2, bottom))
        sheet.print_cell(top, 1 + wide + 2, "ANÁLISE  VERTICAL", self._rotated)

    def _horizontal_analysis(
        self,
        sheet: Sheet,
        last_statements_row: int,
        last_metrics_row: int,
        begin: int,
        wide: int,
    ) -> None:
        top = last_statements_row + 2
        bottom = last_metrics_row
        for col in range(wide):
            v_col = (2 + wide + 2) + col
            sheet.print_title(axis(v_col, top), f"'{begin + col + 1}")
            for row in range(top + 1, bottom + 1):
                vt0 = axis(col + 2, row)
                vtn = axis(col + 3, row)
                formula = (
                    f'=IF(OR({vtn}="", {vt0}=""), "", IF(MIN({vtn}, {vt0})<=0, '
                    f'IF(({vtn} - {vt0})>0, "      ⇧", "      ⇩"), ({vtn}/{vt0})-1))'
                )
                sheet.print_formula(axis(v_col, row), formula, Format.PERCENT, False)

        sheet.merge_cells(axis(2 + wide + 1, top + 1), axis(2 + wide + 1, bottom))
        sheet.print_cell(top + 1, 1 + wide + 2, "ANÁLISE  HORIZONTAL", self._rotated)

        v_col = (2 + wide + 2) + wide + 1
        sheet.print_title(axis(v_col, top), "CAGR")
        for row in range(top + 1, bottom + 1):
            vt0 = axis(2, row)
            vtn = axis(2 + wide, row)
            formula = (
                f'=IF(OR({vtn}="", {vt0}="", {vt0}=0, ({vt0}*{vtn})<0), "", '
                f"({vtn}/{vt0})^(1/{wide})-1)"
            )
            sheet.print_formula(axis(v_col, row), formula, Format.PERCENT, False)

    def summary(self, company: str) -> dict[str, str]:
        """Metrics of the company's latest year, description to value text."""
        self.set_company(company)
        year, _ = last_year(self.conn, self.cid)
        values = self.accounts_values(year)
        return {
            metric.descr: f"{metric.val:.2f}"
            for metric in metrics_list(values)
            if metric.group in self.groups and metric.descr
        }


def report_to_xlsx(
    conn: sqlite3.Connection,
    stock: StockStorage,
    company: str,
    filename: str,
    show_shares: bool = False,
    extra_ratios: bool = False,
    fleuriet: bool = False,
) -> None:
    """Write the financial report of ``company`` to the workbook ``filename``."""
    Report(
        conn,
        stock,
        company,
        filename,
        show_shares=show_shares,
        extra_ratios=extra_ratios,
        fleuriet=fleuriet,
    ).to_xlsx()