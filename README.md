# rapinarep

Reports on the financial statements of companies listed in Brazil, read
from an existing SQLite database that holds the annual (`dfp`), quarterly
(`itr`) and reference-form (`fre`) filings plus a `companies` table.
It has no dependencies outside the standard library.

What it produces:

- A spreadsheet (`.xlsx`, written by the package itself) per company with
  every account of the statements, one column per year (the latest year
  becomes twelve trailing months when quarterly data is newer), followed
  by a set of indicators, a vertical analysis, a horizontal analysis and
  the compound annual growth rate of each line.
- Optional groups of indicators: number of shares and free float, extra
  ratios (liquidity, turnover, ROA) and the Fleuriet working-capital model.
- A listing of companies whose net profit grew every year by at least a
  given rate.
- Dividend reports for real-estate funds (FIIs): dividend, the quote on
  the record date, monthly yield and annualised yield, as a table or CSV.
- A small logger that marks running steps with `[ ]`, `[✓]` and `[✗]`.

## Usage

### Company spreadsheet

```python
from rapinarep.report import report_to_xlsx

report_to_xlsx(
    conn,            # sqlite3.Connection with the dfp, itr, fre and companies tables
    stock,           # a StockStorage implementation for quotes and ticker codes
    "COMPANY NAME",  # matched with LIKE '%name%' against the companies table
    "company.xlsx",
    show_shares=True,
    extra_ratios=True,
    fleuriet=False,
)
```

`rapinarep.report.Report` offers the same steps separately:
`set_company`, `accounts_values(year)` (account and derived values keyed
by `rapinarep.metrics.AccountCode`), `to_xlsx()` and `summary(company)`,
which returns the metrics of the latest year as description → text.
`last_business_day_of_year(year)` gives the date whose quote is used.

Quotes and ticker codes come from any object that implements
`rapinarep.stock.StockStorage` (`quote`, `code` and `save`).
`rapinarep.stock.MemoryStockStorage` keeps them in memory; its `save`
reads lines of the form `YYYY-MM-DD,price`:

```python
import io
from rapinarep.stock import MemoryStockStorage

stock = MemoryStockStorage({("COMPANY NAME", "ON"): "ABCD3"})
stock.save(io.StringIO("date,close\n2020-12-31,25.40\n"), "ABCD3")
stock.quote("ABCD3", "2020-12-31")   # 25.4
```

The queries themselves live in `rapinarep.database` (`account_items`,
`dfp_values`, `ttm_values`, `last_balance`, `time_range`,
`company_profits`, …); a missing record raises
`rapinarep.database.DataNotFoundError`.

### Growing profits

```python
import sys
from rapinarep.listing import list_companies, print_companies_profits

list_companies(conn)                       # names sorted ignoring accents and case
print_companies_profits(conn, 0.10, sys.stdout)
```

`companies_profits_report(conn, rate)` returns the same report as text.

### Indicators

```python
from rapinarep.metrics import metrics_list, ident, safe_div

for metric in metrics_list(values):   # values: dict of account code -> value
    print(metric.descr, metric.val)

ident("1.1")        # ("  ", True): indentation and whether it is a base item
safe_div(1.0, 0.0)  # 0.0
```

### FII dividends

`rapinarep.fii_terminal.FIITerminal(fii, stock)` prints dividend reports
for a list of six-character fund codes with `dividends(codes, n, out)`.
`fii` is any `FIISource`, whose `dividends(code, n)` returns a list of
`Dividend(date, val)`. `set_parms({"format": "csv"})` switches between the
`table`, `csv` and `csvrend` layouts.

`rapinarep.server` prepares the same data for a web page:

```python
from rapinarep.server import parse_codes, parse_numeric, fii_dividends_payload

parse_codes("ABCD11, EFGH11;xyz")   # ["ABCD11", "EFGH11"]
parse_numeric("abc", 1)             # 1
payload = fii_dividends_payload(fii, stock, ["ABCD11"], 12)
```

Numbers are shown Brazilian style by `rapinarep.ptformat.pt_format`
(`1.234,56`).

## What it does not do

- It does not download or import filings, quotes or fund dividends; the
  database must already be filled, and quotes and dividends come from the
  `StockStorage` and `FIISource` objects you pass in.
- It has no command-line program and no web server: `rapinarep.server`
  only parses request fields and builds the page data.
- It has no sector comparison report.

## Tests

The test suite uses pytest; install the `test` extra to get it.