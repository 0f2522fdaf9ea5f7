"""Company statement spreadsheets, indicators, profit listings and FII dividend reports
read from a SQLite filings database."""

__version__ = "0.1.0"