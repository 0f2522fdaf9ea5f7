import io

import pytest

from rapinarep.stock import MemoryStockStorage, StockNotFoundError, StockStorage


def test_interface_is_abstract():
    with pytest.raises(TypeError):
        StockStorage()


def test_save_then_quote_round_trip():
    storage = MemoryStockStorage()
    stream = io.StringIO("date,close\n2020-12-30,10.5\n\n2020-12-31,11.25\n")
    assert storage.save(stream, "abcd3") == 2
    assert storage.quote("ABCD3", "2020-12-30") == 10.5
    assert storage.quote("abcd3", "2020-12-31") == 11.25


def test_save_accepts_bytes_stream():
    storage = MemoryStockStorage()
    count = storage.save(io.BytesIO(b"2021-01-04,7.0\n"), "WXYZ4")
    assert count == 1
    assert storage.quote("WXYZ4", "2021-01-04") == 7.0


def test_missing_quote_raises():
    storage = MemoryStockStorage()
    storage.save(["2020-12-30,1.0"], "ABCD3")
    with pytest.raises(StockNotFoundError):
        storage.quote("ABCD3", "2020-12-31")


def test_malformed_line_stores_nothing():
    storage = MemoryStockStorage()
    with pytest.raises(ValueError):
        storage.save(["2020-12-30,1.0", "2020-12-31,abc"], "ABCD3")
    with pytest.raises(StockNotFoundError):
        storage.quote("ABCD3", "2020-12-30")


def test_invalid_date_raises():
    storage = MemoryStockStorage()
    with pytest.raises(ValueError):
        storage.save(["30/12/2020,1.0"], "ABCD3")


def test_code_lookup_is_case_insensitive():
    storage = MemoryStockStorage({("Empresa Teste S.A.", "ON"): "TEST3"})
    assert storage.code("EMPRESA TESTE S.A.", "on") == "TEST3"


def test_code_unknown_raises():
    storage = MemoryStockStorage({("Empresa Teste S.A.", "ON"): "TEST3"})
    with pytest.raises(StockNotFoundError):
        storage.code("Empresa Teste S.A.", "PN")


def test_empty_code_rejected():
    storage = MemoryStockStorage()
    with pytest.raises(ValueError):
        storage.save(["2020-12-30,1.0"], "  ")