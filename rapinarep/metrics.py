"""Account codes and the financial metrics derived from them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum

from .styles import Format


class AccountCode(IntEnum):
    """Keys of the per-year value maps: statement accounts, then derived values."""

    CAIXA = 1
    APLIC_FINANCEIRAS = 2
    ESTOQUE = 3
    ATIVO_CIRC = 4
    CONTAS_A_RECEB_CIRC = 5
    CONTAS_A_RECEB_NCIRC = 6
    ATIVO_TOTAL = 7
    PASSIVO_CIRC = 8
    DIVIDA_CIRC = 9
    DIVIDA_NCIRC = 10
    DIVIDENDOS_JCP = 11
    DIVIDENDOS_MIN = 12
    EQUITY = 13
    VENDAS = 14
    CUSTO_VENDAS = 15
    EBIT = 16
    RESUL_FINANC = 17
    RESUL_OP_DESCONT = 18
    LUC_LIQ = 19
    DEPREC = 20
    FCO = 21
    FCI = 22
    FCF = 23
    JUROS_CAP_PROP = 24
    DIVIDENDOS = 25
    ESCALA = 26
    QUOTE = 27
    SHARES = 28
    FREE_FLOAT = 29
    ESTOQUE_MEDIO = 30
    EQUITY_AVG = 31


class Group(IntEnum):
    """Report sections a metric belongs to."""

    ACCOUNTS = 100
    SHARES = 101
    EXTRA = 102
    FLEURIET = 103


@dataclass(frozen=True)
class Metric:
    descr: str
    val: float
    format: Format
    group: Group


def zero_if_neg(n: float) -> float:
    return 0.0 if n < 0 else n


def safe_div(n: float, d: float) -> float:
    """n / d, or 0 when d is 0."""
    return 0.0 if d == 0 else n / d


def total(values: Mapping[int, float]) -> float:
    """Sum of all values of a map."""
    return sum(values.values(), 0.0)


def ident(code: str) -> tuple[str, bool]:
    """Indentation for an account code and whether it is a base item.

    "1.1" -> two spaces; for codes 3 and above the first level is not indented.
    """
    num = code.split(".", 1)[0]
    level = code.count(".")
    balance = num in ("1", "2")
    if not balance and level > 0:
        level -= 1
    spaces = "  " * level
    base_item = level <= 1 if balance else level == 0
    return spaces, base_item


def _blank(group: Group) -> Metric:
    return Metric("", 0.0, Format.EMPTY, group)


def metrics_list(values: Mapping[int, float] | None) -> list[Metric]:
    """Metrics in the order they are printed after the financial statements."""
    values = values or {}

    def v(code: AccountCode) -> float:
        return values.get(code, 0.0)

    c = AccountCode
    acc, shr, ext, fle = Group.ACCOUNTS, Group.SHARES, Group.EXTRA, Group.FLEURIET
    num, idx, pct = Format.NUMBER, Format.INDEX, Format.PERCENT

    divida_bruta = v(c.DIVIDA_CIRC) + v(c.DIVIDA_NCIRC)
    caixa = v(c.CAIXA) + v(c.APLIC_FINANCEIRAS)
    divida_liquida = divida_bruta - caixa
    ebitda = v(c.EBIT) - v(c.DEPREC)
    proventos = v(c.DIVIDENDOS) + v(c.JUROS_CAP_PROP)

    roe = 0.0
    if v(c.LUC_LIQ) > 0 and v(c.EQUITY_AVG) > 0:
        roe = zero_if_neg(safe_div(v(c.LUC_LIQ), v(c.EQUITY_AVG)))
    cg = v(c.ATIVO_CIRC) - v(c.PASSIVO_CIRC)
    st = v(c.CAIXA) + v(c.APLIC_FINANCEIRAS) - (
        v(c.DIVIDA_CIRC) + v(c.DIVIDENDOS_JCP) + v(c.DIVIDENDOS_MIN)
    )
    ncg = cg - st
    lpa = safe_div(v(c.LUC_LIQ) * v(c.ESCALA), v(c.SHARES))

    return [
        Metric("Patrimônio Líquido", v(c.EQUITY), num, acc),
        _blank(acc),
        Metric("Receita Líquida", v(c.VENDAS), num, acc),
        Metric("EBITDA", ebitda, num, acc),
        Metric("EBIT", v(c.EBIT), num, acc),
        Metric("Resultado Financeiro", v(c.RESUL_FINANC), num, acc),
        Metric("Operações Descontinuadas", v(c.RESUL_OP_DESCONT), num, acc),
        Metric("Lucro Líquido", v(c.LUC_LIQ), num, acc),
        _blank(acc),
        Metric("LPA", lpa, idx, acc),
        Metric("VPA", safe_div(v(c.EQUITY) * v(c.ESCALA), v(c.SHARES)), idx, acc),
        Metric("P/L", safe_div(v(c.QUOTE), lpa), idx, acc),
        Metric("Cotação", v(c.QUOTE), idx, acc),
        _blank(acc),
        Metric("Marg. EBITDA", zero_if_neg(safe_div(ebitda, v(c.VENDAS))), pct, acc),
        Metric("Marg. EBIT", zero_if_neg(safe_div(v(c.EBIT), v(c.VENDAS))), pct, acc),
        Metric("Marg. Líq.", zero_if_neg(safe_div(v(c.LUC_LIQ), v(c.VENDAS))), pct, acc),
        Metric("ROE", roe, pct, acc),
        _blank(acc),
        Metric("Caixa", caixa, num, acc),
        Metric("Dívida Bruta", divida_bruta, num, acc),
        Metric("Dívida Líq.", divida_liquida, num, acc),
        Metric("Dív. Bru./PL", zero_if_neg(safe_div(divida_bruta, v(c.EQUITY))), pct, acc),
        Metric("Dív.Líq./EBITDA", zero_if_neg(safe_div(divida_liquida, ebitda)), idx, acc),
        _blank(acc),
        Metric("FCO", v(c.FCO), num, acc),
        Metric("FCI", v(c.FCI), num, acc),
        Metric("FCF", v(c.FCF), num, acc),
        Metric("FCT", v(c.FCO) + v(c.FCI) + v(c.FCF), num, acc),
        Metric("FCL (FCO+FCI)", v(c.FCO) + v(c.FCI), num, acc),
        _blank(acc),
        Metric("Proventos", proventos, num, acc),
        Metric("Payout", zero_if_neg(safe_div(proventos, v(c.LUC_LIQ))), pct, acc),
        _blank(acc),
        Metric("Total de Ações", v(c.SHARES), Format.GENERAL, shr),
        Metric("Free Float", v(c.FREE_FLOAT), pct, shr),
        _blank(shr),
        Metric(
            "Liquidez Corrente (Ativo Circ./Passivo Circ.)",
            safe_div(v(c.ATIVO_CIRC), v(c.PASSIVO_CIRC)),
            idx,
            ext,
        ),
        Metric(
            "Liquidez Seco [(Ativo Circ.-Estoque)/Passivo Circ.]",
            safe_div(v(c.ATIVO_CIRC) - v(c.ESTOQUE), v(c.PASSIVO_CIRC)),
            idx,
            ext,
        ),
        Metric(
            "Giro dos Ativos (Vendas/Ativo)",
            safe_div(v(c.VENDAS), v(c.ATIVO_TOTAL)),
            idx,
            ext,
        ),
        _blank(ext),
        Metric(
            "Giro de Estoque (dias)",
            safe_div(v(c.ESTOQUE_MEDIO), -v(c.CUSTO_VENDAS) / 360),
            idx,
            ext,
        ),
        Metric(
            "Prazo Médio de Recebimento (dias)",
            safe_div(
                v(c.CONTAS_A_RECEB_CIRC) + v(c.CONTAS_A_RECEB_NCIRC), v(c.VENDAS) / 360
            ),
            idx,
            ext,
        ),
        _blank(ext),
        Metric(
            "Poder de Ganho Básico (EBITDA/Ativo)",
            safe_div(ebitda, v(c.ATIVO_TOTAL)),
            pct,
            ext,
        ),
        Metric("ROA", safe_div(v(c.LUC_LIQ), v(c.ATIVO_TOTAL)), pct, ext),
        Metric("ROE", roe, pct, ext),
        _blank(ext),
        Metric("Capital de Giro (CG)", cg, num, fle),
        Metric("Saldo de Tesouraria (ST)", st, num, fle),
        Metric("Necessidade de Capital de Giro (NCG=CG-ST)", ncg, num, fle),
    ]