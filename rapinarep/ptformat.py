"""Number formatting in the Brazilian Portuguese style (1.234,56)."""

from __future__ import annotations

import math

_SWAP = str.maketrans(",.", ".,")


def pt_format(value: float, decimals: int = 2) -> str:
    """Format ``value`` with ``decimals`` places, '.' grouping thousands and ',' as decimal mark."""
    if decimals < 0:
        raise ValueError(f"invalid number of decimals: {decimals}")
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "-∞" if value < 0 else "∞"
    return f"{value:,.{decimals}f}".translate(_SWAP)