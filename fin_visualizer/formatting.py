"""
fin_visualizer/formatting.py
============================
Compact number formatting (K / M / B), percent, multiples, signed deltas,
and colour helpers for dashboard display.
"""
from __future__ import annotations
from typing import Optional


def format_number(value: Optional[float], decimals: int = 1) -> str:
    """
    Compact notation: 1_500 → 1.5K, 2_500_000 → 2.5M, 3e9 → 3.0B.
    Values under a thousand keep `decimals` places.
    """
    if value is None:
        return "—"
    if value == 0:
        return "0"

    abs_val = abs(value)
    sign = "-" if value < 0 else ""

    if abs_val >= 1_000_000_000:
        return f"{sign}{abs_val / 1_000_000_000:,.{decimals}f}B"
    elif abs_val >= 1_000_000:
        return f"{sign}{abs_val / 1_000_000:,.{decimals}f}M"
    elif abs_val >= 1_000:
        return f"{sign}{abs_val / 1_000:,.{decimals}f}K"
    else:
        return f"{sign}{abs_val:,.{decimals}f}"


def format_currency(value: Optional[float], symbol: str = "$", decimals: int = 1) -> str:
    if value is None:
        return "—"
    s = format_number(value, decimals)
    if s.startswith("-"):
        return f"-{symbol}{s[1:]}"
    return f"{symbol}{s}"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    """Fraction → percent string: 0.253 → 25.3%."""
    if value is None:
        return "—"
    return f"{value * 100:.{decimals}f}%"


def format_delta(value: Optional[float], decimals: int = 1) -> str:
    """Signed fractional change: 0.05 → +5.0%."""
    if value is None:
        return "—"
    pct = value * 100
    return f"{pct:+.{decimals}f}%" if abs(pct) < 1000 else f"{pct:+,.0f}%"


def format_ratio(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return "—"
    return f"{value:.{decimals}f}x"


def metric_label(field_name: str) -> str:
    """snake_case field → Title Case label."""
    return field_name.replace("_and_", " & ").replace("_", " ").title()


def delta_color(delta: float, higher_is_better: bool = True) -> str:
    if delta == 0:
        return "#6b7280"
    good = delta > 0 if higher_is_better else delta < 0
    return "#10b981" if good else "#ef4444"


def value_color(value: float) -> str:
    """Red for negative bars, blue otherwise."""
    return "#ef4444" if value < 0 else "#1e40af"
