"""
fin_visualizer/metrics.py
=========================
Derived-metrics engine over an ordered list of Period records.

Covers:
  - Single-period ratios: gross / operating / net margin, debt-to-equity,
    asset turnover, free cash flow
  - Year-over-year deltas (latest vs prior period)
  - KPI bundle for the dashboard header cards
  - Cash-flow aggregates per period and the latest capital structure
  - Label-based range filtering and plottable series

Every ratio returns 0.0 on a zero denominator; nothing here raises on
inconsistent input.
"""
from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .types import (
    Period, KPIValue, KPIBundle, CashFlowAggregate, CapitalStructure,
    PLOTTABLE_FIELDS, NUMERIC_FIELDS,
)


# ─── Ratio Helpers ────────────────────────────────────────────────────────────

def _safe_div(num: float, den: float) -> float:
    if den == 0:
        return 0.0
    return num / den


def gross_margin(p: Period) -> float:
    return _safe_div(p.revenue - p.cogs, p.revenue)


def operating_margin(p: Period) -> float:
    return _safe_div(p.revenue - p.cogs - p.opex, p.revenue)


def net_margin(p: Period) -> float:
    return _safe_div(p.net_income, p.revenue)


def debt_to_equity(p: Period) -> float:
    return _safe_div(p.total_liabilities, p.shareholders_equity)


def asset_turnover(p: Period) -> float:
    return _safe_div(p.revenue, p.total_assets)


def free_cash_flow(p: Period) -> float:
    return p.operating_cash_flow - p.capex


def yoy_delta(latest: float, prior: float) -> float:
    """Fractional change vs prior; 0.0 when there is no prior base."""
    return _safe_div(latest - prior, prior)


# Metric name → extractor, in KPI display order.
KPI_METRICS: Dict[str, Callable[[Period], float]] = {
    "revenue": lambda p: p.revenue,
    "net_income": lambda p: p.net_income,
    "gross_margin": gross_margin,
    "operating_margin": operating_margin,
    "net_margin": net_margin,
    "free_cash_flow": free_cash_flow,
    "debt_to_equity": debt_to_equity,
    "asset_turnover": asset_turnover,
}

KPI_LABELS: Dict[str, str] = {
    "revenue": "Revenue",
    "net_income": "Net Income",
    "gross_margin": "Gross Margin",
    "operating_margin": "Operating Margin",
    "net_margin": "Net Margin",
    "free_cash_flow": "Free Cash Flow",
    "debt_to_equity": "Debt / Equity",
    "asset_turnover": "Asset Turnover",
}

# Metrics displayed as percentages rather than currency or multiples.
PERCENT_METRICS = {"gross_margin", "operating_margin", "net_margin"}
RATIO_METRICS = {"debt_to_equity", "asset_turnover"}


# ─── KPI Bundle ───────────────────────────────────────────────────────────────

def compute_kpis(periods: Sequence[Period]) -> Optional[KPIBundle]:
    """
    Latest-period KPIs with year-over-year deltas.

    The last period is "latest" and the one before it "prior". With a single
    period the prior is the latest itself, so every delta is 0.
    Returns None for an empty sequence.
    """
    if not periods:
        return None
    latest = periods[-1]
    prior = periods[-2] if len(periods) > 1 else latest

    values: Dict[str, KPIValue] = {}
    for name, fn in KPI_METRICS.items():
        curr, prev = fn(latest), fn(prior)
        values[name] = KPIValue(value=curr, delta=yoy_delta(curr, prev))

    return KPIBundle(period=latest.period, prior_period=prior.period, **values)


# ─── Derived Series ───────────────────────────────────────────────────────────

def cash_flow_series(periods: Sequence[Period]) -> List[CashFlowAggregate]:
    return [
        CashFlowAggregate(
            period=p.period,
            operating=p.operating_cash_flow,
            investing=p.investing_cash_flow,
            financing=p.financing_cash_flow,
            net=p.operating_cash_flow + p.investing_cash_flow + p.financing_cash_flow,
        )
        for p in periods
    ]


def capital_structure(periods: Sequence[Period]) -> Optional[CapitalStructure]:
    if not periods:
        return None
    p = periods[-1]
    return CapitalStructure(
        period=p.period,
        assets=p.total_assets,
        liabilities=p.total_liabilities,
        equity=p.shareholders_equity,
    )


def ratio_series(periods: Sequence[Period]) -> List[Dict[str, Any]]:
    """Per-period ratios for trend charts, one dict per period."""
    rows: List[Dict[str, Any]] = []
    for p in periods:
        row: Dict[str, Any] = {"period": p.period}
        for name in ("gross_margin", "operating_margin", "net_margin",
                     "debt_to_equity", "asset_turnover", "free_cash_flow"):
            row[name] = KPI_METRICS[name](p)
        rows.append(row)
    return rows


def field_series(periods: Sequence[Period], field_name: str) -> List[Tuple[str, float]]:
    """(label, value) pairs for one plottable field."""
    if field_name not in PLOTTABLE_FIELDS:
        raise KeyError(f"Not a plottable field: {field_name!r}")
    return [(p.period, getattr(p, field_name)) for p in periods]


def periods_to_frame(periods: Sequence[Period]) -> pd.DataFrame:
    """One row per period, columns in Period field order."""
    if not periods:
        return pd.DataFrame(columns=["period", *NUMERIC_FIELDS])
    return pd.DataFrame([p.to_dict() for p in periods])


# ─── Range Filter ─────────────────────────────────────────────────────────────

def _first_match(periods: Sequence[Period], marker: str) -> Optional[int]:
    for i, p in enumerate(periods):
        if marker in p.period:
            return i
    return None


def filter_range(
    periods: Sequence[Period], start: Optional[str] = None, end: Optional[str] = None
) -> List[Period]:
    """
    Inclusive slice between the first labels containing `start` and `end`.

    Matching is substring containment on the label, not chronology. A marker
    that matches nothing disables the filter; an empty marker leaves that
    side open. Reversed markers are swapped.
    """
    periods = list(periods)
    if not periods:
        return periods

    lo = _first_match(periods, start) if start else 0
    hi = _first_match(periods, end) if end else len(periods) - 1
    if lo is None or hi is None:
        return periods
    if hi < lo:
        lo, hi = hi, lo
    return periods[lo:hi + 1]
