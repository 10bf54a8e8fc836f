"""
fin_visualizer/simulator.py
===========================
One-period pro-forma projection driven by scenario assumptions.

Model outline:
  - revenue grows by `revenue_growth`; COGS and OPEX keep their base share of
    revenue, scaled by their multipliers
  - all liabilities are treated as a single debt balance, moved by
    `financing_delta` and floored at zero
  - tax applies to positive pre-tax income only
  - operating cash flow = net income - working-capital build
  - equity retains all net income; assets = liabilities + equity, so the
    projected balance sheet always balances
"""
from __future__ import annotations
import logging
from typing import List, Optional, Sequence

import pandas as pd

from .types import Period, ScenarioAssumptions, ScenarioResult, ComparisonRow
from .metrics import free_cash_flow

logger = logging.getLogger(__name__)


def _scaled_cost(base_cost: float, base_revenue: float, revenue_growth: float, multiplier: float) -> float:
    # revenue1 * (cost0 / revenue0) * m, written so growth 0 and m 1 give cost0 exactly.
    if base_revenue == 0:
        return 0.0
    return base_cost * (1 + revenue_growth) * multiplier


def project(base: Optional[Period], assumptions: ScenarioAssumptions) -> ScenarioResult:
    """Project one period forward from `base`; unavailable result when base is None."""
    if base is None:
        logger.debug("No base period, simulator unavailable")
        return ScenarioResult.unavailable()

    a = assumptions

    # ── Income statement ──────────────────────────────────────────────────────
    revenue1 = base.revenue * (1 + a.revenue_growth)
    cogs1 = _scaled_cost(base.cogs, base.revenue, a.revenue_growth, a.cogs_multiplier)
    opex1 = _scaled_cost(base.opex, base.revenue, a.revenue_growth, a.opex_multiplier)
    ebit1 = revenue1 - cogs1 - opex1

    debt1 = max(0.0, base.total_liabilities + a.financing_delta)
    interest1 = debt1 * a.interest_rate_on_debt
    ebt1 = ebit1 - interest1
    tax1 = max(0.0, ebt1) * a.tax_rate
    net_income1 = ebt1 - tax1

    # ── Cash flow ─────────────────────────────────────────────────────────────
    capex1 = revenue1 * a.capex_pct_of_revenue
    delta_wc = a.delta_wc_pct_of_delta_revenue * (revenue1 - base.revenue)
    ocf1 = net_income1 - delta_wc
    fcf1 = ocf1 - capex1
    financing_cf1 = a.financing_delta
    net_cash1 = fcf1 + financing_cf1

    # ── Balance sheet ─────────────────────────────────────────────────────────
    equity1 = base.shareholders_equity + net_income1
    liabilities1 = debt1
    assets1 = liabilities1 + equity1

    projected = Period(
        period=f"{base.period} (scenario)",
        revenue=revenue1,
        cogs=cogs1,
        opex=opex1,
        interest_expense=interest1,
        tax_expense=tax1,
        net_income=net_income1,
        operating_cash_flow=ocf1,
        investing_cash_flow=-capex1,
        financing_cash_flow=financing_cf1,
        capex=capex1,
        total_assets=assets1,
        total_liabilities=liabilities1,
        shareholders_equity=equity1,
    )

    base_ebit = base.revenue - base.cogs - base.opex
    base_fcf = free_cash_flow(base)

    income_rows = [
        ComparisonRow("Revenue", base.revenue, revenue1),
        ComparisonRow("COGS", base.cogs, cogs1),
        ComparisonRow("OPEX", base.opex, opex1),
        ComparisonRow("EBIT", base_ebit, ebit1),
        ComparisonRow("Interest", base.interest_expense, interest1),
        ComparisonRow("Pre-tax Income", base_ebit - base.interest_expense, ebt1),
        ComparisonRow("Tax", base.tax_expense, tax1),
        ComparisonRow("Net Income", base.net_income, net_income1),
    ]
    cash_flow_rows = [
        ComparisonRow("Operating CF", base.operating_cash_flow, ocf1),
        ComparisonRow("Capex", base.capex, capex1),
        ComparisonRow("Free Cash Flow", base_fcf, fcf1),
        ComparisonRow("Financing CF", base.financing_cash_flow, financing_cf1),
        ComparisonRow("Net Cash", base_fcf + base.financing_cash_flow, net_cash1),
    ]
    balance_rows = [
        ComparisonRow("Assets", base.total_assets, assets1),
        ComparisonRow("Liabilities", base.total_liabilities, liabilities1),
        ComparisonRow("Equity", base.shareholders_equity, equity1),
    ]

    return ScenarioResult(
        available=True,
        base_period=base.period,
        projected=projected,
        ebit=ebit1,
        interest=interest1,
        ebt=ebt1,
        tax=tax1,
        delta_wc=delta_wc,
        free_cash_flow=fcf1,
        net_cash=net_cash1,
        income_rows=income_rows,
        cash_flow_rows=cash_flow_rows,
        balance_rows=balance_rows,
    )


def select_base(periods: Sequence[Period], index: Optional[int] = None) -> Optional[Period]:
    """Period at `index` (labels need not be unique), else the latest."""
    if not periods:
        return None
    if index is not None and -len(periods) <= index < len(periods):
        return periods[index]
    return periods[-1]


def comparison_frame(rows: List[ComparisonRow]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Line item": r.label, "Base": r.base, "Scenario": r.scenario, "Change": r.change} for r in rows],
        columns=["Line item", "Base", "Scenario", "Change"],
    )
