"""
fin_visualizer/types.py
=======================
Dataclasses for period records, KPI bundles and simulator results.
All financial data structures shared by the parser, metrics and simulator.
"""
from __future__ import annotations
from dataclasses import dataclass, field, fields, asdict
from typing import Dict, List, Optional, Tuple, Any


# ─── Core Data Types ──────────────────────────────────────────────────────────

@dataclass
class Period:
    """One fiscal period: income statement, cash flow and balance sheet facts."""
    period: str = ""
    # Income statement
    revenue: float = 0.0
    cogs: float = 0.0
    opex: float = 0.0
    r_and_d: float = 0.0
    sga: float = 0.0
    interest_expense: float = 0.0
    tax_expense: float = 0.0
    net_income: float = 0.0
    # Cash flow
    operating_cash_flow: float = 0.0
    investing_cash_flow: float = 0.0
    financing_cash_flow: float = 0.0
    capex: float = 0.0
    # Balance sheet
    total_assets: float = 0.0
    total_liabilities: float = 0.0
    shareholders_equity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Derived once from the schema; every field except the label is numeric.
NUMERIC_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(Period) if f.name != "period")

PLOTTABLE_FIELDS: Dict[str, str] = {
    "revenue": "Revenue",
    "cogs": "Cost of Goods Sold",
    "opex": "Operating Expenses",
    "r_and_d": "R&D",
    "sga": "SG&A",
    "interest_expense": "Interest Expense",
    "tax_expense": "Tax Expense",
    "net_income": "Net Income",
    "operating_cash_flow": "Operating Cash Flow",
    "investing_cash_flow": "Investing Cash Flow",
    "financing_cash_flow": "Financing Cash Flow",
    "capex": "Capex",
    "total_assets": "Total Assets",
    "total_liabilities": "Total Liabilities",
    "shareholders_equity": "Shareholders' Equity",
}


@dataclass
class CoercionIssue:
    """A cell that could not be read as a number and was coerced to 0."""
    row: int
    field: str
    column: str
    raw: str


@dataclass
class ImportResult:
    periods: List[Period]
    issues: List[CoercionIssue] = field(default_factory=list)
    source: str = ""


# ─── Metrics Types ────────────────────────────────────────────────────────────

@dataclass
class KPIValue:
    value: float
    delta: float


@dataclass
class KPIBundle:
    period: str
    prior_period: str
    revenue: KPIValue
    net_income: KPIValue
    gross_margin: KPIValue
    operating_margin: KPIValue
    net_margin: KPIValue
    free_cash_flow: KPIValue
    debt_to_equity: KPIValue
    asset_turnover: KPIValue

    def items(self) -> List[Tuple[str, KPIValue]]:
        """(metric name, KPIValue) pairs in display order."""
        return [
            (f.name, getattr(self, f.name))
            for f in fields(self)
            if f.name not in ("period", "prior_period")
        ]


@dataclass
class CashFlowAggregate:
    period: str
    operating: float
    investing: float
    financing: float
    net: float


@dataclass
class CapitalStructure:
    period: str
    assets: float
    liabilities: float
    equity: float


# ─── Simulator Types ──────────────────────────────────────────────────────────

# (min, max, step) for each scenario dial.
ASSUMPTION_BOUNDS: Dict[str, Tuple[float, float, float]] = {
    "revenue_growth": (-0.5, 0.5, 0.01),
    "cogs_multiplier": (0.5, 1.5, 0.01),
    "opex_multiplier": (0.5, 1.5, 0.01),
    "capex_pct_of_revenue": (0.0, 0.3, 0.005),
    "delta_wc_pct_of_delta_revenue": (-0.5, 0.5, 0.01),
    "interest_rate_on_debt": (0.0, 0.3, 0.005),
    "tax_rate": (0.0, 0.5, 0.01),
    "financing_delta": (-500.0, 500.0, 10.0),
}


@dataclass
class ScenarioAssumptions:
    revenue_growth: float = 0.10
    cogs_multiplier: float = 1.0
    opex_multiplier: float = 1.0
    capex_pct_of_revenue: float = 0.08
    delta_wc_pct_of_delta_revenue: float = 0.10
    interest_rate_on_debt: float = 0.05
    tax_rate: float = 0.21
    financing_delta: float = 0.0

    def clamped(self) -> "ScenarioAssumptions":
        """Copy with every dial pulled inside ASSUMPTION_BOUNDS."""
        values = {}
        for name, (lo, hi, _step) in ASSUMPTION_BOUNDS.items():
            values[name] = min(hi, max(lo, float(getattr(self, name))))
        return ScenarioAssumptions(**values)


@dataclass
class ComparisonRow:
    label: str
    base: float
    scenario: float

    @property
    def change(self) -> float:
        return self.scenario - self.base


@dataclass
class ScenarioResult:
    available: bool
    base_period: str = ""
    projected: Optional[Period] = None
    ebit: float = 0.0
    interest: float = 0.0
    ebt: float = 0.0
    tax: float = 0.0
    delta_wc: float = 0.0
    free_cash_flow: float = 0.0
    net_cash: float = 0.0
    income_rows: List[ComparisonRow] = field(default_factory=list)
    cash_flow_rows: List[ComparisonRow] = field(default_factory=list)
    balance_rows: List[ComparisonRow] = field(default_factory=list)

    @classmethod
    def unavailable(cls) -> "ScenarioResult":
        return cls(available=False)
