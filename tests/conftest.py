"""
tests/conftest.py
=================
Shared pytest fixtures for the Finance Visualizer test suite.
"""
import sys
import os

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from fin_visualizer.types import Period, ScenarioAssumptions


@pytest.fixture
def two_periods():
    """Two consecutive years with round numbers."""
    return [
        Period(
            period="2022", revenue=500.0, cogs=250.0, opex=150.0, net_income=60.0,
            operating_cash_flow=110.0, investing_cash_flow=-40.0, financing_cash_flow=-20.0,
            capex=30.0, total_assets=800.0, total_liabilities=300.0, shareholders_equity=500.0,
        ),
        Period(
            period="2023", revenue=600.0, cogs=270.0, opex=180.0, net_income=90.0,
            operating_cash_flow=150.0, investing_cash_flow=-60.0, financing_cash_flow=-30.0,
            capex=50.0, total_assets=1000.0, total_liabilities=400.0, shareholders_equity=600.0,
        ),
    ]


@pytest.fixture
def base_period():
    """Latest year used by the simulator examples."""
    return Period(
        period="2024", revenue=720.0, cogs=330.0, opex=180.0, net_income=140.0,
        total_liabilities=410.0, shareholders_equity=450.0,
        operating_cash_flow=190.0, capex=60.0,
    )


@pytest.fixture
def neutral_assumptions():
    """No growth, no cost change, no tax, interest or financing."""
    return ScenarioAssumptions(
        revenue_growth=0.0,
        cogs_multiplier=1.0,
        opex_multiplier=1.0,
        capex_pct_of_revenue=60 / 720,
        delta_wc_pct_of_delta_revenue=0.0,
        interest_rate_on_debt=0.0,
        tax_rate=0.0,
        financing_delta=0.0,
    )
