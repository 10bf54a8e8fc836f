"""
fin_visualizer/sample.py
========================
Built-in sample dataset so the dashboard has something to show before any
upload. Five fiscal years of a mid-sized software-and-hardware company.
"""
from __future__ import annotations
from typing import List

from .types import Period


def sample_periods() -> List[Period]:
    years = ["2020", "2021", "2022", "2023", "2024"]

    revenues = [480, 530, 610, 655, 720]
    cogs = [228, 245, 283, 300, 330]
    opex = [130, 142, 160, 168, 180]
    r_and_d = [48, 53, 60, 64, 70]
    sga = [70, 76, 85, 88, 92]
    interest = [18, 17, 16, 15, 14]
    tax = [25, 30, 36, 40, 46]
    net_incomes = [79, 96, 115, 132, 140]
    ocf = [110, 128, 150, 172, 190]
    capex = [40, 45, 52, 55, 60]
    icf = [-52, -60, -68, -70, -75]
    fin_cf = [-30, -35, -45, -60, -70]
    total_assets = [690, 735, 790, 835, 860]
    total_liabilities = [420, 415, 410, 415, 410]
    equity = [270, 320, 380, 420, 450]

    periods: List[Period] = []
    for i, y in enumerate(years):
        periods.append(Period(
            period=y,
            revenue=float(revenues[i]),
            cogs=float(cogs[i]),
            opex=float(opex[i]),
            r_and_d=float(r_and_d[i]),
            sga=float(sga[i]),
            interest_expense=float(interest[i]),
            tax_expense=float(tax[i]),
            net_income=float(net_incomes[i]),
            operating_cash_flow=float(ocf[i]),
            investing_cash_flow=float(icf[i]),
            financing_cash_flow=float(fin_cf[i]),
            capex=float(capex[i]),
            total_assets=float(total_assets[i]),
            total_liabilities=float(total_liabilities[i]),
            shareholders_equity=float(equity[i]),
        ))
    return periods
