"""
app.py
======
Finance Visualizer: Main Streamlit Application
Financial statements dashboard + one-period scenario simulator

Tabs:
  1. Overview (KPI cards, revenue & net income, margins)
  2. Cash Flow & Capital Structure
  3. Series Explorer
  4. Simulator
  5. Data
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from fin_visualizer.types import Period, ScenarioAssumptions, ASSUMPTION_BOUNDS, PLOTTABLE_FIELDS
from fin_visualizer.parser import (
    DataImportError, import_file, export_json, to_tabular,
    EXPORT_FILENAME, CSV_EXPORT_FILENAME,
)
from fin_visualizer.metrics import (
    compute_kpis, filter_range, cash_flow_series, capital_structure,
    ratio_series, field_series, periods_to_frame,
    KPI_LABELS, PERCENT_METRICS, RATIO_METRICS,
)
from fin_visualizer.simulator import project, select_base, comparison_frame
from fin_visualizer.sample import sample_periods
from fin_visualizer.session import track_upload
from fin_visualizer.formatting import (
    format_currency, format_percent, format_ratio, format_delta, value_color,
    delta_color, metric_label,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
logger = logging.getLogger("fin_visualizer.app")

# ─── Page Configuration ───────────────────────────────────────────────────────

st.set_page_config(
    page_title="Finance Visualizer",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
    menu_items={
        "About": "Finance Visualizer: financial statements dashboard + simulator",
    },
)

# ─── Custom CSS ───────────────────────────────────────────────────────────────

st.markdown("""
<style>
    .main-header {
        background: linear-gradient(135deg, #1e40af 0%, #3730a3 100%);
        border-radius: 12px;
        padding: 1.2rem 1.5rem;
        color: white;
        margin-bottom: 1.5rem;
        box-shadow: 0 4px 20px rgba(30,64,175,0.3);
    }
    .main-header h1 { margin: 0; font-size: 1.6rem; font-weight: 700; letter-spacing: -0.02em; }
    .main-header p  { margin: 0.25rem 0 0; font-size: 0.85rem; opacity: 0.85; }

    .kpi-card {
        background: white;
        border: 1px solid #e2e8f0;
        border-radius: 10px;
        padding: 1rem 1.2rem;
        box-shadow: 0 1px 4px rgba(0,0,0,0.06);
    }
    .kpi-label { font-size: 0.72rem; color: #64748b; text-transform: uppercase; letter-spacing: 0.05em; margin-bottom: 0.2rem; }
    .kpi-value { font-size: 1.5rem; font-weight: 700; color: #1e293b; }
    .kpi-sub   { font-size: 0.75rem; color: #94a3b8; margin-top: 0.15rem; }

    .section-card {
        background: white;
        border: 1px solid #e2e8f0;
        border-radius: 10px;
        padding: 1.2rem;
        margin-bottom: 1rem;
        box-shadow: 0 1px 3px rgba(0,0,0,0.05);
    }

    div.stButton > button { border-radius: 8px; font-weight: 500; }
    .stTabs [data-baseweb="tab"] { font-size: 0.82rem; padding: 0.5rem 1rem; }
    [data-testid="metric-container"] { background: white; border: 1px solid #e2e8f0; border-radius: 10px; padding: 0.8rem; }
</style>
""", unsafe_allow_html=True)


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _make_plotly_colors() -> List[str]:
    return ["#1e40af", "#3b82f6", "#60a5fa", "#93c5fd", "#bfdbfe",
            "#1d4ed8", "#2563eb", "#6366f1", "#8b5cf6", "#a78bfa"]


def _layout(fig: go.Figure, title: str, yaxis_title: str = "", height: int = 300) -> go.Figure:
    fig.update_layout(
        title=dict(text=title, font=dict(size=14, color="#1e293b")),
        yaxis_title=yaxis_title,
        paper_bgcolor="white", plot_bgcolor="#f8fafc",
        margin=dict(l=40, r=20, t=40, b=30),
        height=height, legend=dict(orientation="h", y=-0.2),
        font=dict(family="sans-serif", size=11, color="#64748b"),
        xaxis=dict(gridcolor="#e2e8f0"), yaxis=dict(gridcolor="#e2e8f0"),
    )
    return fig


def _build_bar(series: Sequence[Tuple[str, float]], title: str, yaxis_title: str = "") -> go.Figure:
    labels = [lbl for lbl, _ in series]
    vals = [v for _, v in series]
    fig = go.Figure(go.Bar(x=labels, y=vals, marker_color=[value_color(v) for v in vals], name=title))
    fig.update_layout(showlegend=False)
    return _layout(fig, title, yaxis_title, height=280)


def _build_grouped_bar(labels: List[str], multi_series: Dict[str, List[float]], title: str) -> go.Figure:
    fig = go.Figure()
    palette = _make_plotly_colors()
    for i, (name, vals) in enumerate(multi_series.items()):
        fig.add_trace(go.Bar(x=labels, y=vals, name=name, marker_color=palette[i % len(palette)]))
    fig.update_layout(barmode="group")
    return _layout(fig, title)


def _build_line(labels: List[str], multi_series: Dict[str, List[float]], title: str,
                yaxis_title: str = "", pct: bool = False) -> go.Figure:
    fig = go.Figure()
    palette = _make_plotly_colors()
    for i, (name, vals) in enumerate(multi_series.items()):
        fig.add_trace(go.Scatter(
            x=labels,
            y=[v * 100 for v in vals] if pct else vals,
            name=name, mode="lines+markers",
            line=dict(color=palette[i % len(palette)], width=2.5),
            marker=dict(size=7),
        ))
    return _layout(fig, title, yaxis_title or ("%" if pct else ""))


def _kpi_value(name: str, value: float) -> str:
    if name in PERCENT_METRICS:
        return format_percent(value)
    if name in RATIO_METRICS:
        return format_ratio(value)
    return format_currency(value)


# ─── Session State ────────────────────────────────────────────────────────────

def _init_state() -> None:
    defaults = {
        "periods": sample_periods(),   # current dataset, replaced wholesale on import
        "source": "Sample data",
        "range_start": "",
        "range_end": "",
        "chart_field": "revenue",
        "base_index": -1,
    }
    for name, value in vars(ScenarioAssumptions()).items():
        defaults[f"sim_{name}"] = value
    for k, v in defaults.items():
        if k not in st.session_state:
            st.session_state[k] = v


def _assumptions_from_state() -> ScenarioAssumptions:
    return ScenarioAssumptions(**{
        name: st.session_state[f"sim_{name}"] for name in ASSUMPTION_BOUNDS
    }).clamped()


def _load_upload(uploaded) -> None:
    """Replace the dataset with the uploaded file; keep the old one on failure."""
    try:
        result = import_file(uploaded.name, uploaded.getvalue())
    except DataImportError as e:
        logger.warning("Rejected %s: %s", uploaded.name, e)
        st.error(f"❌ {uploaded.name}: {e}")
        return
    except Exception as e:
        logger.warning("Failed to read %s: %s", uploaded.name, e)
        st.error(f"❌ {uploaded.name}: could not be parsed ({e})")
        return

    st.session_state.update({
        "periods": result.periods,
        "source": uploaded.name,
        "base_index": -1,
    })
    st.success(f"✅ {uploaded.name}: {len(result.periods)} periods loaded")
    if result.issues:
        shown = ", ".join(f"row {i.row + 1} {i.column}={i.raw!r}" for i in result.issues[:5])
        more = f" (+{len(result.issues) - 5} more)" if len(result.issues) > 5 else ""
        st.warning(f"⚠️ {len(result.issues)} non-numeric values treated as 0: {shown}{more}")


_init_state()


# ─── Sidebar ──────────────────────────────────────────────────────────────────

with st.sidebar:
    st.markdown("""
    <div style='text-align:center; padding:0.5rem 0 1rem;'>
        <span style='font-size:2rem;'>📊</span><br>
        <strong style='font-size:1rem; color:#1e40af;'>Finance Visualizer</strong><br>
        <span style='font-size:0.72rem; color:#64748b;'>Statements + Simulator</span>
    </div>
    """, unsafe_allow_html=True)

    st.subheader("📁 Data")
    uploaded = st.file_uploader(
        "Upload JSON or CSV",
        type=["json", "csv", "txt"],
        help="JSON: array of period objects. CSV: header row with period, revenue, cogs, ...",
    )
    # file_id changes on every upload, even of an identical file
    if track_upload(st.session_state, uploaded.file_id if uploaded is not None else None):
        _load_upload(uploaded)

    if st.button("Load Sample Data", width='stretch'):
        st.session_state.update({"periods": sample_periods(), "source": "Sample data", "base_index": -1})
        st.rerun()

    st.caption(f"Source: {st.session_state['source']} · {len(st.session_state['periods'])} periods")

    st.markdown("---")
    st.subheader("📅 Range")
    st.session_state["range_start"] = st.text_input(
        "From (label contains)", st.session_state["range_start"],
        help="Leave blank for the first period. Unmatched text disables the filter.",
    )
    st.session_state["range_end"] = st.text_input(
        "To (label contains)", st.session_state["range_end"],
        help="Leave blank for the last period.",
    )

    st.markdown("---")
    periods_all: List[Period] = st.session_state["periods"]
    st.download_button(
        "⬇ Export JSON", export_json(periods_all), file_name=EXPORT_FILENAME,
        mime="application/json", width='stretch',
    )
    st.download_button(
        "⬇ Export CSV", to_tabular(periods_all), file_name=CSV_EXPORT_FILENAME,
        mime="text/csv", width='stretch',
    )


# ─── Main Header ─────────────────────────────────────────────────────────────

st.markdown("""
<div class='main-header'>
    <h1>📊 Finance Visualizer</h1>
    <p>Income statement · Cash flow · Balance sheet · One-period scenario simulator</p>
</div>
""", unsafe_allow_html=True)


# ═══════════════════════════════════════════════════════════════════════════════
# TAB RENDER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def _render_overview(periods: List[Period]) -> None:
    """KPI cards with YoY deltas, revenue vs net income, margin trends."""
    kpis = compute_kpis(periods)
    if kpis is None:
        st.info("No periods in range.", icon="📭")
        return

    st.markdown(f"### 🏠 Highlights — {kpis.period}"
                + (f" vs {kpis.prior_period}" if kpis.prior_period != kpis.period else ""))
    items = kpis.items()
    cols = st.columns(4)
    for i, (name, kv) in enumerate(items):
        with cols[i % 4]:
            st.metric(
                label=KPI_LABELS[name],
                value=_kpi_value(name, kv.value),
                delta=f"{format_delta(kv.delta)} YoY",
                delta_color="inverse" if name == "debt_to_equity" else "normal",
            )

    labels = [p.period for p in periods]
    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(_build_grouped_bar(labels, {
            "Revenue": [p.revenue for p in periods],
            "Net Income": [p.net_income for p in periods],
        }, "Revenue vs Net Income"), width='stretch')
    with col2:
        ratios = ratio_series(periods)
        st.plotly_chart(_build_line(labels, {
            "Gross Margin": [r["gross_margin"] for r in ratios],
            "Operating Margin": [r["operating_margin"] for r in ratios],
            "Net Margin": [r["net_margin"] for r in ratios],
        }, "Margin Trends", pct=True), width='stretch')


def _render_cash_flow(periods: List[Period]) -> None:
    st.markdown("### 💵 Cash Flow & Capital Structure")
    flows = cash_flow_series(periods)
    labels = [f.period for f in flows]

    col1, col2 = st.columns([3, 2])
    with col1:
        fig = _build_grouped_bar(labels, {
            "Operating": [f.operating for f in flows],
            "Investing": [f.investing for f in flows],
            "Financing": [f.financing for f in flows],
        }, "Cash Flow by Activity")
        fig.add_trace(go.Scatter(
            x=labels, y=[f.net for f in flows], name="Net", mode="lines+markers",
            line=dict(color="#1e293b", width=2, dash="dot"),
        ))
        st.plotly_chart(fig, width='stretch')

        ratios = ratio_series(periods)
        st.plotly_chart(_build_bar(
            [(r["period"], r["free_cash_flow"]) for r in ratios], "Free Cash Flow (OCF − Capex)",
        ), width='stretch')

    with col2:
        cs = capital_structure(periods)
        if cs is not None:
            fig = go.Figure(go.Pie(
                labels=["Liabilities", "Equity"],
                values=[max(cs.liabilities, 0.0), max(cs.equity, 0.0)],
                hole=0.55, marker=dict(colors=["#ef4444", "#1e40af"]),
            ))
            _layout(fig, f"Capital Structure — {cs.period}", height=320)
            st.plotly_chart(fig, width='stretch')
            st.markdown(f"""
            <div class='section-card' style='font-size:0.85rem;'>
            <div><strong>Total Assets:</strong> {format_currency(cs.assets)}</div>
            <div><strong>Liabilities:</strong> {format_currency(cs.liabilities)}</div>
            <div><strong>Equity:</strong> {format_currency(cs.equity)}</div>
            </div>
            """, unsafe_allow_html=True)


def _render_series(periods: List[Period]) -> None:
    st.markdown("### 📈 Series Explorer")
    options = list(PLOTTABLE_FIELDS)
    current = st.session_state["chart_field"]
    st.session_state["chart_field"] = st.selectbox(
        "Series", options,
        index=options.index(current) if current in options else 0,
        format_func=lambda f: PLOTTABLE_FIELDS[f],
    )
    field_name = st.session_state["chart_field"]
    st.plotly_chart(_build_bar(field_series(periods, field_name), PLOTTABLE_FIELDS[field_name]),
                    width='stretch')


def _render_simulator(periods: List[Period]) -> None:
    st.markdown("### 🧪 Scenario Simulator")

    if periods:
        idx_options = list(range(len(periods)))
        current_idx = st.session_state["base_index"]
        if not -len(periods) <= current_idx < len(periods):
            current_idx = -1
        st.session_state["base_index"] = st.selectbox(
            "Base period", idx_options,
            index=current_idx % len(periods),
            format_func=lambda i: periods[i].period or f"#{i + 1}",
        )

    base: Optional[Period] = select_base(periods, st.session_state["base_index"])

    slider_labels = {
        "revenue_growth": "Revenue growth",
        "cogs_multiplier": "COGS / revenue multiplier",
        "opex_multiplier": "OPEX / revenue multiplier",
        "capex_pct_of_revenue": "Capex % of revenue",
        "delta_wc_pct_of_delta_revenue": "ΔWC % of Δrevenue",
        "interest_rate_on_debt": "Interest rate on debt",
        "tax_rate": "Tax rate",
        "financing_delta": "Financing Δ (new debt)",
    }
    cols = st.columns(4)
    for i, (name, (lo, hi, step)) in enumerate(ASSUMPTION_BOUNDS.items()):
        with cols[i % 4]:
            st.session_state[f"sim_{name}"] = st.slider(
                slider_labels[name], float(lo), float(hi),
                float(st.session_state[f"sim_{name}"]), float(step),
            )

    result = project(base, _assumptions_from_state())
    if not result.available:
        st.info("No base period available. Load data to use the simulator.", icon="📭")
        return

    st.caption(f"Base: {result.base_period}. Liabilities are modelled as one debt balance; "
               f"assets = liabilities + equity.")

    by_label = {r.label: r for r in result.income_rows + result.cash_flow_rows}
    headline = [
        ("Projected EBIT", by_label["EBIT"]),
        ("Projected Net Income", by_label["Net Income"]),
        ("Projected FCF", by_label["Free Cash Flow"]),
        ("Net Cash", by_label["Net Cash"]),
    ]
    for col, (label, row) in zip(st.columns(4), headline):
        with col:
            st.markdown(f"""
            <div class='kpi-card'>
            <div class='kpi-label'>{label}</div>
            <div class='kpi-value'>{format_currency(row.scenario)}</div>
            <div class='kpi-sub' style='color:{delta_color(row.change)};'>
                {'+' if row.change >= 0 else ''}{format_currency(row.change)} vs base
            </div>
            </div>
            """, unsafe_allow_html=True)

    for title, rows in (
        ("Income Statement", result.income_rows),
        ("Cash Flow", result.cash_flow_rows),
        ("Balance Sheet", result.balance_rows),
    ):
        col1, col2 = st.columns([2, 3])
        with col1:
            st.markdown(f"**{title}**")
            st.dataframe(
                comparison_frame(rows).round(1),
                hide_index=True, width='stretch',
            )
        with col2:
            labels = [r.label for r in rows]
            st.plotly_chart(_build_grouped_bar(labels, {
                "Base": [r.base for r in rows],
                "Scenario": [r.scenario for r in rows],
            }, f"{title}: Base vs Scenario"), width='stretch')


def _render_data(periods: List[Period]) -> None:
    st.markdown("### 🔍 Data")
    df: pd.DataFrame = periods_to_frame(periods)
    st.dataframe(df.rename(columns=metric_label), hide_index=True, width='stretch')


# ═══════════════════════════════════════════════════════════════════════════════
# DASHBOARD
# ═══════════════════════════════════════════════════════════════════════════════

all_periods: List[Period] = st.session_state["periods"]
periods = filter_range(all_periods, st.session_state["range_start"], st.session_state["range_end"])

if periods and len(periods) != len(all_periods):
    st.caption(f"Showing {len(periods)} of {len(all_periods)} periods "
               f"({periods[0].period} → {periods[-1].period})")

tabs = st.tabs(["🏠 Overview", "💵 Cash Flow", "📈 Series", "🧪 Simulator", "🔍 Data"])

with tabs[0]:
    _render_overview(periods)
with tabs[1]:
    _render_cash_flow(periods)
with tabs[2]:
    _render_series(periods)
with tabs[3]:
    _render_simulator(all_periods)
with tabs[4]:
    _render_data(periods)
