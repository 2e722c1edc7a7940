# kmh_project_root/pages/01_Dashboard.py
# SME PLATINUM STANDARD - DISEASE SURVEILLANCE DASHBOARD

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import pandas as pd
import streamlit as st

from config import settings
from data_processing import (RecordStoreError, build_record_store, calculate_dashboard_stats, case_trend,
                             district_case_breakdown, district_scope, severity_breakdown, top_diseases)
from visualization import (load_and_inject_css, plot_bar_chart, plot_donut_chart, plot_line_chart,
                           render_kpi_card, require_page_access, run_async)

# --- Page Setup ---
st.set_page_config(page_title="Dashboard", page_icon="🏠", layout="wide")
logger = logging.getLogger(__name__)
load_and_inject_css(settings.STYLE_CSS_PATH)


# --- Data Loading ---
async def _fetch_dashboard_data(access_token: Optional[str], scope: Optional[str]) -> Tuple[int, int, pd.DataFrame]:
    store = build_record_store(access_token)
    return await asyncio.gather(
        store.count_patients(),
        store.count_disease_cases(),
        store.list_disease_cases(scope, limit=settings.DASHBOARD_CASE_SAMPLE_LIMIT),
    )


@st.cache_data(ttl=settings.WEB_CACHE_TTL_SECONDS, show_spinner="Loading dashboard data...")
def get_dashboard_data(access_token: Optional[str], scope: Optional[str]) -> Tuple[int, int, pd.DataFrame]:
    return run_async(_fetch_dashboard_data(access_token, scope))


# --- UI Rendering Components ---
def render_kpis(stats: Dict[str, Any]):
    row_1 = st.columns(3)
    with row_1[0]: render_kpi_card("Total Patients", stats['total_patients'], icon="👥", status_level="NEUTRAL")
    with row_1[1]: render_kpi_card("Total Cases", stats['total_cases'], icon="📋", status_level="NEUTRAL")
    with row_1[2]: render_kpi_card("Migrant Cases", stats['migrant_cases'], icon="🧳", status_level="MIGRANT",
                                   help_text="Cases among migrant workers in the sampled admissions.")
    row_2 = st.columns(3)
    with row_2[0]: render_kpi_card("Severe / Critical", stats['severe_cases'], icon="🚨", status_level="HIGH_RISK")
    with row_2[1]: render_kpi_card(f"Last {settings.ALERTS.recent_case_window_days} Days", stats['recent_cases'], icon="📈", status_level="MODERATE_RISK")
    with row_2[2]: render_kpi_card("Districts Affected", stats['districts_affected'], icon="🗺️", status_level="LOW_RISK")


def render_charts(cases: pd.DataFrame, now: pd.Timestamp):
    col1, col2 = st.columns(2, gap="large")
    with col1:
        district_df = district_case_breakdown(cases, top_n=settings.DASHBOARD_TOP_N)
        st.plotly_chart(plot_bar_chart(
            district_df, x_col='name', y_col=['migrant', 'local'], title="Cases by District", x_title="District",
            barmode='stack', color_discrete_sequence=[settings.COLOR_MIGRANT, settings.COLOR_LOCAL]), use_container_width=True)
    with col2:
        st.plotly_chart(plot_donut_chart(
            severity_breakdown(cases), label_col='name', value_col='value', title="Case Severity",
            color_map=settings.SEVERITY_COLORS), use_container_width=True)

    col3, col4 = st.columns(2, gap="large")
    with col3:
        trend_df = case_trend(cases, now, days=settings.DASHBOARD_TREND_DAYS)
        st.plotly_chart(plot_line_chart(
            trend_df, x_col='date', y_cols={'cases': settings.COLOR_PRIMARY, 'migrant': settings.COLOR_MIGRANT},
            title=f"Case Trend (Last {settings.DASHBOARD_TREND_DAYS} Days)", y_title="Cases"), use_container_width=True)
    with col4:
        st.plotly_chart(plot_bar_chart(
            top_diseases(cases, top_n=settings.DASHBOARD_TOP_N), x_col='cases', y_col='name', title="Top Diseases",
            x_title="Cases", y_title="Disease", orientation='h'), use_container_width=True)


# --- Main Page Execution ---
def main():
    session = require_page_access("Dashboard")
    scope = district_scope(session.profile)

    st.title("🏠 Health Dashboard")
    st.markdown(f"Overview of disease cases in **{scope} district**." if scope else "State-wide overview of disease cases across Kerala.")
    st.divider()

    try:
        total_patients, total_cases, cases = get_dashboard_data(session.access_token, scope)
    except RecordStoreError as e:
        logger.error(f"Dashboard data load failed: {e}", exc_info=True)
        st.error(f"Unable to load dashboard data: {e}")
        st.stop()

    now = pd.Timestamp.now(tz='UTC')
    stats = calculate_dashboard_stats(cases, total_patients, total_cases, now)
    render_kpis(stats)
    st.divider()
    if cases.empty:
        st.info("No disease cases have been recorded yet.")
    else:
        render_charts(cases, now)

    st.divider()
    st.caption(settings.APP_FOOTER_TEXT)


if __name__ == "__main__":
    main()
