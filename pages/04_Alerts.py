# kmh_project_root/pages/04_Alerts.py
# SME PLATINUM STANDARD - HEALTH ALERTS FEED

import logging

import pandas as pd
import streamlit as st

from analytics import AlertFeed, AlertPriority, FeedStatus, filter_alerts_by_priority, summarize_alert_priorities
from config import settings
from data_processing import build_record_store, district_scope
from visualization import load_and_inject_css, render_alert_card, render_kpi_card, require_page_access, run_async

# --- Page Setup ---
st.set_page_config(page_title="Health Alerts", page_icon="⚠️", layout="wide")
logger = logging.getLogger(__name__)
load_and_inject_css(settings.STYLE_CSS_PATH)

FEED_KEY = "alert_feed"
PRIORITY_ICONS = {"urgent": "🚨", "high": "🔴", "medium": "🟡", "low": "🔵"}


def get_feed() -> AlertFeed:
    if FEED_KEY not in st.session_state:
        st.session_state[FEED_KEY] = AlertFeed()
    return st.session_state[FEED_KEY]


# --- UI Rendering Components ---
def render_priority_stats(alerts):
    counts = summarize_alert_priorities(alerts)
    cols = st.columns(len(counts))
    status = {"urgent": "HIGH_RISK", "high": "HIGH_RISK", "medium": "MODERATE_RISK", "low": "NEUTRAL"}
    for col, (priority, count) in zip(cols, counts.items()):
        with col:
            render_kpi_card(f"{priority.title()} Priority", count, icon=PRIORITY_ICONS[priority], status_level=status[priority])


# --- Main Page Execution ---
def main():
    session = require_page_access("Alerts")
    scope = district_scope(session.profile)
    feed = get_feed()

    header_col, button_col = st.columns([0.8, 0.2])
    with header_col:
        st.title("⚠️ Health Alerts")
        st.markdown(f"Automated health alerts for **{scope} district**." if scope else "Automated health alerts across Kerala.")
    with button_col:
        refresh_clicked = st.button("🔄 Refresh Alerts", use_container_width=True)
    st.divider()

    if refresh_clicked or feed.state.status in (FeedStatus.IDLE, FeedStatus.LOADING):
        with st.spinner("Generating alerts..."):
            run_async(feed.refresh(lambda: build_record_store(session.access_token), pd.Timestamp.now(tz='UTC'), scope))

    state = feed.state
    if state.status == FeedStatus.ERROR:
        st.error(f"Alerts could not be generated because health records are unavailable. {state.error}")
        st.caption("No alerts are shown while source data cannot be read. Try refreshing in a moment.")
        st.stop()

    render_priority_stats(state.alerts)
    if state.generated_at is not None:
        st.caption(f"Last generated {state.generated_at.strftime('%d %b %Y, %H:%M UTC')}")
    st.divider()

    if state.is_all_clear:
        st.success("No active alerts. All health indicators are currently within normal ranges.", icon="✅")
    else:
        options = ["all"] + [p.value for p in AlertPriority]
        priority = st.selectbox("Filter by priority", options,
                                format_func=lambda v: "All Priorities" if v == "all" else f"{v.title()} Priority")
        visible = filter_alerts_by_priority(state.alerts, priority)
        st.caption(f"Showing {len(visible)} of {len(state.alerts)} alerts")
        if not visible:
            st.info("No alerts match this priority.")
        for alert in visible:
            render_alert_card(alert)

    st.divider()
    st.caption(settings.APP_FOOTER_TEXT)


if __name__ == "__main__":
    main()
