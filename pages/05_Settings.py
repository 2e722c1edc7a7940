# kmh_project_root/pages/05_Settings.py
# Account details and the active monitoring configuration.

import logging

import pandas as pd
import streamlit as st

from config import settings
from data_processing import district_scope
from visualization import load_and_inject_css, require_page_access

st.set_page_config(page_title="Settings", page_icon="⚙️", layout="wide")
logger = logging.getLogger(__name__)
load_and_inject_css(settings.STYLE_CSS_PATH)


def render_profile(session):
    profile = session.profile
    st.subheader("👤 Profile")
    c1, c2 = st.columns(2)
    c1.text_input("Full name", value=profile.full_name, disabled=True)
    c2.text_input("Email", value=profile.email, disabled=True)
    c1.text_input("Role", value=profile.role_enum.label, disabled=True)
    c2.text_input("District", value=profile.district or "All districts", disabled=True)
    scope = district_scope(profile)
    st.caption(f"Data scope: {scope} district only." if scope else "Data scope: state-wide.")


def render_alert_rules():
    a = settings.ALERTS
    st.subheader("⚠️ Alert Rules")
    rules = pd.DataFrame([
        {"Rule": "Annual vaccination due", "Condition": f"Last checkup more than {a.vaccine_due_days} days ago", "Priority": "High"},
        {"Rule": "Annual checkup approaching", "Condition": f"Last checkup {a.checkup_approaching_days + 1}-{a.vaccine_due_days} days ago", "Priority": "Medium"},
        {"Rule": "TB screening", "Condition": f"Migrant with no checkup or none in {a.tb_screening_interval_days} days", "Priority": "High"},
        {"Rule": "Medication review", "Condition": f"Under treatment for more than {a.medication_review_days} days", "Priority": "Urgent if critical, else Medium"},
        {"Rule": "High risk area", "Condition": f"District risk above {a.high_risk_district_min_risk:g} and more than {a.high_risk_district_min_recent_cases} cases in {a.recent_case_window_days} days", "Priority": "Urgent"},
    ])
    st.dataframe(rules, hide_index=True, use_container_width=True)


def render_system_info():
    st.subheader("🛠️ System")
    st.markdown(f"""
- **Application:** {settings.APP_NAME} v{settings.APP_VERSION}
- **Record store:** `{settings.RECORD_STORE_BACKEND}`
- **District analytics service:** `{settings.DISTRICT_API_BASE_URL}`
- **Dashboard cache:** {settings.WEB_CACHE_TTL_SECONDS} seconds
- **Support:** {settings.SUPPORT_CONTACT_INFO}
""")


def main():
    session = require_page_access("Settings")
    st.title("⚙️ Settings")
    st.divider()
    render_profile(session)
    st.divider()
    render_alert_rules()
    st.divider()
    render_system_info()
    st.divider()
    st.caption(settings.APP_FOOTER_TEXT)


if __name__ == "__main__":
    main()
