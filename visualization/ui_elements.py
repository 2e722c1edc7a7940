# kmh_project_root/visualization/ui_elements.py
# SME PLATINUM STANDARD - THEME-AWARE UI COMPONENTS

import asyncio
import html
import logging
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd
import streamlit as st

from config import settings
from data_processing.auth import AuthSession, can_access, navigation_for_role
from data_processing.errors import RecordStoreError
from data_processing.record_store import RecordStore, build_record_store

logger = logging.getLogger(__name__)

ALERT_ICONS = {
    "vaccine_due": "💉",
    "medication_reminder": "💊",
    "follow_up": "📅",
    "tb_screening": "🫁",
    "high_risk_area": "⚠️",
}

@st.cache_resource
def load_and_inject_css(css_path: Union[str, Path]):
    """Loads a CSS file and injects it into the Streamlit application."""
    path = Path(css_path)
    if not path.is_file():
        logger.warning(f"CSS file not found at: {path}. UI may not be styled correctly.")
        return
    try:
        with path.open("r", encoding="utf-8") as f:
            st.markdown(f'<style>{f.read()}</style>', unsafe_allow_html=True)
        logger.debug(f"Successfully loaded and injected CSS from {path}.")
    except OSError as e:
        logger.error(f"Error loading CSS from {path}: {e}", exc_info=True)


def _format_value(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return "N/A"
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,.2f}"
    if isinstance(value, (int, float)):
        return f"{int(value):,}"
    return str(value)


def render_kpi_card(
    title: str,
    value: Any,
    unit: str = "",
    status_level: Optional[str] = None,
    help_text: Optional[str] = None,
    icon: str = "💡"
) -> None:
    """
    Renders a custom HTML KPI card in Streamlit.
    """
    status_class = f"status-{status_level.lower().replace('_', '-')}" if status_level else ""
    tooltip_attr = f'title="{html.escape(help_text)}"' if help_text else ""
    unit_html = f'<span class="kpi-units">{html.escape(unit)}</span>' if unit else ""

    card_html = f"""
    <div class="kpi-card {status_class}" {tooltip_attr}>
        <div class="kpi-header">
            <span class="kpi-icon">{html.escape(icon)}</span>
            <div class="kpi-title">{html.escape(title)}</div>
        </div>
        <div class="kpi-body">
            <p class="kpi-value">{html.escape(_format_value(value))}{unit_html}</p>
        </div>
    </div>
    """
    st.markdown(card_html, unsafe_allow_html=True)


def render_alert_card(alert: Any) -> None:
    """Renders one alert as a priority-coloured card. Accepts an `Alert` or its dict form."""
    record = alert.to_dict() if hasattr(alert, 'to_dict') else dict(alert)
    priority = str(record.get('priority', 'low'))
    color = settings.PRIORITY_COLORS.get(priority, settings.COLOR_SECONDARY)
    icon = ALERT_ICONS.get(str(record.get('type')), "🔔")

    meta = []
    if record.get('patient_name'):
        meta.append(f"Patient: {html.escape(str(record['patient_name']))}")
    if record.get('district'):
        meta.append(f"District: {html.escape(str(record['district']))}")
    due_date = record.get('due_date')
    if due_date is not None and not pd.isna(due_date):
        meta.append(f"Due: {pd.Timestamp(due_date).strftime('%d %b %Y')}")
    meta_html = f'<div class="alert-card-meta">{" · ".join(meta)}</div>' if meta else ""

    card_html = f"""
    <div class="alert-card priority-{html.escape(priority)}" style="border-left-color: {color};">
        <div class="alert-card-header">
            <span class="alert-card-icon">{html.escape(icon)}</span>
            <span class="alert-card-title">{html.escape(str(record.get('title', '')))}</span>
            <span class="alert-card-badge" style="background-color: {color};">{html.escape(priority.upper())}</span>
        </div>
        <div class="alert-card-message">{html.escape(str(record.get('message', '')))}</div>
        {meta_html}
    </div>
    """
    st.markdown(card_html, unsafe_allow_html=True)


# --- Session & Navigation ---

SESSION_KEY = "auth_session"
NOTICE_KEY = "pending_notice"


def run_async(coro: Any) -> Any:
    """Runs a coroutine to completion from the Streamlit script thread."""
    return asyncio.run(coro)


def get_auth_session() -> Optional[AuthSession]:
    return st.session_state.get(SESSION_KEY)


def sign_out() -> None:
    profile = getattr(get_auth_session(), 'profile', None)
    for key in list(st.session_state.keys()):
        del st.session_state[key]
    st.cache_data.clear()
    if profile:
        logger.info(f"User {profile.email} signed out.")


def render_sidebar_navigation(session: Optional[AuthSession]) -> None:
    """Role-filtered page links plus the signed-in user's badge and sign-out button."""
    with st.sidebar:
        st.header(settings.APP_NAME)
        st.caption(f"v{settings.APP_VERSION}")
        st.page_link("app.py", label="Home", icon="🏥")
        if session is None:
            return
        for item in navigation_for_role(session.profile.role):
            st.page_link(item.page, label=item.name, icon=item.icon)
        st.divider()
        profile = session.profile
        st.markdown(f"**{html.escape(profile.full_name)}**")
        st.caption(f"{profile.role_enum.label}" + (f" · {profile.district}" if profile.district else ""))
        if st.button("Sign Out", use_container_width=True, key="sidebar_sign_out"):
            sign_out()
            st.rerun()


def require_page_access(page_name: str) -> AuthSession:
    """Stops the page unless a signed-in user whose role may open `page_name` is present."""
    session = get_auth_session()
    render_sidebar_navigation(session)
    if session is None:
        st.warning("Please sign in to continue.")
        st.page_link("app.py", label="Go to sign in", icon="🔐")
        st.stop()
    if not can_access(session.profile, page_name):
        logger.warning(f"Blocked {session.profile.email} ({session.profile.role}) from page '{page_name}'.")
        st.error(f"Your role ({session.profile.role_enum.label}) does not have access to {page_name}.")
        st.stop()
    return session


def open_record_store(access_token: Optional[str]) -> RecordStore:
    """Builds the configured record store, or shows the data error state and stops the page."""
    try:
        return build_record_store(access_token)
    except RecordStoreError as e:
        logger.error(f"Record store unavailable: {e}", exc_info=True)
        st.error(f"Health records are unavailable: {e}")
        st.stop()


def rerun_with_notice(message: str) -> None:
    """Reruns the page so it reloads its data, carrying a one-shot success message across."""
    st.session_state[NOTICE_KEY] = message
    st.rerun()


def show_pending_notice() -> None:
    message = st.session_state.pop(NOTICE_KEY, None)
    if message:
        st.success(message)
