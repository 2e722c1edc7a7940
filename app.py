# kmh_project_root/app.py
# SME PLATINUM STANDARD - APPLICATION ENTRY POINT (SIGN-IN & ROLE HOME)

import html
import logging
import sys
from pathlib import Path

try:
    _project_root = Path(__file__).resolve().parent
    if str(_project_root) not in sys.path:
        sys.path.insert(0, str(_project_root))

    import streamlit as st
    from config import settings
    from data_processing import AuthError, AuthSession, build_auth_client, navigation_for_role
    from data_processing.models import UserRole
    from visualization import (SESSION_KEY, get_auth_session, load_and_inject_css, render_sidebar_navigation,
                               run_async, set_plotly_theme)

except ImportError as e:
    print(f"FATAL ERROR in app.py: A core module failed to import.", file=sys.stderr)
    print("1. Install the project first: `pip install -e .`", file=sys.stderr)
    print("2. Run the app from the project root: `streamlit run app.py`", file=sys.stderr)
    print(f"\nPython Path: {sys.path}\nOriginal ImportError: {e}", file=sys.stderr)
    sys.exit(1)

# --- Global Configuration ---
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format=settings.LOG_FORMAT,
    datefmt=settings.LOG_DATE_FORMAT,
    handlers=[logging.StreamHandler(sys.stdout)],
    force=True
)
logger = logging.getLogger(__name__)

# Tame noisy HTTP client loggers.
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


st.set_page_config(
    page_title=settings.APP_NAME,
    page_icon="🏥",
    layout="wide", initial_sidebar_state="expanded",
    menu_items={
        "Get Help": f"mailto:{settings.SUPPORT_CONTACT_INFO}",
        "Report a bug": f"mailto:{settings.SUPPORT_CONTACT_INFO}?subject=Bug Report - {settings.APP_NAME} v{settings.APP_VERSION}",
        "About": f"### {settings.APP_NAME} (v{settings.APP_VERSION})\n{settings.APP_FOOTER_TEXT}"
    }
)

load_and_inject_css(settings.STYLE_CSS_PATH)
set_plotly_theme()


@st.cache_resource
def get_auth_client():
    return build_auth_client()


def _store_session(session: AuthSession) -> None:
    st.session_state[SESSION_KEY] = session
    st.rerun()


# --- Auth Forms ---
def render_sign_in_form():
    with st.form("sign_in_form"):
        email = st.text_input("Email address")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign In", type="primary", use_container_width=True)
    if submitted:
        if not email or not password:
            st.error("Email and password are required.")
            return
        try:
            session = run_async(get_auth_client().sign_in(email, password))
        except AuthError as e:
            st.error(str(e))
            return
        _store_session(session)


def render_sign_up_form():
    roles = [r.value for r in UserRole]
    with st.form("sign_up_form"):
        full_name = st.text_input("Full name")
        email = st.text_input("Email address", key="sign_up_email")
        password = st.text_input("Password", type="password", key="sign_up_password")
        role = st.selectbox("Role", roles, format_func=lambda r: UserRole(r).label)
        district = st.selectbox("District (required for doctors)", ["—"] + settings.KERALA_DISTRICTS)
        submitted = st.form_submit_button("Create Account", use_container_width=True)
    if submitted:
        chosen_district = None if district == "—" else district
        if not full_name.strip() or not email or len(password) < 6:
            st.error("Full name, email and a password of at least 6 characters are required.")
            return
        if role == UserRole.DOCTOR.value and not chosen_district:
            st.error("Doctors must select the district they serve.")
            return
        try:
            session = run_async(get_auth_client().sign_up(email, password, full_name.strip(), role, chosen_district))
        except AuthError as e:
            st.error(str(e))
            return
        logger.info(f"New {role} account created for {email}.")
        _store_session(session)


# --- Application Header and Body ---
session = get_auth_session()
render_sidebar_navigation(session)

st.title(f"🏥 {settings.APP_NAME}")
st.subheader("Health surveillance for migrant workers across Kerala's districts")
st.divider()

if session is None:
    sign_in_tab, sign_up_tab = st.tabs(["Sign In", "Sign Up"])
    with sign_in_tab:
        render_sign_in_form()
        if settings.RECORD_STORE_BACKEND == "csv":
            st.info("**Demo mode:** sign in with any password as `official@kerala.gov.in` or `doctor.ernakulam@kerala.gov.in`.", icon="ℹ️")
    with sign_up_tab:
        render_sign_up_form()
else:
    profile = session.profile
    st.markdown(f"### Welcome, {html.escape(profile.full_name)}")
    scope_text = f"Your data is scoped to **{profile.district}** district." if profile.role == UserRole.DOCTOR.value and profile.district else "You are viewing state-wide data."
    st.info(f"Signed in as **{profile.role_enum.label}**. {scope_text}", icon="👤")

    items = navigation_for_role(profile.role)
    nav_cols = st.columns(min(len(items), 3) or 1)
    for idx, item in enumerate(items):
        with nav_cols[idx % len(nav_cols)]:
            with st.container(border=True):
                st.subheader(f"{item.icon} {item.name}")
                st.page_link(item.page, label=f"Open {item.name}", use_container_width=True, icon="➡️")

st.divider()
st.caption(settings.APP_FOOTER_TEXT)
logger.info("Main application page loaded successfully.")
