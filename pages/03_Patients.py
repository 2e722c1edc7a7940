# kmh_project_root/pages/03_Patients.py
# SME PLATINUM STANDARD - PATIENT REGISTRY

import logging
from typing import Any, Dict, Optional

import pandas as pd
import streamlit as st
from pydantic import ValidationError

from config import settings
from data_processing import RecordStoreError, build_record_store, district_scope, search_patients
from data_processing.models import Gender
from data_processing.patients import PatientFormData, create_patient, delete_patient, update_patient
from visualization import (load_and_inject_css, open_record_store, require_page_access, rerun_with_notice, run_async,
                           show_pending_notice)

# --- Page Setup ---
st.set_page_config(page_title="Patients", page_icon="👥", layout="wide")
logger = logging.getLogger(__name__)
load_and_inject_css(settings.STYLE_CSS_PATH)

EDIT_KEY = "patients_editing_id"


# --- Data Loading ---
@st.cache_data(ttl=settings.WEB_CACHE_TTL_SECONDS, show_spinner="Loading patients...")
def get_patients(access_token: Optional[str], scope: Optional[str]) -> pd.DataFrame:
    return run_async(build_record_store(access_token).list_patients(scope))


# --- UI Rendering Components ---
def _form_defaults(row: Optional[Dict[str, Any]], scope: Optional[str]) -> Dict[str, Any]:
    row = row or {}
    checkup = row.get('last_checkup')
    return {
        'name': row.get('name') or "",
        'age': int(row['age']) if row.get('age') is not None and not pd.isna(row.get('age')) else 30,
        'gender': row.get('gender') or Gender.MALE.value,
        'migrant': bool(row.get('migrant', False)),
        'hospital_id': row.get('hospital_id') or "",
        'district': row.get('district') or scope or settings.KERALA_DISTRICTS[0],
        'contact_number': row.get('contact_number') or "",
        'address': row.get('address') or "",
        'last_checkup': pd.Timestamp(checkup).date() if checkup is not None and not pd.isna(checkup) else None,
    }


def render_patient_form(form_key: str, defaults: Dict[str, Any], scope: Optional[str]) -> Optional[PatientFormData]:
    """Renders the add/edit form and returns validated data once submitted, or None."""
    genders = [g.value for g in Gender]
    districts = [scope] if scope else settings.KERALA_DISTRICTS
    with st.form(form_key, clear_on_submit=False):
        c1, c2 = st.columns(2)
        name = c1.text_input("Full name *", value=defaults['name'])
        age = c2.number_input("Age *", min_value=1, max_value=120, value=defaults['age'], step=1)
        gender = c1.selectbox("Gender *", genders, index=genders.index(defaults['gender']) if defaults['gender'] in genders else 0)
        district = c2.selectbox("District *", districts, index=districts.index(defaults['district']) if defaults['district'] in districts else 0)
        hospital_id = c1.text_input("Hospital ID *", value=defaults['hospital_id'])
        contact_number = c2.text_input("Contact number", value=defaults['contact_number'])
        address = st.text_area("Address", value=defaults['address'])
        c3, c4 = st.columns(2)
        last_checkup = c3.date_input("Last checkup", value=defaults['last_checkup'])
        migrant = c4.checkbox("Migrant worker", value=defaults['migrant'])
        submitted = st.form_submit_button("Save Patient", type="primary")
    if not submitted:
        return None
    try:
        return PatientFormData(name=name, age=int(age), gender=gender, migrant=migrant, hospital_id=hospital_id,
                               district=district, contact_number=contact_number, address=address,
                               last_checkup=last_checkup)
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err['loc']) or "form"
            st.error(f"{field.replace('_', ' ').title()}: {err['msg']}")
        return None


def render_patient_list(patients: pd.DataFrame, store: Any):
    c1, c2 = st.columns([0.7, 0.3])
    term = c1.text_input("Search", placeholder="Search by name, patient ID or contact number")
    migrant_filter = c2.selectbox("Show", ["all", "migrant", "local"],
                                  format_func=lambda v: {"all": "All Patients", "migrant": "Migrant Workers", "local": "Local Residents"}[v])
    filtered = search_patients(patients, term, migrant_filter)
    st.caption(f"Showing {len(filtered)} of {len(patients)} patients")

    if filtered.empty:
        st.info("No patients match your filters." if term or migrant_filter != "all" else "No patients registered yet. Add the first patient above.")
        return

    for row in filtered.to_dict('records'):
        with st.container(border=True):
            info_col, edit_col, delete_col = st.columns([0.8, 0.1, 0.1])
            badge = "🟠 Migrant" if row.get('migrant') else "🔵 Local"
            info_col.markdown(f"**{row.get('name')}** · ID: `{row.get('patient_id')}` · {badge}")
            checkup = row.get('last_checkup')
            checkup_text = pd.Timestamp(checkup).strftime('%d %b %Y') if checkup is not None and not pd.isna(checkup) else "never"
            info_col.caption(f"{row.get('age')} years, {row.get('gender')} · {row.get('district')} · Last checkup: {checkup_text}")
            if edit_col.button("✏️", key=f"edit_{row['id']}", help="Edit patient"):
                st.session_state[EDIT_KEY] = row['id']
                st.rerun()
            if delete_col.button("🗑️", key=f"delete_{row['id']}", help="Delete patient"):
                try:
                    run_async(delete_patient(store, row['id']))
                except RecordStoreError as e:
                    st.error(f"Failed to delete patient: {e}")
                else:
                    get_patients.clear()
                    rerun_with_notice(f"Deleted patient {row.get('patient_id')}.")


# --- Main Page Execution ---
def main():
    session = require_page_access("Patients")
    scope = district_scope(session.profile)
    store = open_record_store(session.access_token)

    st.title("👥 Patient Management")
    st.markdown(f"Manage patient records for **{scope} district**." if scope else "Manage patient records.")
    st.divider()

    show_pending_notice()

    try:
        patients = get_patients(session.access_token, scope)
    except RecordStoreError as e:
        logger.error(f"Patient list load failed: {e}", exc_info=True)
        st.error(f"Unable to load patients: {e}")
        st.stop()

    editing_id = st.session_state.get(EDIT_KEY)
    if editing_id:
        match = patients[patients['id'] == editing_id]
        row = match.iloc[0].to_dict() if not match.empty else None
        st.subheader("Edit Patient")
        form = render_patient_form("edit_patient_form", _form_defaults(row, scope), scope)
        if st.button("Cancel"):
            st.session_state.pop(EDIT_KEY, None)
            st.rerun()
        if form is not None:
            try:
                run_async(update_patient(store, editing_id, form))
            except RecordStoreError as e:
                st.error(f"Failed to save patient: {e}")
            else:
                st.session_state.pop(EDIT_KEY, None)
                get_patients.clear()
                rerun_with_notice("Patient details saved.")
    else:
        with st.expander("➕ Add Patient"):
            form = render_patient_form("add_patient_form", _form_defaults(None, scope), scope)
            if form is not None:
                try:
                    created = run_async(create_patient(store, form, created_by=session.profile.id))
                except RecordStoreError as e:
                    st.error(f"Failed to save patient: {e}")
                else:
                    get_patients.clear()
                    rerun_with_notice(f"Registered patient {created.get('patient_id')}.")

    st.divider()
    render_patient_list(patients, store)

    st.divider()
    st.caption(settings.APP_FOOTER_TEXT)


if __name__ == "__main__":
    main()
