# kmh_project_root/tests/test_patients.py
# SME PLATINUM STANDARD - PATIENT REGISTRY TESTS

import asyncio
from datetime import date, datetime

import pandas as pd
import pytest
from pydantic import ValidationError

from data_processing import CsvRecordStore, PatientFormData, generate_patient_id, prepare_records, search_patients
from data_processing.patients import create_patient, delete_patient, update_patient


VALID_FORM = {
    "name": "Ravi Kumar", "age": 34, "gender": "Male", "migrant": True, "hospital_id": "H07M",
    "district": "Ernakulam", "contact_number": "  ", "address": "", "last_checkup": date(2026, 3, 1),
}


@pytest.fixture
def patients_df(sample_patients) -> pd.DataFrame:
    return prepare_records('patients', sample_patients)


# --- Search ---
def test_search_matches_name_id_and_contact(patients_df):
    assert search_patients(patients_df, "patient p3")['id'].tolist() == ["p3"]
    assert search_patients(patients_df, "KLP5")['id'].tolist() == ["p5"]
    assert len(search_patients(patients_df, "9847")) == 7


def test_search_migrant_filter(patients_df):
    assert search_patients(patients_df, migrant_filter="migrant")['id'].tolist() == ["p4", "p5", "p6"]
    assert len(search_patients(patients_df, migrant_filter="local")) == 4
    assert search_patients(patients_df, "p1", migrant_filter="migrant").empty


def test_search_on_empty_frame():
    assert search_patients(pd.DataFrame(), "anything").empty


# --- Patient ID ---
def test_patient_id_uses_last_eight_millisecond_digits():
    ts = pd.Timestamp("2026-10-18T12:00:00.123Z")
    expected = "KL" + str(ts.value // 1_000_000)[-8:]
    assert generate_patient_id(ts) == expected
    assert len(generate_patient_id()) == 10


# --- Form Validation ---
def test_form_normalizes_blank_optionals():
    form = PatientFormData(**VALID_FORM)
    assert form.contact_number is None
    assert form.address is None
    assert form.gender == "Male"


def test_form_record_stores_checkup_as_utc_midnight():
    record = PatientFormData(**VALID_FORM).to_record()
    assert record["last_checkup"] == "2026-03-01T00:00:00+00:00"
    assert "patient_id" not in record


def test_form_accepts_datetime_and_missing_checkup():
    assert PatientFormData(**{**VALID_FORM, "last_checkup": datetime(2026, 3, 1, 15, 30)}).last_checkup == date(2026, 3, 1)
    assert PatientFormData(**{**VALID_FORM, "last_checkup": None}).to_record()["last_checkup"] is None


@pytest.mark.parametrize("field, value", [
    ("name", ""),
    ("age", 0),
    ("age", 121),
    ("gender", "Unknown"),
    ("hospital_id", " "),
    ("district", "Chennai"),
])
def test_form_rejects_invalid_fields(field, value):
    with pytest.raises(ValidationError) as exc_info:
        PatientFormData(**{**VALID_FORM, field: value})
    assert exc_info.value.errors()[0]["loc"] == (field,)


# --- Persistence ---
def test_registry_operations_through_local_store(csv_data_dir):
    store = CsvRecordStore({'patients': csv_data_dir / "patients.csv"})
    form = PatientFormData(**VALID_FORM)
    now = pd.Timestamp("2026-10-18T12:00:00Z")

    created = asyncio.run(create_patient(store, form, created_by="doc-1", now=now))
    assert created["patient_id"] == generate_patient_id(now)
    assert created["created_by"] == "doc-1"

    asyncio.run(update_patient(store, created["id"], PatientFormData(**{**VALID_FORM, "age": 35})))
    stored = asyncio.run(store.list_patients())
    row = stored.loc[stored['id'] == created["id"]].iloc[0]
    assert int(row['age']) == 35
    assert row['last_checkup'] == pd.Timestamp("2026-03-01T00:00:00Z")

    asyncio.run(delete_patient(store, created["id"]))
    assert created["id"] not in asyncio.run(store.list_patients())['id'].tolist()


def test_registered_patient_flows_into_alerts(csv_data_dir):
    """A migrant registered without a checkup is flagged for TB screening on the next cycle."""
    from analytics import AlertType, generate_health_alerts
    store = CsvRecordStore({'patients': csv_data_dir / "patients.csv"})
    form = PatientFormData(**{**VALID_FORM, "last_checkup": None})
    created = asyncio.run(create_patient(store, form))
    alerts = generate_health_alerts(asyncio.run(store.list_patients()), [], [], pd.Timestamp("2026-10-18T12:00:00Z"))
    assert f"{AlertType.TB_SCREENING.value}_{created['id']}" in [a.id for a in alerts]
