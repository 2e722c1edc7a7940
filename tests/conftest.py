# kmh_project_root/tests/conftest.py
# SME PLATINUM STANDARD - PYTEST FIXTURES

import sys
from pathlib import Path

# --- Path Setup for Module Imports ---
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import asyncio
from typing import Any, Dict, List, Optional

import pandas as pd
import pytest

from data_processing import RecordStoreError, prepare_records

NOW = pd.Timestamp("2026-10-18T12:00:00Z")


# --- Record Builders ---

def make_patient(pid: str, days_since_checkup: Optional[float] = None, migrant: bool = False, **overrides: Any) -> Dict[str, Any]:
    record = {
        "id": pid, "patient_id": f"KL{pid}", "name": f"Patient {pid}", "age": 30, "gender": "Male",
        "migrant": migrant, "hospital_id": "H07M", "district": "Ernakulam",
        "contact_number": "9847000000", "address": None,
        "last_checkup": (NOW - pd.Timedelta(days=days_since_checkup)).isoformat() if days_since_checkup is not None else None,
    }
    record.update(overrides)
    return record


def make_case(cid: str, days_since_admission: float, severity: str = "Mild", outcome: str = "Recovered",
              district: str = "Ernakulam", **overrides: Any) -> Dict[str, Any]:
    record = {
        "id": cid, "case_id": f"CASE-{cid}", "patient_id": f"p-{cid}", "hospital_id": "H07M", "district": district,
        "disease_name": "Dengue", "admission_date": (NOW - pd.Timedelta(days=days_since_admission)).isoformat(),
        "is_migrant_patient": False, "severity": severity, "outcome": outcome,
    }
    record.update(overrides)
    return record


def make_district(name: str, overall_risk: float) -> Dict[str, Any]:
    return {"id": f"d-{name}", "district_name": name, "region": "Central",
            "risk_ratings": {"overall_risk": overall_risk, "water_risk": 5.0, "sanitation_risk": 5.0, "crowding_risk": 5.0}}


# --- In-Memory Record Store ---

class FakeRecordStore:
    """Serves fixed rows through the async store contract; `fail` names collections whose reads raise."""

    def __init__(self, patients: Optional[List[Dict]] = None, cases: Optional[List[Dict]] = None,
                 districts: Optional[List[Dict]] = None, fail: tuple = (), delay: float = 0.0):
        self.patients = patients or []
        self.cases = cases or []
        self.districts = districts or []
        self.fail = set(fail)
        self.delay = delay
        self.calls: List[str] = []

    async def _read(self, table: str, rows: List[Dict], district: Optional[str] = None) -> pd.DataFrame:
        self.calls.append(table)
        if self.delay:
            await asyncio.sleep(self.delay)
        if table in self.fail:
            raise RecordStoreError(f"list {table}", "service unavailable", 503)
        if district:
            rows = [r for r in rows if r.get("district") == district]
        return prepare_records(table, rows)

    async def list_patients(self, district: Optional[str] = None) -> pd.DataFrame:
        return await self._read("patients", self.patients, district)

    async def list_disease_cases(self, district: Optional[str] = None, limit: Optional[int] = None) -> pd.DataFrame:
        return await self._read("disease_cases", self.cases, district)

    async def list_districts(self) -> pd.DataFrame:
        return await self._read("districts", self.districts)


# --- Fixtures ---

@pytest.fixture(scope="session")
def now() -> pd.Timestamp:
    return NOW


@pytest.fixture(scope="session")
def sample_patients() -> List[Dict[str, Any]]:
    """One patient per checkup band, migrants and locals mixed."""
    return [
        make_patient("p1", 400),
        make_patient("p2", 320),
        make_patient("p3", 30),
        make_patient("p4", None, migrant=True),
        make_patient("p5", 200, migrant=True),
        make_patient("p6", 2, migrant=True),
        make_patient("p7", None),
    ]


@pytest.fixture(scope="session")
def sample_cases() -> List[Dict[str, Any]]:
    cases = [
        make_case("c1", 20, severity="Critical", outcome="Under Treatment"),
        make_case("c2", 16, severity="Moderate", outcome="Under Treatment"),
        make_case("c3", 3, severity="Severe", outcome="Under Treatment"),
    ]
    # Six recent admissions in Kozhikode for the high-risk-area rule.
    cases += [make_case(f"k{i}", i * 0.5, district="Kozhikode", is_migrant_patient=True) for i in range(6)]
    return cases


@pytest.fixture(scope="session")
def sample_districts() -> List[Dict[str, Any]]:
    return [make_district("Kozhikode", 7.0), make_district("Ernakulam", 7.6), make_district("Idukki", 3.2)]


@pytest.fixture
def csv_data_dir(tmp_path: Path) -> Path:
    """A throwaway copy of a tiny CSV dataset for the local record store."""
    pd.DataFrame([
        {**make_patient("p1", 400, migrant=True), "created_at": "2026-01-01T00:00:00+00:00"},
        {**make_patient("p2", 10, district="Kozhikode"), "created_at": "2026-02-01T00:00:00+00:00"},
    ]).to_csv(tmp_path / "patients.csv", index=False)
    pd.DataFrame([
        make_case("c1", 20, severity="Critical", outcome="Under Treatment"),
        make_case("c2", 1, district="Kozhikode"),
    ]).to_csv(tmp_path / "disease_cases.csv", index=False)
    pd.DataFrame([
        {"district_name": "Ernakulam", "overall_risk": 7.6, "lat": 9.93, "lon": 76.27},
        {"district_name": "Kozhikode", "overall_risk": 6.9, "lat": 11.26, "lon": 75.78},
    ]).to_csv(tmp_path / "districts.csv", index=False)
    pd.DataFrame([
        {"id": "u1", "email": "official@kerala.gov.in", "full_name": "State Officer", "role": "government_official", "district": ""},
        {"id": "u2", "email": "doc@kerala.gov.in", "full_name": "Dr. Doc", "role": "doctor", "district": "Ernakulam"},
    ]).to_csv(tmp_path / "profiles.csv", index=False)
    return tmp_path
