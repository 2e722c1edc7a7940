# kmh_project_root/data_processing/patients.py
# SME PLATINUM STANDARD - PATIENT REGISTRY OPERATIONS

"""
Search, form validation and persistence helpers for the doctor-facing
patient registry.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Literal, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import settings
from .helpers import convert_to_bool, to_utc_timestamp
from .models import Gender
from .record_store import RecordStore

logger = logging.getLogger(__name__)

MigrantFilter = Literal["all", "migrant", "local"]


def search_patients(df: pd.DataFrame, term: str = "", migrant_filter: MigrantFilter = "all") -> pd.DataFrame:
    """Case-insensitive substring match on name, patient ID or contact number, then the migrant filter."""
    if not isinstance(df, pd.DataFrame) or df.empty:
        return pd.DataFrame(columns=df.columns if isinstance(df, pd.DataFrame) else None)

    mask = pd.Series(True, index=df.index)
    needle = (term or "").strip().lower()
    if needle:
        text_match = pd.Series(False, index=df.index)
        for col in ['name', 'patient_id', 'contact_number']:
            if col in df.columns:
                text_match |= df[col].fillna('').astype(str).str.lower().str.contains(needle, regex=False)
        mask &= text_match

    if migrant_filter != "all":
        is_migrant = convert_to_bool(df['migrant']) if 'migrant' in df.columns else pd.Series(False, index=df.index)
        mask &= is_migrant if migrant_filter == "migrant" else ~is_migrant

    return df.loc[mask].reset_index(drop=True)


def generate_patient_id(now: Any = None) -> str:
    """'KL' followed by the last eight digits of the epoch time in milliseconds."""
    ts = to_utc_timestamp(now if now is not None else datetime.now(timezone.utc))
    return f"KL{str(ts.value // 1_000_000)[-8:]}"


class PatientFormData(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True)

    name: str = Field(min_length=1)
    age: int = Field(ge=1, le=120)
    gender: Gender
    migrant: bool = False
    hospital_id: str = Field(min_length=1)
    district: str
    contact_number: Optional[str] = None
    address: Optional[str] = None
    last_checkup: Optional[date] = None

    @field_validator('contact_number', 'address', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('last_checkup', mode='before')
    @classmethod
    def blank_date_to_none(cls, v: Any) -> Any:
        if v in ("", None):
            return None
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator('district')
    @classmethod
    def known_district(cls, v: str) -> str:
        if v not in settings.KERALA_DISTRICTS:
            raise ValueError(f"'{v}' is not a Kerala district")
        return v

    def to_record(self) -> Dict[str, Any]:
        """Row payload for the record store; the checkup date is stored as a UTC midnight timestamp."""
        record = self.model_dump()
        if self.last_checkup is not None:
            record['last_checkup'] = datetime.combine(self.last_checkup, time.min, tzinfo=timezone.utc).isoformat()
        return record


# --- Persistence ---

async def create_patient(store: RecordStore, form: PatientFormData, created_by: Optional[str] = None, now: Any = None) -> Dict[str, Any]:
    payload = {**form.to_record(), 'patient_id': generate_patient_id(now)}
    return await store.create_patient(payload, created_by=created_by)


async def update_patient(store: RecordStore, record_id: str, form: PatientFormData) -> Dict[str, Any]:
    return await store.update_patient(record_id, form.to_record())


async def delete_patient(store: RecordStore, record_id: str) -> None:
    await store.delete_patient(record_id)
