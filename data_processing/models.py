# kmh_project_root/data_processing/models.py
# SME PLATINUM STANDARD - TYPE-SAFE RECORD SCHEMAS

"""
Pydantic schemas for the records exchanged with the backend record store.

Rows are validated at the store boundary and then handed to the analytics
layer as pandas DataFrames. Closed vocabularies (severity, outcome, role) are
modelled as string enums so they round-trip through JSON and CSV unchanged.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Severity(str, Enum):
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"
    CRITICAL = "Critical"


class Outcome(str, Enum):
    RECOVERED = "Recovered"
    UNDER_TREATMENT = "Under Treatment"
    DECEASED = "Deceased"
    TRANSFERRED = "Transferred"


class UserRole(str, Enum):
    GOVERNMENT_OFFICIAL = "government_official"
    DOCTOR = "doctor"
    MIGRANT = "migrant"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)


class Patient(_Record):
    id: str
    patient_id: str
    name: str
    age: int = Field(ge=0, le=130)
    gender: Gender
    migrant: bool = False
    hospital_id: Optional[str] = None
    district: str
    contact_number: Optional[str] = None
    address: Optional[str] = None
    last_checkup: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None


class DiseaseCase(_Record):
    id: str
    case_id: str
    patient_id: str
    hospital_id: Optional[str] = None
    district: str
    disease_name: str
    disease_category: Optional[str] = None
    admission_date: datetime
    is_migrant_patient: bool = False
    severity: Severity
    outcome: Optional[Outcome] = None
    symptoms: Optional[List[str]] = None
    treatment_plan: Optional[str] = None


class RiskRatings(_Record):
    water_risk: Optional[float] = None
    sanitation_risk: Optional[float] = None
    crowding_risk: Optional[float] = None
    overall_risk: float = Field(ge=0, le=10)


class District(_Record):
    id: Optional[str] = None
    district_name: str
    region: Optional[str] = None
    risk_ratings: RiskRatings


class Hospital(_Record):
    id: str
    hospital_id: str
    name: str
    district: str
    type: Optional[str] = None
    bed_capacity: Optional[int] = None


class UserProfile(_Record):
    id: str
    email: str
    full_name: str
    role: UserRole
    district: Optional[str] = None
    hospital_id: Optional[str] = None

    @property
    def role_enum(self) -> UserRole:
        return UserRole(self.role)
