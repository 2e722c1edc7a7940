# kmh_project_root/data_processing/__init__.py
# SME PLATINUM STANDARD - ROBUST & EXPLICIT PACKAGE API

"""
Initializes the data_processing package, defining its public API: record
schemas, loaders, the record store adapters, auth and the dashboard and
patient-registry helpers.
"""

# --- Core Data Pipeline & Utilities from helpers.py ---
from .helpers import (
    DataPipeline,
    convert_to_numeric,
    records_to_frame,
    robust_json_load,
    to_utc_timestamp,
)

# --- Errors ---
from .errors import AuthError, RecordStoreError

# --- Data Loading from loaders.py ---
from .loaders import (
    load_district_points,
    load_json_asset,
    load_records_csv,
    prepare_records,
)

# --- Record Store Adapters ---
from .record_store import CsvRecordStore, RecordStore, RestRecordStore, build_record_store

# --- Auth & Role Scoping ---
from .auth import (
    AuthSession,
    DemoAuthClient,
    RestAuthClient,
    build_auth_client,
    can_access,
    district_scope,
    navigation_for_role,
)

# --- Dashboard Aggregations ---
from .aggregation import (
    calculate_dashboard_stats,
    case_trend,
    district_case_breakdown,
    severity_breakdown,
    top_diseases,
)

# --- Patient Registry ---
from .patients import PatientFormData, generate_patient_id, search_patients


__all__ = [
    # helpers.py
    "DataPipeline",
    "convert_to_numeric",
    "records_to_frame",
    "robust_json_load",
    "to_utc_timestamp",

    # errors.py
    "AuthError",
    "RecordStoreError",

    # loaders.py
    "load_district_points",
    "load_json_asset",
    "load_records_csv",
    "prepare_records",

    # record_store.py
    "CsvRecordStore",
    "RecordStore",
    "RestRecordStore",
    "build_record_store",

    # auth.py
    "AuthSession",
    "DemoAuthClient",
    "RestAuthClient",
    "build_auth_client",
    "can_access",
    "district_scope",
    "navigation_for_role",

    # aggregation.py
    "calculate_dashboard_stats",
    "case_trend",
    "district_case_breakdown",
    "severity_breakdown",
    "top_diseases",

    # patients.py
    "PatientFormData",
    "generate_patient_id",
    "search_patients",
]
