# kmh_project_root/data_processing/loaders.py
# SME PLATINUM STANDARD - ROBUST & INTEGRATED DATA LOADING

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from pydantic import BaseModel, Field

from config import settings
from .errors import RecordStoreError
from .helpers import DataPipeline, records_to_frame, robust_json_load

logger = logging.getLogger(__name__)

# --- Pydantic Models for Type-Safe Configuration ---

class RecordConfig(BaseModel):
    """Defines how one record collection is shaped into an analytics-ready DataFrame."""
    path_setting: str
    date_cols: List[str] = Field(default_factory=list)
    dtype_map: Dict[str, str] = Field(default_factory=dict)
    flatten_map: Dict[str, str] = Field(default_factory=dict)
    defaults: Dict[str, Any] = Field(default_factory=dict)
    required_cols: List[str] = Field(default_factory=list)
    read_options: Dict[str, Any] = Field(default_factory=lambda: {'low_memory': False})

class JsonConfig(BaseModel):
    """Defines the schema for a JSON or GeoJSON asset."""
    path_setting: str

# --- Centralized Data Source Configuration ---

DATA_CONFIG: Dict[str, Union[RecordConfig, JsonConfig]] = {
    'patients': RecordConfig(
        path_setting='PATIENTS_PATH',
        date_cols=['last_checkup', 'created_at', 'updated_at'],
        dtype_map={'id': 'str', 'patient_id': 'str', 'hospital_id': 'str', 'contact_number': 'str', 'migrant': 'bool'},
        defaults={'migrant': False},
        required_cols=['id', 'patient_id', 'name', 'district'],
        read_options={'low_memory': False, 'dtype': {'contact_number': str, 'hospital_id': str}}
    ),
    'disease_cases': RecordConfig(
        path_setting='DISEASE_CASES_PATH',
        date_cols=['admission_date', 'created_at', 'updated_at'],
        dtype_map={'id': 'str', 'case_id': 'str', 'patient_id': 'str', 'hospital_id': 'str', 'is_migrant_patient': 'bool'},
        defaults={'is_migrant_patient': False},
        required_cols=['id', 'case_id', 'district', 'disease_name', 'admission_date', 'severity']
    ),
    'districts': RecordConfig(
        path_setting='DISTRICTS_PATH',
        dtype_map={'overall_risk': 'float', 'water_risk': 'float', 'sanitation_risk': 'float', 'crowding_risk': 'float'},
        flatten_map={
            'risk_ratings.overall_risk': 'overall_risk', 'risk_ratings.water_risk': 'water_risk',
            'risk_ratings.sanitation_risk': 'sanitation_risk', 'risk_ratings.crowding_risk': 'crowding_risk',
            'coordinates.lat': 'lat', 'coordinates.lon': 'lon',
        },
        required_cols=['district_name', 'overall_risk']
    ),
    'hospitals': RecordConfig(
        path_setting='HOSPITALS_PATH',
        dtype_map={'id': 'str', 'hospital_id': 'str', 'bed_capacity': 'int'},
        required_cols=['hospital_id', 'name', 'district']
    ),
    'profiles': RecordConfig(
        path_setting='PROFILES_PATH',
        dtype_map={'id': 'str'},
        required_cols=['id', 'email', 'full_name', 'role']
    ),
    'district_points': JsonConfig(path_setting='DISTRICT_POINTS_PATH'),
}

# --- Shape Adaptation ---

def _get_record_config(config_key: str) -> RecordConfig:
    config = DATA_CONFIG.get(config_key)
    if not isinstance(config, RecordConfig):
        raise KeyError(f"Invalid record config key: '{config_key}'")
    return config


def prepare_records(config_key: str, records: Any) -> pd.DataFrame:
    """
    Normalizes raw rows (CSV frame, REST JSON list, or models) for one
    collection: clean names, flatten nested objects, cast types, parse dates.
    Raises RecordStoreError when required columns are missing from a non-empty batch.
    """
    config = _get_record_config(config_key)
    df = records_to_frame(records)
    if df.empty:
        return pd.DataFrame(columns=config.required_cols)

    processed_df = (DataPipeline(df)
        .clean_column_names()
        .flatten_nested_columns(config.flatten_map)
        .cast_column_types(config.dtype_map)
        .standardize_missing_values(config.defaults)
        .drop_unparseable_dates(config.date_cols, config_key)
        .convert_date_columns(config.date_cols)
        .get_dataframe()
        .reset_index(drop=True)
    )

    missing_cols = set(config.required_cols) - set(processed_df.columns)
    if missing_cols:
        logger.critical(f"({config_key}) Schema validation failed! Missing required columns: {missing_cols}")
        raise RecordStoreError(f"load {config_key}", f"missing required columns {sorted(missing_cols)}")
    return processed_df

# --- Main Loading Functions ---

def resolve_data_path(config_key: str, filepath_override: Optional[Union[str, Path]] = None) -> Path:
    config = DATA_CONFIG[config_key]
    return Path(filepath_override) if filepath_override else Path(getattr(settings, config.path_setting))


def load_records_csv(config_key: str, filepath_override: Optional[Union[str, Path]] = None) -> pd.DataFrame:
    """Loads one collection from its CSV file. Missing or unreadable files raise RecordStoreError."""
    config = _get_record_config(config_key)
    path_to_load = resolve_data_path(config_key, filepath_override)

    if not path_to_load.is_file():
        logger.error(f"({config_key}) CSV file not found at: {path_to_load}")
        raise RecordStoreError(f"load {config_key}", f"CSV file not found at {path_to_load}")

    try:
        raw_df = pd.read_csv(path_to_load, **config.read_options)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        logger.critical(f"({config_key}) Critical error loading CSV from {path_to_load}: {e}", exc_info=True)
        raise RecordStoreError(f"load {config_key}", str(e)) from e

    processed_df = prepare_records(config_key, raw_df)
    logger.info(f"({config_key}) Successfully loaded and processed {len(processed_df)} records.")
    return processed_df


def load_json_asset(config_key: str, filepath_override: Optional[str] = None) -> Optional[Union[Dict, List]]:
    """Loads a JSON config/asset file from a path or settings attribute."""
    config = DATA_CONFIG.get(config_key)
    if not isinstance(config, JsonConfig):
        logger.error(f"Invalid JSON config key: '{config_key}'")
        return None
    path_to_load = resolve_data_path(config_key, filepath_override)
    return robust_json_load(path_to_load)


def load_district_points(filepath_override: Optional[str] = None) -> pd.DataFrame:
    """Returns one row per district with its marker coordinates (district, lat, lon)."""
    geo_data = load_json_asset('district_points', filepath_override)
    if not geo_data or 'features' not in geo_data:
        return pd.DataFrame(columns=['district', 'lat', 'lon'])

    points = [
        {
            "district": feat["properties"]["district"],
            "lon": feat["geometry"]["coordinates"][0],
            "lat": feat["geometry"]["coordinates"][1],
        }
        for feat in geo_data.get("features", [])
        if feat.get("properties", {}).get("district") and feat.get("geometry", {}).get("type") == "Point"
    ]
    return pd.DataFrame(points, columns=['district', 'lat', 'lon'])
