# kmh_project_root/data_processing/helpers.py
# SME PLATINUM STANDARD (V4 - Fluent API & Record Shape Adaptation)

"""
A collection of robust utility functions and a fluent DataPipeline class for
turning raw record-store rows into analytics-ready DataFrames.
"""
import json
import logging
import re
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# --- Standalone Utility Functions ---

NA_REGEX_PATTERN = re.compile(
    r'(?i)^\s*(nan|none|n/a|#n/a|np\.nan|nat|<na>|null|nil|na|undefined|-|)\s*$'
)

TRUTHY_STRINGS = {'true', 't', 'yes', 'y', '1'}


def convert_to_numeric(data_input: Any, default_value: Any = np.nan, target_type: Optional[Type] = None) -> Any:
    """
    Robustly converts various inputs to a numeric pandas Series or scalar,
    handling common "Not Available" string representations.
    """
    is_series = isinstance(data_input, pd.Series)
    series = data_input if is_series else pd.Series([data_input], dtype=object)

    if pd.api.types.is_object_dtype(series.dtype):
        series = series.replace(NA_REGEX_PATTERN, np.nan, regex=True)

    numeric_series = pd.to_numeric(series, errors='coerce')
    if not pd.isna(default_value):
        numeric_series = numeric_series.fillna(default_value)

    if target_type is int and pd.api.types.is_numeric_dtype(numeric_series.dtype):
        numeric_series = numeric_series.astype(pd.Int64Dtype() if numeric_series.isnull().any() else int)
    elif target_type is float:
        numeric_series = numeric_series.astype(float)

    return numeric_series if is_series else (numeric_series.iloc[0] if not numeric_series.empty else default_value)


def convert_to_bool(series: pd.Series, default_value: bool = False) -> pd.Series:
    """Coerces booleans stored as bools, 0/1 or 'true'/'false' strings."""
    if pd.api.types.is_bool_dtype(series.dtype):
        return series.fillna(default_value).astype(bool)
    as_text = series.astype(object).where(series.notna(), None)
    return as_text.map(lambda v: default_value if v is None else str(v).strip().lower() in TRUTHY_STRINGS).astype(bool)


def to_utc_timestamp(value: Union[str, datetime, pd.Timestamp]) -> pd.Timestamp:
    """Converts a scalar to a tz-aware UTC Timestamp; naive values are taken as UTC."""
    ts = pd.Timestamp(value)
    return ts.tz_localize('UTC') if ts.tzinfo is None else ts.tz_convert('UTC')


def to_utc_series(series: pd.Series) -> pd.Series:
    """Parses a column to tz-aware UTC datetimes; unparseable values become NaT."""
    cleaned = series.astype(object).replace(NA_REGEX_PATTERN, np.nan, regex=True) if pd.api.types.is_object_dtype(series.dtype) else series
    return pd.to_datetime(cleaned, errors='coerce', utc=True, format='mixed')


def unparseable_date_mask(series: pd.Series) -> pd.Series:
    """True where a value is present but cannot be parsed as a date."""
    present = series.notna() & ~series.astype(str).str.match(NA_REGEX_PATTERN)
    return present & to_utc_series(series).isna()


def records_to_frame(records: Optional[Union[pd.DataFrame, Iterable[Any]]]) -> pd.DataFrame:
    """Accepts a DataFrame, a list of dicts or a list of pydantic models and returns a DataFrame."""
    if records is None:
        return pd.DataFrame()
    if isinstance(records, pd.DataFrame):
        return records.copy()
    rows: List[Mapping[str, Any]] = [r.model_dump() if isinstance(r, BaseModel) else dict(r) for r in records]
    if not rows:
        return pd.DataFrame()
    # json_normalize flattens nested objects such as district risk_ratings.
    return pd.json_normalize(rows, sep='.')


def robust_json_load(file_path: Union[str, Path]) -> Optional[Union[Dict, List]]:
    """Loads JSON data from a file with robust error handling and UTF-8 encoding."""
    path_obj = Path(file_path)
    if not path_obj.is_file():
        logger.error(f"JSON load failed: File not found at {path_obj.resolve()}")
        return None
    try:
        with path_obj.open('r', encoding='utf-8') as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"Error decoding JSON from {path_obj.resolve()}: {e}")
        return None


class DataPipeline:
    """
    A fluent interface for applying a sequence of data processing operations.

    Usage:
        processed_df = (DataPipeline(raw_df)
                        .clean_column_names()
                        .flatten_nested_columns({'risk_ratings.overall_risk': 'overall_risk'})
                        .convert_date_columns(['last_checkup'])
                        .standardize_missing_values({'age': 0, 'district': 'Unknown'})
                        .get_dataframe())
    """
    def __init__(self, df: pd.DataFrame):
        if not isinstance(df, pd.DataFrame):
            raise TypeError("DataPipeline must be initialized with a pandas DataFrame.")
        self.df = df.copy()

    def get_dataframe(self) -> pd.DataFrame:
        """Returns the processed DataFrame."""
        return self.df

    def clean_column_names(self) -> 'DataPipeline':
        """
        Cleans DataFrame column names for consistency and usability.
        (Lowercase, underscore-separated, no duplicates.) Dots are kept so
        nested JSON paths survive until flatten_nested_columns runs.
        """
        if len(self.df.columns) == 0:
            return self

        new_cols = (self.df.columns.astype(str).str.strip().str.lower()
                    .str.replace(r'[^0-9a-z_.]+', '_', regex=True)
                    .str.replace(r'__+', '_', regex=True).str.strip('_'))
        new_cols = [f"unnamed_col_{i}" if not name else name for i, name in enumerate(new_cols)]

        counts = Counter(new_cols)
        if max(counts.values()) > 1:
            seen_counts: Counter = Counter()
            final_cols = []
            for name in new_cols:
                if counts[name] > 1:
                    seen_counts[name] += 1
                    final_cols.append(f"{name}_{seen_counts[name]-1}")
                else:
                    final_cols.append(name)
            self.df.columns = final_cols
        else:
            self.df.columns = new_cols
        return self

    def flatten_nested_columns(self, flatten_map: Dict[str, str]) -> 'DataPipeline':
        """
        Lifts nested paths (already split by json_normalize, e.g.
        'risk_ratings.overall_risk') to flat names. A flat column that is
        already present wins over the nested one.
        """
        for nested, flat in flatten_map.items():
            if nested not in self.df.columns:
                continue
            if flat in self.df.columns:
                self.df[flat] = self.df[flat].fillna(self.df[nested])
                self.df = self.df.drop(columns=[nested])
            else:
                self.df = self.df.rename(columns={nested: flat})
        return self

    def cast_column_types(self, dtype_map: Dict[str, str]) -> 'DataPipeline':
        for col, dtype in dtype_map.items():
            if col not in self.df.columns:
                continue
            if dtype == 'str':
                self.df[col] = self.df[col].astype(object).where(self.df[col].notna(), None)
                self.df[col] = self.df[col].map(lambda v: v if v is None else str(v))
            elif dtype == 'bool':
                self.df[col] = convert_to_bool(self.df[col])
            elif dtype == 'float':
                self.df[col] = convert_to_numeric(self.df[col], target_type=float)
            elif dtype == 'int':
                self.df[col] = convert_to_numeric(self.df[col], target_type=int)
        return self

    def standardize_missing_values(self, default_values: Dict[str, Any]) -> 'DataPipeline':
        """
        Standardizes various "Not Available" formats to np.nan and then fills
        with provided defaults, inferring type from the default value.
        """
        for col, default in default_values.items():
            if col not in self.df.columns:
                self.df[col] = default
                continue
            if isinstance(default, bool):
                self.df[col] = convert_to_bool(self.df[col], default)
            elif isinstance(default, (int, float, np.number)):
                target_type = int if isinstance(default, int) else float
                self.df[col] = convert_to_numeric(self.df[col], default_value=default, target_type=target_type)
            else:
                series = self.df[col].astype(object).replace(NA_REGEX_PATTERN, np.nan, regex=True)
                self.df[col] = series.fillna(str(default)).astype(str).str.strip()
        return self

    def drop_unparseable_dates(self, date_columns: List[str], label: str = "records") -> 'DataPipeline':
        """Skips rows whose date value is present but unparseable, logging the affected ids."""
        for col in date_columns:
            if col not in self.df.columns:
                continue
            bad = unparseable_date_mask(self.df[col])
            if bad.any():
                bad_ids = self.df.loc[bad, 'id'].astype(str).tolist() if 'id' in self.df.columns else list(self.df.index[bad])
                logger.warning(f"({label}) Skipping {int(bad.sum())} row(s) with unparseable '{col}': {bad_ids[:10]}")
                self.df = self.df.loc[~bad]
        return self

    def convert_date_columns(self, date_columns: List[str]) -> 'DataPipeline':
        """Converts specified columns to tz-aware UTC datetimes, coercing errors to NaT."""
        for col in date_columns:
            if col in self.df.columns:
                self.df[col] = to_utc_series(self.df[col])
        return self
