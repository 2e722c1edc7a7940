# kmh_project_root/data_processing/aggregation.py
# SME PLATINUM STANDARD - DASHBOARD AGGREGATIONS

"""
Pure aggregations behind the dashboard KPI cards and charts. Every function
takes the sampled disease-case frame (newest admissions first) and returns a
small DataFrame or dict ready for the plotting factories.
"""

import logging
from typing import Any, Dict

import pandas as pd

from config import settings
from .helpers import convert_to_bool, to_utc_series, to_utc_timestamp
from .models import Severity

logger = logging.getLogger(__name__)

SEVERE_LEVELS = [Severity.SEVERE.value, Severity.CRITICAL.value]


def _prepare_cases(cases_df: pd.DataFrame) -> pd.DataFrame:
    df = cases_df.copy() if isinstance(cases_df, pd.DataFrame) else pd.DataFrame()
    for col in ['district', 'disease_name', 'severity']:
        if col not in df.columns:
            df[col] = None
    df['is_migrant_patient'] = convert_to_bool(df['is_migrant_patient']) if 'is_migrant_patient' in df.columns else False
    df['admission_date'] = to_utc_series(df['admission_date']) if 'admission_date' in df.columns else pd.Series(pd.NaT, index=df.index, dtype='datetime64[ns, UTC]')
    return df


def calculate_dashboard_stats(cases_df: pd.DataFrame, total_patients: int, total_cases: int, now: Any) -> Dict[str, int]:
    """
    KPI card values. `total_patients` and `total_cases` are exact store counts;
    the remaining figures are derived from the case sample.
    """
    df = _prepare_cases(cases_df)
    week_ago = to_utc_timestamp(now) - pd.Timedelta(days=settings.ALERTS.recent_case_window_days)
    return {
        'total_patients': int(total_patients or 0),
        'total_cases': int(total_cases or 0),
        'migrant_cases': int(df['is_migrant_patient'].sum()),
        'severe_cases': int(df['severity'].isin(SEVERE_LEVELS).sum()),
        'recent_cases': int((df['admission_date'] >= week_ago).sum()),
        'districts_affected': int(df['district'].nunique(dropna=True)),
    }


def district_case_breakdown(cases_df: pd.DataFrame, top_n: int = 10) -> pd.DataFrame:
    columns = ['name', 'total', 'migrant', 'local']
    df = _prepare_cases(cases_df).dropna(subset=['district'])
    if df.empty:
        return pd.DataFrame(columns=columns)
    grouped = df.groupby('district')['is_migrant_patient'].agg(total='size', migrant='sum')
    grouped['local'] = grouped['total'] - grouped['migrant']
    grouped = grouped.astype(int).reset_index().rename(columns={'district': 'name'})
    return grouped.sort_values('total', ascending=False, kind='stable').head(top_n).reset_index(drop=True)[columns]


def severity_breakdown(cases_df: pd.DataFrame) -> pd.DataFrame:
    """All four severity levels in fixed order with their chart colours; zero counts included."""
    counts = _prepare_cases(cases_df)['severity'].value_counts()
    return pd.DataFrame([
        {'name': level.value, 'value': int(counts.get(level.value, 0)), 'color': settings.SEVERITY_COLORS[level.value]}
        for level in Severity
    ])


def case_trend(cases_df: pd.DataFrame, now: Any, days: int = 30) -> pd.DataFrame:
    """Daily case and migrant-case counts for admissions in the last `days`, oldest first."""
    columns = ['date', 'cases', 'migrant']
    df = _prepare_cases(cases_df)
    since = to_utc_timestamp(now) - pd.Timedelta(days=days)
    df = df.loc[df['admission_date'] >= since]
    if df.empty:
        return pd.DataFrame(columns=columns)
    df = df.assign(date=df['admission_date'].dt.strftime('%Y-%m-%d'))
    trend = df.groupby('date')['is_migrant_patient'].agg(cases='size', migrant='sum').astype(int)
    return trend.reset_index().sort_values('date').reset_index(drop=True)[columns]


def top_diseases(cases_df: pd.DataFrame, top_n: int = 10) -> pd.DataFrame:
    df = _prepare_cases(cases_df).dropna(subset=['disease_name'])
    if df.empty:
        return pd.DataFrame(columns=['name', 'cases'])
    counts = df['disease_name'].value_counts(sort=False).rename_axis('name').reset_index(name='cases')
    return counts.sort_values('cases', ascending=False, kind='stable').head(top_n).reset_index(drop=True)
