# kmh_project_root/analytics/alerting.py
# SME PLATINUM STANDARD - VECTORIZED HEALTH ALERT ENGINE

"""
Derives prioritized health alerts from a snapshot of patients, disease cases
and districts.

The engine is a pure function of its inputs and the injected evaluation time
`now`: it never reads the clock, performs no I/O and does not mutate the
frames it is given. Alerts are recomputed from scratch on every call.

Malformed timestamps (a value is present but cannot be parsed) are handled by
skip-and-log: the offending record is left out of every rule and a warning is
logged, while the rest of the batch is evaluated normally.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from config import settings
from config.settings import AlertThresholds
from data_processing.helpers import (convert_to_bool, convert_to_numeric, records_to_frame,
                                     to_utc_series, to_utc_timestamp, unparseable_date_mask)
from data_processing.models import Outcome, Severity

logger = logging.getLogger(__name__)

# --- Enums and Dataclasses for Robustness and Clarity ---
class AlertType(str, Enum):
    VACCINE_DUE = "vaccine_due"
    MEDICATION_REMINDER = "medication_reminder"
    FOLLOW_UP = "follow_up"
    TB_SCREENING = "tb_screening"
    HIGH_RISK_AREA = "high_risk_area"

class AlertPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]

PRIORITY_RANK: Dict[AlertPriority, int] = {
    AlertPriority.URGENT: 4, AlertPriority.HIGH: 3, AlertPriority.MEDIUM: 2, AlertPriority.LOW: 1,
}

@dataclass(frozen=True)
class Alert:
    id: str
    type: AlertType
    priority: AlertPriority
    title: str
    message: str
    created_at: pd.Timestamp
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    district: Optional[str] = None
    due_date: Optional[pd.Timestamp] = None

    def to_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record['type'] = self.type.value
        record['priority'] = self.priority.value
        return record


def _text(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and np.isnan(value)) or value is pd.NA:
        return None
    return str(value)


def _format_date(ts: pd.Timestamp) -> str:
    return ts.strftime('%d %b %Y')


# --- Alert Generator ---
class HealthAlertGenerator:
    def __init__(
        self,
        patients: Any,
        cases: Any,
        districts: Any,
        now: Any,
        thresholds: Optional[AlertThresholds] = None,
    ):
        self.now = to_utc_timestamp(now)
        self.thresholds = thresholds or settings.ALERTS
        self.patients = self._prepare_patients(records_to_frame(patients))
        self.cases = self._prepare_cases(records_to_frame(cases))
        self.districts = self._prepare_districts(records_to_frame(districts))

    # --- Data preparation ---
    @staticmethod
    def _ensure_columns(df: pd.DataFrame, defaults: Dict[str, Any]) -> pd.DataFrame:
        for col, default in defaults.items():
            if col not in df.columns:
                df[col] = default
        return df

    @staticmethod
    def _parse_timestamps(df: pd.DataFrame, col: str, label: str) -> pd.DataFrame:
        parsed = to_utc_series(df[col])
        malformed = unparseable_date_mask(df[col])
        if malformed.any():
            bad_ids = df.loc[malformed, 'id'].astype(str).tolist()
            logger.warning(f"({label}) Skipping {len(bad_ids)} record(s) with unparseable '{col}': {bad_ids[:10]}")
        df = df.loc[~malformed].copy()
        df[col] = parsed.loc[~malformed]
        return df

    def _prepare_patients(self, df: pd.DataFrame) -> pd.DataFrame:
        df = self._ensure_columns(df, {'id': None, 'patient_id': None, 'name': None, 'district': None, 'migrant': False, 'last_checkup': pd.NaT})
        df['migrant'] = convert_to_bool(df['migrant'])
        return self._parse_timestamps(df, 'last_checkup', 'patients')

    def _prepare_cases(self, df: pd.DataFrame) -> pd.DataFrame:
        df = self._ensure_columns(df, {'id': None, 'patient_id': None, 'district': None, 'disease_name': None,
                                       'severity': None, 'outcome': None, 'admission_date': pd.NaT})
        return self._parse_timestamps(df, 'admission_date', 'disease_cases')

    def _prepare_districts(self, df: pd.DataFrame) -> pd.DataFrame:
        if 'overall_risk' not in df.columns:
            if 'risk_ratings.overall_risk' in df.columns:
                df = df.rename(columns={'risk_ratings.overall_risk': 'overall_risk'})
            elif 'risk_ratings' in df.columns:
                df['overall_risk'] = df['risk_ratings'].map(lambda r: r.get('overall_risk') if isinstance(r, dict) else np.nan)
        df = self._ensure_columns(df, {'district_name': None, 'overall_risk': np.nan})
        df['overall_risk'] = convert_to_numeric(df['overall_risk'])
        return df

    # --- Rules ---
    def _patient_alert(self, row: Any, alert_type: AlertType, priority: AlertPriority,
                       title: str, message: str, due_date: pd.Timestamp) -> Alert:
        return Alert(
            id=f"{alert_type.value}_{row.id}", type=alert_type, priority=priority,
            title=title, message=message, created_at=self.now,
            patient_id=_text(row.patient_id), patient_name=_text(row.name),
            district=_text(row.district), due_date=due_date,
        )

    def _vaccination_alerts(self) -> List[Alert]:
        p = self.patients
        if p.empty: return []
        days_since = (self.now - p['last_checkup']).dt.days
        overdue = days_since > self.thresholds.vaccine_due_days
        approaching = ~overdue & (days_since > self.thresholds.checkup_approaching_days)

        alerts = []
        one_year = pd.Timedelta(days=self.thresholds.vaccine_due_days)
        for row, is_overdue in zip(p.loc[overdue | approaching].itertuples(index=False), overdue[overdue | approaching]):
            due_date = row.last_checkup + one_year
            if is_overdue:
                alerts.append(self._patient_alert(
                    row, AlertType.VACCINE_DUE, AlertPriority.HIGH, "Annual Vaccination Due",
                    f"Patient {row.name} is due for annual vaccination (last checkup: {_format_date(row.last_checkup)})",
                    due_date))
            else:
                alerts.append(self._patient_alert(
                    row, AlertType.FOLLOW_UP, AlertPriority.MEDIUM, "Annual Checkup Approaching",
                    f"Patient {row.name} should schedule annual checkup soon", due_date))
        return alerts

    def _tb_screening_alerts(self) -> List[Alert]:
        p = self.patients
        if p.empty: return []
        # A migrant with no recorded checkup is screened immediately.
        interval = pd.Timedelta(days=self.thresholds.tb_screening_interval_days)
        lapsed = p['last_checkup'].isna() | ((self.now - p['last_checkup']) > interval)
        mask = p['migrant'] & lapsed
        return [
            self._patient_alert(
                row, AlertType.TB_SCREENING, AlertPriority.HIGH, "TB Screening Required",
                f"Migrant worker {row.name} requires TB screening (high-risk category)", self.now)
            for row in p.loc[mask].itertuples(index=False)
        ]

    def _medication_alerts(self) -> List[Alert]:
        c = self.cases
        if c.empty: return []
        days_since = (self.now - c['admission_date']).dt.days
        mask = (c['outcome'] == Outcome.UNDER_TREATMENT.value) & (days_since > self.thresholds.medication_review_days)

        alerts = []
        for row, days in zip(c.loc[mask].itertuples(index=False), days_since[mask]):
            priority = AlertPriority.URGENT if row.severity == Severity.CRITICAL.value else AlertPriority.MEDIUM
            alerts.append(Alert(
                id=f"{AlertType.MEDICATION_REMINDER.value}_{row.id}", type=AlertType.MEDICATION_REMINDER,
                priority=priority, title="Medication Follow-up Required",
                message=f"Patient with {row.disease_name} requires medication review ({int(days)} days since admission)",
                created_at=self.now, patient_id=_text(row.patient_id), district=_text(row.district), due_date=self.now,
            ))
        return alerts

    def _high_risk_area_alerts(self) -> List[Alert]:
        d = self.districts
        if d.empty: return []
        risky = d.loc[d['overall_risk'] > self.thresholds.high_risk_district_min_risk]
        if risky.empty: return []

        # Counts cases, not distinct patients: a readmission counts again.
        window = pd.Timedelta(days=self.thresholds.recent_case_window_days)
        recent = self.cases.loc[(self.now - self.cases['admission_date']) < window]
        recent_counts = recent.groupby('district').size() if not recent.empty else pd.Series(dtype=int)

        alerts = []
        for row in risky.itertuples(index=False):
            count = int(recent_counts.get(row.district_name, 0))
            if count > self.thresholds.high_risk_district_min_recent_cases:
                alerts.append(Alert(
                    id=f"{AlertType.HIGH_RISK_AREA.value}_{row.district_name}", type=AlertType.HIGH_RISK_AREA,
                    priority=AlertPriority.URGENT, title="High Risk Area Alert",
                    message=f"{row.district_name} district showing increased disease activity ({count} cases in last {self.thresholds.recent_case_window_days} days)",
                    created_at=self.now, district=_text(row.district_name), due_date=self.now,
                ))
        return alerts

    # --- Assembly ---
    @staticmethod
    def _deduplicate_alerts(alerts: List[Alert]) -> List[Alert]:
        seen, unique = set(), []
        for alert in alerts:
            if alert.id in seen:
                continue
            seen.add(alert.id)
            unique.append(alert)
        if len(unique) < len(alerts):
            logger.warning(f"Dropped {len(alerts) - len(unique)} duplicate alert(s); source snapshot contains repeated ids.")
        return unique

    @staticmethod
    def sort_alerts(alerts: List[Alert]) -> List[Alert]:
        """Priority rank descending, then newest first; sorted() is stable so remaining ties keep emission order."""
        return sorted(alerts, key=lambda a: (-a.priority.rank, -a.created_at.value))

    def generate(self) -> List[Alert]:
        emitted = (self._vaccination_alerts() + self._tb_screening_alerts()
                   + self._medication_alerts() + self._high_risk_area_alerts())
        alerts = self.sort_alerts(self._deduplicate_alerts(emitted))
        logger.info(f"Generated {len(alerts)} alerts from {len(self.patients)} patients, "
                    f"{len(self.cases)} cases and {len(self.districts)} districts.")
        return alerts


def generate_health_alerts(
    patients: Any,
    cases: Any,
    districts: Any,
    now: Any,
    thresholds: Optional[AlertThresholds] = None,
) -> List[Alert]:
    """
    Public factory function for the alert engine.

    Accepts DataFrames, lists of dicts or lists of record models for each
    collection. `now` is the evaluation timestamp; naive values are read as UTC.
    Returns alerts ordered by priority (urgent first) with unique ids.
    """
    return HealthAlertGenerator(patients, cases, districts, now, thresholds).generate()


def alerts_to_frame(alerts: List[Alert]) -> pd.DataFrame:
    columns = ['id', 'type', 'priority', 'title', 'message', 'patient_id', 'patient_name', 'district', 'due_date', 'created_at']
    return pd.DataFrame([a.to_dict() for a in alerts], columns=columns)
