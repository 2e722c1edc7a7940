# kmh_project_root/config/settings.py
# SME PLATINUM STANDARD - CENTRALIZED CONFIGURATION HUB (KERALA MIGRANT HEALTH)

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, DirectoryPath, Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

settings_logger = logging.getLogger(__name__)

# --- Nested Models for Structured Configuration ---
class AlertThresholds(BaseModel):
    vaccine_due_days: int = 365; checkup_approaching_days: int = 300
    tb_screening_interval_days: int = 180; medication_review_days: int = 14
    recent_case_window_days: int = 7; high_risk_district_min_risk: float = 6.0
    high_risk_district_min_recent_cases: int = 5

class SeverityThresholds(BaseModel):
    """Total-case cut-offs used to colour district markers on the health map."""
    moderate_min_cases: int = 2500; high_min_cases: int = 4500
    color_low: str = "#2ecc71"; color_moderate: str = "#f39c12"; color_high: str = "#e74c3c"

# --- Main Settings Class ---
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='KMH_', case_sensitive=False, env_file='.env', env_file_encoding='utf-8', extra='ignore')

    PROJECT_ROOT_DIR: DirectoryPath = Path(__file__).resolve().parent.parent
    APP_NAME: str = "Kerala Migrant Health Monitor"; APP_VERSION: str = "1.2.0"
    ORGANIZATION_NAME: str = "Kerala Migrant Health Programme"; SUPPORT_CONTACT_INFO: str = "support@keralamigranthealth.org"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    # Paths are plain Path (not FilePath) so a missing demo CSV surfaces as a
    # data-access failure at read time instead of blocking start-up.
    ASSETS_DIR: Path; DATA_SOURCES_DIR: Path
    STYLE_CSS_PATH: Path; DISTRICT_POINTS_PATH: Path
    PATIENTS_PATH: Path; DISEASE_CASES_PATH: Path; DISTRICTS_PATH: Path
    HOSPITALS_PATH: Path; PROFILES_PATH: Path

    @model_validator(mode='before')
    @classmethod
    def set_default_paths(cls, values: Any) -> Any:
        if isinstance(values, dict):
            root = Path(values.get('PROJECT_ROOT_DIR', Path(__file__).resolve().parent.parent))
            assets = root / "assets"; data = root / "data_sources"
            values.setdefault('ASSETS_DIR', assets); values.setdefault('DATA_SOURCES_DIR', data)
            values.setdefault('STYLE_CSS_PATH', assets / "style_web_reports.css"); values.setdefault('DISTRICT_POINTS_PATH', assets / "kerala_districts.geojson")
            values.setdefault('PATIENTS_PATH', data / "patients.csv"); values.setdefault('DISEASE_CASES_PATH', data / "disease_cases.csv")
            values.setdefault('DISTRICTS_PATH', data / "districts.csv"); values.setdefault('HOSPITALS_PATH', data / "hospitals.csv")
            values.setdefault('PROFILES_PATH', data / "profiles.csv")
        return values

    # --- Backend-as-a-service (record store + auth) ---
    RECORD_STORE_BACKEND: Literal["csv", "rest"] = "csv"
    SUPABASE_URL: Optional[str] = Field(None, description="Set via KMH_SUPABASE_URL env var")
    SUPABASE_ANON_KEY: Optional[str] = Field(None, description="Set via KMH_SUPABASE_ANON_KEY env var")
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # --- External district analytics service ---
    DISTRICT_API_BASE_URL: str = "https://kerala-migrant-health-data-clustering.onrender.com"

    KERALA_DISTRICTS: List[str] = [
        'Thiruvananthapuram', 'Kollam', 'Pathanamthitta', 'Alappuzha',
        'Kottayam', 'Idukki', 'Ernakulam', 'Thrissur', 'Palakkad',
        'Malappuram', 'Kozhikode', 'Wayanad', 'Kannur', 'Kasaragod',
    ]
    SEVERITY_COLORS: Dict[str, str] = {"Mild": "#16a34a", "Moderate": "#eab308", "Severe": "#ea580c", "Critical": "#dc2626"}
    PRIORITY_COLORS: Dict[str, str] = {"urgent": "#dc2626", "high": "#ea580c", "medium": "#eab308", "low": "#2563eb"}

    ALERTS: AlertThresholds = AlertThresholds(); MAP_SEVERITY: SeverityThresholds = SeverityThresholds()

    WEB_CACHE_TTL_SECONDS: int = 300
    DASHBOARD_CASE_SAMPLE_LIMIT: int = 1000; DASHBOARD_TOP_N: int = 10; DASHBOARD_TREND_DAYS: int = 30
    MAPBOX_STYLE: str = "open-street-map"; MAP_DEFAULT_CENTER: Tuple[float, float] = (10.8505, 76.2711); MAP_DEFAULT_ZOOM: int = 6
    MAP_HEIGHT: int = 500

    COLOR_PRIMARY: str = "#1E3A8A"; COLOR_SECONDARY: str = "#546E7A"; COLOR_ACCENT: str = "#F97316"
    COLOR_BACKGROUND_PAGE: str = "#F9FAFB"; COLOR_BACKGROUND_CONTENT: str = "#FFFFFF"
    COLOR_TEXT_PRIMARY: str = "#111827"; COLOR_TEXT_HEADINGS: str = "#1E3A8A"; COLOR_TEXT_MUTED: str = "#6B7280"
    COLOR_BORDER: str = "#E5E7EB"; COLOR_RISK_HIGH: str = "#DC2626"; COLOR_RISK_MODERATE: str = "#EAB308"
    COLOR_RISK_LOW: str = "#16A34A"; COLOR_MIGRANT: str = "#F97316"; COLOR_LOCAL: str = "#3B82F6"
    PLOTLY_COLORWAY: List[str] = [COLOR_PRIMARY, COLOR_MIGRANT, COLOR_LOCAL, COLOR_RISK_MODERATE, COLOR_RISK_HIGH]

    @computed_field
    @property
    def APP_FOOTER_TEXT(self) -> str: return f"© {datetime.now().year} {self.ORGANIZATION_NAME}. Migrant worker health surveillance for Kerala."

try:
    settings = Settings()
    settings_logger.info(f"Settings loaded successfully. App: {settings.APP_NAME} v{settings.APP_VERSION} (store: {settings.RECORD_STORE_BACKEND})")
except Exception as e:
    settings_logger.critical(f"FATAL: Could not initialize Pydantic settings. Error: {e}", exc_info=True)
    raise
