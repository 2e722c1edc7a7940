# kmh_project_root/analytics/district_insights.py
# SME PLATINUM STANDARD - DISTRICT DISEASE SUMMARY CLIENT

"""
Client for the external district analytics service, which returns a
per-disease summary for one district:

    {"disease_summary": {"Dengue": {"cases": 1200,
                                    "mainly_affected": {"age_group": "20-40", "gender": "Male"},
                                    "possible_causes": ["Stagnant water", ...]}}}

Map markers degrade silently to an empty summary (green) when the service is
down; the info panel uses `fetch_district_info`, which raises so the page can
show an error state.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
import pandas as pd

from config import settings
from config.settings import SeverityThresholds

logger = logging.getLogger(__name__)

DiseaseSummary = Dict[str, Dict[str, Any]]


class DistrictInsightsError(Exception):
    def __init__(self, district: str, message: str):
        self.district = district
        super().__init__(f"{district}: {message}")


class DistrictInsightsClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.DISTRICT_API_BASE_URL).rstrip('/')
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _get_info(self, client: httpx.AsyncClient, district: str) -> Dict[str, Any]:
        try:
            response = await client.get("/district_info", params={"district": district})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise DistrictInsightsError(district, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise DistrictInsightsError(district, f"invalid JSON response: {e}") from e
        if not isinstance(data, dict):
            raise DistrictInsightsError(district, "unexpected response shape")
        return data

    async def fetch_district_info(self, district: str) -> Dict[str, Any]:
        """Full response for one district. Raises DistrictInsightsError on any failure."""
        async with self._client() as client:
            data = await self._get_info(client, district)
        logger.info(f"Fetched district info for {district} ({len(data.get('disease_summary') or {})} diseases).")
        return data

    async def fetch_district_summary(self, district: str, client: Optional[httpx.AsyncClient] = None) -> DiseaseSummary:
        """The `disease_summary` of one district, or {} if the service fails."""
        try:
            if client is not None:
                data = await self._get_info(client, district)
            else:
                async with self._client() as own_client:
                    data = await self._get_info(own_client, district)
        except DistrictInsightsError as e:
            logger.warning(f"District summary unavailable, using empty summary. {e}")
            return {}
        summary = data.get('disease_summary')
        return summary if isinstance(summary, dict) else {}

    async def fetch_all_summaries(self, districts: List[str]) -> Dict[str, DiseaseSummary]:
        async with self._client() as client:
            summaries = await asyncio.gather(*(self.fetch_district_summary(d, client) for d in districts))
        return dict(zip(districts, summaries))


# --- Summary helpers ---

def total_cases(summary: Optional[DiseaseSummary]) -> int:
    total = 0
    for details in (summary or {}).values():
        cases = details.get('cases') if isinstance(details, dict) else None
        if isinstance(cases, (int, float)) and not pd.isna(cases):
            total += int(cases)
    return total


def severity_color(summary: Optional[DiseaseSummary], thresholds: Optional[SeverityThresholds] = None) -> str:
    t = thresholds or settings.MAP_SEVERITY
    cases = total_cases(summary)
    if cases < t.moderate_min_cases:
        return t.color_low
    if cases < t.high_min_cases:
        return t.color_moderate
    return t.color_high


def summary_to_frame(summary: Optional[DiseaseSummary]) -> pd.DataFrame:
    """One row per disease, most cases first, for the info panel."""
    columns = ['disease', 'cases', 'age_group', 'gender', 'possible_causes']
    rows = []
    for disease, details in (summary or {}).items():
        details = details if isinstance(details, dict) else {}
        affected = details.get('mainly_affected') or {}
        rows.append({
            'disease': disease,
            'cases': details.get('cases') or 0,
            'age_group': affected.get('age_group'),
            'gender': affected.get('gender'),
            'possible_causes': ", ".join(details.get('possible_causes') or []),
        })
    if not rows:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(rows, columns=columns)
    return df.sort_values('cases', ascending=False, kind='stable').reset_index(drop=True)
