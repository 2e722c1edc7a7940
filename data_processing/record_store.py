# kmh_project_root/data_processing/record_store.py
# SME PLATINUM STANDARD - BACKEND RECORD STORE ADAPTERS

"""
Adapters for the backend-as-a-service that owns patients, disease cases,
districts and hospitals.

Two interchangeable backends implement the same async `RecordStore` contract:

* `RestRecordStore` talks to the hosted PostgREST endpoint over httpx.
* `CsvRecordStore` serves the local demo dataset in `data_sources/`.

Every read returns an analytics-ready DataFrame (see `loaders.prepare_records`)
and every failure is raised as `RecordStoreError`; nothing is swallowed into an
empty frame, so callers can tell "no data" from "store unavailable".
"""

import asyncio
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Type

import httpx
import pandas as pd
from pydantic import BaseModel, ValidationError

from config import settings
from .errors import RecordStoreError
from .loaders import load_records_csv, prepare_records, resolve_data_path
from .models import DiseaseCase, District, Hospital, Patient

logger = logging.getLogger(__name__)

TABLE_MODELS: Dict[str, Type[BaseModel]] = {
    'patients': Patient,
    'disease_cases': DiseaseCase,
    'districts': District,
    'hospitals': Hospital,
}


class RecordStore(Protocol):
    async def list_patients(self, district: Optional[str] = None) -> pd.DataFrame: ...
    async def list_disease_cases(self, district: Optional[str] = None, limit: Optional[int] = None) -> pd.DataFrame: ...
    async def list_districts(self) -> pd.DataFrame: ...
    async def list_hospitals(self, district: Optional[str] = None) -> pd.DataFrame: ...
    async def count_patients(self) -> int: ...
    async def count_disease_cases(self) -> int: ...
    async def create_patient(self, data: Dict[str, Any], created_by: Optional[str] = None) -> Dict[str, Any]: ...
    async def update_patient(self, record_id: str, data: Dict[str, Any]) -> Dict[str, Any]: ...
    async def delete_patient(self, record_id: str) -> None: ...


def _validate_rows(table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Skips and logs rows that fail the table schema instead of failing the whole read."""
    model = TABLE_MODELS.get(table)
    if model is None:
        return rows
    valid_rows = []
    for row in rows:
        try:
            model.model_validate(row)
            valid_rows.append(row)
        except ValidationError as e:
            logger.warning(f"({table}) Skipping malformed row id={row.get('id')}: {e.error_count()} validation error(s).")
    return valid_rows


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- Hosted Backend (PostgREST over HTTP) ---

class RestRecordStore:
    """Record store backed by the hosted PostgREST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
            "Accept": "application/json",
        }
        return httpx.AsyncClient(base_url=self.rest_url, headers=headers, timeout=self.timeout, transport=self._transport)

    async def _request(self, operation: str, method: str, table: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, f"/{table}", **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            logger.error(f"({operation}) Record store returned {e.response.status_code}: {e.response.text[:200]}")
            raise RecordStoreError(operation, e.response.text or str(e), e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error(f"({operation}) Record store request failed: {e}")
            raise RecordStoreError(operation, str(e)) from e

    async def _select(self, operation: str, table: str, params: Dict[str, Any]) -> pd.DataFrame:
        response = await self._request(operation, "GET", table, params={"select": "*", **params})
        try:
            rows = response.json()
        except ValueError as e:
            raise RecordStoreError(operation, f"invalid JSON body: {e}") from e
        if not isinstance(rows, list):
            raise RecordStoreError(operation, "expected a JSON array of rows")
        return prepare_records(table, _validate_rows(table, rows))

    async def _count(self, operation: str, table: str) -> int:
        response = await self._request(
            operation, "HEAD", table,
            params={"select": "id"}, headers={"Prefer": "count=exact", "Range-Unit": "items", "Range": "0-0"},
        )
        content_range = response.headers.get("content-range", "")
        total = content_range.rsplit("/", 1)[-1]
        if not total.isdigit():
            raise RecordStoreError(operation, f"unexpected Content-Range header '{content_range}'")
        return int(total)

    async def list_patients(self, district: Optional[str] = None) -> pd.DataFrame:
        params = {"order": "created_at.desc"}
        if district:
            params["district"] = f"eq.{district}"
        return await self._select("list patients", "patients", params)

    async def list_disease_cases(self, district: Optional[str] = None, limit: Optional[int] = None) -> pd.DataFrame:
        params: Dict[str, Any] = {"order": "admission_date.desc"}
        if district:
            params["district"] = f"eq.{district}"
        if limit:
            params["limit"] = limit
        return await self._select("list disease cases", "disease_cases", params)

    async def list_districts(self) -> pd.DataFrame:
        return await self._select("list districts", "districts", {})

    async def list_hospitals(self, district: Optional[str] = None) -> pd.DataFrame:
        params = {"order": "name.asc"}
        if district:
            params["district"] = f"eq.{district}"
        return await self._select("list hospitals", "hospitals", params)

    async def count_patients(self) -> int:
        return await self._count("count patients", "patients")

    async def count_disease_cases(self) -> int:
        return await self._count("count disease cases", "disease_cases")

    async def create_patient(self, data: Dict[str, Any], created_by: Optional[str] = None) -> Dict[str, Any]:
        payload = {**data, "created_by": created_by}
        response = await self._request(
            "create patient", "POST", "patients", json=payload, headers={"Prefer": "return=representation"},
        )
        created = response.json()
        logger.info(f"Created patient {payload.get('patient_id')}.")
        return created[0] if isinstance(created, list) and created else payload

    async def update_patient(self, record_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "update patient", "PATCH", "patients",
            params={"id": f"eq.{record_id}"}, json=data, headers={"Prefer": "return=representation"},
        )
        updated = response.json()
        if not updated:
            raise RecordStoreError("update patient", f"no patient with id '{record_id}'", 404)
        return updated[0]

    async def delete_patient(self, record_id: str) -> None:
        await self._request("delete patient", "DELETE", "patients", params={"id": f"eq.{record_id}"})
        logger.info(f"Deleted patient record {record_id}.")


# --- Local Demo Backend (CSV files) ---

class CsvRecordStore:
    """
    Record store over the demo CSV files. Reads run in worker threads so the
    snapshot fetches still overlap; writes are serialized per process.
    """
    _write_lock = threading.Lock()

    def __init__(self, path_overrides: Optional[Dict[str, Path]] = None):
        self.path_overrides = path_overrides or {}

    def _path(self, key: str) -> Path:
        return resolve_data_path(key, self.path_overrides.get(key))

    async def _load(self, key: str) -> pd.DataFrame:
        return await asyncio.to_thread(load_records_csv, key, self.path_overrides.get(key))

    @staticmethod
    def _by_district(df: pd.DataFrame, district: Optional[str]) -> pd.DataFrame:
        if district and 'district' in df.columns:
            return df[df['district'] == district].reset_index(drop=True)
        return df

    async def list_patients(self, district: Optional[str] = None) -> pd.DataFrame:
        df = self._by_district(await self._load('patients'), district)
        if 'created_at' in df.columns:
            df = df.sort_values('created_at', ascending=False, na_position='last', kind='stable').reset_index(drop=True)
        return df

    async def list_disease_cases(self, district: Optional[str] = None, limit: Optional[int] = None) -> pd.DataFrame:
        df = self._by_district(await self._load('disease_cases'), district)
        df = df.sort_values('admission_date', ascending=False, na_position='last', kind='stable').reset_index(drop=True)
        return df.head(limit) if limit else df

    async def list_districts(self) -> pd.DataFrame:
        return await self._load('districts')

    async def list_hospitals(self, district: Optional[str] = None) -> pd.DataFrame:
        df = self._by_district(await self._load('hospitals'), district)
        return df.sort_values('name', kind='stable').reset_index(drop=True)

    async def count_patients(self) -> int:
        return len(await self._load('patients'))

    async def count_disease_cases(self) -> int:
        return len(await self._load('disease_cases'))

    def _read_raw(self, key: str) -> pd.DataFrame:
        path = self._path(key)
        if not path.is_file():
            raise RecordStoreError(f"write {key}", f"CSV file not found at {path}")
        return pd.read_csv(path, dtype=str, keep_default_na=False)

    def _write_raw(self, key: str, df: pd.DataFrame) -> None:
        df.to_csv(self._path(key), index=False)

    @staticmethod
    def _serialize(data: Dict[str, Any]) -> Dict[str, str]:
        return {k: "" if v is None else (str(v).lower() if isinstance(v, bool) else str(v)) for k, v in data.items()}

    async def create_patient(self, data: Dict[str, Any], created_by: Optional[str] = None) -> Dict[str, Any]:
        now_iso = _utc_now_iso()
        record = {"id": str(uuid.uuid4()), **data, "created_by": created_by, "created_at": now_iso, "updated_at": now_iso}
        with self._write_lock:
            df = self._read_raw('patients')
            df = pd.concat([df, pd.DataFrame([self._serialize(record)])], ignore_index=True).fillna("")
            self._write_raw('patients', df)
        logger.info(f"Created patient {record.get('patient_id')} in local store.")
        return record

    async def update_patient(self, record_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        changes = {**data, "updated_at": _utc_now_iso()}
        with self._write_lock:
            df = self._read_raw('patients')
            mask = df['id'] == str(record_id)
            if not mask.any():
                raise RecordStoreError("update patient", f"no patient with id '{record_id}'", 404)
            for col, value in self._serialize(changes).items():
                if col not in df.columns:
                    df[col] = ""
                df.loc[mask, col] = value
            self._write_raw('patients', df)
            return df.loc[mask].iloc[0].to_dict()

    async def delete_patient(self, record_id: str) -> None:
        with self._write_lock:
            df = self._read_raw('patients')
            remaining = df[df['id'] != str(record_id)]
            if len(remaining) == len(df):
                raise RecordStoreError("delete patient", f"no patient with id '{record_id}'", 404)
            self._write_raw('patients', remaining)
        logger.info(f"Deleted patient record {record_id} from local store.")


def build_record_store(access_token: Optional[str] = None) -> RecordStore:
    """Returns the record store selected by settings.RECORD_STORE_BACKEND."""
    if settings.RECORD_STORE_BACKEND == "rest":
        if not settings.SUPABASE_URL or not settings.SUPABASE_ANON_KEY:
            raise RecordStoreError("configure store", "KMH_SUPABASE_URL and KMH_SUPABASE_ANON_KEY must be set for the rest backend")
        return RestRecordStore(
            settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY,
            access_token=access_token, timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    return CsvRecordStore()
