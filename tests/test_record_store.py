# kmh_project_root/tests/test_record_store.py
# SME PLATINUM STANDARD - RECORD STORE ADAPTER TESTS

import asyncio
import json

import httpx
import pandas as pd
import pytest

from data_processing import CsvRecordStore, RecordStoreError, RestRecordStore
from tests.conftest import make_case, make_district, make_patient


def _rest_store(handler, token=None):
    return RestRecordStore("https://example.supabase.co/", "anon-key", access_token=token,
                           transport=httpx.MockTransport(handler))


def _csv_store(data_dir):
    return CsvRecordStore({
        'patients': data_dir / "patients.csv",
        'disease_cases': data_dir / "disease_cases.csv",
        'districts': data_dir / "districts.csv",
    })


# --- RestRecordStore ---
def test_rest_list_patients_sends_filter_and_auth_headers():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[make_patient("p1", 400, district="Kozhikode")])

    df = asyncio.run(_rest_store(handler, token="user-jwt").list_patients("Kozhikode"))
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/patients"
    assert request.url.params["select"] == "*"
    assert request.url.params["district"] == "eq.Kozhikode"
    assert request.url.params["order"] == "created_at.desc"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer user-jwt"
    assert len(df) == 1
    assert isinstance(df.loc[0, 'last_checkup'], pd.Timestamp)


def test_rest_anonymous_requests_use_api_key_as_bearer():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    asyncio.run(_rest_store(handler).list_districts())
    assert seen[0].headers["authorization"] == "Bearer anon-key"
    assert "district" not in seen[0].url.params


def test_rest_case_listing_honours_limit():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[make_case("c1", 3)])

    asyncio.run(_rest_store(handler).list_disease_cases(limit=1000))
    assert seen[0].url.params["limit"] == "1000"
    assert seen[0].url.params["order"] == "admission_date.desc"


def test_rest_districts_are_flattened():
    def handler(request):
        return httpx.Response(200, json=[make_district("Idukki", 3.2)])

    df = asyncio.run(_rest_store(handler).list_districts())
    assert df.loc[0, 'overall_risk'] == pytest.approx(3.2)
    assert 'risk_ratings.overall_risk' not in df.columns


def test_rest_malformed_rows_are_skipped():
    def handler(request):
        broken = make_patient("bad", 10)
        del broken["name"]
        return httpx.Response(200, json=[broken, make_patient("ok", 10)])

    df = asyncio.run(_rest_store(handler).list_patients())
    assert df['id'].tolist() == ["ok"]


def test_rest_count_reads_content_range():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(206, headers={"content-range": "0-0/42"})

    assert asyncio.run(_rest_store(handler).count_patients()) == 42
    assert seen[0].method == "HEAD"
    assert seen[0].headers["prefer"] == "count=exact"


def test_rest_count_rejects_missing_total():
    def handler(request):
        return httpx.Response(206, headers={"content-range": "0-0/*"})

    with pytest.raises(RecordStoreError, match="Content-Range"):
        asyncio.run(_rest_store(handler).count_disease_cases())


def test_rest_http_error_is_wrapped_with_status():
    def handler(request):
        return httpx.Response(503, text="upstream down")

    with pytest.raises(RecordStoreError) as exc_info:
        asyncio.run(_rest_store(handler).list_districts())
    assert exc_info.value.status_code == 503
    assert exc_info.value.operation == "list districts"


def test_rest_connection_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RecordStoreError, match="connection refused"):
        asyncio.run(_rest_store(handler).list_patients())


@pytest.mark.parametrize("body", [b"not json", json.dumps({"rows": []}).encode()])
def test_rest_unexpected_body_is_an_error(body):
    def handler(request):
        return httpx.Response(200, content=body, headers={"content-type": "application/json"})

    with pytest.raises(RecordStoreError):
        asyncio.run(_rest_store(handler).list_patients())


def test_rest_update_of_unknown_patient_is_not_found():
    def handler(request):
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.missing"
        return httpx.Response(200, json=[])

    with pytest.raises(RecordStoreError) as exc_info:
        asyncio.run(_rest_store(handler).update_patient("missing", {"name": "X"}))
    assert exc_info.value.status_code == 404


def test_rest_create_returns_stored_row():
    def handler(request):
        payload = json.loads(request.content)
        assert payload["created_by"] == "u1"
        assert request.headers["prefer"] == "return=representation"
        return httpx.Response(201, json=[{**payload, "id": "new-id"}])

    created = asyncio.run(_rest_store(handler).create_patient({"patient_id": "KL1", "name": "A"}, created_by="u1"))
    assert created["id"] == "new-id"


# --- CsvRecordStore ---
def test_csv_lists_are_sorted_newest_first(csv_data_dir):
    store = _csv_store(csv_data_dir)
    patients = asyncio.run(store.list_patients())
    cases = asyncio.run(store.list_disease_cases())
    assert patients['id'].tolist() == ["p2", "p1"]
    assert cases['id'].tolist() == ["c2", "c1"]
    assert patients['migrant'].tolist() == [False, True]


def test_csv_district_filter_and_limit(csv_data_dir):
    store = _csv_store(csv_data_dir)
    assert asyncio.run(store.list_patients("Kozhikode"))['id'].tolist() == ["p2"]
    assert len(asyncio.run(store.list_disease_cases(limit=1))) == 1
    assert asyncio.run(store.count_disease_cases()) == 2


def test_csv_missing_file_raises(tmp_path):
    store = CsvRecordStore({'patients': tmp_path / "nope.csv"})
    with pytest.raises(RecordStoreError, match="not found"):
        asyncio.run(store.list_patients())


def test_csv_create_update_delete_roundtrip(csv_data_dir):
    store = _csv_store(csv_data_dir)
    created = asyncio.run(store.create_patient(
        {"patient_id": "KL12345678", "name": "New Worker", "age": 28, "gender": "Female", "migrant": True,
         "hospital_id": "H01", "district": "Kollam", "contact_number": None, "address": None, "last_checkup": None},
        created_by="u2"))
    assert created["created_by"] == "u2"

    patients = asyncio.run(store.list_patients())
    assert len(patients) == 3
    new_row = patients.loc[patients['id'] == created["id"]].iloc[0]
    assert bool(new_row['migrant'])
    assert pd.isna(new_row['last_checkup'])

    asyncio.run(store.update_patient(created["id"], {"name": "Renamed Worker"}))
    patients = asyncio.run(store.list_patients())
    assert patients.loc[patients['id'] == created["id"], 'name'].iloc[0] == "Renamed Worker"

    asyncio.run(store.delete_patient(created["id"]))
    assert asyncio.run(store.count_patients()) == 2


def test_csv_write_to_unknown_id_raises(csv_data_dir):
    store = _csv_store(csv_data_dir)
    with pytest.raises(RecordStoreError):
        asyncio.run(store.update_patient("ghost", {"name": "X"}))
    with pytest.raises(RecordStoreError):
        asyncio.run(store.delete_patient("ghost"))
