# kmh_project_root/tests/test_auth.py
# SME PLATINUM STANDARD - AUTH & ROLE SCOPING TESTS

import asyncio

import httpx
import pandas as pd
import pytest

from data_processing import AuthError, DemoAuthClient, RestAuthClient, can_access, district_scope, navigation_for_role
from data_processing.models import UserProfile


def _profile(role, district=None):
    return UserProfile(id="u", email="u@kerala.gov.in", full_name="U", role=role, district=district)


# --- Role Rules ---
@pytest.mark.parametrize("role, pages", [
    ("government_official", ["Dashboard", "Health Map", "Alerts", "Settings"]),
    ("doctor", ["Dashboard", "Health Map", "Patients", "Alerts", "Settings"]),
    ("migrant", ["Settings"]),
    (None, []),
    ("admin", []),
])
def test_navigation_for_role(role, pages):
    assert [item.name for item in navigation_for_role(role)] == pages


def test_can_access_requires_profile_and_known_page():
    assert can_access(_profile("doctor"), "Patients")
    assert not can_access(_profile("government_official"), "Patients")
    assert not can_access(None, "Dashboard")
    assert not can_access(_profile("doctor"), "Supply Chain")


def test_district_scope_applies_to_doctors_only():
    assert district_scope(_profile("doctor", "Kozhikode")) == "Kozhikode"
    assert district_scope(_profile("doctor")) is None
    assert district_scope(_profile("government_official", "Kozhikode")) is None
    assert district_scope(None) is None


# --- Demo Auth ---
def test_demo_sign_in_is_case_insensitive(csv_data_dir):
    client = DemoAuthClient(profiles_path=str(csv_data_dir / "profiles.csv"))
    session = asyncio.run(client.sign_in("  DOC@Kerala.gov.in", "anything"))
    assert session.profile.role == "doctor"
    assert session.profile.district == "Ernakulam"
    assert session.access_token is None


def test_demo_sign_in_unknown_email(csv_data_dir):
    client = DemoAuthClient(profiles_path=str(csv_data_dir / "profiles.csv"))
    with pytest.raises(AuthError, match="Invalid login credentials"):
        asyncio.run(client.sign_in("nobody@example.com", "x"))


def test_demo_sign_up_then_sign_in(csv_data_dir):
    client = DemoAuthClient(profiles_path=str(csv_data_dir / "profiles.csv"))
    asyncio.run(client.sign_up("new@example.com", "pw", "New Worker", "migrant", "Kollam"))
    session = asyncio.run(client.sign_in("new@example.com", "pw"))
    assert session.profile.full_name == "New Worker"


def test_demo_sign_up_is_saved_for_other_sessions(csv_data_dir):
    path = str(csv_data_dir / "profiles.csv")
    asyncio.run(DemoAuthClient(profiles_path=path).sign_up("nurse@example.com", "pw", "Dr Nurse", "doctor", "Idukki"))

    session = asyncio.run(DemoAuthClient(profiles_path=path).sign_in("nurse@example.com", "x"))
    assert session.profile.district == "Idukki"
    saved = pd.read_csv(path, dtype=str, keep_default_na=False)
    assert saved['email'].tolist()[-1] == "nurse@example.com"
    assert len(saved) == 3


@pytest.mark.parametrize("email, role, district, message", [
    ("official@kerala.gov.in", "doctor", None, "already registered"),
    ("a@b.c", "superuser", None, "Unknown role"),
    ("a@b.c", "doctor", "Chennai", "Unknown district"),
])
def test_demo_sign_up_rejections(csv_data_dir, email, role, district, message):
    client = DemoAuthClient(profiles_path=str(csv_data_dir / "profiles.csv"))
    with pytest.raises(AuthError, match=message):
        asyncio.run(client.sign_up(email, "pw", "Someone", role, district))


def test_demo_missing_profiles_file(tmp_path):
    client = DemoAuthClient(profiles_path=str(tmp_path / "missing.csv"))
    with pytest.raises(AuthError, match="unavailable"):
        asyncio.run(client.sign_in("official@kerala.gov.in", "x"))


# --- Hosted Auth ---
def test_rest_sign_in_fetches_profile():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path == "/auth/v1/token":
            return httpx.Response(200, json={"access_token": "jwt", "user": {"id": "u9"}})
        return httpx.Response(200, json=[{"id": "u9", "email": "d@k.in", "full_name": "Dr D", "role": "doctor", "district": "Idukki"}])

    client = RestAuthClient("https://example.supabase.co", "anon", transport=httpx.MockTransport(handler))
    session = asyncio.run(client.sign_in("d@k.in", "pw"))
    assert session.access_token == "jwt"
    assert session.profile.district == "Idukki"
    assert seen[0].url.params["grant_type"] == "password"
    assert seen[1].headers["authorization"] == "Bearer jwt"
    assert seen[1].url.params["id"] == "eq.u9"


def test_rest_sign_in_bad_credentials():
    def handler(request):
        return httpx.Response(400, json={"error_description": "Invalid login credentials"})

    client = RestAuthClient("https://example.supabase.co", "anon", transport=httpx.MockTransport(handler))
    with pytest.raises(AuthError, match="Invalid login credentials"):
        asyncio.run(client.sign_in("d@k.in", "wrong"))


def test_rest_sign_in_service_failure_is_auth_error():
    def handler(request):
        return httpx.Response(500, text="down")

    client = RestAuthClient("https://example.supabase.co", "anon", transport=httpx.MockTransport(handler))
    with pytest.raises(AuthError, match="Sign-in failed"):
        asyncio.run(client.sign_in("d@k.in", "pw"))
