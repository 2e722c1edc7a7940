# kmh_project_root/data_processing/auth.py
# SME PLATINUM STANDARD - AUTHENTICATION & ROLE SCOPING

"""
Sign-in/sign-up against the backend auth service and the role rules that
decide which pages a user may open and which district their data is scoped to.

Session tokens are whatever the backend issues; this module only carries them
to the record store and never refreshes or inspects them.
"""

import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import List, Optional, Protocol

import httpx
import pandas as pd
from pydantic import ValidationError

from config import settings
from config.navigation import NAV_BY_NAME, NAVIGATION, NavItem
from .errors import AuthError, RecordStoreError
from .loaders import load_records_csv, resolve_data_path
from .models import UserProfile, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSession:
    profile: UserProfile
    access_token: Optional[str] = None


class AuthClient(Protocol):
    async def sign_in(self, email: str, password: str) -> AuthSession: ...
    async def sign_up(self, email: str, password: str, full_name: str, role: str, district: Optional[str] = None) -> AuthSession: ...


# --- Role Rules ---

def navigation_for_role(role: Optional[str]) -> List[NavItem]:
    """Pages visible to a role, in menu order. Unknown or missing roles see nothing."""
    if not role:
        return []
    return [item for item in NAVIGATION if role in item.roles]


def can_access(profile: Optional[UserProfile], page_name: str) -> bool:
    item = NAV_BY_NAME.get(page_name)
    return bool(profile and item and profile.role in item.roles)


def district_scope(profile: Optional[UserProfile]) -> Optional[str]:
    """Doctors only see their own district; officials see the whole state."""
    if profile and profile.role == UserRole.DOCTOR.value and profile.district:
        return profile.district
    return None


def _validate_sign_up(role: str, district: Optional[str]) -> None:
    try:
        UserRole(role)
    except ValueError as e:
        raise AuthError(f"Unknown role '{role}'.") from e
    if district and district not in settings.KERALA_DISTRICTS:
        raise AuthError(f"Unknown district '{district}'.")


# --- Hosted Auth (GoTrue over HTTP) ---

class RestAuthClient:
    def __init__(self, base_url: str, api_key: str, timeout: float = 15.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self, access_token: Optional[str] = None) -> httpx.AsyncClient:
        headers = {"apikey": self.api_key, "Authorization": f"Bearer {access_token or self.api_key}"}
        return httpx.AsyncClient(base_url=self.base_url, headers=headers, timeout=self.timeout, transport=self._transport)

    async def _fetch_profile(self, user_id: str, access_token: str) -> UserProfile:
        async with self._client(access_token) as client:
            response = await client.get("/rest/v1/profiles", params={"select": "*", "id": f"eq.{user_id}"})
            response.raise_for_status()
            rows = response.json()
        if not rows:
            raise AuthError("No profile found for this account.")
        return UserProfile.model_validate(rows[0])

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            async with self._client() as client:
                response = await client.post("/auth/v1/token", params={"grant_type": "password"},
                                             json={"email": email, "password": password})
            if response.status_code in (400, 401):
                message = response.json().get("error_description") or "Invalid login credentials"
                raise AuthError(message)
            response.raise_for_status()
            body = response.json()
            token = body["access_token"]
            profile = await self._fetch_profile(body["user"]["id"], token)
        except (httpx.HTTPError, KeyError, ValueError, ValidationError) as e:
            logger.error(f"Sign-in failed for {email}: {e}")
            raise AuthError("Sign-in failed. Please try again.") from e
        logger.info(f"User {email} signed in as {profile.role}.")
        return AuthSession(profile=profile, access_token=token)

    async def sign_up(self, email: str, password: str, full_name: str, role: str, district: Optional[str] = None) -> AuthSession:
        _validate_sign_up(role, district)
        metadata = {"full_name": full_name, "role": role, "district": district}
        try:
            async with self._client() as client:
                response = await client.post("/auth/v1/signup", json={"email": email, "password": password, "data": metadata})
            if response.status_code in (400, 422):
                raise AuthError(response.json().get("msg") or "Sign-up rejected.")
            response.raise_for_status()
            body = response.json()
            user = body.get("user") or body
            profile = UserProfile(id=user["id"], email=email, full_name=full_name, role=role, district=district)
        except (httpx.HTTPError, KeyError, ValueError, ValidationError) as e:
            logger.error(f"Sign-up failed for {email}: {e}")
            raise AuthError("Sign-up failed. Please try again.") from e
        logger.info(f"Registered {email} as {role}.")
        return AuthSession(profile=profile, access_token=body.get("access_token"))


# --- Demo Auth (local profiles.csv) ---

class DemoAuthClient:
    """
    Accepts any password for a profile listed in the demo profiles file.
    Sign-ups are appended to that file so every session sees them.
    """
    _write_lock = threading.Lock()

    def __init__(self, profiles_path: Optional[str] = None):
        self.profiles_path = profiles_path

    async def _profiles(self) -> List[UserProfile]:
        try:
            df = await asyncio.to_thread(load_records_csv, 'profiles', self.profiles_path)
        except RecordStoreError as e:
            raise AuthError("Demo profiles are unavailable. Run generate_data.py first.") from e
        df = df.astype(object).where(df.notna(), None)
        return [UserProfile.model_validate(row) for row in df.to_dict('records')]

    def _append_profile(self, profile: UserProfile) -> None:
        path = resolve_data_path('profiles', self.profiles_path)
        row = {
            'id': profile.id, 'email': profile.email, 'full_name': profile.full_name,
            'role': profile.role_enum.value, 'district': profile.district or "", 'hospital_id': profile.hospital_id or "",
        }
        try:
            with self._write_lock:
                df = pd.read_csv(path, dtype=str, keep_default_na=False)
                df = pd.concat([df, pd.DataFrame([row])], ignore_index=True).fillna("")
                df.to_csv(path, index=False)
        except OSError as e:
            logger.error(f"Could not save demo profile for {profile.email}: {e}")
            raise AuthError("Sign-up failed. Please try again.") from e

    async def sign_in(self, email: str, password: str) -> AuthSession:
        for profile in await self._profiles():
            if profile.email.lower() == email.strip().lower():
                logger.info(f"Demo sign-in for {profile.email} ({profile.role}).")
                return AuthSession(profile=profile)
        raise AuthError("Invalid login credentials")

    async def sign_up(self, email: str, password: str, full_name: str, role: str, district: Optional[str] = None) -> AuthSession:
        _validate_sign_up(role, district)
        if any(p.email.lower() == email.strip().lower() for p in await self._profiles()):
            raise AuthError("User already registered")
        profile = UserProfile(id=str(uuid.uuid4()), email=email.strip(), full_name=full_name, role=role, district=district)
        await asyncio.to_thread(self._append_profile, profile)
        logger.info(f"Registered demo profile {profile.email} as {role}.")
        return AuthSession(profile=profile)


def build_auth_client() -> AuthClient:
    if settings.RECORD_STORE_BACKEND == "rest" and settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY:
        return RestAuthClient(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, timeout=settings.HTTP_TIMEOUT_SECONDS)
    return DemoAuthClient()
