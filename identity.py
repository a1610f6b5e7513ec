from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from settings import Settings

logger = logging.getLogger(__name__)

ROLES = ("admin", "reviewer")


@dataclass(frozen=True)
class Identity:
    id: str
    email: str


@dataclass(frozen=True)
class Profile:
    id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class Session:
    """What the page shows about the signed-in user.

    ``is_admin`` only decides which controls are rendered; the database
    grants decide what a write may actually do.
    """

    email: str = ""
    role: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _auth_headers(access_token: str, settings: Settings) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {access_token}"}
    if settings.auth_api_key:
        headers["apikey"] = settings.auth_api_key
    return headers


def fetch_identity(access_token: str | None, settings: Settings) -> Identity | None:
    if not access_token or not settings.auth_url:
        return None

    try:
        response = requests.get(
            f"{settings.auth_url}/user",
            headers=_auth_headers(access_token, settings),
            timeout=settings.auth_timeout_seconds,
        )
    except requests.RequestException:
        logger.exception("Identity provider request failed")
        return None

    if response.status_code >= 400:
        logger.warning("Identity provider rejected session (status %s)", response.status_code)
        return None

    try:
        body: Any = response.json()
    except ValueError:
        logger.warning("Identity provider returned a non-JSON body")
        return None

    if not isinstance(body, dict) or not body.get("id"):
        return None
    return Identity(id=str(body["id"]), email=str(body.get("email") or ""))


def get_my_profile(store, identity: Identity | None) -> Profile | None:
    if identity is None:
        return None
    result = store.select_one("profiles", {"id": identity.id})
    if not result.ok:
        logger.error("Profile lookup failed for %s: %s", identity.id, result.error)
        return None
    row = result.data
    if not row or row.get("role") not in ROLES:
        return None
    return Profile(id=str(row["id"]), email=row.get("email") or identity.email, role=row["role"])


def load_session(store, access_token: str | None, settings: Settings) -> Session:
    identity = fetch_identity(access_token, settings)
    if identity is None:
        return Session()
    profile = get_my_profile(store, identity)
    return Session(email=identity.email, role=profile.role if profile else "")


def sign_out(access_token: str | None, settings: Settings) -> bool:
    if not access_token or not settings.auth_url:
        return False
    try:
        response = requests.post(
            f"{settings.auth_url}/logout",
            headers=_auth_headers(access_token, settings),
            timeout=settings.auth_timeout_seconds,
        )
    except requests.RequestException:
        logger.exception("Identity provider sign-out failed")
        return False
    return response.status_code < 400
