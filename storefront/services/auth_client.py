# storefront/services/auth_client.py
from dataclasses import dataclass

import requests
from requests import RequestException

from storefront.domain.errors import AuthError
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import (
    HTTP_TIMEOUT_SECONDS,
    SUPABASE_ANON_KEY,
    SUPABASE_SERVICE_ROLE_KEY,
    SUPABASE_URL,
)

logger = get_logger(__name__)


def _json_body(resp: requests.Response) -> dict:
    try:
        body = resp.json() if resp.content else {}
    except ValueError:
        logger.warning(f"Auth provider answered {resp.status_code} with a non-json body")
        return {}
    return body if isinstance(body, dict) else {}


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    access_token: str | None = None


class SupabaseAuthClient:
    def __init__(self, base_url: str | None = None, timeout: int | None = None):
        self.base_url = (base_url or SUPABASE_URL).rstrip("/") + "/auth/v1"
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS

    @http_retry()
    def _request(self, method: str, path: str, key: str, token: str | None = None, **kwargs) -> requests.Response:
        headers = {"apikey": key, "Authorization": f"Bearer {token or key}"}
        return requests.request(method, f"{self.base_url}{path}", headers=headers, timeout=self.timeout, **kwargs)

    def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        logger.info(f"Signing in {email}")
        try:
            resp = self._request(
                "POST", "/token", SUPABASE_ANON_KEY,
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except RequestException as e:
            logger.error(f"Auth provider unreachable: {e}")
            raise AuthError("An error occurred during sign in") from e

        body = _json_body(resp)
        if not resp.ok:
            raise AuthError(body.get("error_description") or body.get("msg") or "Failed to sign in")

        user = body.get("user") or {}
        if not user.get("id"):
            raise AuthError("Failed to sign in")
        return AuthUser(id=user["id"], email=user.get("email") or email, access_token=body.get("access_token"))

    def get_user(self, access_token: str) -> AuthUser | None:
        try:
            resp = self._request("GET", "/user", SUPABASE_ANON_KEY, token=access_token)
        except RequestException as e:
            logger.error(f"Auth provider unreachable: {e}")
            return None
        if not resp.ok:
            return None
        body = _json_body(resp)
        if "id" not in body:
            return None
        return AuthUser(id=body["id"], email=body.get("email") or "", access_token=access_token)

    def find_user_by_email(self, email: str) -> AuthUser | None:
        try:
            resp = self._request("GET", "/admin/users", SUPABASE_SERVICE_ROLE_KEY)
        except RequestException as e:
            logger.error(f"Auth admin api unreachable: {e}")
            return None
        if not resp.ok:
            logger.warning(f"Auth admin lookup failed with {resp.status_code}")
            return None

        for user in _json_body(resp).get("users", []):
            if user.get("email") == email:
                return AuthUser(id=user["id"], email=email)
        return None
