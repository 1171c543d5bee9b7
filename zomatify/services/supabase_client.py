# zomatify/services/supabase_client.py
from typing import Any, Callable, Dict

import httpx

from zomatify.domain.schemas import AuthSession, AuthUser, Profile
from zomatify.exceptions import AuthError, BackendError, ProfileNotFoundError
from zomatify.utils.retry import http_retry
from zomatify.utils.settings import SUPABASE_URL, SUPABASE_ANON_KEY
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)

# PostgREST code for "single row requested, zero returned"
NO_ROWS_CODE = "PGRST116"

AuthCallback = Callable[[str, AuthSession | None], None]


class Subscription:
    def __init__(self, client: "SupabaseClient", callback: AuthCallback):
        self._client = client
        self.callback = callback

    def unsubscribe(self) -> None:
        self._client._listeners.discard(self)


class SupabaseClient:
    """
    Async adapter for the auth (GoTrue) and table (PostgREST) endpoints.

    Holds the current session in memory and notifies subscribers about
    session changes: INITIAL_SESSION on subscribe, then SIGNED_IN,
    TOKEN_REFRESHED and SIGNED_OUT.
    """

    def __init__(
        self,
        url: str | None = None,
        anon_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        session: AuthSession | None = None,
    ):
        self.url = (url or SUPABASE_URL).rstrip("/")
        self.anon_key = anon_key or SUPABASE_ANON_KEY
        self._client = http_client or httpx.AsyncClient(timeout=15.0)
        self._owns_client = http_client is None
        self._session = session
        self._listeners: set[Subscription] = set()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # session events
    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        subscription = Subscription(self, callback)
        self._listeners.add(subscription)
        callback("INITIAL_SESSION", self._session)
        return subscription

    def _emit(self, event: str) -> None:
        logger.info(f"Auth event {event}")
        for subscription in list(self._listeners):
            subscription.callback(event, self._session)

    # auth
    async def get_session(self) -> AuthSession | None:
        return self._session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        self._session = AuthSession.model_validate(data)
        self._emit("SIGNED_IN")
        return self._session

    async def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> AuthUser:
        data = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": metadata},
        )
        # with email confirmation disabled the platform answers with a session
        if "access_token" in data:
            self._session = AuthSession.model_validate(data)
            self._emit("SIGNED_IN")
            return self._session.user
        return AuthUser.model_validate(data.get("user", data))

    async def sign_out(self) -> None:
        if self._session:
            await self._request("POST", "/auth/v1/logout", token=self._session.access_token)
        self._session = None
        self._emit("SIGNED_OUT")

    async def refresh_session(self) -> AuthSession:
        if not self._session or not self._session.refresh_token:
            raise AuthError("No refresh token available")
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": self._session.refresh_token},
        )
        self._session = AuthSession.model_validate(data)
        self._emit("TOKEN_REFRESHED")
        return self._session

    @http_retry()
    async def get_user(self) -> AuthUser | None:
        if not self._session:
            return None
        data = await self._request("GET", "/auth/v1/user", token=self._session.access_token)
        return AuthUser.model_validate(data)

    # profiles table
    @http_retry()
    async def fetch_profile(self, user_id: str) -> Profile:
        data = await self._request(
            "GET",
            "/rest/v1/profiles",
            params={"id": f"eq.{user_id}", "select": "*"},
            single=True,
        )
        return Profile.model_validate(data)

    async def insert_profile(self, row: Dict[str, Any]) -> Profile:
        data = await self._request("POST", "/rest/v1/profiles", json=row, single=True)
        return Profile.model_validate(data)

    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Profile:
        data = await self._request(
            "PATCH",
            "/rest/v1/profiles",
            params={"id": f"eq.{user_id}"},
            json=changes,
            single=True,
        )
        return Profile.model_validate(data)

    # http
    def _headers(self, token: str | None, single: bool) -> Dict[str, str]:
        if token is None and self._session:
            token = self._session.access_token
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token or self.anon_key}",
        }
        if single:
            headers["Accept"] = "application/vnd.pgrst.object+json"
            headers["Prefer"] = "return=representation"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, str] | None = None,
        json: Dict[str, Any] | None = None,
        token: str | None = None,
        single: bool = False,
    ) -> Dict[str, Any]:
        url = f"{self.url}{path}"
        logger.debug(f"SupabaseClient {method} {url}")

        response = await self._client.request(
            method,
            url,
            params=params,
            json=json,
            headers=self._headers(token, single),
        )

        if response.status_code >= 400:
            raise self._error_for(response, path)

        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _error_for(response: httpx.Response, path: str) -> BackendError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = (
            body.get("msg")
            or body.get("message")
            or body.get("error_description")
            or body.get("error")
            or f"Request failed with status {response.status_code}"
        )
        code = body.get("code") or body.get("error_code")
        if code is not None:
            code = str(code)

        if code == NO_ROWS_CODE:
            return ProfileNotFoundError(message, status_code=response.status_code, code=code)
        if path.startswith("/auth/"):
            return AuthError(message, status_code=response.status_code, code=code)
        return BackendError(message, status_code=response.status_code, code=code)
