"""Supabase connection and operations.

Talks to the two Supabase services this app relies on over plain HTTP:

* PostgREST (``/rest/v1``) for table reads/writes and RPC calls. Row-level
  security decides what each caller may see, so every call states *who* it
  runs as: the anon key, the service-role key, a user's access token, or a
  guest id carried in the ``x-guest-id`` header.
* GoTrue (``/auth/v1``) for password/OAuth sign-in, sign-up and sign-out.
"""

import logging
from typing import Any, Optional, Sequence
from urllib.parse import urlencode

import httpx

from storefront.models.auth import AuthSession, AuthUser, SignUpResult

logger = logging.getLogger(__name__)

Filters = Sequence[tuple[str, str]]

GUEST_ID_HEADER = "x-guest-id"


class SupabaseError(Exception):
    """Raised when Supabase rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    """Pull the most useful message out of a PostgREST/GoTrue error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)


class SupabaseClient:
    """Supabase connection manager."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        service_role_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize Supabase connection settings.

        Args:
            url: Project URL, e.g. ``https://xyz.supabase.co``.
            anon_key: Public anon key used for user- and guest-scoped calls.
            service_role_key: Optional key that bypasses RLS (catalog search).
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests inject a mock here).
        """
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self.timeout = timeout
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

        if not self.anon_key:
            logger.warning("SUPABASE_ANON_KEY not set; requests will be rejected by Supabase")

    async def connect(self) -> None:
        """Open the shared HTTP client."""
        if self.client is not None:
            return
        self.client = httpx.AsyncClient(
            base_url=self.url,
            timeout=self.timeout,
            transport=self._transport,
        )
        logger.info("Supabase client ready: %s", self.url)

    async def disconnect(self) -> None:
        """Close the shared HTTP client."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None
            logger.info("Supabase client closed")

    @property
    def http(self) -> httpx.AsyncClient:
        if self.client is None:
            raise ConnectionError("Supabase client not connected")
        return self.client

    # ── Request plumbing ──────────────────────────────────────────────────────

    def _headers(
        self,
        *,
        access_token: Optional[str] = None,
        guest_id: Optional[str] = None,
        service: bool = False,
    ) -> dict[str, str]:
        key = self.service_role_key if service and self.service_role_key else self.anon_key
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {access_token or key}",
        }
        if guest_id:
            headers[GUEST_ID_HEADER] = guest_id
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str],
        params: Any = None,
        json: Any = None,
    ) -> Any:
        try:
            response = await self.http.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            raise SupabaseError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            raise SupabaseError(_error_message(response), status_code=response.status_code)

        if not response.content:
            return None
        return response.json()

    # ── PostgREST ─────────────────────────────────────────────────────────────

    async def select(
        self,
        table: str,
        *,
        filters: Filters = (),
        columns: str = "*",
        order: Optional[str] = None,
        limit: Optional[int] = None,
        access_token: Optional[str] = None,
        guest_id: Optional[str] = None,
        service: bool = False,
    ) -> list[dict[str, Any]]:
        """Query a table.

        ``filters`` are PostgREST ``(column, "op.value")`` pairs, e.g.
        ``[("price", "lte.50"), ("category", "eq.Shoes")]``.
        """
        params: list[tuple[str, str]] = [("select", columns), *filters]
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))

        rows = await self._request(
            "GET",
            f"/rest/v1/{table}",
            params=params,
            headers=self._headers(access_token=access_token, guest_id=guest_id, service=service),
        )
        return rows or []

    async def insert(
        self,
        table: str,
        rows: dict[str, Any] | list[dict[str, Any]],
        *,
        access_token: Optional[str] = None,
        guest_id: Optional[str] = None,
        service: bool = False,
    ) -> list[dict[str, Any]]:
        """Insert one or more rows and return them as stored."""
        headers = self._headers(access_token=access_token, guest_id=guest_id, service=service)
        headers["Prefer"] = "return=representation"
        created = await self._request("POST", f"/rest/v1/{table}", json=rows, headers=headers)
        return created or []

    async def delete(
        self,
        table: str,
        *,
        filters: Filters,
        access_token: Optional[str] = None,
        guest_id: Optional[str] = None,
        service: bool = False,
    ) -> list[dict[str, Any]]:
        """Delete rows matching ``filters`` and return the deleted rows."""
        if not filters:
            # PostgREST refuses unfiltered deletes; fail early with a clearer message
            raise ValueError("delete requires at least one filter")
        headers = self._headers(access_token=access_token, guest_id=guest_id, service=service)
        headers["Prefer"] = "return=representation"
        deleted = await self._request(
            "DELETE", f"/rest/v1/{table}", params=list(filters), headers=headers
        )
        return deleted or []

    async def rpc(
        self,
        function: str,
        params: dict[str, Any],
        *,
        access_token: Optional[str] = None,
        guest_id: Optional[str] = None,
        service: bool = False,
    ) -> Any:
        """Call a Postgres function exposed by PostgREST."""
        return await self._request(
            "POST",
            f"/rest/v1/rpc/{function}",
            json=params,
            headers=self._headers(access_token=access_token, guest_id=guest_id, service=service),
        )

    # ── GoTrue ────────────────────────────────────────────────────────────────

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        return AuthSession.model_validate(data)

    async def sign_up(self, email: str, password: str) -> SignUpResult:
        data = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        # GoTrue returns a full session when autoconfirm is on, a bare user otherwise
        if isinstance(data, dict) and data.get("access_token"):
            session = AuthSession.model_validate(data)
            return SignUpResult(user=session.user, session=session)
        return SignUpResult(user=AuthUser.model_validate(data))

    async def get_user(self, access_token: str) -> AuthUser:
        data = await self._request(
            "GET", "/auth/v1/user", headers=self._headers(access_token=access_token)
        )
        return AuthUser.model_validate(data)

    async def sign_out(self, access_token: str) -> None:
        await self._request(
            "POST", "/auth/v1/logout", headers=self._headers(access_token=access_token)
        )

    def authorize_url(self, provider: str, redirect_to: str, code_challenge: str) -> str:
        """Build the GoTrue URL that starts a PKCE OAuth flow."""
        query = urlencode(
            {
                "provider": provider,
                "redirect_to": redirect_to,
                "code_challenge": code_challenge,
                "code_challenge_method": "s256",
            }
        )
        return f"{self.url}/auth/v1/authorize?{query}"

    async def exchange_code_for_session(self, auth_code: str, code_verifier: str) -> AuthSession:
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "pkce"},
            json={"auth_code": auth_code, "code_verifier": code_verifier},
            headers=self._headers(),
        )
        return AuthSession.model_validate(data)

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
            headers=self._headers(),
        )
        return AuthSession.model_validate(data)
