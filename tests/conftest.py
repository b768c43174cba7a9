"""Pytest configuration for storefront tests.

Supabase is replaced at the HTTP layer: ``FakeSupabase`` answers the
PostgREST and GoTrue calls the app makes from in-memory tables and applies
the same owner rules as the row-level security policies in sql/schema.sql.
"""

import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio
from starlette.requests import Request

from storefront.config import Settings
from storefront.database.supabase import GUEST_ID_HEADER, SupabaseClient

ANON_KEY = "anon-key"
SERVICE_KEY = "service-key"

PRODUCTS = [
    {"i_id": 1, "product_name": "Wireless Headphones", "price": 99.99, "category": "Electronics", "image_url": "https://img.test/1"},
    {"i_id": 2, "product_name": "USB Cable", "price": 9.5, "category": "Electronics", "image_url": "https://img.test/2"},
    {"i_id": 3, "product_name": "Phone Charger", "price": 25, "category": "Electronics", "image_url": "https://img.test/3"},
    {"i_id": 4, "product_name": "Running Shoes", "price": 120, "category": "Shoes", "image_url": "https://img.test/4"},
    {"i_id": 5, "product_name": "Leather Boots", "price": 180.25, "category": "Shoes", "image_url": "https://img.test/5"},
    {"i_id": 6, "product_name": "Canvas Sneakers", "price": 45, "category": "Shoes", "image_url": "https://img.test/6"},
    {"i_id": 7, "product_name": "Cotton Shirt", "price": 19.99, "category": "Cloths", "image_url": "https://img.test/7"},
    {"i_id": 8, "product_name": "Teddy Bear", "price": 15, "category": "Toys", "image_url": "https://img.test/8"},
    {"i_id": 9, "product_name": "Gaming Mouse", "price": 49.99, "category": "Electronics", "image_url": "https://img.test/9"},
    {"i_id": 10, "product_name": "Bluetooth Speaker", "price": 75, "category": "Electronics", "image_url": "https://img.test/10"},
    {"i_id": 11, "product_name": "Smart Watch", "price": 199, "category": "Electronics", "image_url": "https://img.test/11"},
]

_RESERVED_PARAMS = {"select", "order", "limit"}


def _json(status_code: int, body: Any) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(body), headers={"content-type": "application/json"})


def _matches(row: dict[str, Any], column: str, condition: str) -> bool:
    op, _, value = condition.partition(".")
    actual = row.get(column)
    if op == "eq":
        return actual is not None and str(actual) == value
    if op == "ilike":
        pattern = re.escape(value).replace(r"\*", ".*")
        return actual is not None and re.fullmatch(pattern, str(actual), re.IGNORECASE) is not None
    if op == "gte":
        return actual is not None and float(actual) >= float(value)
    if op == "lte":
        return actual is not None and float(actual) <= float(value)
    raise AssertionError(f"unsupported filter operator: {op}")


class FakeSupabase:
    """In-memory PostgREST + GoTrue emulation for ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.products = [dict(p) for p in PRODUCTS]
        self.cart_items: list[dict[str, Any]] = []
        self.users: dict[str, dict[str, Any]] = {}
        self.tokens: dict[str, str] = {}
        self.oauth_codes: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self.failing_paths: set[str] = set()
        self.fail_merge = False
        self._next_line_id = 1
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    # ── Test helpers ──────────────────────────────────────────────────────────

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def add_user(self, email: str, password: str = "secret") -> tuple[str, str]:
        """Register a user; returns ``(user_id, access_token)``."""
        user_id = f"user-{len(self.users) + 1}"
        self.users[email] = {"id": user_id, "email": email, "password": password}
        token = f"token-{user_id}"
        self.tokens[token] = user_id
        return user_id, token

    def add_line(self, product_id: int, *, user_id: Optional[str] = None, guest_id: Optional[str] = None) -> dict[str, Any]:
        row = {
            "id": self._next_line_id,
            "product_id": product_id,
            "user_id": user_id,
            "guest_id": guest_id,
            "quantity": 1,
            "created_at": self._tick(),
        }
        self._next_line_id += 1
        self.cart_items.append(row)
        return row

    def lines_of(self, *, user_id: Optional[str] = None, guest_id: Optional[str] = None) -> list[dict[str, Any]]:
        if user_id is not None:
            return [r for r in self.cart_items if r["user_id"] == user_id]
        return [r for r in self.cart_items if r["guest_id"] == guest_id]

    def _tick(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    # ── Caller identity ───────────────────────────────────────────────────────

    def _caller(self, request: httpx.Request) -> tuple[bool, Optional[str], Optional[str]]:
        """``(is_service, user_id, guest_id)`` for the request."""
        bearer = request.headers.get("authorization", "").removeprefix("Bearer ")
        is_service = request.headers.get("apikey") == SERVICE_KEY and bearer == SERVICE_KEY
        return is_service, self.tokens.get(bearer), request.headers.get(GUEST_ID_HEADER)

    def _visible(self, request: httpx.Request, row: dict[str, Any]) -> bool:
        is_service, user_id, guest_id = self._caller(request)
        if is_service:
            return True
        if row["user_id"] is not None and row["user_id"] == user_id:
            return True
        return row["guest_id"] is not None and row["guest_id"] == guest_id

    def _can_insert(self, request: httpx.Request, row: dict[str, Any]) -> bool:
        is_service, user_id, guest_id = self._caller(request)
        if is_service:
            return True
        if row.get("user_id") is not None:
            return row["user_id"] == user_id
        return row.get("guest_id") is not None and row["guest_id"] == guest_id

    # ── Dispatch ──────────────────────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.failing_paths:
            return _json(503, {"message": "service unavailable"})
        if request.headers.get("apikey") not in (ANON_KEY, SERVICE_KEY):
            return _json(401, {"message": "Invalid API key"})
        if path.startswith("/rest/v1/rpc/"):
            return self._rpc(request, path.rsplit("/", 1)[-1])
        if path.startswith("/rest/v1/"):
            return self._rest(request, path.rsplit("/", 1)[-1])
        if path.startswith("/auth/v1/"):
            return self._auth(request, path.removeprefix("/auth/v1/"))
        return _json(404, {"message": f"no route for {path}"})

    # ── PostgREST ─────────────────────────────────────────────────────────────

    def _rest(self, request: httpx.Request, table: str) -> httpx.Response:
        if table == "product":
            rows = self.products
        elif table == "cart_items":
            rows = self.cart_items
        else:
            return _json(404, {"message": f'relation "public.{table}" does not exist'})

        params = request.url.params
        filters = [(k, v) for k, v in params.multi_items() if k not in _RESERVED_PARAMS]

        if request.method == "POST":
            payload = json.loads(request.content)
            new_rows = payload if isinstance(payload, list) else [payload]
            if table == "cart_items":
                for row in new_rows:
                    if not self._can_insert(request, row):
                        return _json(403, {"message": "new row violates row-level security policy"})
                created = [self.add_line(r["product_id"], user_id=r.get("user_id"), guest_id=r.get("guest_id")) for r in new_rows]
            else:
                created = []
                for row in new_rows:
                    stored = {"i_id": len(self.products) + 1, **row}
                    self.products.append(stored)
                    created.append(stored)
            return _json(201, created)

        visible = rows if table == "product" else [r for r in rows if self._visible(request, r)]
        selected = [r for r in visible if all(_matches(r, col, cond) for col, cond in filters)]

        if request.method == "DELETE":
            if not filters:
                return _json(400, {"message": "DELETE requires a WHERE clause"})
            self.cart_items = [r for r in self.cart_items if r not in selected]
            return _json(200, selected)

        order = params.get("order")
        if order:
            column, _, direction = order.partition(".")
            selected = sorted(selected, key=lambda r: r[column], reverse=direction == "desc")
        if params.get("limit"):
            selected = selected[: int(params["limit"])]
        return _json(200, [self._project(r, params.get("select", "*")) for r in selected])

    def _project(self, row: dict[str, Any], columns: str) -> dict[str, Any]:
        if columns == "*":
            return dict(row)
        if columns == "*,product(*)":
            product = next((p for p in self.products if p["i_id"] == row["product_id"]), None)
            return {**row, "product": dict(product) if product else None}
        return {c: row.get(c) for c in columns.split(",")}

    def _rpc(self, request: httpx.Request, function: str) -> httpx.Response:
        if function != "merge_guest_cart":
            return _json(404, {"message": f"function {function} does not exist"})
        if self.fail_merge:
            return _json(500, {"message": "merge failed"})

        params = json.loads(request.content)
        _, user_id, _ = self._caller(request)
        if user_id is None or user_id != params["target_user_id"]:
            return _json(403, {"message": "merge_guest_cart: caller does not own the target cart"})

        moved = 0
        for row in self.cart_items:
            if row["guest_id"] == params["guest_cart_id"]:
                row["user_id"] = params["target_user_id"]
                row["guest_id"] = None
                moved += 1
        return _json(200, moved)

    # ── GoTrue ────────────────────────────────────────────────────────────────

    def _session(self, user: dict[str, Any]) -> dict[str, Any]:
        token = f"token-{user['id']}"
        self.tokens[token] = user["id"]
        return {
            "access_token": token,
            "refresh_token": f"refresh-{user['id']}",
            "expires_in": 3600,
            "token_type": "bearer",
            "user": {"id": user["id"], "email": user["email"]},
        }

    def _auth(self, request: httpx.Request, endpoint: str) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}

        if endpoint == "token":
            grant_type = request.url.params.get("grant_type")
            if grant_type == "password":
                user = self.users.get(body.get("email"))
                if user is None or user["password"] != body.get("password"):
                    return _json(400, {"error": "invalid_grant", "error_description": "Invalid login credentials"})
                return _json(200, self._session(user))
            if grant_type == "pkce":
                email = self.oauth_codes.pop(body.get("auth_code"), None)
                if email is None or not body.get("code_verifier"):
                    return _json(400, {"error": "invalid_grant", "error_description": "invalid flow state"})
                return _json(200, self._session(self.users[email]))
            if grant_type == "refresh_token":
                token = body.get("refresh_token")
                user = next((u for u in self.users.values() if f"refresh-{u['id']}" == token), None)
                if user is None:
                    return _json(400, {"error": "invalid_grant", "error_description": "Invalid Refresh Token"})
                return _json(200, self._session(user))
            return _json(400, {"error": "unsupported_grant_type"})

        if endpoint == "signup":
            email = body.get("email")
            if email in self.users or len(body.get("password", "")) < 6:
                return _json(422, {"msg": "User already registered"})
            self.add_user(email, body["password"])
            return _json(200, self._session(self.users[email]))

        if endpoint == "user":
            _, user_id, _ = self._caller(request)
            user = next((u for u in self.users.values() if u["id"] == user_id), None)
            if user is None:
                return _json(401, {"msg": "invalid JWT"})
            return _json(200, {"id": user["id"], "email": user["email"]})

        if endpoint == "logout":
            return httpx.Response(204)

        return _json(404, {"msg": f"no auth route {endpoint}"})


def make_request(cookies: Optional[dict[str, str]] = None) -> Request:
    """A bare Starlette request carrying ``cookies``."""
    headers = []
    if cookies:
        cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
        headers.append((b"cookie", cookie_header.encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers, "query_string": b""})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        debug=True,
        site_url="http://shop.test",
        supabase_url="http://supabase.test",
        supabase_anon_key=ANON_KEY,
        supabase_service_role_key=SERVICE_KEY,
        log_format="text",
    )


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest_asyncio.fixture
async def supabase(settings: Settings, fake_supabase: FakeSupabase):
    client = SupabaseClient(
        url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        service_role_key=settings.supabase_service_role_key,
        transport=fake_supabase.transport,
    )
    await client.connect()
    yield client
    await client.disconnect()
