"""HTTP tests for the storefront API."""

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage

from storefront.graph import AgentLoop
from storefront.main import create_app
from storefront.services.chatbot_service import SYSTEM_PROMPT, ChatbotService
from storefront.tools import ToolRegistry, create_search_products_tool

API = "/api/v1"


@pytest.fixture
def chat_script() -> list:
    """Responses the fake chat model will return, in order."""
    return []


@pytest.fixture
def make_client(settings, fake_supabase, chat_script):
    def _responses():
        yield from chat_script

    def chatbot_factory(app_settings, supabase):
        registry = ToolRegistry([create_search_products_tool(supabase)])
        model = GenericFakeChatModel(messages=_responses())
        return ChatbotService(AgentLoop(model, registry, SYSTEM_PROMPT, app_settings.agent_max_rounds))

    def _make(**overrides):
        app_settings = settings.model_copy(update=overrides)
        app = create_app(
            app_settings,
            supabase_transport=fake_supabase.transport,
            chatbot_factory=chatbot_factory,
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    with make_client() as test_client:
        yield test_client


def _location(response) -> tuple[str, dict]:
    parsed = urlparse(response.headers["location"])
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}", parse_qs(parsed.query)


class TestHealthAndCatalog:

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"

    def test_health(self, client):
        response = client.get(f"{API}/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"]["supabase"] == "connected"
        assert "X-Process-Time" in response.headers
        assert "X-Request-ID" in response.headers

    def test_products_in_catalog_order(self, client):
        products = client.get(f"{API}/products").json()
        assert [p["id"] for p in products] == list(range(1, 12))
        assert products[0] == {
            "id": 1,
            "name": "Wireless Headphones",
            "price": 99.99,
            "category": "Electronics",
            "imageUrl": "https://img.test/1",
        }


class TestGuestCart:

    def test_reads_never_create_a_guest(self, client):
        assert client.get(f"{API}/cart").json()["items"] == []
        shop = client.get(f"{API}/shop")
        assert shop.json()["user"] is None
        assert "set-cookie" not in shop.headers
        assert client.cookies.get("guest_cart_id") is None

    def test_first_add_sets_guest_cookie(self, client, fake_supabase):
        response = client.post(f"{API}/cart/items", json={"productId": 4})

        assert response.status_code == 200
        guest_id = client.cookies.get("guest_cart_id")
        assert guest_id
        assert [item["productId"] for item in response.json()["items"]] == [4]
        assert len(fake_supabase.lines_of(guest_id=guest_id)) == 1

        # the same guest keeps adding to the same cart
        client.post(f"{API}/cart/items", json={"productId": 8})
        assert client.cookies.get("guest_cart_id") == guest_id
        cart = client.get(f"{API}/cart").json()
        assert [item["productId"] for item in cart["items"]] == [4, 8]
        assert cart["summary"] == {"itemCount": 2, "subtotal": 135.0}

    def test_remove_and_checkout(self, client):
        client.post(f"{API}/cart/items", json={"productId": 1})
        cart = client.post(f"{API}/cart/items", json={"productId": 2}).json()

        cart = client.delete(f"{API}/cart/items/{cart['items'][0]['id']}").json()
        assert [item["productId"] for item in cart["items"]] == [2]

        assert client.post(f"{API}/cart/checkout").json()["items"] == []
        assert client.post(f"{API}/cart/checkout").json()["items"] == []

    def test_invalid_product_id(self, client):
        assert client.post(f"{API}/cart/items", json={"productId": 0}).status_code == 422

    def test_shop_bundle(self, client):
        client.post(f"{API}/cart/items", json={"productId": 3})
        shop = client.get(f"{API}/shop").json()
        assert len(shop["products"]) == 11
        assert [item["productId"] for item in shop["cart"]["items"]] == [3]

    def test_debug_endpoint(self, client):
        client.post(f"{API}/cart/items", json={"productId": 3})
        info = client.get(f"{API}/cart/debug").json()
        assert info["serverGuestCookie"] == client.cookies.get("guest_cart_id")
        assert info["serverUserId"] == "Not Logged In"
        assert len(info["cartItemsSnapshot"]) == 1

    def test_debug_endpoint_hidden_outside_debug(self, make_client):
        with make_client(debug=False) as client:
            assert client.get(f"{API}/cart/debug").status_code == 404


class TestAuthFlow:

    def test_login_merges_guest_cart(self, client, fake_supabase):
        user_id, _ = fake_supabase.add_user("ada@example.com")
        client.post(f"{API}/cart/items", json={"productId": 1})
        client.post(f"{API}/cart/items", json={"productId": 5})

        response = client.post(
            f"{API}/auth/login",
            data={"email": "ada@example.com", "password": "secret"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert _location(response)[0] == "http://shop.test/shop"
        assert client.cookies.get("guest_cart_id") is None
        assert client.cookies.get("sb-access-token")

        cart = client.get(f"{API}/cart").json()
        assert [item["productId"] for item in cart["items"]] == [1, 5]
        assert {item["ownerId"] for item in cart["items"]} == {user_id}
        assert client.get(f"{API}/shop").json()["user"]["email"] == "ada@example.com"

    def test_failed_merge_still_logs_in(self, client, fake_supabase):
        fake_supabase.add_user("ada@example.com")
        client.post(f"{API}/cart/items", json={"productId": 1})
        guest_id = client.cookies.get("guest_cart_id")
        fake_supabase.fail_merge = True

        response = client.post(
            f"{API}/auth/login",
            data={"email": "ada@example.com", "password": "secret"},
            follow_redirects=False,
        )

        assert _location(response)[0] == "http://shop.test/shop"
        assert client.cookies.get("guest_cart_id") == guest_id
        assert client.cookies.get("sb-access-token")

    def test_bad_credentials(self, client, fake_supabase):
        fake_supabase.add_user("ada@example.com")
        response = client.post(
            f"{API}/auth/login",
            data={"email": "ada@example.com", "password": "nope"},
            follow_redirects=False,
        )
        url, query = _location(response)
        assert response.status_code == 303
        assert url == "http://shop.test/login"
        assert query == {"error": ["Could not authenticate user"]}
        assert client.cookies.get("sb-access-token") is None

    def test_signup(self, client, fake_supabase):
        fake_supabase.add_user("taken@example.com")

        failed = client.post(
            f"{API}/auth/signup",
            data={"email": "taken@example.com", "password": "secret123"},
            follow_redirects=False,
        )
        url, query = _location(failed)
        assert url == "http://shop.test/register"
        assert query == {"error": ["Could not create user"]}

        created = client.post(
            f"{API}/auth/signup",
            data={"email": "new@example.com", "password": "secret123"},
            follow_redirects=False,
        )
        assert _location(created)[0] == "http://shop.test/shop"
        assert client.cookies.get("sb-access-token")

    def test_google_oauth_round_trip(self, client, fake_supabase):
        fake_supabase.add_user("ada@example.com")
        fake_supabase.oauth_codes["code-1"] = "ada@example.com"

        start = client.post(f"{API}/auth/google", follow_redirects=False)
        url, query = _location(start)
        assert url == "http://supabase.test/auth/v1/authorize"
        assert query["redirect_to"] == ["http://shop.test/api/v1/auth/callback"]
        assert client.cookies.get("sb-code-verifier")

        done = client.get(f"{API}/auth/callback", params={"code": "code-1"}, follow_redirects=False)
        assert _location(done)[0] == "http://shop.test/shop"
        assert client.cookies.get("sb-access-token")
        assert client.cookies.get("sb-code-verifier") is None

    def test_oauth_callback_errors(self, client):
        missing = client.get(f"{API}/auth/callback", follow_redirects=False)
        assert _location(missing) == ("http://shop.test/login", {"error": ["OAuth failed"]})

        rejected = client.get(f"{API}/auth/callback", params={"code": "bogus"}, follow_redirects=False)
        assert _location(rejected)[1] == {"error": ["OAuth failed"]}

    def test_signout(self, client, fake_supabase):
        fake_supabase.add_user("ada@example.com")
        client.post(
            f"{API}/auth/login",
            data={"email": "ada@example.com", "password": "secret"},
            follow_redirects=False,
        )

        response = client.post(f"{API}/auth/signout", follow_redirects=False)

        assert _location(response)[0] == "http://shop.test/shop"
        assert client.cookies.get("sb-access-token") is None
        assert client.get(f"{API}/shop").json()["user"] is None


class TestSessionRefresh:

    @staticmethod
    def _login(client):
        client.post(
            f"{API}/auth/login",
            data={"email": "ada@example.com", "password": "secret"},
            follow_redirects=False,
        )

    def test_expired_access_cookie_is_refreshed(self, client, fake_supabase):
        user_id, _ = fake_supabase.add_user("ada@example.com")
        self._login(client)
        client.post(f"{API}/cart/items", json={"productId": 1})
        client.cookies.delete("sb-access-token")

        shop = client.get(f"{API}/shop").json()

        assert shop["user"]["id"] == user_id
        assert [item["productId"] for item in shop["cart"]["items"]] == [1]
        assert client.cookies.get("sb-access-token") == f"token-{user_id}"
        assert client.cookies.get("guest_cart_id") is None
        refreshes = [
            r for r in fake_supabase.requests if r.url.params.get("grant_type") == "refresh_token"
        ]
        assert len(refreshes) == 1

    def test_rejected_refresh_token_signs_out(self, client, fake_supabase):
        fake_supabase.add_user("ada@example.com")
        self._login(client)
        client.cookies.delete("sb-access-token")
        fake_supabase.users.clear()

        shop = client.get(f"{API}/shop").json()

        assert shop["user"] is None
        assert client.cookies.get("sb-refresh-token") is None

    def test_signout_wins_over_refresh(self, client, fake_supabase):
        fake_supabase.add_user("ada@example.com")
        self._login(client)
        client.cookies.delete("sb-access-token")

        client.post(f"{API}/auth/signout", follow_redirects=False)

        assert client.cookies.get("sb-access-token") is None
        assert client.cookies.get("sb-refresh-token") is None
        assert client.get(f"{API}/shop").json()["user"] is None


class TestChat:

    def test_answer_with_tool_use(self, client, chat_script):
        chat_script.extend(
            [
                AIMessage(
                    content="",
                    tool_calls=[{"name": "search_products", "args": {"category": "toys"}, "id": "call_1"}],
                ),
                AIMessage(content="**Teddy Bear** - $15\n_Soft and cuddly._"),
            ]
        )

        response = client.post(f"{API}/chat", json={"message": "Any toys?", "history": []})

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "model"
        assert data["content"] == "**Teddy Bear** - $15\n_Soft and cuddly._"
        assert "<strong>Teddy Bear</strong>" in data["renderable"]["html"]
        assert data["renderable"]["nodes"][0]["type"] == "paragraph"

    def test_unknown_tool_returns_error(self, client, chat_script):
        chat_script.append(
            AIMessage(content="", tool_calls=[{"name": "refund_order", "args": {}, "id": "call_1"}])
        )

        response = client.post(f"{API}/chat", json={"message": "refund me"})

        assert response.status_code == 500
        assert response.json() == {"error": "Unknown tool: refund_order"}

    def test_malformed_body(self, client):
        for kwargs in (
            {"content": b"not json", "headers": {"Content-Type": "application/json"}},
            {"json": {"history": []}},
            {"json": {"message": ""}},
        ):
            response = client.post(f"{API}/chat", **kwargs)
            assert response.status_code == 500
            assert response.json() == {"error": "Invalid chat request"}

    def test_other_routes_keep_validation_errors(self, client):
        response = client.post(f"{API}/cart/items", json={"productId": "x"})
        assert response.status_code == 422
        assert "detail" in response.json()

    def test_rate_limited(self, make_client, chat_script):
        chat_script.extend(AIMessage(content=f"answer {i}") for i in range(5))

        with make_client(rate_limit_requests=2) as client:
            assert client.post(f"{API}/chat", json={"message": "a"}).status_code == 200
            assert client.post(f"{API}/chat", json={"message": "b"}).status_code == 200
            limited = client.post(f"{API}/chat", json={"message": "c"})
            assert limited.status_code == 429
            assert limited.headers["Retry-After"] == "60"
            # other endpoints are not limited
            assert client.get(f"{API}/products").status_code == 200
