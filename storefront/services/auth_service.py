"""Authentication actions and the post-login guest cart merge."""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import Request, Response

from storefront.config import Settings
from storefront.database.supabase import SupabaseClient, SupabaseError
from storefront.models.auth import AuthSession, SignUpResult
from storefront.services.cart_service import CartStore
from storefront.services.identity_service import IdentityResolver
from storefront.utils.helpers import generate_pkce_pair

logger = logging.getLogger(__name__)

SHOP_PATH = "/shop"
LOGIN_PATH = "/login"
REGISTER_PATH = "/register"


class AuthService:
    """Sign-in, sign-up and sign-out against Supabase GoTrue."""

    def __init__(
        self,
        supabase: SupabaseClient,
        cart_store: CartStore,
        identity: IdentityResolver,
        settings: Settings,
    ) -> None:
        self.supabase = supabase
        self.cart_store = cart_store
        self.identity = identity
        self.settings = settings

    def redirect_url(self, path: str, error: Optional[str] = None) -> str:
        """Absolute URL of a site page.

        Auth failures are reported to the UI as an ``error`` query parameter.
        """
        url = f"{self.settings.site_url}{path}"
        if error:
            url = f"{url}?{urlencode({'error': error})}"
        return url

    @property
    def callback_url(self) -> str:
        return f"{self.settings.site_url}{self.settings.api_prefix}/auth/callback"

    # ── Sign-in ───────────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> Optional[AuthSession]:
        try:
            return await self.supabase.sign_in_with_password(email, password)
        except SupabaseError as e:
            logger.info("Password sign-in failed for %s: %s", email, e.message)
            return None

    async def signup(self, email: str, password: str) -> Optional[SignUpResult]:
        try:
            return await self.supabase.sign_up(email, password)
        except SupabaseError as e:
            logger.info("Sign-up failed for %s: %s", email, e.message)
            return None

    def start_google_login(self) -> Optional[tuple[str, str]]:
        """Begin the PKCE OAuth flow.

        Returns:
            ``(provider_url, code_verifier)``, or None when Supabase is not
            configured. The verifier must be stored with
            :meth:`set_code_verifier_cookie` on the redirect response.
        """
        if not self.supabase.url:
            logger.error("Cannot start OAuth: SUPABASE_URL is not set")
            return None
        verifier, challenge = generate_pkce_pair()
        return self.supabase.authorize_url("google", self.callback_url, challenge), verifier

    def set_code_verifier_cookie(self, response: Response, verifier: str) -> None:
        response.set_cookie(
            key=self.settings.code_verifier_cookie_name,
            value=verifier,
            max_age=600,
            path="/",
            httponly=True,
            secure=self.settings.session_cookie_secure,
            samesite="lax",
        )

    async def finish_oauth(self, request: Request, auth_code: str) -> Optional[AuthSession]:
        verifier = request.cookies.get(self.settings.code_verifier_cookie_name)
        if not verifier:
            logger.warning("OAuth callback without a code verifier cookie")
            return None
        try:
            return await self.supabase.exchange_code_for_session(auth_code, verifier)
        except SupabaseError as e:
            logger.error("OAuth code exchange failed: %s", e.message)
            return None

    async def complete_sign_in(
        self, session: AuthSession, request: Request, response: Response
    ) -> bool:
        """Persist the session and fold the guest cart into the user's cart.

        Called once per successful sign-in, before redirecting. A failed merge
        never fails the login: the guest cookie is kept so the merge can be
        retried and the error is only logged.

        Returns:
            Whether a guest cart was merged.
        """
        self.set_session_cookies(response, session)
        if request.cookies.get(self.settings.code_verifier_cookie_name):
            response.delete_cookie(self.settings.code_verifier_cookie_name, path="/")

        guest_id = self.identity.get_guest_id(request)
        if not guest_id:
            return False

        logger.info("Attempting merge for guest %s -> user %s", guest_id, session.user.id)
        merged = await self.cart_store.merge_guest_cart(
            guest_id, session.user.id, session.access_token
        )
        if merged:
            self.identity.clear_guest_cookie(response)
        return merged

    async def refresh_session(self, refresh_token: str) -> Optional[AuthSession]:
        """Trade a refresh token for a new session, or None if GoTrue refuses it."""
        try:
            return await self.supabase.refresh_session(refresh_token)
        except SupabaseError as e:
            logger.warning("Session refresh failed (status=%s): %s", e.status_code, e.message)
            return None

    # ── Sign-out ──────────────────────────────────────────────────────────────

    async def signout(self, request: Request, response: Response) -> None:
        access_token = request.cookies.get(self.settings.access_token_cookie_name)
        if access_token:
            try:
                await self.supabase.sign_out(access_token)
            except SupabaseError as e:
                # The local session is dropped regardless
                logger.warning("Remote sign-out failed: %s", e.message)
        self.clear_session_cookies(response)

    # ── Cookies ───────────────────────────────────────────────────────────────

    def set_session_cookies(self, response: Response, session: AuthSession) -> None:
        common = {
            "path": "/",
            "httponly": True,
            "secure": self.settings.session_cookie_secure,
            "samesite": "lax",
        }
        response.set_cookie(
            key=self.settings.access_token_cookie_name,
            value=session.access_token,
            max_age=session.expires_in,
            **common,
        )
        response.set_cookie(
            key=self.settings.refresh_token_cookie_name,
            value=session.refresh_token,
            max_age=self.settings.refresh_cookie_max_age,
            **common,
        )

    def clear_session_cookies(self, response: Response) -> None:
        for name in (
            self.settings.access_token_cookie_name,
            self.settings.refresh_token_cookie_name,
        ):
            response.delete_cookie(name, path="/")
