"""Resolve who owns the cart for the current request."""

import logging
from typing import Optional

from fastapi import Request, Response

from storefront.config import Settings
from storefront.database.supabase import SupabaseClient, SupabaseError
from storefront.models.auth import AuthUser
from storefront.models.owner import Owner, ResolveMode
from storefront.utils.helpers import generate_uuid

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Maps request cookies to an :class:`Owner`.

    Resolution order: a valid Supabase session wins, then an existing guest
    cookie, then (only in ``MAY_CREATE`` mode) a freshly minted guest id.
    """

    def __init__(self, supabase: SupabaseClient, settings: Settings) -> None:
        self.supabase = supabase
        self.settings = settings

    async def get_user(self, request: Request) -> Optional[AuthUser]:
        """Return the signed-in user, or ``None`` for anonymous visitors.

        Token validation problems are not errors for the caller: an expired
        or unverifiable session simply means "not signed in".
        """
        access_token = request.cookies.get(self.settings.access_token_cookie_name)
        if not access_token:
            return None
        try:
            return await self.supabase.get_user(access_token)
        except SupabaseError as e:
            logger.warning("Session token rejected (status=%s): %s", e.status_code, e.message)
            return None

    def get_guest_id(self, request: Request) -> Optional[str]:
        return request.cookies.get(self.settings.guest_cookie_name) or None

    async def resolve_owner(
        self,
        request: Request,
        mode: ResolveMode = ResolveMode.READ_ONLY,
        response: Optional[Response] = None,
    ) -> Optional[Owner]:
        """Determine the acting party for this request.

        Args:
            request: Incoming request (cookies are read from it).
            mode: ``READ_ONLY`` never writes cookies and may return ``None``;
                ``MAY_CREATE`` mints and persists a guest id when needed.
            response: Where a new guest cookie is written. Required for
                ``MAY_CREATE``.

        Returns:
            The owner, or ``None`` in read-only mode for a visitor with no
            identity yet. Callers treat ``None`` as an empty cart.
        """
        if mode == ResolveMode.MAY_CREATE and response is None:
            raise ValueError("MAY_CREATE resolution needs a response to set the guest cookie on")

        user = await self.get_user(request)
        if user:
            access_token = request.cookies.get(self.settings.access_token_cookie_name)
            return Owner.user(user.id, access_token=access_token)

        guest_id = self.get_guest_id(request)
        if guest_id:
            return Owner.guest(guest_id)

        if mode == ResolveMode.READ_ONLY:
            return None

        guest_id = generate_uuid()
        self.set_guest_cookie(response, guest_id)
        logger.info("Issued new guest cart id %s", guest_id)
        return Owner.guest(guest_id)

    def set_guest_cookie(self, response: Response, guest_id: str) -> None:
        response.set_cookie(
            key=self.settings.guest_cookie_name,
            value=guest_id,
            max_age=self.settings.guest_cookie_max_age,
            path="/",
            httponly=True,
            secure=self.settings.session_cookie_secure,
            samesite="lax",
        )

    def clear_guest_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=self.settings.guest_cookie_name,
            path="/",
            httponly=True,
            secure=self.settings.session_cookie_secure,
            samesite="lax",
        )
