"""Cart storage and cart use cases.

``CartStore`` is the only code that touches ``cart_items``. It scopes every
call to one owner and turns storage failures into empty/``False`` results so
the shop stays usable when Supabase misbehaves. ``CartService`` wires owner
resolution to the store for the HTTP layer.
"""

import logging
from typing import Any, Optional

from fastapi import Request, Response

from storefront.database.supabase import SupabaseClient, SupabaseError
from storefront.models.cart import CartDebugInfo, CartLine, CartView
from storefront.models.owner import Owner, ResolveMode
from storefront.services.identity_service import IdentityResolver
from storefront.utils.helpers import coerce_number

logger = logging.getLogger(__name__)

CART_TABLE = "cart_items"
MERGE_FUNCTION = "merge_guest_cart"


class CartStore:
    """Owner-scoped reads and writes against ``cart_items``."""

    def __init__(self, supabase: SupabaseClient) -> None:
        self.supabase = supabase

    @staticmethod
    def _scope(owner: Owner) -> dict[str, Any]:
        # Guests prove ownership through the x-guest-id header, users through
        # their own access token; RLS checks either against the row.
        if owner.is_guest:
            return {"guest_id": owner.id}
        return {"access_token": owner.access_token}

    @staticmethod
    def _owner_filter(owner: Owner) -> tuple[str, str]:
        return (owner.owner_column, f"eq.{owner.id}")

    # ── Query ─────────────────────────────────────────────────────────────────

    async def list_cart(self, owner: Owner) -> list[CartLine]:
        """Return the owner's lines, oldest first. Errors yield ``[]``."""
        try:
            rows = await self.supabase.select(
                CART_TABLE,
                columns="*,product(*)",
                filters=[self._owner_filter(owner)],
                order="created_at.asc",
                **self._scope(owner),
            )
        except SupabaseError as e:
            logger.error("Cart read failed for %s %s: %s", owner.kind.value, owner.id, e.message)
            return []

        lines: list[CartLine] = []
        for row in rows:
            try:
                lines.append(CartLine.from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed cart row %s: %s", row.get("id"), e)
        return lines

    async def snapshot(self, owner: Optional[Owner], guest_id: Optional[str] = None) -> list[dict[str, Any]]:
        """Raw id/owner columns of every row visible to the caller (debugging)."""
        scope = self._scope(owner) if owner else {"guest_id": guest_id}
        try:
            rows = await self.supabase.select(
                CART_TABLE, columns="id,product_id,user_id,guest_id", **scope
            )
        except SupabaseError as e:
            logger.error("Cart snapshot failed: %s", e.message)
            return []
        return [{**row, "id": coerce_number(row.get("id"))} for row in rows]

    # ── Commands ──────────────────────────────────────────────────────────────

    async def add_line(self, owner: Owner, product_id: int) -> bool:
        """Insert a new line with quantity 1.

        Repeated adds of the same product insert separate lines.
        """
        payload = {
            "product_id": product_id,
            "quantity": 1,
            owner.owner_column: owner.id,
        }
        try:
            await self.supabase.insert(CART_TABLE, payload, **self._scope(owner))
        except SupabaseError as e:
            logger.error(
                "Add to cart failed (product=%s, %s %s): %s",
                product_id,
                owner.kind.value,
                owner.id,
                e.message,
            )
            return False
        logger.info("Added product %s to %s cart %s", product_id, owner.kind.value, owner.id)
        return True

    async def remove_line(self, owner: Owner, line_id: int) -> bool:
        """Delete one of the owner's lines. Lines of other owners are untouched."""
        try:
            deleted = await self.supabase.delete(
                CART_TABLE,
                filters=[("id", f"eq.{line_id}"), self._owner_filter(owner)],
                **self._scope(owner),
            )
        except SupabaseError as e:
            logger.error("Remove from cart failed (line=%s): %s", line_id, e.message)
            return False
        if not deleted:
            logger.info("Cart line %s not found for %s %s", line_id, owner.kind.value, owner.id)
        return True

    async def clear_cart(self, owner: Owner) -> bool:
        """Delete all of the owner's lines."""
        try:
            deleted = await self.supabase.delete(
                CART_TABLE, filters=[self._owner_filter(owner)], **self._scope(owner)
            )
        except SupabaseError as e:
            logger.error("Clearing cart failed for %s %s: %s", owner.kind.value, owner.id, e.message)
            return False
        logger.info("Cleared %d line(s) from %s cart %s", len(deleted), owner.kind.value, owner.id)
        return True

    async def merge_guest_cart(self, guest_id: str, user_id: str, access_token: str) -> bool:
        """Reassign every line of ``guest_id`` to ``user_id`` in one transaction.

        Runs as a single Postgres function so readers never observe a
        half-merged cart. Duplicate products are kept as separate lines.
        """
        try:
            await self.supabase.rpc(
                MERGE_FUNCTION,
                {"guest_cart_id": guest_id, "target_user_id": user_id},
                access_token=access_token,
                guest_id=guest_id,
            )
        except SupabaseError as e:
            logger.error("Cart merge failed (guest=%s -> user=%s): %s", guest_id, user_id, e.message)
            return False
        logger.info("Merged guest cart %s into user %s", guest_id, user_id)
        return True


class CartService:
    """Cart use cases, each scoped implicitly by the request's owner."""

    def __init__(self, store: CartStore, identity: IdentityResolver) -> None:
        self.store = store
        self.identity = identity

    # query
    async def get_cart(self, request: Request) -> CartView:
        owner = await self.identity.resolve_owner(request, ResolveMode.READ_ONLY)
        if owner is None:
            return CartView()
        return CartView.from_lines(await self.store.list_cart(owner))

    # commands
    async def add_to_cart(self, request: Request, response: Response, product_id: int) -> CartView:
        owner = await self.identity.resolve_owner(request, ResolveMode.MAY_CREATE, response)
        await self.store.add_line(owner, product_id)
        return CartView.from_lines(await self.store.list_cart(owner))

    async def remove_from_cart(self, request: Request, line_id: int) -> CartView:
        owner = await self.identity.resolve_owner(request, ResolveMode.READ_ONLY)
        if owner is None:
            return CartView()
        await self.store.remove_line(owner, line_id)
        return CartView.from_lines(await self.store.list_cart(owner))

    async def checkout(self, request: Request) -> CartView:
        """Place the order implicitly by emptying the cart. Idempotent."""
        owner = await self.identity.resolve_owner(request, ResolveMode.READ_ONLY)
        if owner is None:
            return CartView()
        await self.store.clear_cart(owner)
        return CartView.from_lines(await self.store.list_cart(owner))

    async def get_debug_info(self, request: Request) -> CartDebugInfo:
        owner = await self.identity.resolve_owner(request, ResolveMode.READ_ONLY)
        guest_id = self.identity.get_guest_id(request)
        user_id = owner.id if owner and not owner.is_guest else None
        return CartDebugInfo(
            serverGuestCookie=guest_id or "No Cookie",
            serverUserId=user_id or "Not Logged In",
            cartItemsSnapshot=await self.store.snapshot(owner, guest_id),
        )
