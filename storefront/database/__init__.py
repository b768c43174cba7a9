"""Database package."""

from storefront.database.supabase import GUEST_ID_HEADER, SupabaseClient, SupabaseError

__all__ = [
    "SupabaseClient",
    "SupabaseError",
    "GUEST_ID_HEADER",
]
