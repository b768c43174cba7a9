"""Process-wide services and the FastAPI dependencies that hand them out.

Everything is built once by the application lifespan and stored on
``app.state.services``; route handlers never reach for module globals.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request

from storefront.config import Settings
from storefront.database.supabase import SupabaseClient
from storefront.services.auth_service import AuthService
from storefront.services.cart_service import CartService, CartStore
from storefront.services.catalog_service import CatalogService
from storefront.services.chatbot_service import ChatbotService
from storefront.services.identity_service import IdentityResolver

ChatbotFactory = Callable[[Settings, SupabaseClient], ChatbotService]


@dataclass
class AppServices:
    settings: Settings
    supabase: SupabaseClient
    identity: IdentityResolver
    catalog: CatalogService
    cart: CartService
    auth: AuthService
    chatbot: ChatbotService

    @classmethod
    def build(
        cls,
        settings: Settings,
        supabase: SupabaseClient,
        chatbot_factory: Optional[ChatbotFactory] = None,
    ) -> "AppServices":
        """Wire every service around one connected Supabase client."""
        identity = IdentityResolver(supabase, settings)
        cart_store = CartStore(supabase)
        factory = chatbot_factory or ChatbotService.from_settings
        return cls(
            settings=settings,
            supabase=supabase,
            identity=identity,
            catalog=CatalogService(supabase),
            cart=CartService(cart_store, identity),
            auth=AuthService(supabase, cart_store, identity, settings),
            chatbot=factory(settings, supabase),
        )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_app_settings(request: Request) -> Settings:
    return get_services(request).settings


def get_identity(request: Request) -> IdentityResolver:
    return get_services(request).identity


def get_catalog_service(request: Request) -> CatalogService:
    return get_services(request).catalog


def get_cart_service(request: Request) -> CartService:
    return get_services(request).cart


def get_auth_service(request: Request) -> AuthService:
    return get_services(request).auth


def get_chatbot_service(request: Request) -> ChatbotService:
    return get_services(request).chatbot
