"""API routes for the storefront."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse

from storefront.api.dependencies import (
    AppServices,
    get_app_settings,
    get_auth_service,
    get_cart_service,
    get_catalog_service,
    get_chatbot_service,
    get_identity,
    get_services,
)
from storefront.config import Settings
from storefront.graph.errors import AgentError
from storefront.models.cart import CartDebugInfo, CartView
from storefront.models.product import Product
from storefront.models.request import (
    AddToCartRequest,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    ShopResponse,
)
from storefront.services.auth_service import LOGIN_PATH, REGISTER_PATH, SHOP_PATH, AuthService
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.chatbot_service import ChatbotService
from storefront.services.identity_service import IdentityResolver

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_FAILED = "Could not authenticate user"
SIGNUP_FAILED = "Could not create user"
OAUTH_FAILED = "OAuth failed"


def _redirect(url: str) -> RedirectResponse:
    # 303 so the browser follows a form POST with a GET
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/health", response_model=HealthResponse)
async def health_check(services: AppServices = Depends(get_services)) -> HealthResponse:
    """Health check endpoint."""
    settings = services.settings
    supabase_status = "connected" if services.supabase.client else "disconnected"
    return HealthResponse(
        status="healthy" if supabase_status == "connected" else "degraded",
        version=settings.app_version,
        services={
            "supabase": supabase_status,
            "ollama": "configured" if settings.ollama_base_url else "not_configured",
        },
    )


# ── Catalog ───────────────────────────────────────────────────────────────────


@router.get("/products", response_model=list[Product])
async def list_products(
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[Product]:
    return await catalog.list_products()


@router.get("/shop", response_model=ShopResponse)
async def shop(
    request: Request,
    identity: IdentityResolver = Depends(get_identity),
    catalog: CatalogService = Depends(get_catalog_service),
    cart: CartService = Depends(get_cart_service),
) -> ShopResponse:
    """Everything the shop page needs in one call: user, products and cart."""
    return ShopResponse(
        user=await identity.get_user(request),
        products=await catalog.list_products(),
        cart=await cart.get_cart(request),
    )


# ── Cart ──────────────────────────────────────────────────────────────────────


@router.get("/cart", response_model=CartView)
async def get_cart(request: Request, cart: CartService = Depends(get_cart_service)) -> CartView:
    return await cart.get_cart(request)


@router.post("/cart/items", response_model=CartView)
async def add_to_cart(
    payload: AddToCartRequest,
    request: Request,
    response: Response,
    cart: CartService = Depends(get_cart_service),
) -> CartView:
    """Add one unit of a product. Mints a guest cart cookie when needed."""
    return await cart.add_to_cart(request, response, payload.productId)


@router.delete("/cart/items/{line_id}", response_model=CartView)
async def remove_from_cart(
    line_id: int,
    request: Request,
    cart: CartService = Depends(get_cart_service),
) -> CartView:
    return await cart.remove_from_cart(request, line_id)


@router.post("/cart/checkout", response_model=CartView)
async def checkout(request: Request, cart: CartService = Depends(get_cart_service)) -> CartView:
    return await cart.checkout(request)


@router.get("/cart/debug", response_model=CartDebugInfo)
async def cart_debug(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    cart: CartService = Depends(get_cart_service),
) -> CartDebugInfo:
    """Raw view of the server-side cart identity. Only served in debug mode."""
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    return await cart.get_debug_info(request)


# ── Chat ──────────────────────────────────────────────────────────────────────


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
)
async def chat(
    payload: ChatRequest,
    chatbot: ChatbotService = Depends(get_chatbot_service),
):
    """Answer a shopper's message with the store assistant.

    Body:
        message: The new user message
        history: Prior turns, oldest first
    """
    try:
        return await chatbot.reply(payload.message, payload.history)
    except AgentError as e:
        logger.error("Agent loop failed: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error=str(e)).model_dump(),
        )
    except Exception as e:
        logger.error("Chat error: %s", e, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error="Failed to process chat request").model_dump(),
        )


# ── Auth ──────────────────────────────────────────────────────────────────────


@router.post("/auth/login")
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    auth: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    session = await auth.login(email, password)
    if session is None:
        return _redirect(auth.redirect_url(LOGIN_PATH, error=LOGIN_FAILED))

    response = _redirect(auth.redirect_url(SHOP_PATH))
    await auth.complete_sign_in(session, request, response)
    return response


@router.post("/auth/signup")
async def signup(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    auth: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    result = await auth.signup(email, password)
    if result is None:
        return _redirect(auth.redirect_url(REGISTER_PATH, error=SIGNUP_FAILED))

    response = _redirect(auth.redirect_url(SHOP_PATH))
    # Without email confirmation GoTrue signs the user in right away
    if result.session is not None:
        await auth.complete_sign_in(result.session, request, response)
    return response


@router.post("/auth/google")
async def login_with_google(auth: AuthService = Depends(get_auth_service)) -> RedirectResponse:
    started = auth.start_google_login()
    if started is None:
        return _redirect(auth.redirect_url(LOGIN_PATH, error=OAUTH_FAILED))

    provider_url, verifier = started
    response = _redirect(provider_url)
    auth.set_code_verifier_cookie(response, verifier)
    return response


@router.get("/auth/callback")
async def oauth_callback(
    request: Request,
    code: Optional[str] = None,
    error_description: Optional[str] = None,
    auth: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    """Provider redirect target: exchange the code, then merge like a password login."""
    if error_description or not code:
        logger.warning("OAuth callback rejected: %s", error_description or "missing code")
        return _redirect(auth.redirect_url(LOGIN_PATH, error=OAUTH_FAILED))

    session = await auth.finish_oauth(request, code)
    if session is None:
        return _redirect(auth.redirect_url(LOGIN_PATH, error=OAUTH_FAILED))

    response = _redirect(auth.redirect_url(SHOP_PATH))
    await auth.complete_sign_in(session, request, response)
    return response


@router.post("/auth/signout")
async def signout(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    response = _redirect(auth.redirect_url(SHOP_PATH))
    await auth.signout(request, response)
    return response
