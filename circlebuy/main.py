import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.middleware import SlowAPIMiddleware

from circlebuy.config import settings
from circlebuy.core.handlers import register_exception_handlers
from circlebuy.core.middleware import SecurityHeadersMiddleware
from circlebuy.modules.auth import routes as auth_routes
from circlebuy.modules.profiles import routes as profiles_routes
from circlebuy.modules.products import routes as products_routes
from circlebuy.modules.kyc import routes as kyc_routes
from circlebuy.modules.groups import routes as groups_routes
from circlebuy.modules.checkout import routes as checkout_routes
from circlebuy.modules.cart import routes as cart_routes
from circlebuy.modules.orders import routes as orders_routes
from circlebuy.modules.wishlist import routes as wishlist_routes
from circlebuy.modules.dashboards import routes as dashboards_routes

API_PREFIX = "/api/v1"
ROUTERS = [
    auth_routes.router,
    profiles_routes.router,
    products_routes.router,
    kyc_routes.router,
    groups_routes.router,
    checkout_routes.router,
    cart_routes.router,
    orders_routes.router,
    wishlist_routes.router,
    dashboards_routes.router,
]

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger("circlebuy")

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)


def create_app() -> FastAPI:
    application = FastAPI(title=settings.app_name, debug=settings.debug, redirect_slashes=False)
    application.state.limiter = limiter
    register_exception_handlers(application)

    # Added last runs first: CORS wraps the security headers, which wrap the limiter
    application.add_middleware(SlowAPIMiddleware)
    application.add_middleware(SecurityHeadersMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in ROUTERS:
        application.include_router(router, prefix=API_PREFIX)
    return application


app = create_app()


@app.on_event("startup")
async def on_startup():
    logger.info("%s starting (%s, rate limiting %s)", settings.app_name, settings.environment,
                "on" if settings.rate_limit_enabled else "off")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("%s stopped", settings.app_name)


@app.get("/")
async def root():
    return {"service": settings.app_name, "api": API_PREFIX, "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness: the Supabase project this instance talks to is configured."""
    if not settings.supabase_configured:
        return JSONResponse(status_code=503, content={"status": "not ready", "detail": "Supabase is not configured"})
    return {"status": "ready"}
