from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.exceptions import DeliveryError
from storefront.core.exception_handlers import (
    validation_exception_handler,
    http_exception_handler,
    delivery_exception_handler,
    general_exception_handler,
)
from storefront.utils.logger import logger
from storefront.config.settings import CORS_ORIGINS, CORS_ALLOW_ALL, BASE_URL, ENABLE_DOCS

from storefront.api.delivery.router.router_delivery_checkout import router as delivery_checkout_router
from storefront.api.monitoring.router import router_public as monitoring_router_public


# ──────────────────────────
# FastAPI instance
# ──────────────────────────
app = FastAPI(
    title="Storefront Delivery API",
    version="1.0.0",
    description="Same-day delivery checkout: eligibility, fee, time window and payment hand-off",
    docs_url=("/swagger" if ENABLE_DOCS else None),
    redoc_url=("/redoc" if ENABLE_DOCS else None),
    openapi_url=("/openapi.json" if ENABLE_DOCS else None),
    servers=([{"url": BASE_URL, "description": "Environment base URL"}] if BASE_URL else None),
    redirect_slashes=False  # Avoids 307 redirects when the URL has no trailing slash
)

# ───────────────────────────
# Global exception handlers
# ───────────────────────────
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(DeliveryError, delivery_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# ───────────────────────────
# Middlewares
# ───────────────────────────
# Middlewares run in REVERSE order of addition (last added = first executed)
# ───────────────────────────

# Prometheus (request metrics)
from storefront.utils.prometheus_metrics import PrometheusMiddleware
app.add_middleware(PrometheusMiddleware)

# CORS (added last, runs first)
# - CORS_ALLOW_ALL=true => allow_origins=["*"], allow_credentials=False
# - otherwise => allow_origins=CORS_ORIGINS (falls back to ["*"]), credentials only with explicit origins
if CORS_ALLOW_ALL:
    allowed_origins = ["*"]
    allow_credentials = False
else:
    allowed_origins = CORS_ORIGINS or ["*"]
    allow_credentials = bool(CORS_ORIGINS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ───────────────────────────
# Startup
# ───────────────────────────
@app.on_event("startup")
async def startup():
    from storefront.database.db_connection import init_db

    logger.info("Starting API and database...")
    init_db()
    logger.info("API started.")

# ───────────────────────────
# Shutdown
# ───────────────────────────
@app.on_event("shutdown")
async def shutdown():
    from storefront.api.delivery.router.dependencies import close_http_client

    logger.info("Shutting down API...")
    await close_http_client()
    logger.info("API stopped.")

# ───────────────────────────
# Routes
# ───────────────────────────

@app.get("/")
async def root():
    return {"status": "ok", "message": "API is running"}

@app.get("/health")
async def health():
    return {"status": "healthy"}

# ───────────────────────────
# Monitoring
# ───────────────────────────
app.include_router(monitoring_router_public)

# ───────────────────────────
# Routers
# ───────────────────────────
app.include_router(delivery_checkout_router)
