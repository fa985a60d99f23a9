"""
Redirect Checkout Service - Main Application Entry Point

This module initializes the FastAPI application and sets up the core routing.
The service starts PayPal and local-payment redirect authorizations, keeps the
round-trip session across the browser redirect and tokenizes the result when
the browser comes back.
"""

import structlog
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from api import routes
from api.middleware import log_api_entry
from core.dependencies import clear_settings, get_settings, init_settings
from core.logging import configure_logging
from core.metrics import init_metrics
from core.settings import Settings
from core.tracing import init_tracer
from db.models import PendingRedirect, PendingRedirectStatus
from db.session import get_db, init_db
from payments.errors import CheckoutError

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application startup and shutdown events."""
    # Startup
    init_settings()
    settings = get_settings()

    init_tracer(settings.OTEL_SERVICE_NAME)
    init_db(settings)

    yield
    # Shutdown
    clear_settings()


app = FastAPI(
    title="Redirect Checkout Service",
    description="""
    ## Redirect-based payment authorization

    Starts PayPal one-time payments, billing agreements and local payments
    by sending the browser to the provider, then validates the return and
    tokenizes the authorized account.

    ### Flow:
    1. `POST /api/v1/checkout/paypal/one-time-payment` (or billing-agreement, local-payment)
    2. Browser follows `redirect_url` to the provider
    3. Provider sends the browser to `/api/v1/checkout/return/...`
    4. Response carries the payment method nonce, or a typed error
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Initialize FastAPI instrumentation
FastAPIInstrumentor.instrument_app(app)

# Initialize Prometheus metrics
init_metrics(app)

# Add logging middleware first
app.middleware("http")(log_api_entry)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.exception_handler(CheckoutError)
async def checkout_exception_handler(request: Request, exc: CheckoutError):
    log.warning("checkout.error", path=request.url.path, code=exc.code, detail=str(exc))
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "code": "internal_error"},
    )


@app.get("/")
async def root():
    """Root endpoint providing API information."""
    return {
        "name": "Redirect Checkout Service",
        "version": "1.0.0",
        "api_documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_spec": "/openapi.json",
        },
        "endpoints": {
            "one_time_payment": "/api/v1/checkout/paypal/one-time-payment",
            "billing_agreement": "/api/v1/checkout/paypal/billing-agreement",
            "local_payment": "/api/v1/checkout/local-payment",
            "return": "/api/v1/checkout/return/{segment}",
            "cancel": "/api/v1/checkout/cancel",
            "health": "/healthz",
            "metrics": "/metrics",
        },
    }


@app.get("/healthz")
async def health_check(
    settings: Settings = Depends(get_settings), db: Session = Depends(get_db)
):
    """Liveness plus a round-trip to the pending redirect store."""
    waiting = db.execute(
        select(func.count())
        .select_from(PendingRedirect)
        .where(PendingRedirect.status == PendingRedirectStatus.pending)
    ).scalar_one()
    return {
        "status": "ok",
        "app_name": settings.APP_NAME,
        "database": "PostgreSQL"
        if settings.DATABASE_URL.startswith("postgresql")
        else "SQLite",
        "environment": settings.ENVIRONMENT,
        "pending_redirects": waiting,
    }


API_PREFIX = "/api/v1"

app.include_router(routes.router, prefix=API_PREFIX)


def main():
    configure_logging()
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
