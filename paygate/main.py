from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.background import BackgroundTask

from paygate.config import settings
from paygate.dependencies import build_services
from paygate.exceptions import PaygateError, UpstreamError
from paygate.logging_config import setup_logging
from paygate.middleware.logging import LoggingMiddleware, current_correlation_id
from paygate.middleware.rate_limit import limiter
from paygate.routers import contact, donations, uploads
from paygate.scheduler import shutdown_scheduler, start_scheduler
from paygate.services.alert_service import send_error_alert

setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the token brokers and start/stop the sweep scheduler."""
    if not settings.payments_configured:
        logger.warning(
            "stripe_secret_key_not_configured",
            message="STRIPE_SECRET_KEY not set - checkout endpoints will fail until it is set",
        )

    services = build_services(settings)
    app.state.services = services
    start_scheduler(services.token_stores)
    yield
    shutdown_scheduler()


app = FastAPI(
    title="paygate",
    description="Payment-gated donations and contact requests",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(PaygateError)
async def paygate_error_handler(request: Request, exc: PaygateError):
    if not isinstance(exc, UpstreamError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    correlation_id = current_correlation_id()
    logger.error(
        "upstream_error",
        error_type=type(exc).__name__,
        path=request.url.path,
        detail=exc.detail,
        diagnostic=exc.diagnostic,
    )
    # Diagnostics go to operators only
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        background=BackgroundTask(
            send_error_alert,
            type(exc).__name__,
            exc.detail,
            path=request.url.path,
            correlation_id=correlation_id,
            status_code=exc.status_code,
            diagnostic=exc.diagnostic,
        ),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Same status and body shape as ValidationError
    logger.info("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(status_code=400, content={"detail": "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    correlation_id = current_correlation_id()
    logger.error(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc,
    )
    # Runs outside the logging middleware, so the header is set here
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
        headers={"X-Correlation-ID": correlation_id} if correlation_id else None,
        background=BackgroundTask(
            send_error_alert,
            type(exc).__name__,
            str(exc),
            path=request.url.path,
            correlation_id=correlation_id,
            status_code=500,
        ),
    )


# Middleware
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(donations.router, prefix="/donate", tags=["donations"])
app.include_router(contact.router, prefix="/mail", tags=["contact"])
app.include_router(uploads.router, prefix="/upload", tags=["uploads"])


@app.get("/health")
async def health_check(request: Request):
    return {
        "status": "healthy",
        "payments_configured": request.app.state.services.gateway.configured,
    }
