import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from healthgate.api.v1.router import api_v1_router
from healthgate.core.config import settings, validate_settings_for_production
from healthgate.core.logging import setup_logging
from healthgate.core.metrics import PrometheusMiddleware, metrics_response
from healthgate.core.sentry import init_sentry
from healthgate.gateway.errors import GatewayError, NotConfigured, Throttled
from healthgate.gateway.gateway import AiGateway

# Configure logging before anything else
setup_logging()
init_sentry()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings_for_production()
    logger.info("Starting health tracker AI gateway...")

    gateway = AiGateway.from_settings(settings)
    app.state.gateway = gateway

    # Load once; on failure the gateway stays fail-closed and answers NotConfigured
    try:
        config = await gateway.loader.wait_ready()
        logger.info("Gateway ready: categories with keys: %s", ", ".join(config.categories) or "none")
    except NotConfigured as e:
        logger.warning("Gateway not configured at startup: %s", e)

    yield

    logger.info("Health tracker AI gateway shut down")


app = FastAPI(
    title="Health Tracker AI Gateway",
    description="Cooldown-gated Gemini proxy with credential rotation and failover",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.app_debug else None,
    redoc_url="/api/redoc" if settings.app_debug else None,
)


@app.exception_handler(GatewayError)
async def _gateway_error_handler(request: Request, exc: GatewayError):
    headers = {}
    detail = {"message": exc.message, "kind": exc.kind}
    if isinstance(exc, Throttled):
        headers["Retry-After"] = str(exc.retry_after_seconds)
        detail["retry_after_seconds"] = exc.retry_after_seconds
    return JSONResponse(status_code=exc.status_code, content={"error": detail}, headers=headers)


# Log unhandled exceptions so they appear in the platform logs
@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled %s on %s %s:\n%s", type(exc).__name__, request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"error": {"message": f"{type(exc).__name__}: {exc}"}})


# Metrics middleware
app.add_middleware(PrometheusMiddleware)

# CORS — parse allowed_origins from settings (comma-separated)
_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(api_v1_router)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()


@app.get("/api/v1/health")
async def health(request: Request):
    gateway: AiGateway | None = getattr(request.app.state, "gateway", None)
    ready = gateway is not None and gateway.loader.ready
    return {
        "status": "ok" if ready else "degraded",
        "gateway_configured": ready,
    }
