"""FastAPI application exposing the routing service"""

from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from ..core.config import get_settings
from ..core.logger import CentralizedLogger
from ..core.telemetry import get_tracer, setup_telemetry, shutdown_telemetry
from ..core.uvicorn_config import configure_otel_logging
from ..services.service_factory import ServiceFactory, ServiceType
from .middleware.telemetry import TelemetryMiddleware
from .middleware.error_handler import ErrorHandlerMiddleware
from .routers import routing


settings = get_settings()
logger = CentralizedLogger("API")
tracer = get_tracer(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Set up telemetry, build and health-check provider clients, tear down on exit"""
    logger.info(f"Starting {settings.app_name} ({settings.environment})")

    if settings.telemetry.enabled:
        setup_telemetry(settings)
        FastAPIInstrumentor().instrument_app(app)
        configure_otel_logging()
        logger.info(f"Exporting telemetry to {settings.telemetry.otlp_endpoint}")

    service = ServiceFactory.create(ServiceType.ROUTING)
    await service.initialize()
    logger.info(
        f"Routing {len(service.registry)} models across "
        f"{len(service.clients)} providers, preferred: {service.get_preferred_provider()}"
    )

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await ServiceFactory.shutdown_all()
    shutdown_telemetry()


app = FastAPI(
    title="Hybrid AI Router API",
    description="Multi-provider AI request routing and orchestration",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-Id", "X-Span-Id", "traceparent"]
)

# Last added runs first: telemetry wraps error handling so error bodies carry trace ids
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(TelemetryMiddleware)

app.include_router(routing.router, prefix="/api/routing", tags=["routing"])


@app.get("/")
async def root() -> Dict[str, str]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "docs": "/api/docs"
    }


@app.get("/api/health")
async def health_check() -> Dict[str, Any]:
    """Aggregate health; degraded when any service reports otherwise"""
    with tracer.start_as_current_span("health_check"):
        service_health = await ServiceFactory.health_check_all()

        all_healthy = all(
            isinstance(status, dict) and status.get("status") == "healthy"
            for status in service_health.values()
        )

        return {
            "status": "healthy" if all_healthy else "degraded",
            "services": service_health,
            "environment": settings.environment,
            "telemetry_enabled": settings.telemetry.enabled
        }


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "message": "The requested resource was not found",
            "path": request.url.path
        }
    )
