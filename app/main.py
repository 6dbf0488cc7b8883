import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import make_asgi_app

from app.config import settings
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_id import RequestIDMiddleware
from app.routers import intake
from shared.logging import setup_logging
from shared.tracing import setup_tracing

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

tracing_enabled = setup_tracing("warranty-intake", settings.otlp_endpoint)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up: opening outbound HTTP client")
    app.state.http_client = httpx.AsyncClient(timeout=settings.http_timeout)
    logger.info(
        "Startup complete",
        extra={
            "counter_service_url": settings.counter_service_url,
            "email_configured": settings.email_configured,
            "hubspot_configured": bool(settings.hubspot_token),
        },
    )

    yield

    await app.state.http_client.aclose()
    logger.info("Shutting down")


app = FastAPI(
    title="Warranty Claim Intake",
    description="Dealer warranty form intake",
    version="1.0.0",
    lifespan=lifespan,
)

if tracing_enabled:
    FastAPIInstrumentor.instrument_app(app)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)
app.include_router(intake.router, prefix="/claims", tags=["claims"])

# Expose Prometheus metrics at /metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
