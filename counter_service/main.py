"""
Claim Counter service entry point.
Hands out sequential claim numbers over HTTP: POST /next -> {"n": <int>}.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from prometheus_client import make_asgi_app

from counter_service.config import settings
from counter_service.counter import (
    ClaimCounter,
    ConcurrencyViolationError,
    StorageUnavailableError,
)
from counter_service.database import AsyncSessionLocal, Base, engine
from shared.logging import setup_logging
from shared.schemas import ClaimNumberResponse
from shared.tracing import setup_tracing

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

tracing_enabled = setup_tracing("claim-counter", settings.otlp_endpoint)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up: creating counter tables")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if tracing_enabled:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

    counter = ClaimCounter(AsyncSessionLocal)
    await counter.ensure_initialized()
    app.state.counter = counter
    logger.info("Startup complete", extra={"counter": counter.name})

    yield

    await engine.dispose()
    logger.info("Shutting down")


app = FastAPI(
    title="Claim Counter",
    description="Durable sequential claim-number allocator",
    version="1.0.0",
    lifespan=lifespan,
)

if tracing_enabled:
    FastAPIInstrumentor.instrument_app(app)

# Expose Prometheus metrics at /metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


def _counter(request: Request) -> ClaimCounter:
    return request.app.state.counter


@app.post("/next", response_model=ClaimNumberResponse, tags=["counter"])
async def allocate_next(request: Request) -> ClaimNumberResponse:
    request_id = request.headers.get("X-Request-ID", "unknown")
    counter = _counter(request)
    try:
        n = await counter.allocate_next()
    except StorageUnavailableError as exc:
        logger.error(
            "Claim number allocation failed",
            extra={"request_id": request_id, "counter": counter.name, "error": str(exc)},
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Claim counter storage unavailable",
        )
    except ConcurrencyViolationError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Claim counter invariant violated",
        )

    logger.info(
        "Claim number issued",
        extra={"request_id": request_id, "counter": counter.name, "claim_number": n},
    )
    return ClaimNumberResponse(n=n)


@app.get("/health", tags=["health"])
async def health(request: Request):
    counter = _counter(request)
    try:
        value = await counter.current_value()
    except StorageUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Claim counter storage unavailable",
        )
    return {"status": "ok", "counter": counter.name, "value": value}
