"""
Main FastAPI application for the course access engine.
Serves content access, internal purchase/catalog/certificate endpoints, health and metrics.
"""
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import configure_logging, request_id_var
from app.api.routes import catalog, certificates, content, health, purchases
from app.utils.metrics import router as metrics_router


configure_logging()
logger = logging.getLogger("app.http")

app = FastAPI(
    title="Course Access API",
    description="Entitlements, per-unit access decisions and delegated video URLs",
    version="1.0.0",
)

# CORS
origins = settings.cors_origins_list or ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_log(request: Request, call_next):
    request_id = request.headers.get(settings.request_id_header) or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    started = time.monotonic()
    try:
        response = await call_next(request)
        response.headers[settings.request_id_header] = request_id
        logger.info(
            "http_request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return response
    finally:
        request_id_var.reset(token)


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(content.router)
app.include_router(purchases.router)
app.include_router(certificates.router)
app.include_router(catalog.router)
app.include_router(metrics_router)
