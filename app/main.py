from __future__ import annotations

from fastapi import FastAPI

from app.api.exception_handlers import register_exception_handlers
from app.api.schemas import HealthOut
from app.chat.deps import build_rate_limiter
from app.chat.router import router as chat_router
from app.core.logging import setup_logging
from app.core.metrics import PrometheusMetricsMiddleware, metrics_router
from app.core.middleware.cors import CorsMiddleware
from app.core.middleware.http_logging import HttpLoggingMiddleware
from app.core.settings import get_settings

setup_logging()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Clinical Chat Proxy",
        description=(
            "Proxy between the clinical front-end and a hosted chat-completion deployment.\n\n"
            "Design principles:\n"
            "- Conversations are validated and identifier-shaped text is redacted before "
            "forwarding. Redaction is a best-effort heuristic, not a compliance control.\n"
            "- Nothing is persisted; rate-limit counters live in process memory.\n"
            "- Logging and metrics avoid PHI/PII by using route templates and metadata only."
        ),
        docs_url="/swagger",
        redoc_url="/docs",
        openapi_tags=[
            {
                "name": "health",
                "description": (
                    "Basic uptime and readiness checks for load balancers and monitoring."
                ),
            },
            {
                "name": "chat",
                "description": "Forward a conversation to the clinical assistant.",
            },
            {
                "name": "monitoring",
                "description": "Prometheus-compatible metrics endpoint.",
            },
        ],
    )

    # One limiter per application: every request in this process shares its counters.
    app.state.rate_limiter = build_rate_limiter(settings)
    app.state.cors_allowed_origins = list(settings.cors_allowed_origins)

    # Last added runs first: logging wraps metrics, metrics wraps CORS.
    app.add_middleware(CorsMiddleware, allowed_origins=settings.cors_allowed_origins)
    app.add_middleware(PrometheusMetricsMiddleware)
    app.add_middleware(HttpLoggingMiddleware)

    register_exception_handlers(app)

    @app.get(
        "/health",
        response_model=HealthOut,
        tags=["health"],
        summary="Health check",
        description=(
            "Lightweight endpoint to verify the API process is running.\n\n"
            "This endpoint intentionally does not call the completion endpoint so it can be "
            "used safely (and for free) for basic uptime checks."
        ),
    )
    async def health() -> HealthOut:
        return HealthOut(status="ok")

    app.include_router(metrics_router)
    app.include_router(chat_router)
    return app


app = create_app()
