"""FastAPI application entrypoint.

``create_app`` is the composition root: it builds the audit store once and
hands it to the middleware and the query router. The CRUD routers of the
wider service are mounted by the host on top of the returned app.
"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from fieldops.api.audit import build_audit_router
from fieldops.audit.store import AuditEventStore, set_audit_store
from fieldops.logging_config import configure_logging
from fieldops.middleware import AuditMiddleware, RequestIDMiddleware
from fieldops.settings import AuditSettings, get_audit_settings

logger = logging.getLogger(__name__)


def create_app(
    store: AuditEventStore | None = None,
    settings: AuditSettings | None = None,
) -> FastAPI:
    """Assemble the application with audit capture and query endpoints."""
    if settings is None:
        settings = get_audit_settings()
    if store is None:
        store = AuditEventStore(settings.capacity)
    set_audit_store(store)

    app = FastAPI(title="fieldops", version=os.getenv("APP_VERSION", "0.1.0"))
    app.state.audit_store = store

    # Starlette wraps in reverse order: RequestID is outermost so its
    # request id is in context while the audit middleware logs.
    if settings.enabled:
        app.add_middleware(AuditMiddleware, store=store, settings=settings)
    else:
        logger.warning("audit middleware disabled via FIELDOPS_AUDIT_ENABLED")
    app.add_middleware(RequestIDMiddleware)

    app.include_router(build_audit_router(store))

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    logger.info(
        "application composed",
        extra={"meta": {"audit_enabled": settings.enabled, "capacity": store.capacity}},
    )
    return app


if os.getenv("ENV") != "test":
    configure_logging()

app = create_app()


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host=host, port=port)
