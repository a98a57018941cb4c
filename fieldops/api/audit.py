from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime

from fastapi import APIRouter, Query

from fieldops.audit.models import AuditEvent, AuditEventType, AuditQuery
from fieldops.audit.store import AuditEventStore

logger = logging.getLogger(__name__)


def _render(events: list[AuditEvent]) -> dict:
    return {
        "events": [e.model_dump(mode="json") for e in events],
        "count": len(events),
    }


def build_audit_router(store: AuditEventStore) -> APIRouter:
    """Read-only query endpoints over ``store``.

    The router performs no access control; hosts mount it behind their own
    admin guard.
    """
    router = APIRouter(
        prefix="/api/admin/audit",
        tags=["Audit"],
    )

    @router.get("/events")
    async def list_events(
        user_id: int | None = Query(default=None),
        resource_type: str | None = Query(default=None),
        event_type: AuditEventType | None = Query(default=None),
        start_date: datetime | None = Query(default=None),
        end_date: datetime | None = Query(default=None),
        limit: int | None = Query(default=None, ge=1, le=store.capacity),
    ) -> dict:
        """Return audit events matching every supplied filter, newest first."""
        query = AuditQuery(
            user_id=user_id,
            resource_type=resource_type,
            event_type=event_type,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )
        return _render(store.get_events(query))

    @router.get("/unauthorized")
    async def unauthorized_attempts(
        limit: int = Query(default=100, ge=1, le=store.capacity),
    ) -> dict:
        return _render(store.get_unauthorized_access_attempts(limit))

    @router.get("/stats")
    async def stats() -> dict:
        events = store.get_events()
        by_type = Counter(e.event_type.value for e in events)
        return {
            "size": len(events),
            "capacity": store.capacity,
            "by_type": dict(by_type),
        }

    return router
