"""
In-memory audit event store.

A bounded FIFO ring buffer of ``AuditEvent`` records shared by every in-flight
request. Appends are serialized with a lock; queries filter a snapshot copy so
they never observe a half-applied eviction.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import UTC, datetime
from typing import Any

from fieldops.audit.models import (
    AuditEvent,
    AuditEventDraft,
    AuditEventType,
    AuditQuery,
)
from fieldops.metrics import AUDIT_EVENTS, AUDIT_EVICTIONS, AUDIT_LOG_FAILURES
from fieldops.settings import AuditConfigurationError

logger = logging.getLogger(__name__)

# Structured event lines for external log aggregation
audit_logger = logging.getLogger("fieldops.audit")

DEFAULT_CAPACITY = 1000


class AuditEventStore:
    """Thread-safe, capacity-bounded, append-only audit log."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise AuditConfigurationError(
                f"audit capacity must be >= 1, got {capacity}"
            )
        self._capacity = int(capacity)
        self._events: deque[AuditEvent] = deque(maxlen=self._capacity)
        self._lock = threading.Lock()
        self._last_ts: datetime | None = None

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def _now(self) -> datetime:
        # Caller holds the lock; keep timestamps non-decreasing in append order
        now = datetime.now(UTC)
        if self._last_ts is not None and now < self._last_ts:
            now = self._last_ts
        self._last_ts = now
        return now

    def log_event(
        self, draft: AuditEventDraft | None = None, **fields: Any
    ) -> AuditEvent | None:
        """Stamp and append an event. Never raises.

        Accepts a prepared ``AuditEventDraft`` or the draft fields as keywords.
        Returns the stored event, or ``None`` if it could not be recorded.
        """
        try:
            if draft is None:
                draft = AuditEventDraft(**fields)
            with self._lock:
                event = AuditEvent.from_draft(draft, self._now())
                evicting = len(self._events) == self._capacity
                self._events.append(event)
            if evicting:
                AUDIT_EVICTIONS.inc()
            AUDIT_EVENTS.labels(
                event_type=event.event_type.value,
                success=str(event.success).lower(),
            ).inc()
        except Exception as exc:
            AUDIT_LOG_FAILURES.labels(stage="store").inc()
            logger.warning(
                "audit event dropped: %s",
                exc,
                extra={"meta": {"error_type": type(exc).__name__}},
            )
            return None

        try:
            audit_logger.info(
                "audit.event %s",
                event.event_type.value,
                extra={"meta": event.model_dump(mode="json")},
            )
        except Exception:
            AUDIT_LOG_FAILURES.labels(stage="emit").inc()
        return event.model_copy(deep=True)

    def get_events(
        self, filters: AuditQuery | None = None, **kwargs: Any
    ) -> list[AuditEvent]:
        """Return events matching every supplied filter, newest first.

        ``limit`` is applied after sorting, so it keeps the most recent matches.
        """
        if filters is None:
            filters = AuditQuery(**kwargs)
        elif kwargs:
            filters = filters.model_copy(update=kwargs)

        with self._lock:
            snapshot = list(self._events)

        matched = [e for e in snapshot if _matches(e, filters)]
        # Appends are timestamp-ordered, so reversing first keeps ties newest-first
        matched.reverse()
        matched.sort(key=lambda e: e.timestamp, reverse=True)

        if filters.limit:
            matched = matched[: filters.limit]
        # Frozen models still carry a mutable ``details`` dict; hand out copies
        return [e.model_copy(deep=True) for e in matched]

    def get_unauthorized_access_attempts(self, limit: int = 100) -> list[AuditEvent]:
        return self.get_events(
            event_type=AuditEventType.CROSS_TENANT_ACCESS_ATTEMPT, limit=limit
        )

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self._last_ts = None


def _matches(event: AuditEvent, q: AuditQuery) -> bool:
    if q.user_id is not None and event.user_id != q.user_id:
        return False
    if q.resource_type and event.resource_type != q.resource_type:
        return False
    if q.event_type and event.event_type != q.event_type:
        return False
    if q.start_date and event.timestamp < _aware(q.start_date):
        return False
    if q.end_date and event.timestamp > _aware(q.end_date):
        return False
    return True


def _aware(ts: datetime) -> datetime:
    # Naive datetimes in queries are taken as UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts


# Process default, replaced by the application factory
_default_store: AuditEventStore | None = None
_default_lock = threading.Lock()


def get_audit_store() -> AuditEventStore:
    """Return the process-wide store, creating it on first use."""
    global _default_store
    with _default_lock:
        if _default_store is None:
            from fieldops.settings import get_audit_settings

            _default_store = AuditEventStore(get_audit_settings().capacity)
        return _default_store


def set_audit_store(store: AuditEventStore | None) -> None:
    """Install (or reset with ``None``) the process-wide store."""
    global _default_store
    with _default_lock:
        _default_store = store


__all__ = [
    "DEFAULT_CAPACITY",
    "AuditEventStore",
    "get_audit_store",
    "set_audit_store",
]
