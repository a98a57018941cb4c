"""
Request-scoped audit helpers.

Each helper turns an ``AuditRequest`` plus resource context into one event on
the store. The resource-scoped helpers are no-ops for unauthenticated
requests, whichever code path calls them.
"""

from __future__ import annotations

from typing import Any

from fieldops.audit.models import AuditEvent, AuditEventType, AuditRequest
from fieldops.audit.store import AuditEventStore


def _log_resource_event(
    store: AuditEventStore,
    request: AuditRequest,
    event_type: AuditEventType,
    resource_type: str,
    resource_id: int,
    *,
    success: bool,
    details: dict[str, Any] | None = None,
) -> AuditEvent | None:
    user = request.user
    if user is None:
        return None
    return store.log_event(
        event_type=event_type,
        user_id=user.id,
        user_email=user.email,
        ip_address=request.ip,
        resource_type=resource_type,
        resource_id=resource_id,
        action=request.method,
        details=details,
        success=success,
    )


def log_data_access(
    store: AuditEventStore,
    request: AuditRequest,
    resource_type: str,
    resource_id: int,
    success: bool = True,
) -> AuditEvent | None:
    return _log_resource_event(
        store,
        request,
        AuditEventType.DATA_ACCESS,
        resource_type,
        resource_id,
        success=success,
    )


def log_data_modification(
    store: AuditEventStore,
    request: AuditRequest,
    resource_type: str,
    resource_id: int,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> AuditEvent | None:
    return _log_resource_event(
        store,
        request,
        AuditEventType.DATA_MODIFICATION,
        resource_type,
        resource_id,
        success=success,
        details=details,
    )


def log_data_deletion(
    store: AuditEventStore,
    request: AuditRequest,
    resource_type: str,
    resource_id: int,
    success: bool = True,
) -> AuditEvent | None:
    return _log_resource_event(
        store,
        request,
        AuditEventType.DATA_DELETION,
        resource_type,
        resource_id,
        success=success,
    )


def log_cross_tenant_access_attempt(
    store: AuditEventStore,
    request: AuditRequest,
    resource_type: str,
    resource_id: int,
    details: dict[str, Any] | None = None,
) -> AuditEvent | None:
    """Record a denied (403) request against a resource. Always unsuccessful."""
    return _log_resource_event(
        store,
        request,
        AuditEventType.CROSS_TENANT_ACCESS_ATTEMPT,
        resource_type,
        resource_id,
        success=False,
        details=details,
    )


def log_authentication(
    store: AuditEventStore,
    request: AuditRequest,
    success: bool,
    details: dict[str, Any] | None = None,
) -> AuditEvent | None:
    """Record the outcome of a login/auth request; no principal required."""
    return store.log_event(
        event_type=(
            AuditEventType.AUTHENTICATION_SUCCESS
            if success
            else AuditEventType.AUTHENTICATION_FAILURE
        ),
        ip_address=request.ip,
        action=request.method,
        details=details,
        success=success,
    )
