"""
Classify a finished request into audit events.

Runs once per request, after the final status code and response body are
known. Rules, in order:

* static assets and health checks are ignored;
* unauthenticated requests only produce authentication events, and only on
  login/auth paths;
* authenticated requests under ``/api/protected/`` with a resource type and
  id produce one data access/modification/deletion event keyed on the method;
* any 403 against a parsed resource additionally produces a cross-tenant
  access attempt.
"""

from __future__ import annotations

import logging
from typing import Any

from fieldops.audit import service
from fieldops.audit.models import AuditEvent, AuditRequest
from fieldops.audit.resources import (
    extract_resource_info,
    is_auth_path,
    is_ignored_path,
    is_protected_path,
)
from fieldops.audit.store import AuditEventStore
from fieldops.logging_config import req_id_var
from fieldops.metrics import AUDIT_LOG_FAILURES
from fieldops.settings import AuditSettings, get_audit_settings

logger = logging.getLogger(__name__)

_MODIFYING_METHODS = {"POST", "PATCH", "PUT"}


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def record_request_outcome(
    store: AuditEventStore,
    request: AuditRequest,
    status_code: int,
    response_body: Any = None,
    settings: AuditSettings | None = None,
) -> list[AuditEvent]:
    """Append the audit events implied by a finished request and return them."""
    if settings is None:
        settings = get_audit_settings()
    path = request.path
    method = request.method.upper()

    if is_ignored_path(path, settings):
        return []

    resource = extract_resource_info(path)
    ok = is_success(status_code)
    recorded: list[AuditEvent | None] = []

    if request.user is None:
        if is_auth_path(path, settings):
            recorded.append(
                service.log_authentication(
                    store, request, success=ok, details={"path": path}
                )
            )
        return [e for e in recorded if e is not None]

    if is_protected_path(path) and resource.complete:
        rtype, rid = resource.resource_type, resource.resource_id
        if method == "GET":
            recorded.append(service.log_data_access(store, request, rtype, rid, ok))
        elif method in _MODIFYING_METHODS:
            recorded.append(
                service.log_data_modification(
                    store, request, rtype, rid, {"body": request.body}, ok
                )
            )
        elif method == "DELETE":
            recorded.append(service.log_data_deletion(store, request, rtype, rid, ok))

    # Independent of the method dispatch above; a denied DELETE logs both
    if status_code == 403 and resource.complete:
        recorded.append(
            service.log_cross_tenant_access_attempt(
                store,
                request,
                resource.resource_type,
                resource.resource_id,
                {"path": path, "responseBody": response_body},
            )
        )

    return [e for e in recorded if e is not None]


def safe_record_request_outcome(
    store: AuditEventStore,
    request: AuditRequest,
    status_code: int,
    response_body: Any = None,
    settings: AuditSettings | None = None,
) -> list[AuditEvent]:
    """``record_request_outcome`` that never raises into the request pipeline."""
    try:
        return record_request_outcome(
            store, request, status_code, response_body, settings
        )
    except Exception as exc:
        AUDIT_LOG_FAILURES.labels(stage="classify").inc()
        logger.warning(
            "audit classification failed for %s %s",
            request.method,
            request.path,
            extra={
                "meta": {
                    "req_id": req_id_var.get(),
                    "status_code": status_code,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                }
            },
        )
        return []
