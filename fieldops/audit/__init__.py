"""
Security audit trail for the fieldops HTTP API.

Requests are classified into audit events (authentication outcomes, data
access/modification/deletion, cross-tenant access attempts) and kept in a
bounded in-memory store for querying.
"""

from .models import (
    AuditEvent,
    AuditEventDraft,
    AuditEventType,
    AuditPrincipal,
    AuditQuery,
    AuditRequest,
    ResourceInfo,
)
from .store import AuditEventStore, get_audit_store, set_audit_store
from .service import (
    log_authentication,
    log_cross_tenant_access_attempt,
    log_data_access,
    log_data_deletion,
    log_data_modification,
)
from .classifier import record_request_outcome, safe_record_request_outcome

__all__ = [
    "AuditEvent",
    "AuditEventDraft",
    "AuditEventStore",
    "AuditEventType",
    "AuditPrincipal",
    "AuditQuery",
    "AuditRequest",
    "ResourceInfo",
    "get_audit_store",
    "log_authentication",
    "log_cross_tenant_access_attempt",
    "log_data_access",
    "log_data_deletion",
    "log_data_modification",
    "record_request_outcome",
    "safe_record_request_outcome",
    "set_audit_store",
]
