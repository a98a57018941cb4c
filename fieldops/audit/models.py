from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue, model_validator


class AuditEventType(str, Enum):
    AUTHENTICATION_SUCCESS = "AUTHENTICATION_SUCCESS"
    AUTHENTICATION_FAILURE = "AUTHENTICATION_FAILURE"
    AUTHORIZATION_FAILURE = "AUTHORIZATION_FAILURE"
    DATA_ACCESS = "DATA_ACCESS"
    DATA_MODIFICATION = "DATA_MODIFICATION"
    DATA_DELETION = "DATA_DELETION"
    RESOURCE_ACCESS_DENIED = "RESOURCE_ACCESS_DENIED"
    CROSS_TENANT_ACCESS_ATTEMPT = "CROSS_TENANT_ACCESS_ATTEMPT"


class AuditEventDraft(BaseModel):
    """An audit event as submitted by callers; the store assigns the timestamp."""

    model_config = ConfigDict(frozen=True)

    event_type: AuditEventType
    user_id: int | None = None
    user_email: str | None = None
    ip_address: str | None = None
    resource_type: str | None = None
    resource_id: int | None = None
    action: str | None = None
    details: dict[str, JsonValue] | None = None
    success: bool

    @model_validator(mode="before")
    @classmethod
    def _cross_tenant_never_succeeds(cls, data: Any) -> Any:
        if isinstance(data, dict):
            kind = data.get("event_type")
            if kind in (
                AuditEventType.CROSS_TENANT_ACCESS_ATTEMPT,
                AuditEventType.CROSS_TENANT_ACCESS_ATTEMPT.value,
            ):
                data = {**data, "success": False}
        return data


class AuditEvent(AuditEventDraft):
    """Immutable, timestamped audit record held by the store."""

    timestamp: datetime

    @classmethod
    def from_draft(cls, draft: AuditEventDraft, timestamp: datetime) -> AuditEvent:
        return cls(timestamp=timestamp, **draft.model_dump())


class AuditQuery(BaseModel):
    """Filters for ``AuditEventStore.get_events``; all supplied filters must match."""

    model_config = ConfigDict(frozen=True)

    user_id: int | None = None
    resource_type: str | None = None
    event_type: AuditEventType | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    # 0 or None means unlimited
    limit: int | None = Field(default=None, ge=0)


class AuditPrincipal(BaseModel):
    """The authenticated identity attached to a request."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str | None = None

    @classmethod
    def from_user(cls, user: Any) -> AuditPrincipal | None:
        """Coerce whatever the host attached as the request user.

        Accepts an ``AuditPrincipal``, a mapping with ``id``/``email`` keys or
        an object exposing those attributes. Returns ``None`` when there is no
        usable integer id.
        """
        if user is None:
            return None
        if isinstance(user, AuditPrincipal):
            return user
        if isinstance(user, dict):
            uid = user.get("id")
            email = user.get("email")
        else:
            uid = getattr(user, "id", None)
            email = getattr(user, "email", None)
        if uid is None or isinstance(uid, bool):
            return None
        try:
            uid = int(uid)
        except (TypeError, ValueError):
            return None
        return cls(id=uid, email=str(email) if email is not None else None)


@dataclass(frozen=True)
class AuditRequest:
    """Host-independent view of the request being audited."""

    path: str
    method: str
    ip: str | None = None
    user: AuditPrincipal | None = None
    body: Any = None


@dataclass(frozen=True)
class ResourceInfo:
    resource_type: str | None = None
    resource_id: int | None = None

    @property
    def complete(self) -> bool:
        return self.resource_type is not None and self.resource_id is not None
