"""Infer the audited resource from a request path."""

from __future__ import annotations

import re

from fieldops.audit.models import ResourceInfo
from fieldops.settings import AuditSettings

PROTECTED_PREFIX = "/api/protected/"

# Searched, not anchored: nested routes such as
# /api/protected/estimates/5/items/3 resolve to the outer resource.
_PROTECTED_RE = re.compile(r"/api/protected/([a-z-]+)(?:/(\d+))?")
_PUBLIC_RE = re.compile(r"/api/public/([a-z-]+)/(\d+)")


def extract_resource_info(path: str) -> ResourceInfo:
    """Return ``(resource_type, resource_id)`` parsed from ``path``.

    The protected shape ``/api/protected/<type>[/<id>]`` is tried first, then
    the public shape ``/api/public/<type>/<id>``. Unmatched paths yield an
    empty ``ResourceInfo``.
    """
    m = _PROTECTED_RE.search(path) or _PUBLIC_RE.search(path)
    if not m:
        return ResourceInfo()
    raw_id = m.group(2)
    return ResourceInfo(
        resource_type=m.group(1),
        resource_id=int(raw_id) if raw_id is not None else None,
    )


def is_ignored_path(path: str, settings: AuditSettings) -> bool:
    """Static assets and health checks are never audited."""
    if any(path.startswith(p) for p in settings.static_prefixes):
        return True
    return path in settings.health_paths


def is_auth_path(path: str, settings: AuditSettings) -> bool:
    return path in settings.login_paths or settings.auth_segment in path


def is_protected_path(path: str) -> bool:
    return path.startswith(PROTECTED_PREFIX)
