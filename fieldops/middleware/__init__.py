# fieldops/middleware/__init__.py
"""
Application middleware modules.

Request correlation and security audit capture.
"""

from .audit_mw import AuditMiddleware
from .request_id import RequestIDMiddleware

__all__ = [
    "AuditMiddleware",
    "RequestIDMiddleware",
]
