from .audit import build_audit_router

__all__ = ["build_audit_router"]
