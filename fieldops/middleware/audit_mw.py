from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from fieldops.audit.classifier import safe_record_request_outcome
from fieldops.audit.models import AuditPrincipal, AuditRequest
from fieldops.audit.resources import is_ignored_path
from fieldops.audit.store import AuditEventStore, get_audit_store
from fieldops.metrics import AUDIT_LOG_FAILURES
from fieldops.settings import AuditSettings, get_audit_settings

logger = logging.getLogger(__name__)


def _state_user(scope: Scope) -> Any:
    # ``request.state.user = ...`` anywhere downstream lands in scope["state"]
    state = scope.get("state") or {}
    return state.get("user") if isinstance(state, dict) else None


def _decode_body(raw: bytes | bytearray, size: int, limit: int) -> Any:
    if size == 0:
        return None
    if size > limit:
        return {"truncated": True, "size": size}
    try:
        return json.loads(raw)
    except ValueError:
        return bytes(raw).decode("utf-8", errors="replace")


class AuditMiddleware:
    """Record audit events for every HTTP request/response pair.

    Pure ASGI so the final status and body can be observed as they are
    transmitted. Messages are forwarded unchanged; classification runs exactly
    once, when the last body chunk goes out (or with status 500 if the
    application raises before responding).
    """

    def __init__(
        self,
        app: ASGIApp,
        store: AuditEventStore | None = None,
        settings: AuditSettings | None = None,
        principal_getter: Callable[[Scope], Any] | None = None,
    ) -> None:
        self.app = app
        self.store = store
        self.settings = settings
        self.principal_getter = principal_getter or _state_user

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        settings = self.settings if self.settings is not None else get_audit_settings()
        if is_ignored_path(scope.get("path", ""), settings):
            await self.app(scope, receive, send)
            return

        store = self.store if self.store is not None else get_audit_store()
        limit = settings.max_body_bytes
        req_buf = bytearray()
        resp_buf = bytearray()
        sizes = {"request": 0, "response": 0}
        status_code = 200
        started = False
        audited = False

        def _audit(final_status: int) -> None:
            nonlocal audited
            if audited:
                return
            audited = True
            try:
                client = scope.get("client")
                request = AuditRequest(
                    path=scope.get("path", ""),
                    method=scope.get("method", "GET"),
                    ip=client[0] if client else None,
                    user=AuditPrincipal.from_user(self.principal_getter(scope)),
                    body=_decode_body(req_buf, sizes["request"], limit),
                )
                response_body = _decode_body(resp_buf, sizes["response"], limit)
            except Exception as exc:
                AUDIT_LOG_FAILURES.labels(stage="capture").inc()
                logger.warning("audit capture failed: %s", exc)
                return
            safe_record_request_outcome(
                store, request, final_status, response_body, settings
            )

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                chunk = message.get("body", b"")
                sizes["request"] += len(chunk)
                if sizes["request"] <= limit:
                    req_buf.extend(chunk)
            return message

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code, started
            if message["type"] == "http.response.start":
                status_code = message["status"]
                started = True
            elif message["type"] == "http.response.body":
                chunk = message.get("body", b"")
                sizes["response"] += len(chunk)
                if sizes["response"] <= limit:
                    resp_buf.extend(chunk)
                if not message.get("more_body", False):
                    _audit(status_code)
            await send(message)

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        except Exception:
            # Once the head is out the client has already seen status_code
            _audit(status_code if started else 500)
            raise
