"""Test-specific fixtures."""

import os

# Must be set before fieldops.main is imported anywhere
os.environ["ENV"] = "test"

import pytest
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from starlette.testclient import TestClient

from fieldops.audit.models import AuditPrincipal, AuditRequest
from fieldops.audit.store import AuditEventStore, set_audit_store
from fieldops.main import create_app
from fieldops.settings import AuditSettings


@pytest.fixture
def settings():
    return AuditSettings()


@pytest.fixture
def store():
    s = AuditEventStore(capacity=1000)
    yield s
    set_audit_store(None)


@pytest.fixture
def alice():
    return AuditPrincipal(id=7, email="alice@example.com")


@pytest.fixture
def make_request(alice):
    """Factory for ``AuditRequest`` values; authenticated as alice by default."""

    def _make(path, method="GET", user=alice, body=None, ip="10.0.0.5"):
        return AuditRequest(path=path, method=method, ip=ip, user=user, body=body)

    return _make


def _attach_test_user(request: Request) -> None:
    """Stand-in for the CRUD layer's auth: ``X-Test-User: <id>:<email>``."""
    raw = request.headers.get("X-Test-User")
    if raw:
        uid, _, email = raw.partition(":")
        request.state.user = {"id": int(uid), "email": email or None}


def _forced_status(request: Request, default: int = 200) -> int:
    return int(request.headers.get("X-Test-Status", default))


def build_crud_router() -> APIRouter:
    """Minimal fake of the business endpoints the auditor observes."""
    router = APIRouter(dependencies=[Depends(_attach_test_user)])

    @router.get("/api/protected/{resource}")
    async def list_resources(resource: str, request: Request):
        return JSONResponse([], status_code=_forced_status(request))

    @router.post("/api/protected/{resource}")
    async def create_resource(resource: str, request: Request):
        payload = await request.json()
        return JSONResponse({"id": 1, **payload}, status_code=_forced_status(request, 201))

    @router.get("/api/protected/{resource}/{rid}")
    async def get_resource(resource: str, rid: int, request: Request):
        if request.headers.get("X-Test-Raise"):
            raise RuntimeError("handler exploded")
        status = _forced_status(request)
        if status == 403:
            return JSONResponse({"message": "Forbidden"}, status_code=403)
        return JSONResponse({"id": rid, "type": resource}, status_code=status)

    @router.api_route("/api/protected/{resource}/{rid}", methods=["PATCH", "PUT", "POST"])
    async def update_resource(resource: str, rid: int, request: Request):
        payload = await request.json()
        return JSONResponse({"id": rid, **payload}, status_code=_forced_status(request))

    @router.delete("/api/protected/{resource}/{rid}")
    async def delete_resource(resource: str, rid: int, request: Request):
        status = _forced_status(request, 204)
        if status == 204:
            return Response(status_code=204)
        return JSONResponse({"message": "Forbidden"}, status_code=status)

    @router.get("/api/public/{resource}/{rid}")
    async def public_resource(resource: str, rid: int, request: Request):
        return JSONResponse({"id": rid}, status_code=_forced_status(request))

    @router.post("/api/login")
    async def login(request: Request):
        payload = await request.json()
        if payload.get("password") == "secret":
            return {"ok": True}
        return JSONResponse({"message": "Invalid credentials"}, status_code=401)

    @router.post("/api/auth/refresh")
    async def refresh(request: Request):
        return JSONResponse({"ok": False}, status_code=_forced_status(request, 200))

    @router.get("/static/logo.png")
    async def logo():
        return Response(b"\x89PNG", media_type="image/png")

    return router


@pytest.fixture
def app(store, settings):
    application = create_app(store=store, settings=settings)
    application.include_router(build_crud_router())
    return application


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def as_user():
    def _headers(uid=7, email="alice@example.com", status=None):
        headers = {"X-Test-User": f"{uid}:{email}"}
        if status is not None:
            headers["X-Test-Status"] = str(status)
        return headers

    return _headers


@pytest.fixture
def make_app(store):
    """Build the demo app around ``store`` with custom audit settings."""

    def _make(settings):
        application = create_app(store=store, settings=settings)
        application.include_router(build_crud_router())
        return application

    return _make
