import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from fieldops.logging_config import req_id_var


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Prefer client-provided ID to enable end-to-end correlation
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = req_id_var.set(req_id)
        try:
            response = await call_next(request)
        finally:
            req_id_var.reset(token)
        response.headers.setdefault("X-Request-ID", req_id)
        return response
