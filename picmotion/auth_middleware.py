"""
Shared-secret authentication middleware for the vlog worker.

Job creation (POST /vlog) requires an X-Worker-Secret header matching the
WORKER_SHARED_SECRET environment variable. The web frontend attaches this
header when forwarding requests. Status reads and health checks stay open.
"""

import os
import secrets
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

PROTECTED_PREFIX = "/vlog"


class WorkerAuthMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated job submissions."""

    def __init__(self, app, secret: Optional[str] = None, environment: Optional[str] = None):
        super().__init__(app)
        self.secret = secret if secret is not None else os.environ.get("WORKER_SHARED_SECRET", "")
        self.environment = environment or os.environ.get("ENVIRONMENT", "development")

    async def dispatch(self, request: Request, call_next):
        # Only writes are protected
        if request.method != "POST" or not request.url.path.startswith(PROTECTED_PREFIX):
            return await call_next(request)

        if not self.secret:
            # In development without the secret set, allow all traffic
            if self.environment == "development":
                return await call_next(request)
            return JSONResponse({"detail": "WORKER_SHARED_SECRET not configured"}, status_code=500)

        # Constant-time compare avoids timing attacks
        provided = request.headers.get("X-Worker-Secret", "")
        if not secrets.compare_digest(provided, self.secret):
            return JSONResponse({"detail": "Invalid or missing worker secret"}, status_code=401)

        return await call_next(request)
