"""CORS, request-id, and logging middleware plus per-request audit context."""

import uuid
import time
import logging

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from planner.core.config import settings
from planner.core.permissions import Actor
from planner.core.security import get_current_actor
from planner.services.audit_service import RequestOrigin

logger = logging.getLogger("planner")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Add a unique request ID to every request/response."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        response: Response = await call_next(request)

        duration = round((time.time() - start_time) * 1000, 2)
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration)

        logger.info(
            "%s %s %s %sms",
            request.method,
            request.url.path,
            response.status_code,
            duration,
        )
        return response


def request_origin(request: Request) -> RequestOrigin:
    """Dependency capturing caller address and user agent for audit entries."""
    return RequestOrigin.from_request(request)


def log_sensitive_action(action: str):
    """Dependency factory logging who triggered a sensitive operation."""

    async def _log(
        actor: Actor = Depends(get_current_actor),
        origin: RequestOrigin = Depends(request_origin),
    ) -> None:
        logger.info(
            "Sensitive action %s by %s (role=%s, ip=%s, agent=%s)",
            action,
            actor.email or actor.uid,
            actor.role,
            origin.ip_address,
            origin.user_agent,
        )

    return _log


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application."""
    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID + timing
    app.add_middleware(RequestIdMiddleware)
