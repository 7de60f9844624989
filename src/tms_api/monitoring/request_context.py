"""Request context middleware for logging."""
import json
import time
import uuid
from contextvars import ContextVar
from typing import Any
from typing import Callable
from typing import Optional

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from tms_api.monitoring.logger import log_request_info
from tms_api.monitoring.logger import redact

# Context variables to store request-specific data
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
client_ip_ctx: ContextVar[str] = ContextVar("client_ip", default="")
user_identity_ctx: ContextVar[str] = ContextVar("user_identity", default="")
request_path_ctx: ContextVar[str] = ContextVar("request_path", default="")

# Request bodies above this size are logged as a preview only
MAX_BODY_LOG_SIZE = 10000  # 10KB limit


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to capture and log request context information."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        """
        Capture request context and add to logging.

        Captures:
        - Request ID (from the X-Request-ID header or generated)
        - Client IP (first X-Forwarded-For hop or the direct peer)
        - Acting user (X-User-Id header)
        - Request path and method
        - Request body for POST/PUT/DELETE, with passwords masked
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_ctx.set(request_id)

        client_ip = self._get_client_ip(request)
        client_ip_ctx.set(client_ip)

        user_identity = request.headers.get("X-User-Id", "anonymous")
        user_identity_ctx.set(user_identity)

        request_path = f"{request.method} {request.url.path}"
        request_path_ctx.set(request_path)

        # Stored early so error handlers can include it
        request.state.request_body = None
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            request.state.request_body = await self._get_request_body(request)

        with logger.contextualize(
            request_id=request_id,
            client_ip=client_ip,
            user_identity=user_identity,
            request_path=request_path,
        ):
            log_request_info(request)

            start_time = time.perf_counter()
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                f"{request.method} {request.url.path} - {response.status_code}",
                event_type="http_request",
                http_method=request.method,
                url_path=str(request.url.path),
                url_query=str(request.query_params) if request.query_params else None,
                request_body=request.state.request_body,
                status_code=response.status_code,
                response_time_ms=round(duration_ms, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response

    async def _get_request_body(self, request: Request) -> Optional[dict]:
        """
        Read the request body for logging.

        Returns:
            Parsed JSON body with password fields masked, a preview for large or
            non-JSON bodies, or None when the body is empty
        """
        body = await request.body()
        if not body:
            return None

        content_type = request.headers.get("Content-Type", "")
        if "application/json" not in content_type.lower() or len(body) > MAX_BODY_LOG_SIZE:
            return {
                "_size": len(body),
                "_preview": body[:200].decode("utf-8", errors="replace"),
                "_content_type": content_type,
            }

        try:
            parsed = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return {"_error": "Failed to parse request body", "_error_detail": str(e)}
        return redact(parsed)

    def _get_client_ip(self, request: Request) -> str:
        """Get the client IP, preferring the first X-Forwarded-For hop."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"


def get_request_context() -> dict:
    """
    Get current request context for logging.

    Returns:
        Dictionary with request context variables
    """
    return {
        "request_id": request_id_ctx.get(),
        "client_ip": client_ip_ctx.get(),
        "user_identity": user_identity_ctx.get(),
        "request_path": request_path_ctx.get(),
    }
