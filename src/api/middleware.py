"""HTTP middleware for request logging and tracing."""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.logging import generate_request_id, get_logger, request_id_var

logger = get_logger("api.requests")

# Paths that are not logged on success
QUIET_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware для логирования HTTP запросов.

    Логирует метод, путь, статус, время выполнения и principal
    (заголовок X-Principal-Id), от имени которого идёт синхронизация.

    Request ID берётся из входящего X-Request-ID (если вызывающий
    сервис его передал) или генерируется. Он попадает во все логи
    запроса, включая логи sync прохода.

    Пример лога (JSON):
    {
        "timestamp": "2026-01-22T12:00:00Z",
        "level": "INFO",
        "logger": "api.requests",
        "message": "Request completed",
        "request_id": "abc-123",
        "extra": {
            "method": "POST",
            "path": "/api/v1/boards/1/sync-google-tasks",
            "status": 200,
            "duration_ms": 812,
            "principal_id": "user-42"
        }
    }
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process the request and log details."""
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        token = request_id_var.set(request_id)

        start_time = time.perf_counter()
        log_extra = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
            "principal_id": request.headers.get("X-Principal-Id"),
        }

        try:
            try:
                response = await call_next(request)
            except Exception as e:
                duration_ms = int((time.perf_counter() - start_time) * 1000)
                logger.error(
                    "Request failed",
                    extra={**log_extra, "duration_ms": duration_ms, "error": str(e)},
                    exc_info=True,
                )
                raise

            duration_ms = int((time.perf_counter() - start_time) * 1000)
            response.headers["X-Request-ID"] = request_id
            log_extra.update(status=response.status_code, duration_ms=duration_ms)

            if response.status_code >= 400:
                logger.warning("Request completed", extra=log_extra)
            elif request.url.path not in QUIET_PATHS:
                logger.info("Request completed", extra=log_extra)

            return response
        finally:
            request_id_var.reset(token)
