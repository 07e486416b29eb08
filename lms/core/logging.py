"""JSON log output and per-request access logging."""
from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, Response
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from lms.core.security import decode_token

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line. Every ``extra`` field becomes a top-level key."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)


def _token_user_id(request: Request) -> Optional[int]:
    scheme, _, token = (request.headers.get("authorization") or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        subject = decode_token(token, request.app.state.settings).get("sub")
        return int(subject) if subject is not None else None
    except (JWTError, ValueError, TypeError):
        return None


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access line per request, tagged with ``X-Request-Id`` and the caller's user id.

    Denied requests (403) are repeated on the ``security`` logger.
    """

    def __init__(self, app, logger_name: str = "lms.request") -> None:
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)
        self.security_logger = logging.getLogger("security")

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        fields: dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }

        try:
            response = await call_next(request)
        except Exception:
            fields.update(latency_ms=_elapsed_ms(started), user_id=_token_user_id(request))
            self.logger.exception("unhandled_exception", extra=fields)
            raise

        fields.update(
            status_code=response.status_code,
            latency_ms=_elapsed_ms(started),
            user_id=_token_user_id(request),
        )
        self.logger.info("request", extra=fields)
        if response.status_code == 403 and fields["user_id"] is not None:
            self.security_logger.warning("forbidden", extra=fields)

        response.headers["X-Request-Id"] = request_id
        return response
