"""Error envelope shared by every endpoint: ``{"error": {"code", "message", "details"?}}``."""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("lms.errors")


class ErrorCode:
    UNAUTHORIZED = "UNAUTHORIZED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    INVALID_INPUT = "INVALID_INPUT"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    COURSE_NOT_PUBLISHED = "COURSE_NOT_PUBLISHED"
    INVALID_COURSE_STATUS_TRANSITION = "INVALID_COURSE_STATUS_TRANSITION"
    ENROLLMENT_NOT_FOUND = "ENROLLMENT_NOT_FOUND"
    DUPLICATE_ENROLLMENT = "DUPLICATE_ENROLLMENT"

    ASSIGNMENT_NOT_FOUND = "ASSIGNMENT_NOT_FOUND"
    ASSIGNMENT_WEIGHT_EXCEEDED = "ASSIGNMENT_WEIGHT_EXCEEDED"
    ASSIGNMENT_PAST_DEADLINE = "ASSIGNMENT_PAST_DEADLINE"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    ASSIGNMENT_CLOSED = "ASSIGNMENT_CLOSED"
    ASSIGNMENT_NOT_PUBLISHED = "ASSIGNMENT_NOT_PUBLISHED"

    SUBMISSION_NOT_FOUND = "SUBMISSION_NOT_FOUND"
    SUBMISSION_ALREADY_EXISTS = "SUBMISSION_ALREADY_EXISTS"
    SUBMISSION_PAST_DUE_DATE = "SUBMISSION_PAST_DUE_DATE"
    SUBMISSION_STATE_CONFLICT = "SUBMISSION_STATE_CONFLICT"
    INVALID_SCORE_RANGE = "INVALID_SCORE_RANGE"
    MISSING_FEEDBACK = "MISSING_FEEDBACK"

    METADATA_NOT_FOUND = "METADATA_NOT_FOUND"
    DUPLICATE_METADATA = "DUPLICATE_METADATA"
    REPORT_NOT_FOUND = "REPORT_NOT_FOUND"
    INVALID_REPORT_STATUS_TRANSITION = "INVALID_REPORT_STATUS_TRANSITION"


class ApiError(HTTPException):
    """HTTPException carrying a machine-readable code and optional field details."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(status_code=status_code, detail=payload, headers=headers)
        self.code = code
        self.message = message
        self.details = details

    @classmethod
    def not_found(cls, code: str, message: str) -> "ApiError":
        return cls(status.HTTP_404_NOT_FOUND, code, message)

    @classmethod
    def validation(cls, code: str, message: str, details: Optional[Any] = None) -> "ApiError":
        return cls(status.HTTP_400_BAD_REQUEST, code, message, details)

    @classmethod
    def forbidden(cls, message: str = "Insufficient permissions") -> "ApiError":
        return cls(status.HTTP_403_FORBIDDEN, ErrorCode.INSUFFICIENT_PERMISSIONS, message)

    @classmethod
    def unauthenticated(cls, message: str = "Could not validate credentials") -> "ApiError":
        return cls(
            status.HTTP_401_UNAUTHORIZED,
            ErrorCode.UNAUTHORIZED,
            message,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @classmethod
    def conflict(cls, code: str, message: str, details: Optional[Any] = None) -> "ApiError":
        return cls(status.HTTP_409_CONFLICT, code, message, details)


def _envelope(detail: Any, status_code: int) -> dict[str, Any]:
    if isinstance(detail, dict) and "code" in detail:
        return {"error": detail}
    fallback_codes = {
        status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN: ErrorCode.INSUFFICIENT_PERMISSIONS,
        status.HTTP_400_BAD_REQUEST: ErrorCode.INVALID_INPUT,
    }
    code = fallback_codes.get(status_code, f"HTTP_{status_code}")
    return {"error": {"code": code, "message": str(detail)}}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_envelope(exc.detail, exc.status_code)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(
            {"error": {"code": ErrorCode.INVALID_INPUT, "message": "Request validation failed", "details": details}}
        ),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_error",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": ErrorCode.INTERNAL_SERVER_ERROR, "message": "Internal server error"}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
