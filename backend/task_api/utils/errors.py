"""
Error taxonomy for the API and the handlers that render it.

Every error is an HTTPException subclass, so route code just raises and the
handlers below turn it into a JSON body of the form::

    {"error": "...", "details": [...], "message": "..."}

`details` only appears for validation failures and `message` only for
internal failures.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(StarletteHTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Something went wrong!"

    def __init__(self, error: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=error or type(self).error,
            headers=headers,
        )

    def body(self) -> Dict[str, Any]:
        return {"error": self.detail}


class ValidationFailed(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Validation failed"

    def __init__(self, details: Sequence[str], error: Optional[str] = None):
        super().__init__(error)
        self.details: List[str] = list(details)

    def body(self) -> Dict[str, Any]:
        return {"error": self.detail, "details": self.details}


class DuplicateEmail(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Email already registered"


class MalformedIdentifier(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Invalid task ID"


class Unauthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Authentication required"

    def __init__(self, error: Optional[str] = None):
        super().__init__(error, headers={"WWW-Authenticate": "Bearer"})


class MissingToken(Unauthenticated):
    error = "No auth header found"


class InvalidToken(Unauthenticated):
    error = "Invalid token"


class ExpiredToken(Unauthenticated):
    error = "Token expired"


class InvalidCredentials(Unauthenticated):
    error = "Invalid credentials"


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "Access denied"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Task not found"


class InternalFailure(ApiError):
    """Catch-all 500 that passes the underlying message through."""

    def __init__(self, error: str, message: str):
        super().__init__(error)
        self.message = message

    def body(self) -> Dict[str, Any]:
        return {"error": self.detail, "message": self.message}


# ---------------------------------------------------------------------------
# Validation messages
# ---------------------------------------------------------------------------

_LABELS = {
    "body": "Request body",
    "email": "Email",
    "password": "Password",
    "name": "Name",
    "role": "Role",
    "title": "Title",
    "description": "Description",
    "status": "Status",
    "priority": "Priority",
    "category": "Category",
    "dueDate": "Due date",
    "dueBefore": "dueBefore",
    "dueAfter": "dueAfter",
    "completed": "Completed",
    "sort": "Sort",
    "order": "Order",
}


def _label(loc: Sequence[Any]) -> str:
    field = loc[-1] if len(loc) > 1 else loc[0] if loc else "body"
    return _LABELS.get(str(field), str(field))


def describe_error(err: Dict[str, Any]) -> str:
    """Turn one pydantic error dict into a human sentence."""
    loc = tuple(err.get("loc") or ())
    kind = err.get("type", "")
    ctx = err.get("ctx") or {}
    label = _label(loc)

    if kind == "missing":
        return f"{label} is required"
    if kind == "json_invalid":
        return "Request body must be valid JSON"
    if kind == "string_too_short":
        return f"{label} must be at least {ctx.get('min_length')} characters"
    if kind == "string_too_long":
        return f"{label} cannot exceed {ctx.get('max_length')} characters"
    if kind in ("enum", "literal_error"):
        return f"{label} must be one of: {ctx.get('expected')}"
    if kind.startswith("datetime") or kind.startswith("date_"):
        return f"{label} must be a valid ISO date"
    if kind.startswith("bool"):
        return f"{label} must be a boolean"
    if kind == "string_type":
        return f"{label} must be a string"
    if kind == "value_error":
        if loc and loc[-1] == "email":
            return "Please provide a valid email address"
        return str(ctx.get("error", err.get("msg", "")))
    return f"{label}: {err.get('msg', 'invalid value')}"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def api_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc, ApiError):
        body = exc.body()
    elif exc.status_code == status.HTTP_404_NOT_FOUND:
        body = {"error": "Route not found"}
    else:
        body = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    failed = ValidationFailed([describe_error(e) for e in exc.errors()])
    return JSONResponse(status_code=failed.status_code, content=failed.body())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Something went wrong!", "message": str(exc)},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
