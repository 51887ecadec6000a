"""Error taxonomy and the JSON envelope every failure is rendered into.

All errors leave the API as ``{"error": <message>, "code": <CODE>}``:

  * 400 - validation failures and integrity violations (duplicate / foreign key)
  * 404 - the requested row does not exist
  * 500 - anything unexpected; the underlying message is included
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .classifier import InputValidationError

logger = logging.getLogger("txn_categorizer.errors")


class ApiError(Exception):
    status_code = 500
    default_code: Optional[str] = None

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class BadRequestError(ApiError):
    status_code = 400
    default_code = "BAD_REQUEST"


class NotFoundError(ApiError):
    status_code = 404
    default_code = "NOT_FOUND"


def error_body(message: str, code: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": message}
    if code:
        body["code"] = code
    return body


def validation_error_code(err: Dict[str, Any]) -> str:
    """Map one pydantic error entry onto a machine-readable code.

    Validators raise ``PydanticCustomError`` with an upper-case type when they
    want a specific code; everything else is derived from the field name.
    """
    err_type = str(err.get("type", ""))
    if err_type.isupper():
        return err_type
    loc = [part for part in err.get("loc", ()) if isinstance(part, str)]
    if loc and loc[0] == "path":
        return "INVALID_ID"
    field = loc[-1].upper() if len(loc) > 1 else "BODY"
    if err_type == "missing":
        return f"MISSING_{field}"
    return f"INVALID_{field}"


def _validation_message(err: Dict[str, Any]) -> str:
    raw_loc = err.get("loc", ())
    loc = [str(part) for part in raw_loc if part not in ("body", "query", "path")]
    msg = err.get("msg", "Invalid request")
    # Rows inside a list body always keep their index in the message
    indexed = any(isinstance(part, int) for part in raw_loc)
    if not loc or (str(err.get("type", "")).isupper() and not indexed):
        return msg
    return f"{'.'.join(loc)}: {msg}"


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.code))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    if first.get("type") == "json_invalid":
        return JSONResponse(status_code=400, content=error_body("Request body must be valid JSON", "INVALID_JSON"))
    return JSONResponse(
        status_code=400,
        content=error_body(_validation_message(first), validation_error_code(first)),
    )


async def input_validation_handler(request: Request, exc: InputValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=error_body(exc.issue.message, exc.issue.code))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = "NOT_FOUND" if exc.status_code == 404 else None
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail), code))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body(f"Internal server error: {exc}"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(InputValidationError, input_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
