"""
api/responses.py -- Shared JSONResponse builders for route handlers.

Every workflow returns an AuthResult. Routes hand failures to error_response()
so all 4xx/5xx bodies share the ErrorResponse envelope used by the exception
handlers in api/main.py.
"""

from __future__ import annotations

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from auth.dependencies import error_payload, http_status_for
from auth.results import AuthError


def error_response(error: AuthError, no_store: bool = False) -> JSONResponse:
    resp = JSONResponse(status_code=http_status_for(error), content={"error": error_payload(error)})
    if no_store:
        resp.headers["Cache-Control"] = "no-store"
    return resp


def model_response(model: BaseModel, status_code: int = 200, no_store: bool = False) -> JSONResponse:
    """Serialize a response model by alias, dropping unset optional fields."""
    resp = JSONResponse(status_code=status_code, content=model.model_dump(by_alias=True, exclude_none=True))
    if no_store:
        resp.headers["Cache-Control"] = "no-store"
    return resp
