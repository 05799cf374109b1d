"""
auth/dependencies.py -- FastAPI Depends() helpers and HTTP mapping for auth results.

get_database() / get_hasher() / get_admin_secret() read the shared objects
that the lifespan placed on app.state. Route handlers depend on these rather
than touching app.state directly, which keeps them trivially overridable in
tests via app.dependency_overrides.

require_delete_access() runs the administrative gate against the request
body. It raises HTTPException on any failure, so the guarded route body never
executes unless the gate passed.

http_status_for() / error_payload() are the single place where a transport-
neutral AuthError becomes an HTTP status and JSON error object.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Body/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Body, Depends, HTTPException, Request

from auth.gate import authorize_admin_action
from auth.models import AdminContext, Permission
from auth.passwords import PasswordHasher
from auth.results import AuthError, Status
from auth.store import AuthDatabase

_HTTP_STATUS: dict[Status, int] = {
    Status.OK: 200,
    Status.CREATED: 201,
    Status.BAD_REQUEST: 400,
    Status.UNAUTHORIZED: 401,
    Status.FORBIDDEN: 403,
    Status.CONFLICT: 409,
    Status.INTERNAL_ERROR: 500,
}


def http_status_for(error: AuthError) -> int:
    """Map an AuthError to its HTTP status code.

    Retryable failures get 503 so clients know to try again later.
    """
    if error.kind.retryable:
        return 503
    return _HTTP_STATUS[error.status]


def error_payload(error: AuthError) -> dict:
    """Build the body of the "error" envelope for an AuthError."""
    return {
        "code": error.kind.value,
        "message": error.message,
        "detail": None,
        "failed_rules": [rule.value for rule in error.failed_rules] or None,
    }


def get_database(request: Request) -> AuthDatabase:
    return request.app.state.auth_db


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_admin_secret(request: Request) -> str:
    return request.app.state.settings.admin_secret_key


def require_delete_access(
    admin_email: str | None = Body(default=None, alias="adminEmail", max_length=255),
    admin_password: str | None = Body(default=None, alias="adminPassword", max_length=128),
    secret_key: str | None = Body(default=None, alias="secretKey", max_length=255),
    db: AuthDatabase = Depends(get_database),
    hasher: PasswordHasher = Depends(get_hasher),
    admin_secret: str = Depends(get_admin_secret),
) -> AdminContext:
    """Require admin email + password + shared secret and the delete permission.

    Use as a FastAPI dependency:
        @router.delete("/admin/delete-all-records")
        def route(actor: AdminContext = Depends(require_delete_access)): ...

    Raises HTTPException with the matching status (400/401/403/503) on failure.
    """
    result = authorize_admin_action(
        db.admins,
        hasher,
        admin_email=admin_email,
        admin_password=admin_password,
        secret=secret_key,
        admin_secret=admin_secret,
        required_permission=Permission.DELETE,
    )
    if not result.succeeded:
        raise HTTPException(status_code=http_status_for(result.error), detail=error_payload(result.error))
    return result.payload
