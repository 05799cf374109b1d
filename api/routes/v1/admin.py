"""
api/routes/v1/admin.py -- Administrator registration, login, and bulk delete.

Routes:
  POST   /api/v1/admin/register            -- create admin (needs shared secret); 201
  POST   /api/v1/admin/login               -- admin login; 200
  DELETE /api/v1/admin/delete-all-records  -- wipe users + admins; 200

Auth policy:
  - register: public, but the body must carry the shared secretKey. The secret
    is checked after field validation and before the duplicate-email check.
  - login: public. A deactivated admin gets 403 account_deactivated even with
    the right password; unknown email and wrong password share one 401 body.
  - delete-all-records: guarded by require_delete_access (email + password +
    secretKey in the body, active account, "delete" permission). The handler
    body only runs once the dependency has returned an AdminContext.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.models import AdminRegisterRequest, DeleteAllResponse, LoginRequest, PrincipalResponse
from api.responses import error_response, model_response
from auth.dependencies import get_admin_secret, get_database, get_hasher, require_delete_access
from auth.gate import purge_all_records
from auth.models import AdminContext
from auth.passwords import PasswordHasher
from auth.store import AuthDatabase
from auth.workflows import login_principal, register_principal

router = APIRouter()


@router.post("/admin/register", response_model=PrincipalResponse, status_code=201)
def register_admin(
    body: AdminRegisterRequest,
    db: AuthDatabase = Depends(get_database),
    hasher: PasswordHasher = Depends(get_hasher),
    admin_secret: str = Depends(get_admin_secret),
) -> JSONResponse:
    """Register an admin with the full default permission set."""
    result = register_principal(
        db.admins,
        hasher,
        email=body.email,
        password=body.password,
        name=body.name,
        secret=body.secret_key,
        admin_secret=admin_secret,
    )
    if not result.succeeded:
        return error_response(result.error)
    return model_response(PrincipalResponse.from_principal(result.payload, "Admin registered!"), status_code=201)


@router.post("/admin/login", response_model=PrincipalResponse)
def login_admin(
    body: LoginRequest,
    db: AuthDatabase = Depends(get_database),
    hasher: PasswordHasher = Depends(get_hasher),
) -> JSONResponse:
    """Authenticate an admin; the response includes role and permissions."""
    result = login_principal(db.admins, hasher, email=body.email, password=body.password)
    if not result.succeeded:
        return error_response(result.error, no_store=True)
    summary = PrincipalResponse.from_principal(result.payload, "Admin logged in!", include_permissions=True)
    return model_response(summary, no_store=True)


@router.delete("/admin/delete-all-records", response_model=DeleteAllResponse)
def delete_all_records(
    actor: AdminContext = Depends(require_delete_access),
    db: AuthDatabase = Depends(get_database),
) -> JSONResponse:
    """Delete every user and admin record. Irreversible.

    Only reachable after require_delete_access has passed; any gate failure
    is raised as HTTPException before this body runs.
    """
    result = purge_all_records(db, actor)
    if not result.succeeded:
        return error_response(result.error)
    return model_response(DeleteAllResponse.from_report(result.payload))
