"""
api/routes/v1/users.py -- Registration and login for ordinary users.

Routes:
  POST /api/v1/user/register   -- create a user account; 201
  POST /api/v1/user/login      -- verify credentials, stamp last_login; 200

Both endpoints are public. Handlers are plain `def` (not async) because bcrypt
is CPU-bound; FastAPI runs them in its threadpool so the event loop stays free.

Security:
  Wrong password and unknown email return the same 401 body so the response
  does not reveal whether an account exists.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.models import LoginRequest, PrincipalResponse, RegisterRequest
from api.responses import error_response, model_response
from auth.dependencies import get_database, get_hasher
from auth.passwords import PasswordHasher
from auth.store import AuthDatabase
from auth.workflows import login_principal, register_principal

router = APIRouter()


@router.post("/user/register", response_model=PrincipalResponse, status_code=201)
def register_user(
    body: RegisterRequest,
    db: AuthDatabase = Depends(get_database),
    hasher: PasswordHasher = Depends(get_hasher),
) -> JSONResponse:
    """Register a user after sanitizing and validating every field."""
    result = register_principal(db.users, hasher, email=body.email, password=body.password, name=body.name)
    if not result.succeeded:
        return error_response(result.error)
    return model_response(PrincipalResponse.from_principal(result.payload, "User registered!"), status_code=201)


@router.post("/user/login", response_model=PrincipalResponse)
def login_user(
    body: LoginRequest,
    db: AuthDatabase = Depends(get_database),
    hasher: PasswordHasher = Depends(get_hasher),
) -> JSONResponse:
    """Authenticate a user with email and password."""
    result = login_principal(db.users, hasher, email=body.email, password=body.password)
    if not result.succeeded:
        return error_response(result.error, no_store=True)
    return model_response(PrincipalResponse.from_principal(result.payload, "User logged in!"), no_store=True)
