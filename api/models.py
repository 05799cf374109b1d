"""
API request and response models for AuthGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request fields are all optional on purpose: a missing field must reach the
workflow, which reports it as missing_fields (400) in the shared error
envelope, rather than being rejected by Pydantic as a 422.

Field names in request bodies keep the camelCase keys existing clients send
(secretKey, adminEmail, ...). Response keys that were camelCase in the public
contract (previousCounts, deletedBy) use serialization aliases.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Admin, Principal, PurgeReport

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/user/register."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=128)
    name: Optional[str] = Field(default=None, max_length=255)


class AdminRegisterRequest(RegisterRequest):
    """Request body for POST /api/v1/admin/register."""

    secret_key: Optional[str] = Field(default=None, alias="secretKey", max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/user/login and /api/v1/admin/login."""

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=128)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class PrincipalResponse(BaseModel):
    """Summary of a principal after register or login. Never carries a hash.

    role and permissions are only populated for admins; model_response()
    drops unset fields, so user responses carry neither key.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    email: str
    name: str
    role: Optional[str] = None
    permissions: Optional[list[str]] = None

    @classmethod
    def from_principal(
        cls, principal: Principal, message: str, include_permissions: bool = False
    ) -> "PrincipalResponse":
        """Build a response from a domain User/Admin.

        Factory Method pattern -- the mapping lives here, colocated with the
        output model, rather than scattered across route handlers.
        """
        role = None
        permissions = None
        if isinstance(principal, Admin):
            role = principal.role
            if include_permissions:
                permissions = [p.value for p in principal.permissions]
        return cls(message=message, email=principal.email, name=principal.name, role=role, permissions=permissions)


class NamespaceCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    users: int
    admins: int


class ActorSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    name: str


class DeleteAllResponse(BaseModel):
    """Response for DELETE /api/v1/admin/delete-all-records."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message: str = "All records deleted successfully"
    deleted: NamespaceCounts
    previous_counts: NamespaceCounts = Field(serialization_alias="previousCounts")
    deleted_by: ActorSummary = Field(serialization_alias="deletedBy")
    timestamp: str

    @classmethod
    def from_report(cls, report: PurgeReport) -> "DeleteAllResponse":
        return cls(
            deleted=NamespaceCounts(users=report.deleted_users, admins=report.deleted_admins),
            previous_counts=NamespaceCounts(users=report.previous_users, admins=report.previous_admins),
            deleted_by=ActorSummary(email=report.deleted_by.email, name=report.deleted_by.name),
            timestamp=report.timestamp,
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    failed_rules: Optional[list[str]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str
    version: str
    components: dict[str, str]
