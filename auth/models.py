"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own the
domain shape; validators, stores and workflows do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

ADMIN_ROLE = "admin"


class Namespace(str, Enum):
    """Independent storage partition per principal kind.

    A user and an admin may share an email address: uniqueness is enforced
    per namespace, never across both.
    """

    USER = "user"
    ADMIN = "admin"


class Permission(str, Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    MANAGE_USERS = "manage_users"


# Granted in full to every newly registered admin. Nothing in this codebase
# grants or revokes individual permissions afterwards.
DEFAULT_ADMIN_PERMISSIONS: tuple[Permission, ...] = (
    Permission.READ,
    Permission.WRITE,
    Permission.DELETE,
    Permission.MANAGE_USERS,
)


@dataclass
class Principal:
    """Fields shared by every authenticated entity.

    password_hash always holds a bcrypt digest. The raw password never reaches
    this object -- workflows hash before constructing it.

    id and created_at are None until the store has written the record.
    """

    name: str
    email: str
    password_hash: str
    id: int | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert
    last_login: str | None = None  # ISO 8601, None until first login

    namespace = Namespace.USER


@dataclass
class User(Principal):
    """An ordinary account in the user namespace."""

    namespace = Namespace.USER


@dataclass
class Admin(Principal):
    """An administrator account in the admin namespace.

    role is excluded from __init__ so callers cannot pick it; the store never
    writes it on update either.
    """

    permissions: list[Permission] = field(default_factory=lambda: list(DEFAULT_ADMIN_PERMISSIONS))
    is_active: bool = True
    role: str = field(default=ADMIN_ROLE, init=False)

    namespace = Namespace.ADMIN


@dataclass(frozen=True)
class AdminContext:
    """Identity of an admin that passed the authorization gate.

    Handed to the guarded action so it can attribute its effects.
    """

    id: int
    email: str
    name: str
    permissions: tuple[Permission, ...]


@dataclass(frozen=True)
class PurgeReport:
    """Outcome of the bulk delete across both namespaces."""

    deleted_users: int
    deleted_admins: int
    previous_users: int
    previous_admins: int
    deleted_by: AdminContext
    timestamp: str  # ISO 8601
