"""
auth/store.py -- SQLAlchemy Core persistence layer for principals.

Pattern: Repository + Data Mapper. PrincipalStore is the repository for one
namespace (users or admins); _row_to_principal is the mapper. Workflow code
never touches SQL directly.

AuthDatabase owns the engine and both namespace stores. It also runs the bulk
purge, because deleting both namespaces must happen in one transaction and a
single PrincipalStore only sees its own table.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE constraint on each table, not a read-then-write
  check. A duplicate insert raises DuplicateEmailError; concurrent registrations
  with the same email therefore cannot both succeed.

  Emails are lower-cased on write and on lookup so "Alice@B.com" and
  "alice@b.com" address the same record.

  save() persists password_hash verbatim. Hashing belongs to the workflow that
  sets the password; re-hashing here would corrupt the credential.

Errors:
  DuplicateEmailError    -- UNIQUE(email) violated on insert.
  StoreUnavailableError  -- any other SQLAlchemy failure. The driver
                            exception is chained for logs, never shown to
                            callers.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Union

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import Admin, Namespace, Permission, User

logger = logging.getLogger("authgate.store")

AnyPrincipal = Union[User, Admin]


class StoreError(Exception):
    """Base class for store failures surfaced to workflows."""


class DuplicateEmailError(StoreError):
    def __init__(self, email: str) -> None:
        super().__init__(f"email already registered: {email}")
        self.email = email


class StoreUnavailableError(StoreError):
    """The backing database could not complete the operation."""


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()


def _principal_columns() -> list[Column]:
    # Fresh Column objects per table: SQLAlchemy binds a Column to one Table.
    return [
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(50), nullable=False),
        Column("email", String(255), nullable=False, unique=True),
        Column("password_hash", Text, nullable=False),
        Column("created_at", String(32), nullable=False),
        Column("last_login", String(32)),
    ]


_users = Table("users", _metadata, *_principal_columns())

_admins = Table(
    "admins",
    _metadata,
    *_principal_columns(),
    Column("role", String(30), nullable=False, server_default="admin"),
    Column("permissions", Text, nullable=False, server_default="[]"),  # JSON array
    Column("is_active", Integer, nullable=False, server_default="1"),
)

_TABLES: dict[Namespace, Table] = {Namespace.USER: _users, Namespace.ADMIN: _admins}


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and hand transaction control to SQLAlchemy.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. pysqlite on its own only opens a transaction
    before DML, so a SELECT issued first would run outside it; with its
    implicit handling off, _emit_begin() starts every transaction explicitly.
    """
    dbapi_conn.isolation_level = None
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _emit_begin(conn: Connection) -> None:
    conn.exec_driver_sql("BEGIN")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PrincipalStore:
    """Repository for one principal namespace.

    Usage:
        db = AuthDatabase("sqlite:///:memory:")
        db.users.save(User(name="Ann", email="ann@x.io", password_hash=digest))
        user = db.users.find_by_email("ann@x.io")
    """

    def __init__(self, engine: Engine, namespace: Namespace) -> None:
        self.engine = engine
        self.namespace = namespace
        self._table = _TABLES[namespace]

    def find_by_email(self, email: str) -> AnyPrincipal | None:
        """Look up a principal by email (case-insensitive). Returns None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    self._table.select().where(self._table.c.email == normalize_email(email))
                ).fetchone()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("lookup failed") from exc
        return _row_to_principal(self.namespace, row) if row is not None else None

    def save(self, principal: AnyPrincipal) -> AnyPrincipal:
        """Insert a new principal or update an existing one; return it.

        Insert (id is None): assigns id and created_at on the passed object.
            Raises DuplicateEmailError if the email is already registered in
            this namespace.

        Update (id set): writes name, password_hash, last_login and, for
            admins, is_active. role, permissions and created_at are never
            rewritten.
        """
        if principal.namespace is not self.namespace:
            raise TypeError(f"{type(principal).__name__} does not belong in the {self.namespace.value} store")
        if principal.id is None:
            return self._insert(principal)
        return self._update(principal)

    def count(self) -> int:
        """Return the number of records in this namespace."""
        try:
            with self.engine.connect() as conn:
                return self._count(conn)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("count failed") from exc

    def delete_all(self) -> int:
        """Delete every record in this namespace. Returns the number deleted."""
        try:
            with self.engine.begin() as conn:
                return self._delete_all(conn)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("delete failed") from exc

    # ------------------------------------------------------------------
    # Internals -- take an open connection so AuthDatabase can compose
    # them inside one transaction.
    # ------------------------------------------------------------------

    def _count(self, conn: Connection) -> int:
        return conn.execute(select(func.count()).select_from(self._table)).scalar_one()

    def _delete_all(self, conn: Connection) -> int:
        return conn.execute(self._table.delete()).rowcount

    def _insert(self, principal: AnyPrincipal) -> AnyPrincipal:
        email = normalize_email(principal.email)
        created_at = now_iso()
        values = {
            "name": principal.name,
            "email": email,
            "password_hash": principal.password_hash,
            "created_at": created_at,
            "last_login": principal.last_login,
        }
        if isinstance(principal, Admin):
            values.update(
                role=principal.role,
                permissions=json.dumps([p.value for p in principal.permissions]),
                is_active=1 if principal.is_active else 0,
            )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(self._table.insert().values(**values))
        except IntegrityError as exc:
            raise DuplicateEmailError(email) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("insert failed") from exc
        principal.id = result.inserted_primary_key[0]
        principal.email = email
        principal.created_at = created_at
        return principal

    def _update(self, principal: AnyPrincipal) -> AnyPrincipal:
        values = {
            "name": principal.name,
            "password_hash": principal.password_hash,
            "last_login": principal.last_login,
        }
        if isinstance(principal, Admin):
            values["is_active"] = 1 if principal.is_active else 0
        try:
            with self.engine.begin() as conn:
                conn.execute(self._table.update().where(self._table.c.id == principal.id).values(**values))
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("update failed") from exc
        return principal


class AuthDatabase:
    """Engine owner and entry point for both namespace stores.

    Usage:
        db = AuthDatabase(settings.database_url)
        db = AuthDatabase("postgresql://user:pw@host/db")
        db.admins.find_by_email("a@b.com")
        db.purge_all()
        db.close()
    """

    def __init__(self, db_url: str, timeout_seconds: float = 5.0) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = timeout_seconds
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
            event.listen(self.engine, "begin", _emit_begin)
        _metadata.create_all(self.engine)
        self.users = PrincipalStore(self.engine, Namespace.USER)
        self.admins = PrincipalStore(self.engine, Namespace.ADMIN)

    def purge_all(self) -> tuple[dict[Namespace, int], dict[Namespace, int]]:
        """Delete every principal in both namespaces inside one transaction.

        Returns (previous_counts, deleted_counts), each keyed by namespace.
        Counts are read in the same transaction as the deletes (on SQLite via
        the explicit BEGIN from _emit_begin), so they describe exactly the
        rows that were removed. If any statement fails the transaction rolls
        back and no namespace is left half-emptied.
        """
        stores = (self.users, self.admins)
        try:
            with self.engine.begin() as conn:
                previous = {s.namespace: s._count(conn) for s in stores}
                deleted = {s.namespace: s._delete_all(conn) for s in stores}
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("purge failed") from exc
        return previous, deleted

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
        except SQLAlchemyError:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_principal(namespace: Namespace, row) -> AnyPrincipal:
    if namespace is Namespace.USER:
        return User(
            id=row.id,
            name=row.name,
            email=row.email,
            password_hash=row.password_hash,
            created_at=row.created_at,
            last_login=row.last_login,
        )
    admin = Admin(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
        last_login=row.last_login,
        permissions=[Permission(p) for p in json.loads(row.permissions or "[]")],
        is_active=bool(row.is_active),
    )
    # role is init=False; copy the stored value rather than trusting the default.
    admin.role = row.role
    return admin
