"""
auth/gate.py -- Administrative authorization gate and the bulk purge it guards.

The gate is stricter than admin login. One request must carry three factors
(admin email, admin password, shared secret) and the admin must hold the
permission the guarded action needs. Evaluation order, first failure wins:

  1. all three factors present          -> MissingFields
  2. email well-formed                  -> InvalidEmail
  3. shared secret matches              -> InvalidSecret
  4. admin exists                       -> InvalidCredentials
  5. admin active                       -> AccountDeactivated
  6. password matches                   -> InvalidCredentials
  7. permission granted                 -> InsufficientPermission

The secret is checked before any lookup or bcrypt work, so a caller without
the secret learns nothing about which admin accounts exist.

purge_all_records() must only be called with the AdminContext returned by a
successful authorize_admin_action(). It empties both namespaces in a single
store transaction.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.models import Admin, AdminContext, Namespace, Permission, PurgeReport
from auth.passwords import PasswordHasher
from auth.results import AuthResult, ErrorKind
from auth.store import AuthDatabase, PrincipalStore, StoreUnavailableError, now_iso
from auth.validators import sanitize, validate_email
from auth.workflows import MSG_INVALID_EMAIL, MSG_INVALID_SECRET, MSG_STORE_UNAVAILABLE, secrets_match

logger = logging.getLogger("authgate.auth")

MSG_INVALID_ADMIN_CREDENTIALS = "Invalid admin credentials"


def authorize_admin_action(
    admins: PrincipalStore,
    hasher: PasswordHasher,
    *,
    admin_email: str | None,
    admin_password: str | None,
    secret: str | None,
    admin_secret: str,
    required_permission: Permission = Permission.DELETE,
) -> AuthResult:
    """Run the gate. On success the payload is an AdminContext."""
    if not (admin_email and admin_password and secret):
        return AuthResult.fail(
            ErrorKind.MISSING_FIELDS,
            "Admin email, password, and secret key required for this operation",
        )

    clean_email = sanitize(admin_email)
    if not validate_email(clean_email):
        return AuthResult.fail(ErrorKind.INVALID_EMAIL, MSG_INVALID_EMAIL)

    if not secrets_match(secret, admin_secret):
        logger.warning("Admin gate refused: invalid secret (email=%s)", clean_email)
        return AuthResult.fail(ErrorKind.INVALID_SECRET, MSG_INVALID_SECRET)

    try:
        admin = admins.find_by_email(clean_email)
    except StoreUnavailableError:
        logger.exception("Admin gate failed: store unavailable")
        return AuthResult.fail(ErrorKind.STORE_UNAVAILABLE, MSG_STORE_UNAVAILABLE)

    if not isinstance(admin, Admin):
        hasher.dummy_verify(admin_password)
        logger.warning("Admin gate refused: unknown admin %s", clean_email)
        return AuthResult.fail(ErrorKind.INVALID_CREDENTIALS, MSG_INVALID_ADMIN_CREDENTIALS)

    if not admin.is_active:
        logger.warning("Admin gate refused: admin %s is deactivated", admin.email)
        return AuthResult.fail(ErrorKind.ACCOUNT_DEACTIVATED, "Admin account is deactivated")

    if not hasher.verify(admin_password, admin.password_hash):
        logger.warning("Admin gate refused: wrong password for %s", admin.email)
        return AuthResult.fail(ErrorKind.INVALID_CREDENTIALS, MSG_INVALID_ADMIN_CREDENTIALS)

    if required_permission not in admin.permissions:
        logger.warning("Admin gate refused: %s lacks %s permission", admin.email, required_permission.value)
        return AuthResult.fail(
            ErrorKind.INSUFFICIENT_PERMISSION,
            f"Admin does not have {required_permission.value} permissions",
        )

    return AuthResult.ok(
        AdminContext(
            id=admin.id,
            email=admin.email,
            name=admin.name,
            permissions=tuple(admin.permissions),
        )
    )


def purge_all_records(db: AuthDatabase, actor: AdminContext) -> AuthResult:
    """Delete every user and admin. Irreversible within this system.

    Counts and deletes run in one transaction. The CRITICAL log line is the
    commit point: it is written only after the transaction has committed and
    states exactly what was removed.
    """
    try:
        previous, deleted = db.purge_all()
    except StoreUnavailableError:
        logger.exception("Bulk delete by %s failed; transaction rolled back", actor.email)
        return AuthResult.fail(ErrorKind.STORE_UNAVAILABLE, MSG_STORE_UNAVAILABLE)

    report = PurgeReport(
        deleted_users=deleted[Namespace.USER],
        deleted_admins=deleted[Namespace.ADMIN],
        previous_users=previous[Namespace.USER],
        previous_admins=previous[Namespace.ADMIN],
        deleted_by=actor,
        timestamp=now_iso(),
    )
    logger.critical(
        "All records deleted by admin %s (id=%s): users=%d admins=%d",
        actor.email,
        actor.id,
        report.deleted_users,
        report.deleted_admins,
    )
    return AuthResult.ok(report)
