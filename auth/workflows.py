"""
auth/workflows.py -- Registration and login for both principal namespaces.

One implementation serves users and admins. The namespace comes from the
store passed in; the handful of admin-only steps (shared secret on register,
deactivation check on login) branch on it explicitly.

Every step is a hard gate and the order is part of the contract: a malformed
request surfaces the first failing check, never a later one.

Register:  missing fields -> email -> name -> password strength
           -> [admin] shared secret -> insert (duplicate = email taken)
Login:     missing fields -> email -> lookup -> [admin] deactivated
           -> password -> stamp last_login

Layer rule: no imports from api/.
"""

from __future__ import annotations

import hmac
import logging

from auth.models import Admin, Namespace, User
from auth.passwords import PasswordHasher
from auth.results import AuthResult, ErrorKind
from auth.store import DuplicateEmailError, PrincipalStore, StoreUnavailableError, now_iso
from auth.validators import describe_password_failures, sanitize, validate_email, validate_name, validate_password

logger = logging.getLogger("authgate.auth")

MSG_INVALID_EMAIL = "Invalid email format"
MSG_INVALID_NAME = "Invalid name. Use only letters and spaces (2-50 characters)"
MSG_INVALID_SECRET = "Invalid secret key"
MSG_INVALID_CREDENTIALS = "Invalid credentials"
MSG_STORE_UNAVAILABLE = "Service temporarily unavailable"


def secrets_match(supplied: str, expected: str) -> bool:
    """Constant-time comparison of a caller-supplied secret with the configured one."""
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def register_principal(
    store: PrincipalStore,
    hasher: PasswordHasher,
    *,
    email: str | None,
    password: str | None,
    name: str | None,
    secret: str | None = None,
    admin_secret: str | None = None,
) -> AuthResult:
    """Validate and create a new principal in the store's namespace.

    For the admin namespace, secret is the caller-supplied shared secret and
    admin_secret the configured one. Both are ignored for users.

    On success the payload is the persisted User or Admin. Its password_hash
    is populated; callers must not echo it.
    """
    is_admin = store.namespace is Namespace.ADMIN

    if is_admin:
        if not (email and password and name and secret):
            return AuthResult.fail(ErrorKind.MISSING_FIELDS, "Email, password, name and secretKey required")
    elif not (email and password and name):
        return AuthResult.fail(ErrorKind.MISSING_FIELDS, "Email, password and name required")

    clean_email = sanitize(email)
    clean_name = sanitize(name)

    if not validate_email(clean_email):
        return AuthResult.fail(ErrorKind.INVALID_EMAIL, MSG_INVALID_EMAIL)
    if not validate_name(clean_name):
        return AuthResult.fail(ErrorKind.INVALID_NAME, MSG_INVALID_NAME)

    check = validate_password(password)
    if not check.valid:
        return AuthResult.fail(
            ErrorKind.WEAK_PASSWORD,
            describe_password_failures(check.failed_rules),
            failed_rules=check.failed_rules,
        )

    if is_admin:
        if admin_secret is None or not secrets_match(secret, admin_secret):
            logger.warning("Admin registration rejected: invalid secret (email=%s)", clean_email)
            return AuthResult.fail(ErrorKind.INVALID_SECRET, MSG_INVALID_SECRET)
        principal = Admin(name=clean_name, email=clean_email, password_hash=hasher.hash(password))
    else:
        principal = User(name=clean_name, email=clean_email, password_hash=hasher.hash(password))

    # No lookup first: the UNIQUE constraint decides, so two concurrent
    # registrations cannot both pass a stale existence check.
    try:
        store.save(principal)
    except DuplicateEmailError:
        return AuthResult.fail(ErrorKind.EMAIL_TAKEN, "Email already registered")
    except StoreUnavailableError:
        logger.exception("Registration failed: store unavailable (namespace=%s)", store.namespace.value)
        return AuthResult.fail(ErrorKind.STORE_UNAVAILABLE, MSG_STORE_UNAVAILABLE)

    logger.info("Registered %s %s", store.namespace.value, principal.email)
    return AuthResult.created(principal)


def login_principal(
    store: PrincipalStore,
    hasher: PasswordHasher,
    *,
    email: str | None,
    password: str | None,
) -> AuthResult:
    """Authenticate against the store's namespace and stamp last_login.

    Unknown email and wrong password produce the same InvalidCredentials
    error, and both cost one bcrypt comparison. Admins additionally fail with
    AccountDeactivated when is_active is False; that check runs before the
    password is compared, so it does reveal that the account exists.
    """
    if not (email and password):
        return AuthResult.fail(ErrorKind.MISSING_FIELDS, "Email and password required")

    clean_email = sanitize(email)
    if not validate_email(clean_email):
        return AuthResult.fail(ErrorKind.INVALID_EMAIL, MSG_INVALID_EMAIL)

    try:
        principal = store.find_by_email(clean_email)
    except StoreUnavailableError:
        logger.exception("Login failed: store unavailable (namespace=%s)", store.namespace.value)
        return AuthResult.fail(ErrorKind.STORE_UNAVAILABLE, MSG_STORE_UNAVAILABLE)

    if principal is None:
        hasher.dummy_verify(password)
        logger.warning("Login failed: unknown %s %s", store.namespace.value, clean_email)
        return AuthResult.fail(ErrorKind.INVALID_CREDENTIALS, MSG_INVALID_CREDENTIALS)

    if isinstance(principal, Admin) and not principal.is_active:
        logger.warning("Login refused: admin %s is deactivated", principal.email)
        return AuthResult.fail(ErrorKind.ACCOUNT_DEACTIVATED, "Account is deactivated")

    if not hasher.verify(password, principal.password_hash):
        logger.warning("Login failed: wrong password for %s %s", store.namespace.value, principal.email)
        return AuthResult.fail(ErrorKind.INVALID_CREDENTIALS, MSG_INVALID_CREDENTIALS)

    principal.last_login = now_iso()
    try:
        store.save(principal)
    except StoreUnavailableError:
        logger.exception("Login failed: could not record last_login for %s", principal.email)
        return AuthResult.fail(ErrorKind.STORE_UNAVAILABLE, MSG_STORE_UNAVAILABLE)

    logger.info("Logged in %s %s", store.namespace.value, principal.email)
    return AuthResult.ok(principal)
