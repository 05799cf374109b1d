"""
auth/validators.py -- Input sanitizer and field validators.

Pure functions: no I/O, no logging, no exceptions. Workflows call these on
already-parsed request fields and turn failures into AuthResult errors.

sanitize() runs on email and name before validation. Passwords are never
sanitized -- stripping characters from a password would silently change the
credential the user thinks they chose.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NAME_RE = re.compile(r"^[a-zA-Z\s]{2,50}$")

PASSWORD_MIN_LENGTH = 8
# bcrypt reads at most 72 bytes of input; anything past that would be ignored.
PASSWORD_MAX_BYTES = 72
SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'


class PasswordRule(str, Enum):
    """Password-strength rules, declared in the order they are reported."""

    MIN_LENGTH = "min_length"
    UPPER = "upper"
    LOWER = "lower"
    DIGIT = "digit"
    SPECIAL = "special"
    MAX_BYTES = "max_bytes"


_RULE_DESCRIPTIONS: dict[PasswordRule, str] = {
    PasswordRule.MIN_LENGTH: f"at least {PASSWORD_MIN_LENGTH} characters",
    PasswordRule.UPPER: "one uppercase letter",
    PasswordRule.LOWER: "one lowercase letter",
    PasswordRule.DIGIT: "one number",
    PasswordRule.SPECIAL: "one special character",
    PasswordRule.MAX_BYTES: f"no more than {PASSWORD_MAX_BYTES} bytes in total",
}


@dataclass(frozen=True)
class PasswordCheck:
    """Result of validate_password(). failed_rules is empty when valid."""

    valid: bool
    failed_rules: frozenset[PasswordRule]


def sanitize(text: str) -> str:
    """Trim surrounding whitespace and drop every '<' and '>' character."""
    return text.strip().replace("<", "").replace(">", "")


def validate_email(email: str) -> bool:
    """Return True for local@domain.suffix with no whitespace and a single '@'."""
    return _EMAIL_RE.fullmatch(email) is not None


def validate_name(name: str) -> bool:
    """Return True if name is 2-50 characters of ASCII letters and whitespace."""
    return _NAME_RE.fullmatch(name) is not None


def validate_password(password: str) -> PasswordCheck:
    """Evaluate every password rule independently.

    No short-circuiting: a caller can report all missing requirements at once.
    Uppercase/lowercase/digit follow the ASCII classes so the policy does not
    depend on the Unicode tables of the running interpreter. The length cap is
    counted in UTF-8 bytes, the unit bcrypt truncates on.
    """
    failed: set[PasswordRule] = set()
    if len(password) < PASSWORD_MIN_LENGTH:
        failed.add(PasswordRule.MIN_LENGTH)
    if not re.search(r"[A-Z]", password):
        failed.add(PasswordRule.UPPER)
    if not re.search(r"[a-z]", password):
        failed.add(PasswordRule.LOWER)
    if not re.search(r"[0-9]", password):
        failed.add(PasswordRule.DIGIT)
    if not any(ch in SPECIAL_CHARACTERS for ch in password):
        failed.add(PasswordRule.SPECIAL)
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        failed.add(PasswordRule.MAX_BYTES)
    return PasswordCheck(valid=not failed, failed_rules=frozenset(failed))


def ordered_rules(rules: frozenset[PasswordRule] | set[PasswordRule]) -> list[PasswordRule]:
    """Return rules sorted into the fixed reporting order."""
    return [rule for rule in PasswordRule if rule in rules]


def describe_password_failures(rules: frozenset[PasswordRule] | set[PasswordRule]) -> str:
    """Render failed rules as one human-readable sentence.

    >>> describe_password_failures(frozenset({PasswordRule.DIGIT, PasswordRule.UPPER}))
    'Password must contain: one uppercase letter, one number'
    """
    return "Password must contain: " + ", ".join(_RULE_DESCRIPTIONS[r] for r in ordered_rules(rules))
