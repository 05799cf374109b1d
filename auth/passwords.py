"""
auth/passwords.py -- bcrypt password hashing and verification.

Security design decisions:
  bcrypt directly, no passlib wrapper. passlib's internal wrap-bug detection
       creates a password longer than 72 bytes, which bcrypt 4.x rejects with
       an explicit error. Direct bcrypt usage has no compatibility shim.

  Cost factor comes from Settings.bcrypt_rounds (default 10). Each hash call
       generates a fresh salt, so equal passwords never share a digest.

  Hash-on-set only: workflows call hash() exactly once, when a password value
       is first set. Stores persist digests verbatim and never hash, so saving
       an unrelated change (last_login) cannot double-hash a credential.

  dummy_verify() burns one bcrypt comparison for lookups that found no
       account. Response time then does not reveal whether an email exists.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.validators import PASSWORD_MAX_BYTES

logger = logging.getLogger("authgate.auth")


class PasswordHasher:
    """One-way hash-and-verify contract for passwords at rest.

    Usage:
        hasher = PasswordHasher(rounds=10)
        digest = hasher.hash("Aa1!aaaa")
        hasher.verify("Aa1!aaaa", digest)   # True
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        # Computed once so the first failed lookup is not measurably slower
        # than later ones.
        self._dummy_hash = self.hash("authgate_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt digest of the given plaintext password.

        Raises ValueError for input over PASSWORD_MAX_BYTES: bcrypt would
        silently ignore the excess, so two different passwords could share
        a digest. Workflows reject such passwords before hashing.
        """
        encoded = plain.encode("utf-8")
        if len(encoded) > PASSWORD_MAX_BYTES:
            raise ValueError(f"password exceeds {PASSWORD_MAX_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if the plaintext password matches the bcrypt digest.

        A malformed digest is treated as a mismatch rather than an error.
        Input over PASSWORD_MAX_BYTES never matches, since hash() refuses it;
        the comparison still runs on its first bytes so the cost is the same.
        """
        encoded = plain.encode("utf-8")
        try:
            matched = bcrypt.checkpw(encoded[:PASSWORD_MAX_BYTES], digest.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password digest is malformed; treating as mismatch")
            return False
        return matched and len(encoded) <= PASSWORD_MAX_BYTES

    def dummy_verify(self, plain: str) -> None:
        """Spend the same bcrypt work as a real verify against a throwaway hash."""
        self.verify(plain, self._dummy_hash)
