"""bcrypt password hashing."""

from __future__ import annotations

import bcrypt


class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def compare(self, plain: str, digest: str) -> bool:
        """False for a mismatch and for digests that are not bcrypt hashes (e.g. WeChat-only accounts)."""
        if not digest:
            return False
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            return False
