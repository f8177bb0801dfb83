"""Keyed one-way pseudonyms for teacher names.

The same (secret, name) pair always yields the same token, so a teacher can
be followed across snapshots without the archive ever holding the name.
"""

import hashlib
from collections.abc import Iterable


def transform(secret: bytes | str, value: str) -> str:
    """Return the lowercase hex SHA-256 digest of `secret` followed by `value`."""
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    digest = hashlib.sha256()
    digest.update(secret)
    digest.update(value.encode("utf-8"))
    return digest.hexdigest()


class Pseudonymizer:
    """transform() bound to one secret."""

    def __init__(self, secret: bytes | str) -> None:
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else secret

    def __call__(self, value: str) -> str:
        return transform(self._secret, value)

    def many(self, values: Iterable[str]) -> list[str]:
        return [self(value) for value in values]
