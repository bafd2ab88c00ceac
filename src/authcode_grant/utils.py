from __future__ import annotations

import hashlib
from collections.abc import Iterable


def build_scope_string(scopes: Iterable[str]) -> str:
    return " ".join(sorted(set(scopes)))


def fingerprint(secret: str, length: int = 12) -> str:
    """Short sha256 digest of a code or token, safe to put in log lines."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()[:length]


def apply_prefix(token: str, prefix: str | None) -> str:
    if not prefix:
        return token
    return f"{prefix}{token}"
