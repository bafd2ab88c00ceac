"""PKCE (Proof Key for Code Exchange, RFC 7636) verification.

Only the comparison contract lives here: the stored challenge, the verifier
sent with the token request, the stored method and the client's policy go in,
a boolean comes out. Verifiers and challenges are never logged.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import re
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from authcode_grant.models import AppPolicy

S256: Final[str] = "S256"
PLAIN: Final[str] = "plain"

_VERIFIER_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9\-._~]{43,128}$")


def create_code_challenge(code_verifier: str) -> str:
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def is_valid_verifier(code_verifier: str) -> bool:
    return bool(_VERIFIER_PATTERN.match(code_verifier))


def verify_pkce(
    challenge: str | None,
    verifier: str | None,
    method: str | None,
    app: AppPolicy,
) -> bool:
    if not challenge:
        # nothing was bound at authorization time; only a mandatory policy can fail this
        return not app.pkce_mandatory

    if not verifier or not is_valid_verifier(verifier):
        return False

    match method or S256:
        case "S256":
            expected = create_code_challenge(verifier)
        case "plain":
            if not app.pkce_support_plain:
                return False
            expected = verifier
        case _:
            return False

    return hmac.compare_digest(expected.encode("utf-8"), challenge.encode("utf-8"))


class PKCEVerifier:
    def verify(
        self,
        challenge: str | None,
        verifier: str | None,
        method: str | None,
        app: AppPolicy,
    ) -> bool:
        return verify_pkce(challenge, verifier, method, app)
