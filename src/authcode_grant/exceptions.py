from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authcode_grant.models import FailureCause


class AuthCodeGrantError(Exception):
    pass


class OAuthError(AuthCodeGrantError):
    error: str = "server_error"

    def __init__(self, description: str | None = None) -> None:
        super().__init__(description or self.error)
        self.description = description

    def to_payload(self) -> dict[str, str]:
        payload = {"error": self.error}
        if self.description:
            payload["error_description"] = self.description
        return payload


class InvalidGrantError(OAuthError):
    """Uniform rejection of an authorization code.

    The specific ``cause`` is kept for audit logging only and is never part of
    the payload handed back to the client.
    """

    error = "invalid_grant"

    def __init__(self, cause: FailureCause, description: str = "Invalid authorization code") -> None:
        super().__init__(description)
        self.cause = cause


class UnsupportedGrantTypeError(OAuthError):
    error = "unsupported_grant_type"


class UserIdNotFoundError(AuthCodeGrantError):
    pass


class StoreError(AuthCodeGrantError):
    pass


class CacheError(AuthCodeGrantError):
    pass


class ConfigurationError(AuthCodeGrantError):
    pass
