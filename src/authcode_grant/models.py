from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID  # noqa: TC003

from pydantic import BaseModel

from authcode_grant.exceptions import UserIdNotFoundError

NONE_BINDING_REFERENCE = "none"


class CodeState(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"

    @property
    def is_terminal(self) -> bool:
        return self is not CodeState.ACTIVE


class FailureCause(StrEnum):
    NOT_FOUND = "not_found"
    REPLAYED = "replayed"
    EXPIRED = "expired"
    REVOKED = "revoked"
    CALLBACK_MISMATCH = "callback_mismatch"
    PKCE_MISMATCH = "pkce_mismatch"
    UNKNOWN_CLIENT = "unknown_client"


@dataclass(frozen=True, slots=True, kw_only=True)
class AuthorizedUser:
    user_id: str | None
    username: str | None = None
    federated_idp: str | None = None

    @property
    def loggable_id(self) -> str:
        return self.username or self.user_id or "<unknown>"

    def require_user_id(self) -> str:
        """Return the stable user id, failing hard when it cannot be resolved."""
        if not self.user_id:
            msg = f"User id not found for user: {self.loggable_id}"
            raise UserIdNotFoundError(msg)
        return self.user_id


@dataclass(frozen=True, slots=True, kw_only=True)
class AuthorizationCode:
    code_id: UUID
    code: str
    client_id: str
    authorized_user: AuthorizedUser
    scopes: tuple[str, ...]
    issued_at: datetime
    validity_period: timedelta
    state: CodeState = CodeState.ACTIVE
    callback_url: str | None = None
    pkce_challenge: str | None = None
    pkce_challenge_method: str | None = None
    token_binding_reference: str = NONE_BINDING_REFERENCE
    token_id: UUID | None = None

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + self.validity_period

    def time_to_expire(self, now: datetime) -> timedelta:
        return self.expires_at - now


@dataclass(frozen=True, slots=True, kw_only=True)
class AccessToken:
    token_id: UUID
    token: str
    client_id: str
    authorized_user: AuthorizedUser
    scopes: tuple[str, ...]
    issued_at: datetime
    expires_at: datetime
    token_binding_reference: str = NONE_BINDING_REFERENCE
    refresh_token: str | None = None
    revoked: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class AppPolicy:
    client_id: str
    pkce_mandatory: bool = False
    pkce_support_plain: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenRequest:
    client_id: str
    code: str
    callback_uri: str | None = None
    pkce_verifier: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CodeLookup:
    record: AuthorizationCode
    was_active: bool
    from_cache: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class ValidatedGrant:
    client_id: str
    code: str
    code_id: UUID
    authorized_user: AuthorizedUser
    scopes: tuple[str, ...]
    token_binding_reference: str = NONE_BINDING_REFERENCE
    bound_token_id: UUID | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class GrantFailure:
    cause: FailureCause
    client_id: str
    code_id: UUID | None = None
    detail: str = field(default="")


type GrantOutcome = ValidatedGrant | GrantFailure


class TokenResponse(BaseModel):
    token_id: UUID
    access_token: str
    token_type: str = "Bearer"  # noqa: S105
    expires_in: int
    scope: str
    refresh_token: str | None = None
