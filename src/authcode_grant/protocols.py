from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from authcode_grant.models import (
        AccessToken,
        AppPolicy,
        CodeLookup,
        CodeState,
        GrantOutcome,
        TokenRequest,
        TokenResponse,
        ValidatedGrant,
    )


@runtime_checkable
class CodeStoreProtocol(Protocol):
    async def validate_and_fetch(self, client_id: str, code: str) -> CodeLookup | None: ...

    async def set_state(
        self,
        code_id: UUID,
        new_state: CodeState,
        *,
        expected: CodeState | None = None,
    ) -> bool: ...

    async def bind_token(self, code_id: UUID, token_id: UUID) -> None: ...

    async def get_token_by_id(self, token_id: UUID) -> AccessToken | None: ...

    async def revoke_token(self, token_id: UUID, revoking_user_id: str) -> bool: ...

    async def create_access_token(self, token: AccessToken) -> AccessToken: ...


@runtime_checkable
class AppRegistryProtocol(Protocol):
    async def get_app_by_client_id(self, client_id: str) -> AppPolicy | None: ...


@runtime_checkable
class CacheProtocol(Protocol):
    def get(self, key: str) -> object | None: ...

    def put(self, key: str, value: object) -> None: ...

    def evict(self, key: str) -> None: ...


@runtime_checkable
class PKCEVerifierProtocol(Protocol):
    def verify(
        self,
        challenge: str | None,
        verifier: str | None,
        method: str | None,
        app: AppPolicy,
    ) -> bool: ...


@runtime_checkable
class TokenIssuerProtocol(Protocol):
    async def issue(self, grant: ValidatedGrant, *, issue_refresh_token: bool) -> TokenResponse: ...


@runtime_checkable
class GrantHandlerProtocol(Protocol):
    grant_type: str

    async def validate_grant(self, request: TokenRequest) -> GrantOutcome: ...

    async def issue(self, request: TokenRequest, grant: ValidatedGrant) -> TokenResponse: ...

    def authorize_access_delegation(self, grant: ValidatedGrant) -> bool: ...

    def issue_refresh_token(self) -> bool: ...
