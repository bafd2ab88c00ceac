from __future__ import annotations

import logging
from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING, Final

from authcode_grant.cache import CacheCoordinator, TTLCacheBackend
from authcode_grant.exceptions import InvalidGrantError
from authcode_grant.hooks import GrantHooks, HookRunner
from authcode_grant.models import GrantFailure
from authcode_grant.pkce import PKCEVerifier
from authcode_grant.revocation import RevocationCascade
from authcode_grant.utils import fingerprint
from authcode_grant.validator import CodeValidator, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable

    from authcode_grant.models import GrantOutcome, TokenRequest, TokenResponse, ValidatedGrant
    from authcode_grant.protocols import (
        AppRegistryProtocol,
        CacheProtocol,
        CodeStoreProtocol,
        PKCEVerifierProtocol,
        TokenIssuerProtocol,
    )
    from authcode_grant.settings import AuthorizationCodeGrantSettings

logger = logging.getLogger(__name__)

AUTHORIZATION_CODE: Final[str] = "authorization_code"


class AuthorizationCodeGrant:
    grant_type: str = AUTHORIZATION_CODE

    def __init__(  # noqa: PLR0913
        self,
        settings: AuthorizationCodeGrantSettings,
        *,
        store: CodeStoreProtocol,
        apps: AppRegistryProtocol,
        issuer: TokenIssuerProtocol,
        cache: CacheProtocol | None = None,
        hooks: GrantHooks | None = None,
        pkce_verifier: PKCEVerifierProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings
        self.store = store
        self.issuer = issuer
        if cache is None and settings.cache_enabled:
            cache = TTLCacheBackend.from_settings(settings)
        self.cache = CacheCoordinator(store, cache, enabled=settings.cache_enabled)
        self.cascade = RevocationCascade(store, self.cache, HookRunner(hooks=hooks or GrantHooks()))
        self.validator = CodeValidator(
            store=store,
            apps=apps,
            cache=self.cache,
            cascade=self.cascade,
            pkce_verifier=pkce_verifier or PKCEVerifier(),
            clock=clock,
        )

    async def validate_grant(self, request: TokenRequest) -> GrantOutcome:
        lookup = await self.cache.lookup(request.client_id, request.code)
        lookup = await self.cache.claim(lookup)
        outcome = await self.validator.validate(request, lookup)

        if isinstance(outcome, GrantFailure):
            logger.info(
                "Rejected authorization code %s for client %s: %s (%s)",
                fingerprint(request.code),
                request.client_id,
                outcome.cause,
                outcome.detail,
            )
        return outcome

    async def issue(self, request: TokenRequest, grant: ValidatedGrant) -> TokenResponse:
        if request.client_id != grant.client_id or request.code != grant.code:
            msg = "validated grant does not belong to this token request"
            raise ValueError(msg)

        response = await self.issuer.issue(grant, issue_refresh_token=self.issue_refresh_token())

        # finalization, not a revocation: correlates the code with the token minted from it
        await self.store.bind_token(grant.code_id, response.token_id)
        logger.debug("Deactivated authorization code %s, bound to token %s", grant.code_id, response.token_id)

        self.cache.evict_code(grant.client_id, grant.code)
        return response

    async def exchange(self, request: TokenRequest) -> TokenResponse:
        outcome = await self.validate_grant(request)
        if isinstance(outcome, GrantFailure):
            raise InvalidGrantError(outcome.cause)
        return await self.issue(request, outcome)

    def authorize_access_delegation(self, grant: ValidatedGrant) -> bool:  # noqa: ARG002
        # authorization happened when the code was issued
        return True

    def issue_refresh_token(self) -> bool:
        return self.settings.issue_refresh_token
