"""State machine deciding whether a presented authorization code may be redeemed.

Checks run in a fixed order and the first failure wins:

1. unknown code
2. INACTIVE (already redeemed): replay, revoke what it minted
3. REVOKED
4. EXPIRED, or less than ``MIN_VALIDITY`` left on the clock
5. callback URL binding
6. client application still registered
7. PKCE binding

Presenting a code burns it. A code that was ACTIVE at fetch time ends up
REVOKED whatever the outcome of steps 5 to 7; the other branches already
leave it terminal.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Final

from authcode_grant.models import CodeState, FailureCause, GrantFailure, ValidatedGrant

if TYPE_CHECKING:
    from collections.abc import Callable

    from authcode_grant.cache import CacheCoordinator
    from authcode_grant.models import AuthorizationCode, CodeLookup, GrantOutcome, TokenRequest
    from authcode_grant.protocols import AppRegistryProtocol, CodeStoreProtocol, PKCEVerifierProtocol
    from authcode_grant.revocation import RevocationCascade

logger = logging.getLogger(__name__)

MIN_VALIDITY: Final[timedelta] = timedelta(milliseconds=1000)


def utc_now() -> datetime:
    return datetime.now(UTC)


class CodeValidator:
    def __init__(  # noqa: PLR0913
        self,
        *,
        store: CodeStoreProtocol,
        apps: AppRegistryProtocol,
        cache: CacheCoordinator,
        cascade: RevocationCascade,
        pkce_verifier: PKCEVerifierProtocol,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.apps = apps
        self.cache = cache
        self.cascade = cascade
        self.pkce_verifier = pkce_verifier
        self.clock = clock

    async def validate(self, request: TokenRequest, lookup: CodeLookup | None) -> GrantOutcome:
        if lookup is None:
            logger.debug("Couldn't find persisted data for authorization code of client id: %s", request.client_id)
            return GrantFailure(
                cause=FailureCause.NOT_FOUND,
                client_id=request.client_id,
                detail="Invalid authorization code received from token request",
            )

        record = lookup.record
        if not lookup.was_active:
            await self.cascade.revoke_issued_tokens(record)

        if failure := await self._check_state(record):
            return failure

        try:
            return await self._check_bindings(request, record)
        finally:
            await self._burn(record)

    async def _check_state(self, record: AuthorizationCode) -> GrantFailure | None:
        match record.state:
            case CodeState.INACTIVE:
                return self._fail(record, FailureCause.REPLAYED, "Inactive authorization code received")
            case CodeState.REVOKED:
                return self._fail(record, FailureCause.REVOKED, "Revoked authorization code received")
            case CodeState.EXPIRED:
                return self._fail(record, FailureCause.EXPIRED, "Expired authorization code received")

        now = self.clock()
        if record.time_to_expire(now) < MIN_VALIDITY:
            await self._mark_expired(record)
            logger.debug(
                "Authorization code issued at %s with validity period %s is expired at %s",
                record.issued_at.isoformat(),
                record.validity_period,
                now.isoformat(),
            )
            return self._fail(record, FailureCause.EXPIRED, "Expired authorization code received")
        return None

    async def _check_bindings(self, request: TokenRequest, record: AuthorizationCode) -> GrantOutcome:
        if record.callback_url and record.callback_url != request.callback_uri:
            logger.debug(
                "Received callback url in the request: %s is not matching with persisted callback url %s",
                request.callback_uri,
                record.callback_url,
            )
            return self._fail(record, FailureCause.CALLBACK_MISMATCH, "Callback url mismatch")

        app = await self.apps.get_app_by_client_id(record.client_id)
        if app is None:
            logger.warning("Error while retrieving app information for client: %s", record.client_id)
            return self._fail(record, FailureCause.UNKNOWN_CLIENT, "Unknown client application")

        if (record.pkce_challenge or app.pkce_mandatory) and not self.pkce_verifier.verify(
            record.pkce_challenge,
            request.pkce_verifier,
            record.pkce_challenge_method,
            app,
        ):
            logger.warning("Failed PKCE verification for OAuth 2.0 request from client: %s", record.client_id)
            return self._fail(record, FailureCause.PKCE_MISMATCH, "PKCE validation failed")

        logger.debug(
            "Found authorization code for client: %s, authorized user: %s, scope: %s",
            record.client_id,
            record.authorized_user.loggable_id,
            " ".join(record.scopes),
        )
        return ValidatedGrant(
            client_id=record.client_id,
            code=record.code,
            code_id=record.code_id,
            authorized_user=record.authorized_user,
            scopes=record.scopes,
            token_binding_reference=record.token_binding_reference,
            bound_token_id=record.token_id,
        )

    async def _mark_expired(self, record: AuthorizationCode) -> None:
        await self.store.set_state(record.code_id, CodeState.EXPIRED)
        self.cache.evict_code(record.client_id, record.code)
        logger.debug("Changed state of authorization code %s to expired", record.code_id)

    async def _burn(self, record: AuthorizationCode) -> None:
        await self.store.set_state(record.code_id, CodeState.REVOKED)
        self.cache.evict_code(record.client_id, record.code)
        logger.debug("Changed state of authorization code %s to revoked", record.code_id)

    @staticmethod
    def _fail(record: AuthorizationCode, cause: FailureCause, detail: str) -> GrantFailure:
        return GrantFailure(cause=cause, client_id=record.client_id, code_id=record.code_id, detail=detail)
