"""Reaction to authorization code replay.

RFC 6749 section 4.1.2: when a code is presented more than once, the
authorization server should revoke every token previously issued from it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from authcode_grant.exceptions import CacheError
from authcode_grant.hooks import HookRunner, TokenRevocationContext
from authcode_grant.utils import fingerprint

if TYPE_CHECKING:
    from collections.abc import Callable

    from authcode_grant.cache import CacheCoordinator
    from authcode_grant.models import AccessToken, AuthorizationCode
    from authcode_grant.protocols import CodeStoreProtocol

logger = logging.getLogger(__name__)


class RevocationCascade:
    def __init__(
        self,
        store: CodeStoreProtocol,
        cache: CacheCoordinator,
        hooks: HookRunner | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.hooks = hooks or HookRunner()

    async def revoke_issued_tokens(self, record: AuthorizationCode) -> AccessToken | None:
        """Revoke the token minted from ``record``, if any; return it when a revocation happened."""
        self._evict_quietly(self.cache.evict_code_tokens, record)

        if record.token_id is None:
            logger.debug(
                "No access token was bound to authorization code %s of client %s, nothing to revoke",
                record.code_id,
                record.client_id,
            )
            return None

        token = await self.store.get_token_by_id(record.token_id)
        if token is None or token.revoked:
            logger.debug(
                "Access token %s bound to authorization code %s is missing or already revoked",
                record.token_id,
                record.code_id,
            )
            return None

        user_id = record.authorized_user.require_user_id()
        await self.store.revoke_token(token.token_id, user_id)
        self._evict_quietly(self.cache.evict_token, token)

        logger.debug(
            "Validated authorization code(hashed): %s for client: %s is not active. "
            "So revoking the access tokens issued for the authorization code.",
            fingerprint(record.code),
            record.client_id,
        )

        await self._notify(token, record)
        return token

    async def _notify(self, token: AccessToken, record: AuthorizationCode) -> None:
        if not self.hooks.enabled:
            return
        context = TokenRevocationContext(
            token=token,
            metadata={"code_id": str(record.code_id), "reason": "authorization_code_replay"},
        )
        failures = await self.hooks.notify("on_post_token_revocation", context)
        if failures:
            logger.error(
                "%d post access token revoke listener(s) failed for access token %s",
                failures,
                token.token_id,
            )

    @staticmethod
    def _evict_quietly[T](evict: Callable[[T], None], target: T) -> None:
        try:
            evict(target)
        except CacheError:
            logger.warning("Cache eviction failed during token revocation", exc_info=True)
