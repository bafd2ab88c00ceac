"""Read-through cache over authorization code and access token lookups.

The cache is purely a performance layer. Every transition that enforces
single-use semantics is committed to the store first, so any entry may be
evicted at any time without affecting correctness.

Key layout:
- code: ``{client_id}:{code}``
- token: ``{client_id}:{scope}:{user_id}[:{federated_idp}][:{binding_reference}]``
- client/user: ``{client_id}:{user_id}[:{federated_idp}]``
- raw token: the access token value itself
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cachetools import TTLCache

from authcode_grant.exceptions import CacheError
from authcode_grant.models import AuthorizationCode, CodeLookup, CodeState
from authcode_grant.utils import build_scope_string, fingerprint

if TYPE_CHECKING:
    from collections.abc import Iterable

    from authcode_grant.models import AccessToken, AuthorizedUser
    from authcode_grant.protocols import CacheProtocol, CodeStoreProtocol
    from authcode_grant.settings import AuthorizationCodeGrantSettings

logger = logging.getLogger(__name__)


def code_cache_key(client_id: str, code: str) -> str:
    return f"{client_id}:{code}"


def token_cache_key(
    client_id: str,
    scope: str,
    user: AuthorizedUser,
    binding_reference: str | None = None,
) -> str:
    parts = [client_id, scope, user.require_user_id()]
    if user.federated_idp:
        parts.append(user.federated_idp)
    if binding_reference:
        parts.append(binding_reference)
    return ":".join(parts)


def client_user_cache_key(client_id: str, user: AuthorizedUser) -> str:
    parts = [client_id, user.require_user_id()]
    if user.federated_idp:
        parts.append(user.federated_idp)
    return ":".join(parts)


def access_token_cache_keys(token: AccessToken) -> list[str]:
    """Every key under which ``token`` may have been cached."""
    scope = build_scope_string(token.scopes)
    return [
        token.token,
        token_cache_key(token.client_id, scope, token.authorized_user, token.token_binding_reference),
        token_cache_key(token.client_id, scope, token.authorized_user),
        client_user_cache_key(token.client_id, token.authorized_user),
    ]


def code_token_cache_keys(record: AuthorizationCode) -> list[str]:
    """Token keys reachable from a code record, without resolving the token itself."""
    scope = build_scope_string(record.scopes)
    return [
        token_cache_key(record.client_id, scope, record.authorized_user, record.token_binding_reference),
        token_cache_key(record.client_id, scope, record.authorized_user),
    ]


class TTLCacheBackend:
    def __init__(self, *, maxsize: int = 1024, ttl: float = 300) -> None:
        self._entries: TTLCache[str, object] = TTLCache(maxsize=maxsize, ttl=ttl)

    @classmethod
    def from_settings(cls, settings: AuthorizationCodeGrantSettings) -> TTLCacheBackend:
        return cls(maxsize=settings.cache_max_size, ttl=settings.cache_ttl_seconds)

    def get(self, key: str) -> object | None:
        return self._entries.get(key)

    def put(self, key: str, value: object) -> None:
        self._entries[key] = value

    def evict(self, key: str) -> None:
        self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class CacheCoordinator:
    def __init__(
        self,
        store: CodeStoreProtocol,
        cache: CacheProtocol | None = None,
        *,
        enabled: bool = False,
    ) -> None:
        self.store = store
        self.cache = cache
        self.enabled = enabled and cache is not None

    async def lookup(self, client_id: str, code: str) -> CodeLookup | None:
        if self.enabled:
            cached = self._get(code_cache_key(client_id, code))
            if isinstance(cached, AuthorizationCode):
                return CodeLookup(
                    record=cached,
                    was_active=cached.state is CodeState.ACTIVE,
                    from_cache=True,
                )
            logger.debug("Authorization code was not available in cache for client id: %s", client_id)

        logger.debug("Retrieving authorization code from the store for client id: %s", client_id)
        return await self.store.validate_and_fetch(client_id, code)

    async def claim(self, lookup: CodeLookup | None) -> CodeLookup | None:
        """Confirm a cached ACTIVE record against the store before anyone relies on it."""
        if lookup is None or not lookup.from_cache or not lookup.was_active:
            return lookup

        record = lookup.record
        if await self.store.set_state(record.code_id, CodeState.REVOKED, expected=CodeState.ACTIVE):
            return lookup

        logger.debug(
            "Cached authorization code %s for client %s is stale, re-reading from the store",
            fingerprint(record.code),
            record.client_id,
        )
        self.evict_code(record.client_id, record.code)
        return await self.store.validate_and_fetch(record.client_id, record.code)

    def remember(self, record: AuthorizationCode) -> None:
        if not self.enabled:
            return
        self._put(code_cache_key(record.client_id, record.code), record)

    def evict_code(self, client_id: str, code: str) -> None:
        if not self.enabled:
            return
        self._evict([code_cache_key(client_id, code)])
        logger.debug("Cache was cleared for authorization code info for client id: %s", client_id)

    def evict_token(self, token: AccessToken) -> None:
        if not self.enabled:
            return
        self._evict(access_token_cache_keys(token))
        logger.debug("The access token issued for client %s was removed from the cache", token.client_id)

    def evict_code_tokens(self, record: AuthorizationCode) -> None:
        if not self.enabled:
            return
        self._evict(code_token_cache_keys(record))
        logger.debug(
            "Removed token from cache for user %s, for client %s",
            record.authorized_user.loggable_id,
            record.client_id,
        )

    def _get(self, key: str) -> object | None:
        try:
            return self.cache.get(key)  # type: ignore[union-attr]
        except Exception as exc:
            msg = "cache lookup failed"
            raise CacheError(msg) from exc

    def _put(self, key: str, value: object) -> None:
        try:
            self.cache.put(key, value)  # type: ignore[union-attr]
        except Exception as exc:
            msg = "cache write failed"
            raise CacheError(msg) from exc

    def _evict(self, keys: Iterable[str]) -> None:
        try:
            for key in keys:
                self.cache.evict(key)  # type: ignore[union-attr]
        except Exception as exc:
            msg = "cache eviction failed"
            raise CacheError(msg) from exc
