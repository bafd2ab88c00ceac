from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta  # noqa: TC003
from typing import TYPE_CHECKING
from uuid import uuid4

from authcode_grant.models import AccessToken, TokenResponse
from authcode_grant.utils import apply_prefix, build_scope_string
from authcode_grant.validator import utc_now

if TYPE_CHECKING:
    from collections.abc import Callable

    from authcode_grant.models import ValidatedGrant
    from authcode_grant.protocols import CodeStoreProtocol
    from authcode_grant.settings import AuthorizationCodeGrantSettings

logger = logging.getLogger(__name__)


class OpaqueTokenIssuer:
    """Mint random bearer tokens and persist them through the code store."""

    def __init__(
        self,
        store: CodeStoreProtocol,
        settings: AuthorizationCodeGrantSettings,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.settings = settings
        self.clock = clock

    async def issue(self, grant: ValidatedGrant, *, issue_refresh_token: bool) -> TokenResponse:
        issued_at = self.clock()
        ttl = self.settings.access_token_ttl_seconds
        refresh_token = apply_prefix(secrets.token_hex(32), self.settings.token_prefix) if issue_refresh_token else None

        token = await self.store.create_access_token(
            AccessToken(
                token_id=uuid4(),
                token=apply_prefix(secrets.token_hex(32), self.settings.token_prefix),
                client_id=grant.client_id,
                authorized_user=grant.authorized_user,
                scopes=grant.scopes,
                issued_at=issued_at,
                expires_at=issued_at + timedelta(seconds=ttl),
                token_binding_reference=grant.token_binding_reference,
                refresh_token=refresh_token,
            ),
        )
        logger.debug("Issued access token %s for client %s", token.token_id, grant.client_id)

        return TokenResponse(
            token_id=token.token_id,
            access_token=token.token,
            expires_in=ttl,
            scope=build_scope_string(token.scopes),
            refresh_token=token.refresh_token,
        )
