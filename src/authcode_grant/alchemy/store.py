from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from authcode_grant.alchemy.models import OAuthAccessToken, OAuthApp, OAuthAuthorizationCode
from authcode_grant.exceptions import StoreError
from authcode_grant.models import (
    NONE_BINDING_REFERENCE,
    AccessToken,
    AppPolicy,
    AuthorizationCode,
    AuthorizedUser,
    CodeLookup,
    CodeState,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


class AlchemyCodeStore:
    """Durable code and token state backed by SQLAlchemy.

    Each operation runs in its own session and commits before returning, so
    every state transition is durable by the time the caller sees the result.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        authorization_code: type[OAuthAuthorizationCode] = OAuthAuthorizationCode,
        access_token: type[OAuthAccessToken] = OAuthAccessToken,
        app: type[OAuthApp] = OAuthApp,
    ) -> None:
        self.session_maker = session_maker
        self.authorization_code_model = authorization_code
        self.access_token_model = access_token
        self.app_model = app

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_maker() as session:
                yield session
        except SQLAlchemyError as exc:
            msg = "code store operation failed"
            raise StoreError(msg) from exc

    @staticmethod
    async def _commit(session: AsyncSession) -> None:
        try:
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    # authorization codes

    async def create_authorization_code(  # noqa: PLR0913
        self,
        *,
        client_id: str,
        code: str,
        authorized_user: AuthorizedUser,
        scopes: Iterable[str],
        validity_period: timedelta,
        issued_at: datetime | None = None,
        callback_url: str | None = None,
        pkce_challenge: str | None = None,
        pkce_challenge_method: str | None = None,
        token_binding_reference: str = NONE_BINDING_REFERENCE,
    ) -> AuthorizationCode:
        row = self.authorization_code_model(
            code=code,
            client_id=client_id,
            scopes=list(scopes),
            issued_at=issued_at or datetime.now(UTC),
            validity_period_ms=int(validity_period.total_seconds() * 1000),
            user_id=authorized_user.user_id,
            username=authorized_user.username,
            federated_idp=authorized_user.federated_idp,
            callback_url=callback_url,
            pkce_challenge=pkce_challenge,
            pkce_challenge_method=pkce_challenge_method,
            token_binding_reference=token_binding_reference,
        )
        async with self._session() as session:
            session.add(row)
            await self._commit(session)
            await session.refresh(row)
            return self._to_code(row)

    async def validate_and_fetch(self, client_id: str, code: str) -> CodeLookup | None:
        model = self.authorization_code_model
        async with self._session() as session:
            stmt = select(model).where(model.client_id == client_id, model.code == code)
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                return None

            snapshot = self._to_code(row)
            if snapshot.state is not CodeState.ACTIVE:
                return CodeLookup(record=snapshot, was_active=False)

            # claim the code in the same unit of work: only one caller can flip ACTIVE
            if await self._compare_and_set(session, row.id, CodeState.REVOKED, expected=CodeState.ACTIVE):
                return CodeLookup(record=snapshot, was_active=True)

            logger.debug("Lost the race to claim authorization code %s", row.id)
            await session.refresh(row)
            return CodeLookup(record=self._to_code(row), was_active=False)

    async def set_state(
        self,
        code_id: UUID,
        new_state: CodeState,
        *,
        expected: CodeState | None = None,
    ) -> bool:
        if new_state is CodeState.ACTIVE:
            msg = "authorization codes cannot be moved back to ACTIVE"
            raise ValueError(msg)
        async with self._session() as session:
            return await self._compare_and_set(session, code_id, new_state, expected=expected)

    async def bind_token(self, code_id: UUID, token_id: UUID) -> None:
        model = self.authorization_code_model
        stmt = (
            update(model)
            .where(model.id == code_id)
            .values(state=CodeState.INACTIVE.value, token_id=token_id)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            await session.execute(stmt)
            await self._commit(session)

    async def _compare_and_set(
        self,
        session: AsyncSession,
        code_id: UUID,
        new_state: CodeState,
        *,
        expected: CodeState | None,
    ) -> bool:
        model = self.authorization_code_model
        stmt = update(model).where(model.id == code_id)
        if expected is not None:
            stmt = stmt.where(model.state == expected.value)
        stmt = stmt.values(state=new_state.value).execution_options(synchronize_session=False)
        result = await session.execute(stmt)
        await self._commit(session)
        return result.rowcount > 0  # type: ignore[attr-defined]

    # access tokens

    async def create_access_token(self, token: AccessToken) -> AccessToken:
        row = self.access_token_model(
            token=token.token,
            client_id=token.client_id,
            scopes=list(token.scopes),
            issued_at=token.issued_at,
            expires_at=token.expires_at,
            user_id=token.authorized_user.user_id,
            username=token.authorized_user.username,
            federated_idp=token.authorized_user.federated_idp,
            token_binding_reference=token.token_binding_reference,
            refresh_token=token.refresh_token,
            revoked=token.revoked,
        )
        row.id = token.token_id
        async with self._session() as session:
            session.add(row)
            await self._commit(session)
            await session.refresh(row)
            return self._to_token(row)

    async def get_token_by_id(self, token_id: UUID) -> AccessToken | None:
        async with self._session() as session:
            row = await session.get(self.access_token_model, token_id)
            return self._to_token(row) if row is not None else None

    async def revoke_token(self, token_id: UUID, revoking_user_id: str) -> bool:
        model = self.access_token_model
        stmt = (
            update(model)
            .where(model.id == token_id, model.revoked.is_(False))
            .values(revoked=True, revoked_at=datetime.now(UTC), revoked_by=revoking_user_id)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await self._commit(session)
            return result.rowcount > 0  # type: ignore[attr-defined]

    # client applications

    async def create_app(
        self,
        client_id: str,
        *,
        name: str | None = None,
        pkce_mandatory: bool = False,
        pkce_support_plain: bool = False,
    ) -> AppPolicy:
        row = self.app_model(
            client_id=client_id,
            name=name,
            pkce_mandatory=pkce_mandatory,
            pkce_support_plain=pkce_support_plain,
        )
        async with self._session() as session:
            session.add(row)
            await self._commit(session)
            await session.refresh(row)
            return self._to_app(row)

    async def get_app_by_client_id(self, client_id: str) -> AppPolicy | None:
        stmt = select(self.app_model).where(self.app_model.client_id == client_id)
        async with self._session() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return self._to_app(row) if row is not None else None

    @staticmethod
    def _to_code(row: OAuthAuthorizationCode) -> AuthorizationCode:
        return AuthorizationCode(
            code_id=row.id,
            code=row.code,
            client_id=row.client_id,
            authorized_user=AuthorizedUser(
                user_id=row.user_id,
                username=row.username,
                federated_idp=row.federated_idp,
            ),
            scopes=tuple(row.scopes),
            issued_at=row.issued_at,
            validity_period=timedelta(milliseconds=row.validity_period_ms),
            state=CodeState(row.state),
            callback_url=row.callback_url,
            pkce_challenge=row.pkce_challenge,
            pkce_challenge_method=row.pkce_challenge_method,
            token_binding_reference=row.token_binding_reference,
            token_id=row.token_id,
        )

    @staticmethod
    def _to_token(row: OAuthAccessToken) -> AccessToken:
        return AccessToken(
            token_id=row.id,
            token=row.token,
            client_id=row.client_id,
            authorized_user=AuthorizedUser(
                user_id=row.user_id,
                username=row.username,
                federated_idp=row.federated_idp,
            ),
            scopes=tuple(row.scopes),
            issued_at=row.issued_at,
            expires_at=row.expires_at,
            token_binding_reference=row.token_binding_reference,
            refresh_token=row.refresh_token,
            revoked=row.revoked,
        )

    @staticmethod
    def _to_app(row: OAuthApp) -> AppPolicy:
        return AppPolicy(
            client_id=row.client_id,
            pkce_mandatory=row.pkce_mandatory,
            pkce_support_plain=row.pkce_support_plain,
        )
