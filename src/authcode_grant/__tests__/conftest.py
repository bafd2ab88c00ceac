from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
import pytest_asyncio

from authcode_grant.__tests__.fixtures.database import get_test_engine, get_test_session_factory
from authcode_grant.__tests__.fixtures.fakes import FrozenClock, InMemoryStore, RecordingCache
from authcode_grant.alchemy import AlchemyCodeStore
from authcode_grant.models import AppPolicy, AuthorizationCode, AuthorizedUser, CodeState
from authcode_grant.settings import AuthorizationCodeGrantSettings

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

CLIENT_ID = "cid1"
CALLBACK_URL = "https://client.example.com/callback"


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = await get_test_engine(str(tmp_path / "grants.db"))
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return await get_test_session_factory(db_engine)


@pytest.fixture
def alchemy_store(db_session_factory: async_sessionmaker[AsyncSession]) -> AlchemyCodeStore:
    return AlchemyCodeStore(db_session_factory)


@pytest_asyncio.fixture
async def alchemy_app(alchemy_store: AlchemyCodeStore) -> AppPolicy:
    return await alchemy_store.create_app(CLIENT_ID, name="Test Client")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore()
    store.add_app(AppPolicy(client_id=CLIENT_ID))
    return store


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def settings() -> AuthorizationCodeGrantSettings:
    return AuthorizationCodeGrantSettings(_env_file=None)


@pytest.fixture
def user() -> AuthorizedUser:
    return AuthorizedUser(user_id="user-1", username="alice")


@pytest.fixture
def make_code(
    store: InMemoryStore,
    clock: FrozenClock,
    user: AuthorizedUser,
) -> Callable[..., AuthorizationCode]:
    def _make_code(
        code: str = "abc123",
        *,
        client_id: str = CLIENT_ID,
        age: timedelta = timedelta(seconds=10),
        validity: timedelta = timedelta(seconds=3600),
        state: CodeState = CodeState.ACTIVE,
        callback_url: str | None = CALLBACK_URL,
        pkce_challenge: str | None = None,
        pkce_challenge_method: str | None = None,
        authorized_user: AuthorizedUser | None = None,
        scopes: tuple[str, ...] = ("read", "openid"),
        token_binding_reference: str = "none",
    ) -> AuthorizationCode:
        record = AuthorizationCode(
            code_id=uuid4(),
            code=code,
            client_id=client_id,
            authorized_user=authorized_user or user,
            scopes=scopes,
            issued_at=clock() - age,
            validity_period=validity,
            state=state,
            callback_url=callback_url,
            pkce_challenge=pkce_challenge,
            pkce_challenge_method=pkce_challenge_method,
            token_binding_reference=token_binding_reference,
        )
        store.add_code(record)
        return record

    return _make_code


@pytest.fixture
def make_alchemy_code(
    alchemy_store: AlchemyCodeStore,
    alchemy_app: AppPolicy,
    user: AuthorizedUser,
) -> Callable[..., Awaitable[AuthorizationCode]]:
    async def _make_alchemy_code(code: str = "abc123", **kwargs: object) -> AuthorizationCode:
        kwargs.setdefault("validity_period", timedelta(seconds=3600))
        kwargs.setdefault("callback_url", CALLBACK_URL)
        return await alchemy_store.create_authorization_code(
            client_id=alchemy_app.client_id,
            code=code,
            authorized_user=kwargs.pop("authorized_user", user),  # type: ignore[arg-type]
            scopes=kwargs.pop("scopes", ("read", "openid")),  # type: ignore[arg-type]
            **kwargs,  # type: ignore[arg-type]
        )

    return _make_alchemy_code
