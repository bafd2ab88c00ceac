from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from authcode_grant.exceptions import StoreError
from authcode_grant.models import AccessToken, AuthorizedUser, CodeState
from authcode_grant.protocols import AppRegistryProtocol, CodeStoreProtocol

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from authcode_grant.alchemy import AlchemyCodeStore
    from authcode_grant.models import AppPolicy, AuthorizationCode


def _token(client_id: str, *, user_id: str | None = "user-1") -> AccessToken:
    now = datetime.now(UTC)
    return AccessToken(
        token_id=uuid4(),
        token=f"acg_{uuid4().hex}",
        client_id=client_id,
        authorized_user=AuthorizedUser(user_id=user_id, username="alice"),
        scopes=("read", "openid"),
        issued_at=now,
        expires_at=now + timedelta(hours=1),
        refresh_token=f"acg_{uuid4().hex}",
    )


def test_store_satisfies_protocols(alchemy_store: AlchemyCodeStore) -> None:
    assert isinstance(alchemy_store, CodeStoreProtocol)
    assert isinstance(alchemy_store, AppRegistryProtocol)


@pytest.mark.asyncio
async def test_create_and_get_app(alchemy_store: AlchemyCodeStore, alchemy_app: AppPolicy) -> None:
    found = await alchemy_store.get_app_by_client_id(alchemy_app.client_id)

    assert found == alchemy_app
    assert found.pkce_mandatory is False
    assert await alchemy_store.get_app_by_client_id("unknown") is None


@pytest.mark.asyncio
async def test_create_authorization_code_round_trip(
    make_alchemy_code: Callable[..., Awaitable[AuthorizationCode]],
) -> None:
    issued_at = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    record = await make_alchemy_code(
        issued_at=issued_at,
        validity_period=timedelta(milliseconds=1500),
        pkce_challenge="challenge",
        pkce_challenge_method="S256",
        authorized_user=AuthorizedUser(user_id="user-1", username="alice", federated_idp="google"),
    )

    assert record.state is CodeState.ACTIVE
    assert record.issued_at == issued_at
    assert record.validity_period == timedelta(milliseconds=1500)
    assert set(record.scopes) == {"read", "openid"}
    assert record.authorized_user.federated_idp == "google"
    assert record.token_binding_reference == "none"
    assert record.token_id is None


@pytest.mark.asyncio
async def test_validate_and_fetch_claims_active_code(
    alchemy_store: AlchemyCodeStore,
    make_alchemy_code: Callable[..., Awaitable[AuthorizationCode]],
) -> None:
    record = await make_alchemy_code()

    first = await alchemy_store.validate_and_fetch(record.client_id, record.code)
    second = await alchemy_store.validate_and_fetch(record.client_id, record.code)

    assert first is not None
    assert first.was_active is True
    assert first.record.state is CodeState.ACTIVE
    assert second is not None
    assert second.was_active is False
    assert second.record.state is CodeState.REVOKED


@pytest.mark.asyncio
async def test_validate_and_fetch_unknown_code(alchemy_store: AlchemyCodeStore, alchemy_app: AppPolicy) -> None:
    assert await alchemy_store.validate_and_fetch(alchemy_app.client_id, "missing") is None


@pytest.mark.asyncio
async def test_validate_and_fetch_is_scoped_to_client(
    alchemy_store: AlchemyCodeStore,
    make_alchemy_code: Callable[..., Awaitable[AuthorizationCode]],
) -> None:
    record = await make_alchemy_code()
    await alchemy_store.create_app("cid2")

    assert await alchemy_store.validate_and_fetch("cid2", record.code) is None


@pytest.mark.asyncio
async def test_concurrent_presentations_claim_once(
    alchemy_store: AlchemyCodeStore,
    make_alchemy_code: Callable[..., Awaitable[AuthorizationCode]],
) -> None:
    record = await make_alchemy_code()

    lookups = await asyncio.gather(
        *(alchemy_store.validate_and_fetch(record.client_id, record.code) for _ in range(5)),
    )

    assert sum(1 for lookup in lookups if lookup is not None and lookup.was_active) == 1


@pytest.mark.asyncio
async def test_set_state_compare_and_set(
    alchemy_store: AlchemyCodeStore,
    make_alchemy_code: Callable[..., Awaitable[AuthorizationCode]],
) -> None:
    record = await make_alchemy_code()

    assert await alchemy_store.set_state(record.code_id, CodeState.REVOKED, expected=CodeState.ACTIVE) is True
    assert await alchemy_store.set_state(record.code_id, CodeState.REVOKED, expected=CodeState.ACTIVE) is False
    assert await alchemy_store.set_state(record.code_id, CodeState.EXPIRED) is True
    assert await alchemy_store.set_state(record.code_id, CodeState.EXPIRED) is True

    lookup = await alchemy_store.validate_and_fetch(record.client_id, record.code)
    assert lookup is not None
    assert lookup.record.state is CodeState.EXPIRED


@pytest.mark.asyncio
async def test_set_state_refuses_reactivation(
    alchemy_store: AlchemyCodeStore,
    make_alchemy_code: Callable[..., Awaitable[AuthorizationCode]],
) -> None:
    record = await make_alchemy_code()

    with pytest.raises(ValueError, match="ACTIVE"):
        await alchemy_store.set_state(record.code_id, CodeState.ACTIVE)


@pytest.mark.asyncio
async def test_bind_token(
    alchemy_store: AlchemyCodeStore,
    make_alchemy_code: Callable[..., Awaitable[AuthorizationCode]],
) -> None:
    record = await make_alchemy_code()
    token = await alchemy_store.create_access_token(_token(record.client_id))

    await alchemy_store.bind_token(record.code_id, token.token_id)

    lookup = await alchemy_store.validate_and_fetch(record.client_id, record.code)
    assert lookup is not None
    assert lookup.record.state is CodeState.INACTIVE
    assert lookup.record.token_id == token.token_id


@pytest.mark.asyncio
async def test_access_token_round_trip(alchemy_store: AlchemyCodeStore, alchemy_app: AppPolicy) -> None:
    token = _token(alchemy_app.client_id)

    created = await alchemy_store.create_access_token(token)
    found = await alchemy_store.get_token_by_id(token.token_id)

    assert created.token_id == token.token_id
    assert found is not None
    assert found.token == token.token
    assert found.refresh_token == token.refresh_token
    assert set(found.scopes) == set(token.scopes)
    assert found.revoked is False
    assert await alchemy_store.get_token_by_id(uuid4()) is None


@pytest.mark.asyncio
async def test_revoke_token(alchemy_store: AlchemyCodeStore, alchemy_app: AppPolicy) -> None:
    token = await alchemy_store.create_access_token(_token(alchemy_app.client_id))

    assert await alchemy_store.revoke_token(token.token_id, "user-1") is True
    assert await alchemy_store.revoke_token(token.token_id, "user-1") is False
    assert await alchemy_store.revoke_token(uuid4(), "user-1") is False

    found = await alchemy_store.get_token_by_id(token.token_id)
    assert found is not None
    assert found.revoked is True


@pytest.mark.asyncio
async def test_integrity_errors_become_store_errors(
    alchemy_store: AlchemyCodeStore,
    make_alchemy_code: Callable[..., Awaitable[AuthorizationCode]],
) -> None:
    await make_alchemy_code("dup")

    with pytest.raises(StoreError):
        await make_alchemy_code("dup")


@pytest.mark.asyncio
async def test_unknown_client_foreign_key(alchemy_store: AlchemyCodeStore, alchemy_app: AppPolicy) -> None:
    _ = alchemy_app

    with pytest.raises(StoreError):
        await alchemy_store.create_access_token(_token("no-such-client"))
