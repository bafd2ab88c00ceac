"""Listeners notified after the grant handler revokes a token on its own initiative.

Handlers are injected at construction through ``GrantHooks``. A handler may be a
plain function, a coroutine function, or a factory returning a (sync or async)
context manager; context managers stay open for the duration of ``dispatch``.

``notify`` runs every listener on its own: one failing listener is logged and
the remaining ones are still called.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import AbstractAsyncContextManager, AbstractContextManager, AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field
from typing import Literal

from authcode_grant.models import AccessToken

logger = logging.getLogger(__name__)

HookEvent = Literal["on_post_token_revocation"]


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenRevocationContext:
    token: AccessToken
    metadata: Mapping[str, object] = field(default_factory=dict)


type RevocationResult = (
    None | Awaitable[None] | AbstractContextManager[None] | AbstractAsyncContextManager[None]
)
type RevocationHandler = Callable[[TokenRevocationContext], RevocationResult]


@dataclass(frozen=True, slots=True, kw_only=True)
class GrantHooks:
    on_post_token_revocation: RevocationHandler | Sequence[RevocationHandler] | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class HookRunner:
    hooks: GrantHooks = field(default_factory=GrantHooks)

    @property
    def enabled(self) -> bool:
        return bool(self.handlers_for("on_post_token_revocation"))

    def handlers_for(self, event: HookEvent | str) -> list[RevocationHandler]:
        match event:
            case "on_post_token_revocation":
                registered = self.hooks.on_post_token_revocation
            case _:
                registered = None

        if registered is None:
            return []
        if callable(registered):
            return [registered]
        return list(registered)

    @asynccontextmanager
    async def dispatch(self, event: HookEvent | str, context: TokenRevocationContext) -> AsyncIterator[None]:
        handlers = self.handlers_for(event)
        if not handlers:
            yield
            return

        async with AsyncExitStack() as stack:
            for handler in handlers:
                await self._enter(stack, handler(context))
            yield

    async def notify(self, event: HookEvent | str, context: TokenRevocationContext) -> int:
        """Call each listener for ``event`` in isolation; return how many of them failed."""
        failures = 0
        for handler in self.handlers_for(event):
            try:
                async with AsyncExitStack() as stack:
                    await self._enter(stack, handler(context))
            except Exception:
                failures += 1
                logger.exception("Error occurred when invoking %s listener %r", event, handler)
        return failures

    @staticmethod
    async def _enter(stack: AsyncExitStack, result: RevocationResult) -> None:
        if isinstance(result, AbstractAsyncContextManager):
            await stack.enter_async_context(result)
        elif isinstance(result, AbstractContextManager):
            stack.enter_context(result)
        elif inspect.isawaitable(result):
            await result
