from __future__ import annotations

from typing import TYPE_CHECKING

from authcode_grant.exceptions import ConfigurationError, UnsupportedGrantTypeError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from authcode_grant.protocols import GrantHandlerProtocol


class GrantHandlerRegistry:
    def __init__(self, handlers: Iterable[GrantHandlerProtocol] = ()) -> None:
        self._handlers: dict[str, GrantHandlerProtocol] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: GrantHandlerProtocol, *, replace: bool = False) -> None:
        if handler.grant_type in self._handlers and not replace:
            msg = f"a handler is already registered for grant type '{handler.grant_type}'"
            raise ConfigurationError(msg)
        self._handlers[handler.grant_type] = handler

    def get(self, grant_type: str) -> GrantHandlerProtocol:
        try:
            return self._handlers[grant_type]
        except KeyError:
            msg = f"Unsupported grant type: {grant_type}"
            raise UnsupportedGrantTypeError(msg) from None

    def __contains__(self, grant_type: object) -> bool:
        return grant_type in self._handlers

    @property
    def grant_types(self) -> list[str]:
        return sorted(self._handlers)
