from __future__ import annotations

from datetime import datetime  # noqa: TC003
from uuid import UUID  # noqa: TC003

from sqlalchemy import BigInteger, Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from authcode_grant.alchemy.base import Base, PrimaryKeyMixin
from authcode_grant.alchemy.types import DateTimeUTC, Scopes
from authcode_grant.models import NONE_BINDING_REFERENCE, CodeState


class OAuthApp(Base, PrimaryKeyMixin, kw_only=True):
    __tablename__ = "oauth_apps"

    client_id: Mapped[str] = mapped_column(Text, unique=True, index=True)
    name: Mapped[str | None] = mapped_column(Text, default=None)
    pkce_mandatory: Mapped[bool] = mapped_column(Boolean, default=False)
    pkce_support_plain: Mapped[bool] = mapped_column(Boolean, default=False)


class OAuthAccessToken(Base, PrimaryKeyMixin, kw_only=True):
    __tablename__ = "oauth_access_tokens"

    token: Mapped[str] = mapped_column(Text, unique=True, index=True)
    client_id: Mapped[str] = mapped_column(
        ForeignKey("oauth_apps.client_id", ondelete="cascade", onupdate="cascade"),
        index=True,
    )
    scopes: Mapped[list[str]] = mapped_column(Scopes)
    issued_at: Mapped[datetime] = mapped_column(DateTimeUTC)
    expires_at: Mapped[datetime] = mapped_column(DateTimeUTC)

    user_id: Mapped[str | None] = mapped_column(Text, default=None, index=True)
    username: Mapped[str | None] = mapped_column(Text, default=None)
    federated_idp: Mapped[str | None] = mapped_column(Text, default=None)
    token_binding_reference: Mapped[str] = mapped_column(Text, default=NONE_BINDING_REFERENCE)
    refresh_token: Mapped[str | None] = mapped_column(Text, default=None, unique=True)

    revoked: Mapped[bool] = mapped_column(Boolean, default=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTimeUTC, default=None)
    revoked_by: Mapped[str | None] = mapped_column(Text, default=None)


class OAuthAuthorizationCode(Base, PrimaryKeyMixin, kw_only=True):
    __tablename__ = "oauth_authorization_codes"
    __table_args__ = (UniqueConstraint("client_id", "code", name="uq_oauth_authorization_codes_client_id_code"),)

    code: Mapped[str] = mapped_column(Text, index=True)
    client_id: Mapped[str] = mapped_column(
        ForeignKey("oauth_apps.client_id", ondelete="cascade", onupdate="cascade"),
        index=True,
    )
    scopes: Mapped[list[str]] = mapped_column(Scopes)
    issued_at: Mapped[datetime] = mapped_column(DateTimeUTC)
    validity_period_ms: Mapped[int] = mapped_column(BigInteger)

    user_id: Mapped[str | None] = mapped_column(Text, default=None)
    username: Mapped[str | None] = mapped_column(Text, default=None)
    federated_idp: Mapped[str | None] = mapped_column(Text, default=None)

    callback_url: Mapped[str | None] = mapped_column(Text, default=None)
    pkce_challenge: Mapped[str | None] = mapped_column(Text, default=None)
    pkce_challenge_method: Mapped[str | None] = mapped_column(Text, default=None)
    token_binding_reference: Mapped[str] = mapped_column(Text, default=NONE_BINDING_REFERENCE)

    state: Mapped[str] = mapped_column(String(16), default=CodeState.ACTIVE.value, index=True)
    token_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("oauth_access_tokens.id", ondelete="set null", onupdate="cascade"),
        nullable=True,
        default=None,
    )
