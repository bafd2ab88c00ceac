"""SQLAlchemy 2.0 persistence for authorization codes and access tokens.

Usage:
    from authcode_grant.alchemy import AlchemyCodeStore, DatabaseSettings

    db = DatabaseSettings.from_env()
    await db.create_all()
    store = AlchemyCodeStore(db.session_maker)
"""

from authcode_grant.alchemy.base import Base, PrimaryKeyMixin
from authcode_grant.alchemy.models import OAuthAccessToken, OAuthApp, OAuthAuthorizationCode
from authcode_grant.alchemy.settings import DatabaseSettings, PostgresSettings, SqliteSettings
from authcode_grant.alchemy.store import AlchemyCodeStore
from authcode_grant.alchemy.types import DateTimeUTC, Scopes

__all__ = [
    "AlchemyCodeStore",
    "Base",
    "DatabaseSettings",
    "DateTimeUTC",
    "OAuthAccessToken",
    "OAuthApp",
    "OAuthAuthorizationCode",
    "PostgresSettings",
    "PrimaryKeyMixin",
    "Scopes",
    "SqliteSettings",
]
