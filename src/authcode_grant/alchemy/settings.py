from __future__ import annotations

import os
from functools import cached_property
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import Field, NonNegativeFloat, NonNegativeInt, PositiveInt, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import event
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from authcode_grant.alchemy.base import Base

if TYPE_CHECKING:
    import sqlite3


class PostgresSettings(BaseSettings):
    """Connection settings read from ``AUTHCODE_GRANT_POSTGRES_*``."""

    model_config = SettingsConfigDict(env_prefix="AUTHCODE_GRANT_POSTGRES_", extra="ignore")

    type: Literal["postgres"] = "postgres"
    host: str
    port: PositiveInt = 5432
    database: str
    username: str
    password: SecretStr
    pool_size: PositiveInt = 5
    max_overflow: NonNegativeInt = 10
    pool_timeout: NonNegativeFloat = 30.0
    pool_recycle: PositiveInt = 3600
    pool_pre_ping: bool = True
    echo: bool = False

    def url(self) -> URL:
        return URL.create(
            "postgresql+asyncpg",
            username=self.username,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.database,
        )

    def engine_options(self) -> dict[str, Any]:
        return self.model_dump(
            include={"echo", "pool_size", "max_overflow", "pool_timeout", "pool_recycle", "pool_pre_ping"},
        )

    def configure(self, engine: AsyncEngine) -> None:
        pass


class SqliteSettings(BaseSettings):
    """Connection settings read from ``AUTHCODE_GRANT_SQLITE_*``.

    Foreign keys are off by default in SQLite; codes reference both their
    client and the token they were redeemed for, so they are switched on.
    """

    model_config = SettingsConfigDict(env_prefix="AUTHCODE_GRANT_SQLITE_", extra="ignore")

    type: Literal["sqlite"] = "sqlite"
    database: str
    enable_foreign_keys: bool = True
    echo: bool = False

    def url(self) -> URL:
        return URL.create("sqlite+aiosqlite", database=self.database)

    def engine_options(self) -> dict[str, Any]:
        return {"echo": self.echo}

    def configure(self, engine: AsyncEngine) -> None:
        if not self.enable_foreign_keys:
            return

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_conn: sqlite3.Connection, _conn_record: object) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()


class DatabaseSettings(BaseSettings):
    """Where the code store keeps its tables.

    ``AUTHCODE_GRANT_DATABASE_TYPE`` picks the dialect ("sqlite" unless set);
    the dialect reads the rest of its configuration from its own prefix.

        db = DatabaseSettings.from_env()
        db = DatabaseSettings(dialect={"type": "sqlite", "database": "grants.db"})
    """

    model_config = SettingsConfigDict(env_prefix="AUTHCODE_GRANT_DATABASE_", extra="ignore")

    dialect: Annotated[PostgresSettings | SqliteSettings, Field(discriminator="type")]

    @classmethod
    def from_env(cls) -> DatabaseSettings:
        match os.getenv("AUTHCODE_GRANT_DATABASE_TYPE", "sqlite"):
            case "postgres":
                return cls(dialect=PostgresSettings())  # type: ignore[call-arg]
            case _:
                return cls(dialect=SqliteSettings())  # type: ignore[call-arg]

    @cached_property
    def engine(self) -> AsyncEngine:
        engine = create_async_engine(self.dialect.url(), **self.dialect.engine_options())
        self.dialect.configure(engine)
        return engine

    @cached_property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        return async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
