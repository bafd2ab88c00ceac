from datetime import UTC, datetime
from typing import Any

from sqlalchemy import ARRAY, JSON, DateTime, String
from sqlalchemy.types import TypeDecorator


def _as_utc(value: datetime) -> datetime:
    # naive values are taken to be UTC already; SQLite hands them back that way
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class DateTimeUTC(TypeDecorator[datetime]):
    """Timezone-aware timestamp that always round-trips as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, _dialect: Any) -> datetime | None:  # type: ignore[override]  # noqa: ANN401
        if value is None:
            return None
        if not isinstance(value, datetime):
            msg = f"DateTimeUTC expects datetime or None, got {type(value)}"
            raise TypeError(msg)
        return _as_utc(value)

    def process_result_value(self, value: datetime | None, _dialect: Any) -> datetime | None:  # type: ignore[override]  # noqa: ANN401
        return None if value is None else _as_utc(value)


class Scopes(TypeDecorator[list[str]]):
    """Scope list stored as a native ARRAY on PostgreSQL and as JSON elsewhere."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Any) -> Any:  # noqa: ANN401
        if dialect.name == "postgresql":
            return dialect.type_descriptor(ARRAY(String))
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value: list[str] | tuple[str, ...] | None, _dialect: Any) -> list[str] | None:  # type: ignore[override]  # noqa: ANN401
        if value is None:
            return None
        return [str(scope) for scope in value]

    def process_result_value(self, value: Any, _dialect: Any) -> list[str]:  # type: ignore[override]  # noqa: ANN401
        if value is None:
            return []
        return list(value)
