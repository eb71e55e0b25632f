"""SQLModel-backed key-value store for the GiftBudget web frontend."""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine, select

from ..exceptions import StorageUnavailableError
from ..storage import StorageScope


# ---------------------------------------------------------------------------
# Database models
# ---------------------------------------------------------------------------
class StoredValue(SQLModel, table=True):
    scope: str = Field(primary_key=True)
    k: str = Field(primary_key=True)
    v: str
    version: int = 1
    updated_at: datetime = Field(default_factory=datetime.utcnow)


def build_engine(sqlite_file: str) -> Engine:
    return create_engine(
        f"sqlite:///{sqlite_file}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


def create_db_and_tables(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
class SQLModelStore:
    """:class:`~giftbudget.storage.KeyValueBackend` persisting rows in ``storedvalue``."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get_versioned(self, key: str, scope: StorageScope) -> Tuple[Optional[str], int]:
        try:
            with Session(self.engine) as session:
                row = session.get(StoredValue, (scope.value, key))
                if row is None:
                    return None, 0
                return row.v, row.version
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(str(exc)) from exc

    def set(self, key: str, value: str, scope: StorageScope) -> None:
        try:
            with Session(self.engine) as session:
                row = session.get(StoredValue, (scope.value, key))
                if row:
                    row.v = value
                    row.version += 1
                    row.updated_at = datetime.utcnow()
                    session.add(row)
                else:
                    session.add(StoredValue(scope=scope.value, k=key, v=value))
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(str(exc)) from exc

    def compare_and_set(self, key: str, value: str, expected_version: int, scope: StorageScope) -> bool:
        try:
            with Session(self.engine) as session:
                if expected_version == 0:
                    session.add(StoredValue(scope=scope.value, k=key, v=value))
                    try:
                        session.commit()
                    except IntegrityError:
                        session.rollback()
                        return False
                    return True
                statement = (
                    update(StoredValue)
                    .where(
                        StoredValue.scope == scope.value,
                        StoredValue.k == key,
                        StoredValue.version == expected_version,
                    )
                    .values(v=value, version=expected_version + 1, updated_at=datetime.utcnow())
                )
                result = session.exec(statement)  # type: ignore[call-overload]
                session.commit()
                return result.rowcount == 1
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(str(exc)) from exc

    def keys(self, scope: StorageScope) -> tuple[str, ...]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(select(StoredValue.k).where(StoredValue.scope == scope.value)).all()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(str(exc)) from exc
        return tuple(sorted(rows))


__all__ = [
    "SQLModelStore",
    "StoredValue",
    "build_engine",
    "create_db_and_tables",
]
