from collections.abc import Iterable, Mapping
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from migration_gateway.core.errors import UpstreamError
from migration_gateway.core.logging import get_module_logger
from migration_gateway.db.session import create_legacy_engine, create_session_factory
from migration_gateway.models import LegacyUser
from migration_gateway.schemas.legacy import LegacyUserRecord

logger = get_module_logger()


class LegacyDirectory(Protocol):
    def find_by_login_name(self, login_name: str) -> Optional[LegacyUserRecord]: ...


class StaticLegacyDirectory:
    """In-memory directory keyed by login name."""

    def __init__(self, records: Iterable[LegacyUserRecord] = ()) -> None:
        self._records: dict[str, LegacyUserRecord] = {record.login_name: record for record in records}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Mapping]) -> "StaticLegacyDirectory":
        return cls(LegacyUserRecord(login_name=login_name, **fields) for login_name, fields in data.items())

    def find_by_login_name(self, login_name: str) -> Optional[LegacyUserRecord]:
        return self._records.get(login_name)


class SqlLegacyDirectory:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "SqlLegacyDirectory":
        return cls(create_session_factory(create_legacy_engine(database_url)))

    def find_by_login_name(self, login_name: str) -> Optional[LegacyUserRecord]:
        try:
            with self._session_factory() as db:
                row = db.scalar(select(LegacyUser).where(LegacyUser.login_name == login_name))
                return row.to_record() if row else None
        except SQLAlchemyError as exc:
            logger.error("legacy_lookup_failed", login_name=login_name, error=str(exc))
            raise UpstreamError("legacy_users", body=str(exc)) from exc
