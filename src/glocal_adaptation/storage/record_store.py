"""SQLAlchemy-backed record store."""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

from sqlalchemy import and_, select

from ..interfaces.store import IRecordStore
from .database import DatabaseManager
from .models import (
    AdaptationProjectModel,
    AITranslationModel,
    AuditEventModel,
    Base,
    ContentSegmentModel,
    InitializationMarkerModel,
    ReferenceDataModel,
    TranslationMemoryModel,
    WorkflowSnapshotModel,
)


logger = logging.getLogger(__name__)


DEFAULT_TABLES: Dict[str, Type[Base]] = {
    model.__tablename__: model
    for model in (
        AdaptationProjectModel,
        ContentSegmentModel,
        TranslationMemoryModel,
        AITranslationModel,
        WorkflowSnapshotModel,
        InitializationMarkerModel,
        ReferenceDataModel,
        AuditEventModel,
    )
}


class SqlRecordStore(IRecordStore):
    """
    Record store over a relational database.

    Tables are addressed by name and must be registered models. Every call
    runs in its own session, so each upsert or update is atomic.
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        database_url: Optional[str] = None,
        tables: Optional[Mapping[str, Type[Base]]] = None,
    ):
        if db_manager is not None:
            self._db_manager = db_manager
            self._owns_db_manager = False
        else:
            self._db_manager = DatabaseManager(database_url=database_url)
            self._owns_db_manager = True
        self._tables = dict(tables or DEFAULT_TABLES)

    @property
    def db_manager(self) -> DatabaseManager:
        return self._db_manager

    def _model(self, table: str) -> Type[Base]:
        try:
            return self._tables[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None

    @staticmethod
    def _check_columns(model: Type[Base], names) -> None:
        columns = set(model.__table__.columns.keys())
        unknown = [n for n in names if n not in columns]
        if unknown:
            raise ValueError(f"Unknown columns for {model.__tablename__}: {unknown}")

    @staticmethod
    def _to_dict(row: Base) -> Dict[str, Any]:
        return {c: getattr(row, c) for c in row.__table__.columns.keys()}

    def _where(self, model: Type[Base], filters: Mapping[str, Any]):
        self._check_columns(model, filters.keys())
        return and_(*[getattr(model, k) == v for k, v in filters.items()])

    def upsert(
        self,
        table: str,
        record: Mapping[str, Any],
        conflict_key: Sequence[str],
        ignore_duplicates: bool = False,
    ) -> None:
        model = self._model(table)
        self._check_columns(model, record.keys())
        missing = [k for k in conflict_key if record.get(k) is None]
        if missing:
            raise ValueError(f"Conflict key columns missing from record: {missing}")

        key = {k: record[k] for k in conflict_key}
        with self._db_manager.get_session() as session:
            existing = session.execute(
                select(model).where(self._where(model, key)).limit(1)
            ).scalar()
            if existing is None:
                session.add(model(**dict(record)))
            elif not ignore_duplicates:
                for column, value in record.items():
                    setattr(existing, column, value)

    def update(
        self,
        table: str,
        filters: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> int:
        model = self._model(table)
        self._check_columns(model, patch.keys())
        if not filters:
            raise ValueError("update requires at least one filter")

        with self._db_manager.get_session() as session:
            rows = session.execute(
                select(model).where(self._where(model, filters))
            ).scalars().all()
            for row in rows:
                for column, value in patch.items():
                    setattr(row, column, value)
            return len(rows)

    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        model = self._model(table)
        query = select(model)
        if filters:
            query = query.where(self._where(model, filters))
        if limit is not None:
            query = query.limit(limit)

        with self._db_manager.get_session() as session:
            rows = session.execute(query).scalars().all()
            return [self._to_dict(r) for r in rows]

    def close(self) -> None:
        """Release the database manager if this store created it."""
        if self._owns_db_manager:
            self._db_manager.close()
