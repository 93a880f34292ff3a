"""Engine and session handling for the adaptation store.

Workspaces call the store from worker threads (``asyncio.to_thread``), so
every engine built here must tolerate connections being used off the thread
that opened them.
"""

import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .models import Base


logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "glocal_adaptation"


def get_database_url(
    host: Optional[str] = None,
    port: Optional[int] = None,
    database: Optional[str] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
) -> str:
    """
    Resolve the store's connection URL.

    ``GLOCAL_DATABASE_URL`` is used as-is unless connection parts are passed
    explicitly. Otherwise a PostgreSQL URL is assembled, each part falling
    back to its ``POSTGRES_*`` variable (``POSTGRES_HOST``, ``POSTGRES_PORT``,
    ``POSTGRES_DB``, ``POSTGRES_USER``, ``POSTGRES_PASSWORD``).
    """
    parts = (host, port, database, user, password)
    explicit = os.environ.get("GLOCAL_DATABASE_URL")
    if explicit and not any(parts):
        return explicit

    env = os.environ
    return "postgresql://{user}:{password}@{host}:{port}/{database}".format(
        user=user or env.get("POSTGRES_USER", "postgres"),
        password=password or env.get("POSTGRES_PASSWORD", "postgres"),
        host=host or env.get("POSTGRES_HOST", "localhost"),
        port=port or int(env.get("POSTGRES_PORT", "5432")),
        database=database or env.get("POSTGRES_DB", DEFAULT_DATABASE),
    )


class DatabaseManager:
    """
    Lazily created engine plus a transactional session scope.

    The same manager backs the record store and the audit logger of a
    workspace.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        """
        Args:
            database_url: Connection URL; resolved with ``get_database_url`` if None.
            pool_size: Pooled connections (ignored for SQLite).
            max_overflow: Extra connections allowed past the pool (ignored for SQLite).
            echo: Log emitted SQL.
        """
        self.database_url = database_url or get_database_url()
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo
        self._engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _engine_options(self) -> Dict[str, Any]:
        if self.is_sqlite:
            return {"echo": self._echo, "connect_args": {"check_same_thread": False}}
        return {
            "echo": self._echo,
            "pool_size": self._pool_size,
            "max_overflow": self._max_overflow,
            "pool_pre_ping": True,
        }

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(self.database_url, **self._engine_options())
            logger.debug(f"Created engine for {self._engine.url.render_as_string(hide_password=True)}")
        return self._engine

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Session committed on success and rolled back on error.

        Rows stay readable after commit, so callers may convert them to dicts
        outside the ``with`` block.
        """
        if self._sessions is None:
            self._sessions = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self) -> None:
        """Create the engine's tables if they do not exist yet."""
        Base.metadata.create_all(self.engine)

    def health_check(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Database health check failed: {e}")
            return False
        return True

    def close(self) -> None:
        """Dispose of pooled connections; the engine is rebuilt on next use."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessions = None
