"""
Data-store handle shared by every stage of a poller cycle.

Wraps a SQLAlchemy 2.0 engine for raw SQL execution against the dispatch
archive and the evaluation store (which live in the same database).

Each stage acquires its own connection through ``transaction()``:
- one transaction per stage, committed on success, rolled back on error
- a bounded statement timeout applied to the connection
- the connection is released on every exit path

The engine uses NullPool so a connection never outlives the stage that
opened it.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import structlog
from sqlalchemy import Connection, Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.pool import NullPool

from ..errors import ConfigurationError

logger = structlog.get_logger(__name__)

# Dialects that support a READ COMMITTED isolation level request
_READ_COMMITTED_DIALECTS = frozenset({'oracle', 'postgresql', 'mssql', 'mysql'})


def _normalize_url(url: str) -> str:
    """Select the maintained DBAPI driver when the URL names only a backend."""
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql+psycopg://', 1)
    if url.startswith('postgresql://'):
        return url.replace('postgresql://', 'postgresql+psycopg://', 1)
    if url.startswith('oracle://'):
        return url.replace('oracle://', 'oracle+oracledb://', 1)
    return url


def truncate_statement(dialect_name: str, table: str) -> str:
    """
    Build the structural-truncate statement for a staging table.

    SQLite has no TRUNCATE; an unqualified DELETE uses its truncate
    optimisation instead.
    """
    if dialect_name == 'oracle':
        return f'TRUNCATE TABLE {table} REUSE STORAGE'
    if dialect_name == 'sqlite':
        return f'DELETE FROM {table}'
    return f'TRUNCATE TABLE {table}'


class DataStore:
    """
    Explicitly passed data-store handle.

    Usage:
        store = DataStore(database_url)
        store.connect()
        with store.transaction() as conn:
            conn.execute(text('DELETE FROM jc_hc_curent WHERE xdts IS NOT NULL'))
        store.close()
    """

    def __init__(
        self,
        database_url: str | None = None,
        engine: Engine | None = None,
        stage_timeout_seconds: int = 60,
    ):
        """
        Initialize the handle.

        Args:
            database_url: SQLAlchemy URL. ``oracle://`` and ``postgresql://``
                          URLs are rewritten to the oracledb / psycopg drivers.
            engine: Pre-built engine (tests and embedding callers). Takes
                    precedence over database_url.
            stage_timeout_seconds: Upper bound applied to each stage's statements.
        """
        self._engine = engine
        self._owns_engine = engine is None
        self._database_url = database_url
        self.stage_timeout_seconds = stage_timeout_seconds

    def connect(self) -> None:
        """Create the engine. Idempotent: no-op if already connected."""
        if self._engine is not None:
            return

        if not self._database_url:
            raise ConfigurationError('A database URL is required', context={'setting': 'HOTCALL_DATABASE_URL'})

        url = _normalize_url(self._database_url)
        backend = make_url(url).get_backend_name()

        kwargs = {'poolclass': NullPool}
        if backend in _READ_COMMITTED_DIALECTS:
            kwargs['isolation_level'] = 'READ COMMITTED'
        if backend == 'sqlite':
            kwargs['connect_args'] = {'timeout': self.stage_timeout_seconds}

        self._engine = create_engine(url, **kwargs)
        self._owns_engine = True
        logger.info('datastore.connected', backend=backend)

    def close(self) -> None:
        """Dispose of the engine if this handle created it."""
        if self._engine is not None and self._owns_engine:
            self._engine.dispose()
            self._engine = None
            logger.info('datastore.closed')

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError('DataStore not connected, call connect() first')
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def verify_connectivity(self) -> bool:
        """Return True if we can execute a simple query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text('SELECT 1 FROM DUAL' if self.dialect_name == 'oracle' else 'SELECT 1'))
            return True
        except Exception:
            logger.exception('datastore.connectivity_check_failed')
            return False

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """
        Scoped connection with a single transaction.

        Commits when the block exits normally; rolls back and re-raises
        otherwise. The connection is closed either way.
        """
        with self.engine.begin() as conn:
            self._apply_timeout(conn)
            yield conn

    def _apply_timeout(self, conn: Connection) -> None:
        timeout_ms = self.stage_timeout_seconds * 1000
        dialect = conn.dialect.name

        if dialect == 'postgresql':
            # SET LOCAL lasts until the stage transaction ends
            conn.exec_driver_sql(f'SET LOCAL statement_timeout = {timeout_ms}')
        elif dialect == 'oracle':
            conn.connection.driver_connection.call_timeout = timeout_ms
        elif dialect == 'sqlite':
            conn.exec_driver_sql(f'PRAGMA busy_timeout = {timeout_ms}')
