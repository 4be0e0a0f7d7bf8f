"""
Staging table cleaner.

Empties each staging table with a structural truncate once the merges
have been attempted, whether they succeeded or not. A staged row is
never carried into the next cycle, so a bad input cannot be re-merged
over and over.
"""

from functools import partial

from sqlalchemy import Connection, text

from ..clients.datastore import truncate_statement
from ..errors import CleanupError
from ..schema import STAGING_TABLES
from .stage import Stage, StageContext


class StageCleaner:
    """One truncate stage per staging table."""

    def __init__(self, tables: tuple[str, ...] = STAGING_TABLES):
        self.tables = tables

    def stages(self) -> list[Stage]:
        return [
            Stage(f'purge_{table}', 'clean', partial(self.purge, table), CleanupError)
            for table in self.tables
        ]

    def purge(self, table: str, conn: Connection, context: StageContext) -> int:
        result = conn.execute(text(truncate_statement(conn.dialect.name, table)))
        # TRUNCATE reports -1 or 0 depending on the driver
        return max(result.rowcount, 0)
