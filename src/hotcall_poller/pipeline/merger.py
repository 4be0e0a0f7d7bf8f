"""
Evaluation table merger.

Upserts staged rows into jc_hc_curent, keyed by (eid, num_1, ad_ts):
- call attributes: update every attribute column when the key exists,
  otherwise insert a new evaluation row
- comments: update the comments column only; never inserts
- unit counts: update the unit_count column only; never inserts

Comment and unit-count rows whose event has no evaluation row yet are
dropped. The call-attributes merge runs first in the cycle, and events
still inside the extraction window are re-polled next cycle, so a
dropped comment lands one cycle later.

Each merge runs as its own stage transaction. Statements are plain
UPDATE/INSERT so the same SQL runs on Oracle, PostgreSQL and SQLite.
"""

from sqlalchemy import Connection, text

from ..errors import MergeError
from ..logging import get_logger
from ..schema import (
    CALL_COLUMNS,
    CALL_STAGING_TABLE,
    CALL_UPDATE_COLUMNS,
    COMMENT_STAGING_TABLE,
    EVALUATION_TABLE,
    UNIT_COUNT_STAGING_TABLE,
)
from .stage import Stage, StageContext

logger = get_logger(__name__)

_KEY_MATCH = 'eid = :eid AND num_1 = :num_1 AND ad_ts = :ad_ts'

# Rows for one key are applied in order, so the last one wins. NULLs sort
# first explicitly; a staged close or update timestamp is applied last on
# every backend.
_STAGED_CALLS = text(f"""
    SELECT {', '.join(CALL_COLUMNS)}
    FROM (SELECT DISTINCT {', '.join(CALL_COLUMNS)} FROM {CALL_STAGING_TABLE}) staged
    ORDER BY eid, num_1, ad_ts,
             CASE WHEN xdts IS NULL THEN 0 ELSE 1 END, xdts,
             CASE WHEN udts IS NULL THEN 0 ELSE 1 END, udts
""")

_CALL_UPDATE = text(f"""
    UPDATE {EVALUATION_TABLE}
    SET {', '.join(f'{col} = :{col}' for col in CALL_UPDATE_COLUMNS)}
    WHERE {_KEY_MATCH}
""")

_CALL_INSERT = text(f"""
    INSERT INTO {EVALUATION_TABLE} ({', '.join(CALL_COLUMNS)})
    VALUES ({', '.join(f':{col}' for col in CALL_COLUMNS)})
""")

_STAGED_COMMENTS = text(f"""
    SELECT DISTINCT eid, num_1, ad_ts, comments
    FROM {COMMENT_STAGING_TABLE}
    ORDER BY eid, num_1, ad_ts
""")

_COMMENT_UPDATE = text(f"""
    UPDATE {EVALUATION_TABLE}
    SET comments = :comments
    WHERE {_KEY_MATCH}
""")

_STAGED_UNIT_COUNTS = text(f"""
    SELECT DISTINCT eid, num_1, ag_id, ad_ts, unit_count
    FROM {UNIT_COUNT_STAGING_TABLE}
    ORDER BY eid, num_1, ad_ts
""")

_UNIT_COUNT_UPDATE = text(f"""
    UPDATE {EVALUATION_TABLE}
    SET unit_count = :unit_count
    WHERE {_KEY_MATCH} AND ag_id = :ag_id
""")


class EvaluationMerger:
    """Merges the three staging tables into the evaluation table."""

    def stages(self) -> list[Stage]:
        return [
            Stage('merge_calls', 'merge', self.merge_calls, MergeError),
            Stage('merge_comments', 'merge', self.merge_comments, MergeError),
            Stage('merge_unit_counts', 'merge', self.merge_unit_counts, MergeError),
        ]

    def merge_calls(self, conn: Connection, context: StageContext) -> int:
        """Update-or-insert every staged call; returns rows touched."""
        staged = [dict(row) for row in conn.execute(_STAGED_CALLS).mappings()]

        updated = inserted = 0
        for row in staged:
            if conn.execute(_CALL_UPDATE, row).rowcount:
                updated += 1
            else:
                conn.execute(_CALL_INSERT, row)
                inserted += 1

        logger.debug('merger.calls_merged', updated=updated, inserted=inserted)
        return updated + inserted

    def merge_comments(self, conn: Connection, context: StageContext) -> int:
        return self._update_only(conn, _STAGED_COMMENTS, _COMMENT_UPDATE, 'comments')

    def merge_unit_counts(self, conn: Connection, context: StageContext) -> int:
        return self._update_only(conn, _STAGED_UNIT_COUNTS, _UNIT_COUNT_UPDATE, 'unit_counts')

    def _update_only(self, conn: Connection, select_sql, update_sql, shape: str) -> int:
        staged = [dict(row) for row in conn.execute(select_sql).mappings()]

        updated = sum(1 for row in staged if conn.execute(update_sql, row).rowcount)

        logger.debug(
            f'merger.{shape}_merged',
            updated=updated,
            dropped=len(staged) - updated,
        )
        return updated
