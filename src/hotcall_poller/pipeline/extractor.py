"""
Archive extraction into the staging tables.

Three independent extractions, one per staged shape:
- call attributes: agency_event joined to common_event
- comments: agency_event joined to evcom, sanitized into one blob per event
- unit counts: distinct units that reached "AR" status per event

Selection is restricted to events created within a trailing window of
"now". Unit counts use a wider window because arrivals lag call creation;
since the window is anchored on creation time, every arrival counted is
within that window of the event's creation.

Closed events are selected too: their xdts has to reach the evaluation
table for the retention sweep to retire them.
"""

from datetime import timedelta

from sqlalchemy import Connection, text

from ..config import DEFAULT_CALL_WINDOW_MINUTES, DEFAULT_UNIT_COUNT_WINDOW_MINUTES
from ..errors import ExtractionError
from ..logging import get_logger
from ..models.event import CommentLine, format_archive_ts
from ..schema import (
    CALL_COLUMNS,
    CALL_STAGING_TABLE,
    COMMENT_STAGING_TABLE,
    UNIT_COUNT_STAGING_TABLE,
)
from .sanitizer import CommentSanitizer
from .stage import Stage, StageContext

logger = get_logger(__name__)

ARRIVED_STATUS = 'AR'
NARRATIVE_COMMENT_KEY = 0

_CALL_INSERT = text(f"""
    INSERT INTO {CALL_STAGING_TABLE} ({', '.join(CALL_COLUMNS)})
    SELECT DISTINCT a.eid, a.ag_id, a.tycod, a.sub_tycod, a.ad_ts, a.udts, a.xdts, a.num_1,
           c.estnum, c.edirpre, c.efeanme, c.efeatyp, c.xstreet1, c.xstreet2, a.esz
    FROM agency_event a
    JOIN common_event c ON a.eid = c.eid
    WHERE a.ad_ts > :cutoff
""")

_COMMENT_SELECT = text("""
    SELECT a.eid, a.num_1, a.ad_ts, e.cdts, e.lin_grp, e.lin_ord, e.comm
    FROM agency_event a
    JOIN evcom e ON a.eid = e.eid
    WHERE a.ad_ts > :cutoff
      AND e.comm_key = :comm_key
    ORDER BY a.eid, a.num_1, a.ad_ts, e.cdts, e.lin_grp, e.lin_ord
""")

_COMMENT_INSERT = text(f"""
    INSERT INTO {COMMENT_STAGING_TABLE} (eid, num_1, ad_ts, comments)
    VALUES (:eid, :num_1, :ad_ts, :comments)
""")

_UNIT_COUNT_INSERT = text(f"""
    INSERT INTO {UNIT_COUNT_STAGING_TABLE} (eid, num_1, ag_id, ad_ts, unit_count)
    SELECT a.eid, a.num_1, a.ag_id, a.ad_ts, COUNT(DISTINCT u.unid)
    FROM agency_event a
    JOIN un_hi u ON a.eid = u.eid AND a.num_1 = u.num_1 AND a.ag_id = u.ag_id
    WHERE a.ad_ts > :cutoff
      AND u.unit_status = :status
    GROUP BY a.eid, a.num_1, a.ag_id, a.ad_ts
""")


class EventExtractor:
    """
    Stages recently created archive events for merging.

    Each extraction runs in its own stage transaction, so a failure in
    one shape leaves the other two staged.
    """

    def __init__(
        self,
        sanitizer: CommentSanitizer | None = None,
        call_window_minutes: int = DEFAULT_CALL_WINDOW_MINUTES,
        unit_count_window_minutes: int = DEFAULT_UNIT_COUNT_WINDOW_MINUTES,
    ):
        self.sanitizer = sanitizer or CommentSanitizer()
        self.call_window = timedelta(minutes=call_window_minutes)
        self.unit_count_window = timedelta(minutes=unit_count_window_minutes)

    def stages(self) -> list[Stage]:
        return [
            Stage('extract_calls', 'extract', self.extract_calls, ExtractionError),
            Stage('extract_comments', 'extract', self.extract_comments, ExtractionError),
            Stage('extract_unit_counts', 'extract', self.extract_unit_counts, ExtractionError),
        ]

    def extract_calls(self, conn: Connection, context: StageContext) -> int:
        cutoff = format_archive_ts(context.now - self.call_window)
        result = conn.execute(_CALL_INSERT, {'cutoff': cutoff})
        logger.debug('extractor.calls_staged', cutoff=cutoff, rows=result.rowcount)
        return result.rowcount

    def extract_comments(self, conn: Connection, context: StageContext) -> int:
        cutoff = format_archive_ts(context.now - self.call_window)
        rows = conn.execute(
            _COMMENT_SELECT, {'cutoff': cutoff, 'comm_key': NARRATIVE_COMMENT_KEY}
        ).mappings()
        lines = [CommentLine(**row) for row in rows]

        blobs = self.sanitizer.build_blobs(lines)
        if blobs:
            conn.execute(_COMMENT_INSERT, [blob.to_params() for blob in blobs])

        logger.debug(
            'extractor.comments_staged',
            cutoff=cutoff,
            lines=len(lines),
            events=len(blobs),
        )
        return len(blobs)

    def extract_unit_counts(self, conn: Connection, context: StageContext) -> int:
        cutoff = format_archive_ts(context.now - self.unit_count_window)
        result = conn.execute(_UNIT_COUNT_INSERT, {'cutoff': cutoff, 'status': ARRIVED_STATUS})
        logger.debug('extractor.unit_counts_staged', cutoff=cutoff, rows=result.rowcount)
        return result.rowcount
