"""
Retention sweeper for the evaluation table.

Two independent delete passes:
- closed calls (xdts set), regardless of age
- calls created more than the maximum age ago, open or not, as a safety
  net for events that never close cleanly upstream

Deleting zero rows is success.
"""

from datetime import timedelta

from sqlalchemy import Connection, text

from ..config import DEFAULT_MAX_EVENT_AGE_MINUTES
from ..errors import RetentionError
from ..logging import get_logger
from ..models.event import format_archive_ts
from ..schema import EVALUATION_TABLE
from .stage import Stage, StageContext

logger = get_logger(__name__)

_DELETE_CLOSED = text(f'DELETE FROM {EVALUATION_TABLE} WHERE xdts IS NOT NULL')

_DELETE_AGED = text(f'DELETE FROM {EVALUATION_TABLE} WHERE substr(ad_ts, 1, 14) < :cutoff')


class RetentionSweeper:
    """Retires closed and aged-out evaluation rows."""

    def __init__(self, max_age_minutes: int = DEFAULT_MAX_EVENT_AGE_MINUTES):
        self.max_age = timedelta(minutes=max_age_minutes)

    def stages(self) -> list[Stage]:
        return [
            Stage('delete_closed_calls', 'retain', self.delete_closed, RetentionError),
            Stage('delete_aged_calls', 'retain', self.delete_aged, RetentionError),
        ]

    def delete_closed(self, conn: Connection, context: StageContext) -> int:
        return conn.execute(_DELETE_CLOSED).rowcount

    def delete_aged(self, conn: Connection, context: StageContext) -> int:
        cutoff = format_archive_ts(context.now - self.max_age)
        deleted = conn.execute(_DELETE_AGED, {'cutoff': cutoff}).rowcount
        logger.debug('retention.aged_deleted', cutoff=cutoff, rows=deleted)
        return deleted
