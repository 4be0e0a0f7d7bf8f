"""
Dispatch event models.

An Event is one emergency-dispatch call instance, identified by the
composite key (eid, num_1, ad_ts). The evaluation row is the durable,
merged view of an Event consumed by the trigger evaluator:
- call attributes (agency, type/subtype, location, size code)
- the sanitized comment blob
- the count of distinct arrived units

Timestamps stay in the archive's fixed-width ``YYYYMMDDHH24MISS`` text
form; they are never parsed into datetimes on the way through.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

ARCHIVE_TS_FORMAT = '%Y%m%d%H%M%S'


def format_archive_ts(moment: datetime) -> str:
    """Render a datetime in the archive's fixed-width timestamp form."""
    return moment.strftime(ARCHIVE_TS_FORMAT)


class EventKey(BaseModel):
    """Composite natural key of a dispatch event."""

    model_config = {'frozen': True}

    eid: int = Field(..., description='Event id')
    num_1: str = Field(..., description='Agency event number')
    ad_ts: str = Field(..., description='Creation timestamp (YYYYMMDDHH24MISS)')


class CommentLine(BaseModel):
    """One raw narrative line from the archive comment table."""

    eid: int
    num_1: str
    ad_ts: str
    cdts: str | None = Field(default=None, description='Comment timestamp')
    lin_grp: int | None = Field(default=None, description='Line group within the comment')
    lin_ord: int | None = Field(default=None, description='Line order within the group')
    comm: str | None = Field(default=None, description='Comment text')

    @property
    def key(self) -> EventKey:
        return EventKey(eid=self.eid, num_1=self.num_1, ad_ts=self.ad_ts)

    def sort_key(self) -> tuple:
        """Ordering by (cdts, lin_grp, lin_ord) with NULLs last, as Oracle sorts ascending."""
        return (
            self.cdts is None, self.cdts or '',
            self.lin_grp is None, self.lin_grp or 0,
            self.lin_ord is None, self.lin_ord or 0,
        )


class CommentBlob(BaseModel):
    """Concatenated, filtered, truncated narrative for one Event."""

    key: EventKey
    comments: str

    def to_params(self) -> dict[str, Any]:
        return {**self.key.model_dump(), 'comments': self.comments}


class EvaluationRow(BaseModel):
    """One row of jc_hc_curent."""

    eid: int
    num_1: str
    ad_ts: str
    ag_id: str | None = None
    tycod: str | None = None
    sub_tycod: str | None = None
    udts: str | None = Field(default=None, description='Last update; unset means open since creation')
    xdts: str | None = Field(default=None, description='Closed timestamp')
    estnum: str | None = None
    edirpre: str | None = None
    efeanme: str | None = None
    efeatyp: str | None = None
    xstreet1: str | None = None
    xstreet2: str | None = None
    esz: int | None = None
    comments: str | None = None
    unit_count: int | None = None

    @property
    def key(self) -> EventKey:
        return EventKey(eid=self.eid, num_1=self.num_1, ad_ts=self.ad_ts)

    @property
    def is_closed(self) -> bool:
        return self.xdts is not None
