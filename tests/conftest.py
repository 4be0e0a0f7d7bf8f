"""
Pytest configuration and shared fixtures.

Key fixtures:
- engine / store: in-memory SQLite with archive, staging and evaluation tables
- now / clock: fixed cycle time so selection windows are deterministic
- alert_sink / error_log / notifier: recording failure sinks
- pipeline: a PollerPipeline wired to all of the above

Seeding helpers write archive rows the way the CAD system stores them
(fixed-width YYYYMMDDHH24MISS text timestamps).
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Sequence

import pytest
from sqlalchemy import create_engine, insert, select
from sqlalchemy.pool import StaticPool

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from hotcall_poller.clients.datastore import DataStore  # noqa: E402
from hotcall_poller.models.event import format_archive_ts  # noqa: E402
from hotcall_poller.notifier import ErrorLogFile, FailureNotifier  # noqa: E402
from hotcall_poller.pipeline import PollerPipeline  # noqa: E402
from hotcall_poller.schema import (  # noqa: E402
    agency_event_table,
    call_staging_table,
    comment_staging_table,
    common_event_table,
    create_archive_tables,
    create_poller_tables,
    evaluation_table,
    evcom_table,
    unit_count_staging_table,
    unit_history_table,
)

NOW = datetime(2026, 10, 17, 14, 30, 0)


def ts(minutes_ago: float, now: datetime = NOW) -> str:
    """Archive timestamp for a moment ``minutes_ago`` before the cycle time."""
    return format_archive_ts(now - timedelta(minutes=minutes_ago))


class RecordingAlertSink:
    """Alert sink that keeps every message in memory."""

    def __init__(self):
        self.sent: list[dict] = []

    def send(self, recipients: Sequence[str], subject: str, body: str) -> None:
        self.sent.append({'recipients': list(recipients), 'subject': subject, 'body': body})


# =============================================================================
# Data store fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Single shared in-memory SQLite connection with every table created."""
    eng = create_engine(
        'sqlite://',
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    create_archive_tables(eng)
    create_poller_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine) -> DataStore:
    return DataStore(engine=engine, stage_timeout_seconds=5)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock(now):
    return lambda: now


# =============================================================================
# Notification fixtures
# =============================================================================


@pytest.fixture
def alert_sink() -> RecordingAlertSink:
    return RecordingAlertSink()


@pytest.fixture
def error_log(tmp_path) -> ErrorLogFile:
    return ErrorLogFile(tmp_path / 'pollErrorLog.txt')


@pytest.fixture
def notifier(error_log, alert_sink, clock) -> FailureNotifier:
    return FailureNotifier(
        error_log,
        alert_sink,
        ['cad-admin@example.org', 'dba@example.org'],
        clock=clock,
    )


@pytest.fixture
def pipeline(store, notifier, clock) -> PollerPipeline:
    return PollerPipeline(store, notifier, clock=clock)


# =============================================================================
# Seeding helpers
# =============================================================================


def seed_event(
    engine,
    eid: int = 1001,
    num_1: str = 'SO26000123',
    ad_ts: str | None = None,
    ag_id: str = 'JCSO',
    tycod: str = 'ACC',
    sub_tycod: str = 'PI',
    udts: str | None = None,
    xdts: str | None = None,
    esz: int = 101,
    estnum: str = '111',
    edirpre: str = 'W',
    efeanme: str = 'SANTA FE',
    efeatyp: str = 'ST',
    xstreet1: str = 'N KANSAS AVE',
    xstreet2: str = 'N CHERRY ST',
) -> dict:
    """Insert one agency_event + common_event pair; returns the event key."""
    ad_ts = ad_ts or ts(3)
    with engine.begin() as conn:
        conn.execute(insert(agency_event_table).values(
            eid=eid, ag_id=ag_id, tycod=tycod, sub_tycod=sub_tycod, ad_ts=ad_ts,
            udts=udts, xdts=xdts, num_1=num_1, esz=esz,
        ))
        conn.execute(insert(common_event_table).values(
            eid=eid, estnum=estnum, edirpre=edirpre, efeanme=efeanme, efeatyp=efeatyp,
            xstreet1=xstreet1, xstreet2=xstreet2,
        ))
    return {'eid': eid, 'num_1': num_1, 'ad_ts': ad_ts}


def seed_comment(
    engine,
    eid: int,
    comm: str | None,
    cdts: str,
    lin_grp: int = 1,
    lin_ord: int = 1,
    comm_key: int = 0,
) -> None:
    with engine.begin() as conn:
        conn.execute(insert(evcom_table).values(
            eid=eid, cdts=cdts, lin_grp=lin_grp, lin_ord=lin_ord, comm_key=comm_key, comm=comm,
        ))


def seed_unit_status(
    engine,
    eid: int,
    unid: str,
    unit_status: str = 'AR',
    num_1: str = 'SO26000123',
    ag_id: str = 'JCSO',
    cdts: str | None = None,
) -> None:
    with engine.begin() as conn:
        conn.execute(insert(unit_history_table).values(
            eid=eid, num_1=num_1, ag_id=ag_id, unid=unid, unit_status=unit_status,
            cdts=cdts or ts(1),
        ))


def seed_evaluation_row(engine, **values) -> None:
    row = {
        'eid': 1001, 'num_1': 'SO26000123', 'ad_ts': ts(3), 'ag_id': 'JCSO',
        'tycod': 'ACC', 'sub_tycod': 'PI',
    }
    row.update(values)
    with engine.begin() as conn:
        conn.execute(insert(evaluation_table).values(**row))


def evaluation_rows(engine) -> list[dict]:
    with engine.connect() as conn:
        rows = conn.execute(
            select(evaluation_table).order_by(evaluation_table.c.eid, evaluation_table.c.num_1)
        ).mappings()
        return [dict(r) for r in rows]


def staging_counts(engine) -> dict[str, int]:
    counts = {}
    with engine.connect() as conn:
        for table in (call_staging_table, comment_staging_table, unit_count_staging_table):
            counts[table.name] = len(conn.execute(select(table)).all())
    return counts
