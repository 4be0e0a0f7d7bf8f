"""
Table declarations for the archive, staging, and evaluation tables.

Timestamp columns hold fixed-width ``YYYYMMDDHH24MISS`` text, exactly as
the dispatch archive stores them; the downstream evaluator compares them
lexically.

The poller owns the three staging tables and ``jc_hc_curent``. The archive
tables are declared on a separate MetaData so that development databases
and test fixtures can be built without ever issuing DDL against the live
archive.
"""

from sqlalchemy import (
    Column,
    Engine,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)

COMMENT_COLUMN_LENGTH = 4000

EVALUATION_TABLE = 'jc_hc_curent'
CALL_STAGING_TABLE = 'hc_curent_temp'
COMMENT_STAGING_TABLE = 'hc_comment_temp'
UNIT_COUNT_STAGING_TABLE = 'hc_unitcount_temp'

STAGING_TABLES = (CALL_STAGING_TABLE, COMMENT_STAGING_TABLE, UNIT_COUNT_STAGING_TABLE)

# Attribute columns shared by hc_curent_temp and jc_hc_curent, in archive order
CALL_COLUMNS = (
    'eid', 'ag_id', 'tycod', 'sub_tycod', 'ad_ts', 'udts', 'xdts', 'num_1',
    'estnum', 'edirpre', 'efeanme', 'efeatyp', 'xstreet1', 'xstreet2', 'esz',
)
EVENT_KEY_COLUMNS = ('eid', 'num_1', 'ad_ts')
CALL_UPDATE_COLUMNS = tuple(c for c in CALL_COLUMNS if c not in EVENT_KEY_COLUMNS)


def _call_columns() -> list[Column]:
    return [
        Column('eid', Integer, nullable=False),
        Column('ag_id', String(9)),
        Column('tycod', String(16)),
        Column('sub_tycod', String(16)),
        Column('ad_ts', String(16), nullable=False),
        Column('udts', String(16)),
        Column('xdts', String(16)),
        Column('num_1', String(20), nullable=False),
        Column('estnum', String(10)),
        Column('edirpre', String(2)),
        Column('efeanme', String(40)),
        Column('efeatyp', String(4)),
        Column('xstreet1', String(80)),
        Column('xstreet2', String(80)),
        Column('esz', Integer),
    ]


# =============================================================================
# Poller-owned tables
# =============================================================================

poller_metadata = MetaData()

evaluation_table = Table(
    EVALUATION_TABLE,
    poller_metadata,
    *_call_columns(),
    Column('comments', String(COMMENT_COLUMN_LENGTH)),
    Column('unit_count', Integer),
    UniqueConstraint(*EVENT_KEY_COLUMNS, name='uq_jc_hc_curent_event'),
)

# Staging tables deliberately carry no unique constraint: re-polled events
# may be staged more than once and the insert must not fail.
call_staging_table = Table(CALL_STAGING_TABLE, poller_metadata, *_call_columns())

comment_staging_table = Table(
    COMMENT_STAGING_TABLE,
    poller_metadata,
    Column('eid', Integer, nullable=False),
    Column('num_1', String(20), nullable=False),
    Column('ad_ts', String(16), nullable=False),
    Column('comments', String(COMMENT_COLUMN_LENGTH)),
)

unit_count_staging_table = Table(
    UNIT_COUNT_STAGING_TABLE,
    poller_metadata,
    Column('eid', Integer, nullable=False),
    Column('num_1', String(20), nullable=False),
    Column('ag_id', String(9)),
    Column('ad_ts', String(16), nullable=False),
    Column('unit_count', Integer),
)


# =============================================================================
# Archive tables (read-only in production)
# =============================================================================

archive_metadata = MetaData()

agency_event_table = Table(
    'agency_event',
    archive_metadata,
    Column('eid', Integer, nullable=False),
    Column('ag_id', String(9)),
    Column('tycod', String(16)),
    Column('sub_tycod', String(16)),
    Column('ad_ts', String(16), nullable=False),
    Column('udts', String(16)),
    Column('xdts', String(16)),
    Column('num_1', String(20), nullable=False),
    Column('esz', Integer),
)

common_event_table = Table(
    'common_event',
    archive_metadata,
    Column('eid', Integer, nullable=False),
    Column('estnum', String(10)),
    Column('edirpre', String(2)),
    Column('efeanme', String(40)),
    Column('efeatyp', String(4)),
    Column('xstreet1', String(80)),
    Column('xstreet2', String(80)),
)

evcom_table = Table(
    'evcom',
    archive_metadata,
    Column('eid', Integer, nullable=False),
    Column('cdts', String(16)),
    Column('lin_grp', Integer),
    Column('lin_ord', Integer),
    Column('comm_key', Integer, nullable=False, default=0),
    Column('comm', String(COMMENT_COLUMN_LENGTH)),
)

unit_history_table = Table(
    'un_hi',
    archive_metadata,
    Column('eid', Integer, nullable=False),
    Column('num_1', String(20)),
    Column('ag_id', String(9)),
    Column('unid', String(12), nullable=False),
    Column('unit_status', String(4)),
    Column('cdts', String(16)),
)


def create_poller_tables(engine: Engine) -> None:
    """Create the staging and evaluation tables if they do not exist."""
    poller_metadata.create_all(engine)


def create_archive_tables(engine: Engine) -> None:
    """Create archive look-alike tables (development and tests only)."""
    archive_metadata.create_all(engine)
