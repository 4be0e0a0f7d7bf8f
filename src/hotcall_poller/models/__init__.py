"""
Data models for the Hot Calls poller.
"""

from .event import (
    ARCHIVE_TS_FORMAT,
    CommentBlob,
    CommentLine,
    EvaluationRow,
    EventKey,
    format_archive_ts,
)

__all__ = [
    'ARCHIVE_TS_FORMAT',
    'CommentBlob',
    'CommentLine',
    'EvaluationRow',
    'EventKey',
    'format_archive_ts',
]
