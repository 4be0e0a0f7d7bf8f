"""
Failure notification for pipeline stages.

Every caught stage failure is:
1. appended as one timestamped line to the persistent error log
2. sent to the operator distribution list

Both are best-effort. A failure here is logged and swallowed so that it
can never crash the cycle or keep later stages from running.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

from .clients.mailer import AlertSink
from .errors import DataStoreError, HotCallPollerError
from .logging import get_logger

logger = get_logger(__name__)

DATA_STORE_SUBJECT = 'Hot Calls Poller Data Store Exception'
UNEXPECTED_SUBJECT = 'Hot Calls Poller Exception'


@dataclass
class StageFailure:
    """A failure caught at a stage boundary."""

    stage: str
    error: HotCallPollerError
    occurred_at: datetime = field(default_factory=datetime.now)

    @property
    def is_data_store_failure(self) -> bool:
        return isinstance(self.error, DataStoreError)

    @property
    def error_type(self) -> str:
        return type(self.error).__name__

    @property
    def one_line_message(self) -> str:
        return ' '.join(self.error.message.split())

    def log_line(self) -> str:
        """Human-readable single line for the error log."""
        return (
            f"{self.occurred_at:%Y-%m-%d %H:%M:%S} [{self.stage}] "
            f"{self.error_type}: {self.one_line_message}"
        )

    def subject(self) -> str:
        return DATA_STORE_SUBJECT if self.is_data_store_failure else UNEXPECTED_SUBJECT

    def body(self) -> str:
        lines = [
            f"The Hot Calls poller stage '{self.stage}' failed at {self.occurred_at:%Y-%m-%d %H:%M:%S}.",
            '',
            f"Error type: {self.error_type}",
            f"Message: {self.error.message}",
        ]
        original = self.error.context.get('original_error')
        if original and original != self.error.message:
            lines.append(f"Original error: {original}")
        return '\n'.join(lines)


class ErrorLogFile:
    """Append-only text log, one line per error."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def append(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open('a', encoding='utf-8') as fh:
            fh.write(line.rstrip('\n') + '\n')


class FailureNotifier:
    """
    Records stage failures and alerts operators.

    Usage:
        notifier = FailureNotifier(ErrorLogFile(path), SmtpAlertSink(...), recipients)
        notifier.notify('merge_comments', error)
    """

    def __init__(
        self,
        error_log: ErrorLogFile,
        alert_sink: AlertSink,
        recipients: Sequence[str],
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.error_log = error_log
        self.alert_sink = alert_sink
        self.recipients = list(recipients)
        self.clock = clock

    def notify(self, stage: str, error: HotCallPollerError) -> StageFailure:
        """Log and alert a stage failure. Never raises."""
        failure = StageFailure(stage=stage, error=error, occurred_at=self.clock())

        try:
            self.error_log.append(failure.log_line())
        except Exception:
            logger.exception('notifier.error_log_failed', path=str(self.error_log.path))

        try:
            self.alert_sink.send(self.recipients, failure.subject(), failure.body())
        except Exception:
            logger.exception('notifier.alert_failed', subject=failure.subject())

        return failure
