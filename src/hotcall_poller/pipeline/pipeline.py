"""
Poller cycle orchestrator.

One invocation runs exactly one cycle, strictly in sequence:
1. Extract call attributes, comments, unit counts into staging
2. Merge the three staging tables into the evaluation table
3. Truncate the three staging tables
4. Delete closed and aged-out evaluation rows

Every step is an independent stage: a failing stage is rolled back,
reported to operators, and the cycle moves on. Nothing is retried within
a cycle; the next scheduled invocation is the retry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from ..clients.datastore import DataStore
from ..clients.mailer import AlertSink, LogAlertSink, SmtpAlertSink
from ..config import PollerSettings
from ..logging import PipelineTimer, get_logger, logging_context
from ..notifier import ErrorLogFile, FailureNotifier
from ..repository import EvaluationRepository
from .cleaner import StageCleaner
from .extractor import EventExtractor
from .merger import EvaluationMerger
from .retention import RetentionSweeper
from .sanitizer import CommentSanitizer
from .stage import Stage, StageContext, StageExecutor, StageResult

logger = get_logger(__name__)


@dataclass
class CycleResult:
    """Result of one poller cycle."""

    cycle_id: str
    started_at: datetime
    completed_at: datetime | None = None
    stage_results: list[StageResult] = field(default_factory=list)
    evaluation_rows: int | None = None
    timings: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """True if every stage completed without error."""
        return all(r.success for r in self.stage_results)

    @property
    def failed_stages(self) -> list[str]:
        return [r.name for r in self.stage_results if not r.success]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'cycle_id': self.cycle_id,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'success': self.success,
            'failed_stages': self.failed_stages,
            'evaluation_rows': self.evaluation_rows,
            'stages': [r.to_dict() for r in self.stage_results],
            'timings': self.timings,
        }


class PollerPipeline:
    """
    Runs the extract → merge → purge → sweep cycle.

    Usage:
        pipeline = PollerPipeline.from_settings(get_settings())
        result = pipeline.run_cycle()
    """

    def __init__(
        self,
        store: DataStore,
        notifier: FailureNotifier,
        extractor: EventExtractor | None = None,
        merger: EvaluationMerger | None = None,
        cleaner: StageCleaner | None = None,
        sweeper: RetentionSweeper | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the pipeline with its collaborators.

        Args:
            store: Data-store handle passed to every stage
            notifier: Failure notifier invoked at each stage boundary
            extractor: Archive extractor (default windows if omitted)
            merger: Evaluation merger
            cleaner: Staging table cleaner
            sweeper: Retention sweeper (default max age if omitted)
            clock: Source of "now" for selection windows and retention
        """
        self.store = store
        self.notifier = notifier
        self.extractor = extractor or EventExtractor()
        self.merger = merger or EvaluationMerger()
        self.cleaner = cleaner or StageCleaner()
        self.sweeper = sweeper or RetentionSweeper()
        self.clock = clock
        self.repository = EvaluationRepository(store)

    @classmethod
    def from_settings(cls, settings: PollerSettings) -> PollerPipeline:
        """Build a connected pipeline from settings."""
        store = DataStore(
            settings.HOTCALL_DATABASE_URL,
            stage_timeout_seconds=settings.STAGE_TIMEOUT_SECONDS,
        )
        store.connect()

        alert_sink: AlertSink
        if settings.SMTP_HOST:
            alert_sink = SmtpAlertSink(
                host=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                sender=settings.ALERT_SENDER,
                username=settings.SMTP_USERNAME or None,
                password=settings.SMTP_PASSWORD or None,
                starttls=settings.SMTP_STARTTLS,
                timeout_seconds=settings.SMTP_TIMEOUT_SECONDS,
            )
        else:
            logger.warning('pipeline.smtp_not_configured')
            alert_sink = LogAlertSink()

        notifier = FailureNotifier(
            ErrorLogFile(settings.ERROR_LOG_PATH),
            alert_sink,
            settings.alert_recipients,
        )
        sanitizer = CommentSanitizer(max_length=settings.COMMENT_MAX_LENGTH)

        return cls(
            store,
            notifier,
            extractor=EventExtractor(
                sanitizer,
                call_window_minutes=settings.CALL_WINDOW_MINUTES,
                unit_count_window_minutes=settings.UNIT_COUNT_WINDOW_MINUTES,
            ),
            sweeper=RetentionSweeper(settings.MAX_EVENT_AGE_MINUTES),
        )

    def stages(self) -> list[Stage]:
        """All stages of one cycle, in execution order."""
        return [
            *self.extractor.stages(),
            *self.merger.stages(),
            *self.cleaner.stages(),
            *self.sweeper.stages(),
        ]

    def run_cycle(self) -> CycleResult:
        """Run one complete cycle. Stage failures are reported, never raised."""
        cycle_id = uuid4().hex
        now = self.clock()
        result = CycleResult(cycle_id=cycle_id, started_at=now)
        context = StageContext(cycle_id=cycle_id, now=now)
        executor = StageExecutor(self.store, self.notifier)
        timer = PipelineTimer()

        with logging_context(cycle_id=cycle_id):
            logger.info('pipeline.cycle_started', now=now.isoformat())

            for stage in self.stages():
                with timer.stage(stage.name):
                    executor.run(stage, context)

            result.stage_results = executor.results
            result.evaluation_rows = self._count_evaluation_rows()
            result.timings = timer.summary()
            result.completed_at = self.clock()

            log = logger.info if result.success else logger.warning
            log(
                'pipeline.cycle_completed',
                success=result.success,
                failed_stages=result.failed_stages,
                evaluation_rows=result.evaluation_rows,
                total_ms=result.timings['total_ms'],
            )

        return result

    def close(self) -> None:
        self.store.close()

    def _count_evaluation_rows(self) -> int | None:
        try:
            return self.repository.count()
        except SQLAlchemyError:
            logger.warning('pipeline.evaluation_count_failed', exc_info=True)
            return None
