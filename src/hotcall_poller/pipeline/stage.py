"""
Parameterised stage executor.

Every step of a cycle (three extractions, three merges, three staging
truncates, two retention deletes) is a ``Stage``: a name, an action that
runs against one transactional connection, and the pipeline error class
used when the action fails for a reason other than the data store.

``StageExecutor.run`` is the single failure boundary:
- acquire a connection and open one transaction
- run the action, commit on success
- on any exception: roll back, classify, notify operators, return a
  failed StageResult (never re-raise)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..clients.datastore import DataStore
from ..errors import HotCallPollerError, PipelineError, wrap_datastore_error
from ..logging import get_logger, logging_context
from ..notifier import FailureNotifier

logger = get_logger(__name__)


@dataclass(frozen=True)
class StageContext:
    """Per-cycle values shared by every stage action."""

    cycle_id: str
    now: datetime


StageAction = Callable[[Connection, StageContext], int]


@dataclass(frozen=True)
class Stage:
    """Descriptor for one transactional step of the cycle."""

    name: str
    kind: str  # 'extract', 'merge', 'clean', 'retain'
    action: StageAction
    error_class: type[PipelineError] = PipelineError


@dataclass
class StageResult:
    """Outcome of a single stage."""

    name: str
    kind: str
    success: bool
    rows_affected: int = 0
    duration_ms: float = 0.0
    error: HotCallPollerError | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'kind': self.kind,
            'success': self.success,
            'rows_affected': self.rows_affected,
            'duration_ms': round(self.duration_ms, 2),
            'error': str(self.error) if self.error else None,
        }


@dataclass
class StageExecutor:
    """Runs stages one at a time inside their own transaction."""

    store: DataStore
    notifier: FailureNotifier
    results: list[StageResult] = field(default_factory=list)

    def run(self, stage: Stage, context: StageContext) -> StageResult:
        started = time.perf_counter()
        error: HotCallPollerError | None = None
        rows = 0

        with logging_context(cycle_id=context.cycle_id, stage=stage.name):
            try:
                with self.store.transaction() as conn:
                    rows = stage.action(conn, context)
            except SQLAlchemyError as exc:
                error = wrap_datastore_error(exc, context={'stage': stage.name})
            except HotCallPollerError as exc:
                error = exc
            except Exception as exc:
                error = stage.error_class(
                    f"{stage.name} failed: {exc}",
                    context={
                        'stage': stage.name,
                        'original_error': str(exc),
                        'error_type': type(exc).__name__,
                    },
                )

            duration_ms = (time.perf_counter() - started) * 1000

            if error is None:
                logger.info('pipeline.stage_completed', rows_affected=rows, duration_ms=round(duration_ms, 2))
                result = StageResult(stage.name, stage.kind, True, rows, duration_ms)
            else:
                logger.error('pipeline.stage_failed', error=str(error), error_type=type(error).__name__)
                self.notifier.notify(stage.name, error)
                result = StageResult(stage.name, stage.kind, False, 0, duration_ms, error)

        self.results.append(result)
        return result
