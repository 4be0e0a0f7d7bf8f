"""
Hot Calls Poller

Stages in-progress dispatch events from the CAD archive into the
jc_hc_curent evaluation table read by the Hot Calls trigger evaluator,
and retires rows once calls close or age out.
"""

__version__ = '2.3.0'

# Re-export key classes for convenience
from .clients import DataStore, LogAlertSink, SmtpAlertSink
from .config import PollerSettings, get_settings
from .errors import (
    DataStoreError,
    ExtractionError,
    HotCallPollerError,
    MergeError,
    PipelineError,
    RetentionError,
)
from .logging import PipelineTimer, configure_logging, get_logger, logging_context
from .notifier import ErrorLogFile, FailureNotifier
from .pipeline import CommentSanitizer, CycleResult, PollerPipeline
from .repository import EvaluationRepository

__all__ = [
    # Version
    '__version__',
    # Main Pipeline
    'PollerPipeline',
    'CycleResult',
    'CommentSanitizer',
    # Clients
    'DataStore',
    'SmtpAlertSink',
    'LogAlertSink',
    # Notification
    'FailureNotifier',
    'ErrorLogFile',
    # Repository
    'EvaluationRepository',
    # Config
    'PollerSettings',
    'get_settings',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'PipelineTimer',
    # Errors
    'HotCallPollerError',
    'DataStoreError',
    'PipelineError',
    'ExtractionError',
    'MergeError',
    'RetentionError',
]
