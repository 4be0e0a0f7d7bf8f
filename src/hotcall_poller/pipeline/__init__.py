"""
Pipeline components for extracting, merging, purging and retiring hot calls.
"""

from .cleaner import StageCleaner
from .extractor import EventExtractor
from .merger import EvaluationMerger
from .pipeline import CycleResult, PollerPipeline
from .retention import RetentionSweeper
from .sanitizer import DEFAULT_NOISE_PATTERNS, CommentSanitizer, NoisePattern
from .stage import Stage, StageContext, StageExecutor, StageResult

__all__ = [
    # Main Pipeline
    'PollerPipeline',
    'CycleResult',
    # Stages
    'Stage',
    'StageContext',
    'StageExecutor',
    'StageResult',
    # Components
    'EventExtractor',
    'EvaluationMerger',
    'StageCleaner',
    'RetentionSweeper',
    # Sanitizer
    'CommentSanitizer',
    'NoisePattern',
    'DEFAULT_NOISE_PATTERNS',
]
