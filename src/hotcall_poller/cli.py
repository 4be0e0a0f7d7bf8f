"""
Command-line entry point: run one poller cycle and exit.

Takes no flags; everything comes from the environment. Exit status:
- 0: every stage succeeded
- 1: at least one stage failed (already logged and alerted)
- 2: configuration is missing or invalid, or the data store could not be
  set up
"""

import sys

from pydantic import ValidationError

from .config import get_settings
from .logging import configure_logging, get_logger
from .pipeline import PollerPipeline

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_STAGE_FAILED = 1
EXIT_CONFIG_ERROR = 2


def main() -> int:
    try:
        settings = get_settings()
    except ValidationError as exc:
        logger.error(
            'poller.configuration_invalid',
            errors=[f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()],
        )
        return EXIT_CONFIG_ERROR

    configure_logging(json_output=settings.LOG_JSON, log_level=settings.LOG_LEVEL)

    missing = settings.missing()
    if missing:
        logger.error('poller.configuration_missing', missing=missing)
        return EXIT_CONFIG_ERROR

    try:
        pipeline = PollerPipeline.from_settings(settings)
    except Exception:
        logger.exception('poller.setup_failed')
        return EXIT_CONFIG_ERROR

    try:
        result = pipeline.run_cycle()
    finally:
        pipeline.close()

    logger.info('poller.exiting', **result.to_dict())
    return EXIT_OK if result.success else EXIT_STAGE_FAILED


if __name__ == '__main__':
    sys.exit(main())
