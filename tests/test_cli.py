"""
Tests for the command-line entry point and its exit codes.

Settings are injected by patching ``get_settings``; the data store is a
file-backed SQLite database under tmp_path.
"""

import os
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, text

from hotcall_poller.cli import EXIT_CONFIG_ERROR, EXIT_OK, EXIT_STAGE_FAILED, main
from hotcall_poller.config import PollerSettings, get_settings
from hotcall_poller.logging import configure_logging
from hotcall_poller.schema import create_archive_tables, create_poller_tables


@pytest.fixture
def database_url(tmp_path) -> str:
    url = f"sqlite:///{tmp_path / 'cad.db'}"
    engine = create_engine(url)
    create_archive_tables(engine)
    create_poller_tables(engine)
    engine.dispose()
    return url


def run_main(**overrides) -> int:
    settings = PollerSettings(**overrides)
    with patch('hotcall_poller.cli.get_settings', return_value=settings):
        return main()


class TestMain:
    """Test exit status for each outcome."""

    def test_missing_database_url(self, tmp_path):
        code = run_main(HOTCALL_DATABASE_URL='', ERROR_LOG_PATH=str(tmp_path / 'err.txt'))

        assert code == EXIT_CONFIG_ERROR

    def test_unusable_database_url(self, tmp_path):
        code = run_main(
            HOTCALL_DATABASE_URL='nosuchbackend://cad',
            ERROR_LOG_PATH=str(tmp_path / 'err.txt'),
        )

        assert code == EXIT_CONFIG_ERROR

    def test_clean_cycle(self, database_url, tmp_path):
        error_log = tmp_path / 'err.txt'

        code = run_main(
            HOTCALL_DATABASE_URL=database_url,
            ERROR_LOG_PATH=str(error_log),
            SMTP_HOST='',
        )

        assert code == EXIT_OK
        assert not error_log.exists()

    def test_stage_failure(self, database_url, tmp_path):
        engine = create_engine(database_url)
        with engine.begin() as conn:
            conn.execute(text('DROP TABLE evcom'))
        engine.dispose()
        error_log = tmp_path / 'err.txt'

        code = run_main(
            HOTCALL_DATABASE_URL=database_url,
            ERROR_LOG_PATH=str(error_log),
            SMTP_HOST='',
        )

        assert code == EXIT_STAGE_FAILED
        [line] = error_log.read_text().splitlines()
        assert '[extract_comments] DataStoreQueryError' in line


class TestInvalidSettings:
    """Settings that fail validation exit with the configuration status."""

    @pytest.fixture(autouse=True)
    def fresh_settings(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    @pytest.mark.parametrize(
        'env',
        [
            {'STAGE_TIMEOUT_SECONDS': '0'},
            {'CALL_WINDOW_MINUTES': 'eight'},
        ],
    )
    def test_invalid_value(self, env, database_url):
        with patch.dict(os.environ, {'HOTCALL_DATABASE_URL': database_url, **env}):
            assert main() == EXIT_CONFIG_ERROR

    def test_default_logging_does_not_read_settings(self):
        with patch.dict(os.environ, {'STAGE_TIMEOUT_SECONDS': '0'}):
            configure_logging(json_output=False)
