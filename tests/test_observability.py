"""
Tests for logging setup and level resolution.
"""

import logging
from pathlib import Path

import pytest

from flux.core.observability.logging_config import (
    configure_from_cli,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_flags_win(self):
        assert resolve_level(debug=True, verbose=True, env_level="ERROR") == "DEBUG"
        assert resolve_level(verbose=True, env_level="ERROR") == "INFO"
        assert resolve_level(quiet=True) == "ERROR"

    def test_env_then_default(self):
        assert resolve_level(env_level="INFO") == "INFO"
        assert resolve_level() == "WARNING"


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_bad_level_falls_back(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "flux.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("flux.test").debug("written to file only")
        for h in root.handlers:
            h.flush()
        assert "written to file only" in log_file.read_text()

    def test_third_party_quieted(self):
        setup_logging("INFO")
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_repeated_setup_does_not_stack(self):
        setup_logging("INFO")
        setup_logging("INFO")
        assert len(logging.getLogger().handlers) == 1


class TestConfigureFromCli:
    def test_env_level(self, monkeypatch):
        monkeypatch.setenv("FLUX_LOG_LEVEL", "ERROR")
        monkeypatch.delenv("FLUX_LOG_FILE", raising=False)
        configure_from_cli(debug=False, verbose=False, quiet=False)
        assert logging.getLogger().level == logging.ERROR

    def test_debug_flag_wins(self, monkeypatch):
        monkeypatch.setenv("FLUX_LOG_LEVEL", "ERROR")
        monkeypatch.delenv("FLUX_LOG_FILE", raising=False)
        configure_from_cli(debug=True, verbose=False, quiet=False)
        assert logging.getLogger().level == logging.DEBUG
