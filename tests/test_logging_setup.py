"""Tests for the console/file logging setup."""

from __future__ import annotations

import logging

import pytest
from rich.logging import RichHandler

from fbms.backend.core.utils.logging_setup import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_console_only(self) -> None:
        setup_logging("warning")
        root = logging.getLogger()
        assert [type(h) for h in root.handlers] == [RichHandler]
        assert root.level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_file_receives_debug_records(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "fbms.log"
        setup_logging(logging.WARNING, log_file)
        logging.getLogger("fbms.test").debug("opened drawer %s", 3)

        assert "opened drawer 3" in log_file.read_text(encoding="utf-8")

    def test_debug_enables_sql_echo(self) -> None:
        setup_logging(logging.DEBUG)
        assert logging.getLogger("sqlalchemy.engine").level == logging.INFO

    def test_unknown_level_name(self) -> None:
        with pytest.raises(ValueError):
            setup_logging("chatty")
