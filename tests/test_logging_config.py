"""Tests for portal logging setup."""

import logging
import threading

import pytest

from logging_config import APP_LOGGER_NAME, ThreadContextFilter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_portal_logger():
    yield
    logger = logging.getLogger(APP_LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


class TestGetLogger:

    def test_module_name_is_namespaced(self):
        assert get_logger("services.query_cache").name == "batch_portal.services.query_cache"

    def test_namespaced_name_is_kept(self):
        assert get_logger("batch_portal.app").name == "batch_portal.app"


class TestSetupLogging:

    def test_console_only_by_default(self):
        logger = setup_logging(log_level=logging.DEBUG)

        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_reconfiguring_replaces_handlers(self):
        setup_logging()
        logger = setup_logging()

        assert len(logger.handlers) == 1

    def test_file_logging_writes_portal_and_error_logs(self, tmp_path):
        logger = setup_logging(log_dir=tmp_path, enable_file_logging=True)

        get_logger("tests").error("backend down")
        for handler in logger.handlers:
            handler.flush()

        assert "backend down" in (tmp_path / "batch_portal.log").read_text(encoding="utf-8")
        assert "backend down" in (tmp_path / "batch_portal_error.log").read_text(encoding="utf-8")

    def test_lines_name_the_thread(self, tmp_path):
        logger = setup_logging(log_dir=tmp_path, enable_file_logging=True)

        worker = threading.Thread(
            target=lambda: get_logger("tests").info("refreshed"), name="QueryCache_0"
        )
        worker.start()
        worker.join()
        for handler in logger.handlers:
            handler.flush()

        assert "[QueryCache_0] batch_portal.tests - refreshed" in (
            tmp_path / "batch_portal.log"
        ).read_text(encoding="utf-8")


def test_filter_stamps_thread_name():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

    assert ThreadContextFilter().filter(record) is True
    assert record.thread_name == threading.current_thread().name
