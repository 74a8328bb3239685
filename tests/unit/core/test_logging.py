"""
Tests for the shared logging helpers.
"""

import json
import logging

import pytest

from app.core.shared.logger import ColoredFormatter, JSONFormatter, configure_logging, get_job_logger


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJobLogger:
    def test_records_carry_job_and_call_fields(self, caplog):
        job_logger = get_job_logger("recovery_attempt").with_context(cart_id="cart-1")

        with caplog.at_level(logging.ERROR, logger="job.recovery_attempt"):
            job_logger.error("Recovery job failed", error_type="DataAccessError")

        record = caplog.records[-1]
        assert record.name == "job.recovery_attempt"
        assert record.extra_data == {
            "component": "job",
            "job": "recovery_attempt",
            "cart_id": "cart-1",
            "error_type": "DataAccessError",
        }

    def test_with_context_leaves_parent_untouched(self, caplog):
        parent = get_job_logger("poll")
        parent.with_context(attempt=2)

        with caplog.at_level(logging.INFO, logger="job.poll"):
            parent.info("tick")

        assert "attempt" not in caplog.records[-1].extra_data

    def test_exc_info_is_not_treated_as_context(self, caplog):
        job_logger = get_job_logger("poll")

        with caplog.at_level(logging.ERROR, logger="job.poll"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                job_logger.error("iteration failed", exc_info=True)

        record = caplog.records[-1]
        assert record.exc_info is not None
        assert "exc_info" not in record.extra_data


class TestFormatters:
    def test_json_formatter_includes_context(self):
        record = logging.LogRecord("job.poll", logging.INFO, __file__, 10, "tick %s", (3,), None)
        record.extra_data = {"job": "poll"}

        payload = json.loads(JSONFormatter().format(record))

        assert payload["level"] == "INFO"
        assert payload["message"] == "tick 3"
        assert payload["context"] == {"job": "poll"}

    def test_colored_formatter_keeps_original_record(self):
        record = logging.LogRecord("app", logging.WARNING, __file__, 10, "careful", (), None)

        line = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[33mWARNING\033[0m careful" == line
        assert record.levelname == "WARNING"


class TestConfigureLogging:
    def test_replaces_root_handlers(self, restore_root_logger, tmp_path):
        configure_logging("debug", "json", str(tmp_path / "retention.log"))

        assert restore_root_logger.level == logging.DEBUG
        assert [type(h.formatter) for h in restore_root_logger.handlers] == [JSONFormatter, JSONFormatter]

    def test_plain_format_uses_standard_formatter(self, restore_root_logger):
        configure_logging("WARNING", "plain")

        (handler,) = restore_root_logger.handlers
        assert type(handler.formatter) is logging.Formatter
        assert handler.level == logging.WARNING
