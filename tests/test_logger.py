"""Tests for logging setup."""

import json
import logging

from tree_mirror.config import LoggingConfig
from tree_mirror.utils.logger import JsonFormatter, setup_from_config, setup_logging


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "tree_mirror.core.engine", logging.ERROR, __file__, 1, "page failed", None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_fields(self) -> None:
        data = json.loads(JsonFormatter().format(make_record()))
        assert data["level"] == "ERROR"
        assert data["message"] == "page failed"
        assert data["logger"] == "tree_mirror.core.engine"
        assert "locator" not in data

    def test_locator(self) -> None:
        page = "https://pod.example/announcements/1/"
        data = json.loads(JsonFormatter().format(make_record(locator=page)))
        assert data["locator"] == page


class TestSetup:
    """Tests for handler configuration."""

    def test_file_handler(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "mirror.log"
        setup_logging(level="DEBUG", log_file=log_file, format_style="simple")

        logging.getLogger("tree_mirror.core.engine").debug("written")
        for handler in logging.getLogger("tree_mirror").handlers:
            handler.flush()

        assert "written" in log_file.read_text()

    def test_quiet_raises_level(self) -> None:
        setup_from_config(LoggingConfig(level="DEBUG"), quiet=True)
        assert logging.getLogger("tree_mirror").level == logging.WARNING
