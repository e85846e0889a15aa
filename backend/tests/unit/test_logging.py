# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for structured logging
"""

import json
import logging

from marketplace.core.logging import JSONFormatter, get_logger, log_event


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestJSONFormatter:
    """Test JSON output"""

    def test_extra_fields_are_top_level(self):
        record = logging.LogRecord(
            "marketplace.test", logging.WARNING, __file__, 1, "Dependency not found", None, None
        )
        record.kind = "dangling_reference"
        record.reference = "x/ghost"

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "marketplace.test"
        assert data["message"] == "Dependency not found"
        assert data["kind"] == "dangling_reference"
        assert data["reference"] == "x/ghost"
        assert "msg" not in data


class TestLogEvent:
    """Test structured event logging"""

    def test_fields_and_reserved_keys(self):
        logger = get_logger("marketplace.test.events", log_format="text")
        handler = ListHandler()
        logger.addHandler(handler)

        log_event(logger, "Circular dependency detected", level="WARNING",
                  kind="cycle", name="x/a")

        record = handler.records[0]
        assert record.levelno == logging.WARNING
        assert record.kind == "cycle"
        assert record.field_name == "x/a"
        assert record.name == "marketplace.test.events"

    def test_get_logger_does_not_duplicate_handlers(self):
        get_logger("marketplace.test.handlers")
        logger = get_logger("marketplace.test.handlers")

        assert len(logger.handlers) == 1
