"""
Structured logging tests: bound context and extra fields reach the output.
"""

import json
import logging

from core.logging import ContextFilter, JSONFormatter, TextFormatter, current_log_context, log_context


def make_record(message="Zones resolved", **attrs):
    record = logging.LogRecord(
        name="services.program_engine.zone_resolver",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestLogContext:

    def test_nested_blocks_merge_and_reset(self):
        with log_context(athlete_id="a-1"):
            with log_context(goal_type="marathon"):
                assert current_log_context() == {"athlete_id": "a-1", "goal_type": "marathon"}
            assert current_log_context() == {"athlete_id": "a-1"}
        assert current_log_context() == {}

    def test_filter_attaches_context(self):
        record = make_record()
        with log_context(athlete_id="a-1"):
            assert ContextFilter().filter(record) is True
        assert record.context == {"athlete_id": "a-1"}


class TestFormatters:

    def test_json_includes_context_and_extra_fields(self):
        record = make_record(
            context={"athlete_id": "a-1"},
            extra_fields={"status_code": 200},
        )

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Zones resolved"
        assert data["level"] == "INFO"
        assert data["athlete_id"] == "a-1"
        assert data["status_code"] == 200

    def test_text_appends_context(self):
        record = make_record(context={"goal_type": "10k", "athlete_id": "a-1"})
        line = TextFormatter().format(record)
        assert line.endswith("Zones resolved [athlete_id=a-1 goal_type=10k]")

    def test_text_without_context(self):
        line = TextFormatter().format(make_record())
        assert line.endswith("Zones resolved")
