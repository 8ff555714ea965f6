"""Property-based tests for structured logging."""

import json
import sys
from io import StringIO

from hypothesis import given
from hypothesis import strategies as st

from stockchart.utils.logger import StructuredLogger
from stockchart.utils.trace_context import clear_trace, set_trace, traced


def capture(log_call) -> dict:
    """Run a logging call and return the decoded JSON line it printed."""
    captured_output = StringIO()
    original_stdout = sys.stdout
    sys.stdout = captured_output
    try:
        log_call()
    finally:
        sys.stdout = original_stdout
    return json.loads(captured_output.getvalue().strip())


class TestLoggerJSONFormat:
    """Tests for JSON log format compliance."""

    @given(
        level=st.sampled_from(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
        message=st.text(min_size=1),
        context=st.dictionaries(
            st.text(min_size=1, max_size=20).filter(lambda x: x[0].isalpha() and x != "trace_id"),
            st.one_of(st.text(), st.integers(), st.booleans()),
            max_size=5,
        ),
    )
    def test_log_entries_have_required_fields(self, level, message, context):
        """Every entry is JSON with timestamp, level, component, message and the context given."""
        clear_trace()
        logger = StructuredLogger("test_component")

        log_entry = capture(lambda: logger.log(level, message, context or None))

        assert log_entry["level"] == level
        assert log_entry["component"] == "test_component"
        assert log_entry["message"] == message
        assert log_entry["timestamp"].endswith("Z")
        assert "T" in log_entry["timestamp"]
        if context:
            assert log_entry["context"] == context
        else:
            assert "context" not in log_entry

    def test_unknown_level_falls_back_to_info(self):
        logger = StructuredLogger("test_component")

        log_entry = capture(lambda: logger.log("verbose", "hello"))

        assert log_entry["level"] == "INFO"

    @given(
        message=st.text(min_size=1),
        exception_type=st.sampled_from(
            [ValueError, TypeError, RuntimeError, KeyError, AttributeError]
        ),
    )
    def test_error_log_entries_include_exception_details(self, message, exception_type):
        """Error entries carry the exception type, message and stack trace."""
        logger = StructuredLogger("test_component")

        try:
            raise exception_type("Test error message")
        except exception_type as e:
            error = e

        log_entry = capture(lambda: logger.error(message, exception=error))

        assert log_entry["exception"]["type"] == exception_type.__name__
        assert "Test error message" in log_entry["exception"]["message"]
        assert "raise exception_type" in log_entry["exception"]["stack_trace"]

    def test_exception_logged_outside_handler_keeps_stack_trace(self):
        """The stack trace comes from the exception, not from the current handler."""
        logger = StructuredLogger("test_component")
        try:
            int("x")
        except ValueError as e:
            error = e

        log_entry = capture(lambda: logger.critical("later", exception=error))

        assert log_entry["level"] == "CRITICAL"
        assert "int(\"x\")" in log_entry["exception"]["stack_trace"]


class TestLoggerTraceContext:
    """Tests for trace id propagation into log entries."""

    def test_active_trace_is_added_to_context(self):
        logger = StructuredLogger("test_component")

        with traced() as trace_id:
            log_entry = capture(lambda: logger.info("fetching", {"granularity": "daily"}))

        assert log_entry["context"] == {"granularity": "daily", "trace_id": trace_id}

    def test_explicit_trace_id_wins(self):
        logger = StructuredLogger("test_component")
        set_trace("ambient")

        log_entry = capture(lambda: logger.info("x", {"trace_id": "explicit"}))

        assert log_entry["context"]["trace_id"] == "explicit"

    def test_file_output(self, tmp_path):
        path = tmp_path / "logs" / "chart.log"
        logger = StructuredLogger("test_component", str(path))

        capture(lambda: logger.warning("written"))

        line = json.loads(path.read_text().strip())
        assert line["message"] == "written"
        assert line["level"] == "WARNING"
