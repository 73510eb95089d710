"""Tests for the timestamped output module."""

import io
import re

import pytest

from nbuild import output


@pytest.fixture
def stream() -> io.StringIO:
    buffer = io.StringIO()
    output.init_timer(buffer)
    return buffer


def test_lines_are_timestamped(stream):
    output.log("Compiling array")
    assert re.fullmatch(r"\d{2}:\d{2}\.\d{2} Compiling array\n", stream.getvalue())


def test_verbose_only_messages_suppressed(stream):
    output.set_verbose(False)
    output.log("hidden", verbose_only=True)
    output.log_detail("hidden detail", verbose_only=True)
    output.log("shown")

    text = stream.getvalue()
    assert "hidden" not in text
    assert "shown" in text


def test_phase_and_detail_format(stream):
    output.log_phase(1, 2, "Compiling")
    output.log_detail("3 units up to date")

    lines = stream.getvalue().splitlines()
    assert lines[0].endswith("[1/2] Compiling")
    assert lines[1].endswith("      3 units up to date")


def test_timed_logger_reports_done(stream):
    with output.TimedLogger("Linking miniruby", phase=(2, 2)) as timed:
        timed.detail("1 object")

    text = stream.getvalue()
    assert "[2/2] Linking miniruby..." in text
    assert "1 object" in text
    assert "Done (" in text
    assert timed.elapsed >= 0


def test_timed_logger_reports_abort(stream):
    with pytest.raises(RuntimeError):
        with output.TimedLogger("Compiling"):
            raise RuntimeError("disk full")

    text = stream.getvalue()
    assert "Aborted after" in text
    assert "disk full" in text
    assert "Done (" not in text
