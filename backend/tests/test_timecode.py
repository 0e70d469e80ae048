"""Tests for time expression parsing and resolution."""
import pytest

from promptcut.errors import InvalidTimeFormatError, ValidationError
from promptcut.pipeline.timecode import (
    TimeKind,
    Timecode,
    parse_time_expression,
    resolve_time,
    resolve_window,
    seconds_to_time,
    time_to_seconds,
)


class TestConversions:
    """Tests for HH:MM:SS <-> seconds."""

    @pytest.mark.parametrize("text", ["00:00:00", "00:00:59", "00:59:00", "01:02:03", "23:59:59"])
    def test_round_trip_without_drift(self, text):
        assert seconds_to_time(time_to_seconds(text)) == text
        assert Timecode.parse(text).hhmmss == text

    def test_time_to_seconds(self):
        assert time_to_seconds("01:02:03") == 3723

    def test_seconds_to_time_floors_fractions(self):
        assert seconds_to_time(125.9) == "00:02:05"

    def test_seconds_to_time_never_negative(self):
        assert seconds_to_time(-3) == "00:00:00"

    @pytest.mark.parametrize("text", ["24:00:00", "00:60:00", "00:00:60", "1:2:3", "abc", "", "00:00"])
    def test_rejects_malformed(self, text):
        with pytest.raises(InvalidTimeFormatError):
            time_to_seconds(text)


class TestParseTimeExpression:
    """Tests for parsing without a duration."""

    def test_keywords(self):
        assert parse_time_expression("start").kind == TimeKind.START
        assert parse_time_expression("beginning").kind == TimeKind.START
        assert parse_time_expression("end").kind == TimeKind.END

    def test_end_offset(self):
        expr = parse_time_expression("end-00:00:10")
        assert expr.kind == TimeKind.END_MINUS_OFFSET
        assert expr.value.seconds == 10

    def test_absolute(self):
        expr = parse_time_expression("00:01:30")
        assert expr.kind == TimeKind.ABSOLUTE
        assert expr.value.seconds == 90

    @pytest.mark.parametrize("text", ["end-5", "end-00:00", "middle", "12:00", None])
    def test_invalid(self, text):
        with pytest.raises(InvalidTimeFormatError):
            parse_time_expression(text)

    def test_invalid_time_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            parse_time_expression("soon")


class TestResolveTime:
    """Tests for resolution against a duration."""

    def test_start(self):
        assert str(resolve_time("start", 90.0)) == "00:00:00"
        assert str(resolve_time("beginning", 90.0)) == "00:00:00"

    def test_end_matches_duration(self):
        duration = 125.7
        assert str(resolve_time("end", duration)) == seconds_to_time(duration)
        assert resolve_time("end", duration).seconds == duration

    def test_end_minus_offset(self):
        assert str(resolve_time("end-00:00:05", 60.0)) == "00:00:55"

    def test_end_minus_offset_clamped_at_zero(self):
        assert str(resolve_time("end-00:00:10", 5)) == "00:00:00"

    def test_absolute_passes_through(self):
        assert resolve_time("00:00:42", 10.0).seconds == 42


class TestResolveWindow:
    """Tests for start/end pair resolution."""

    def test_simple_window(self):
        window = resolve_window("00:00:10", "00:00:20", 60.0)
        assert window.start.seconds == 10
        assert window.end.seconds == 20
        assert window.duration == 10

    def test_end_overshoot_is_clamped(self):
        window = resolve_window("00:00:10", "00:05:00", 60.0)
        assert window.end.seconds == 60.0

    def test_inverted_window_rejected(self):
        with pytest.raises(ValidationError, match="after start"):
            resolve_window("00:00:20", "00:00:10", 60.0)

    def test_empty_window_rejected(self):
        with pytest.raises(ValidationError):
            resolve_window("00:00:10", "00:00:10", 60.0)

    def test_start_past_duration_rejected(self):
        with pytest.raises(ValidationError):
            resolve_window("00:02:00", "00:03:00", 60.0)

    def test_symbolic_window(self):
        window = resolve_window("end-00:00:05", "end", 60.0)
        assert window.start.seconds == 55.0
        assert window.end.seconds == 60.0

    def test_malformed_expression(self):
        with pytest.raises(InvalidTimeFormatError):
            resolve_window("00:00:10", "later", 60.0)
