"""Unit tests for timemark conversion."""

import pytest

from ffdrive.core.timemark import (
    format_seek_value,
    seconds_to_timemark,
    timemark_to_seconds,
)
from ffdrive.exceptions import TimemarkError


class TestTimemarkToSeconds:
    """Tests for timemark_to_seconds."""

    @pytest.mark.parametrize(
        ("timemark", "expected"),
        [
            ("01:02:03.45", 3723.45),
            ("02:03", 123.0),
            ("123.5", 123.5),
            ("90s", 90.0),
            (42, 42.0),
            ("120:00:00", 432000.0),
        ],
    )
    def test_valid(self, timemark: str | int, expected: float) -> None:
        assert timemark_to_seconds(timemark) == pytest.approx(expected)

    @pytest.mark.parametrize("timemark", ["-5", -1, "abc", "00:61", "1:60:00", True])
    def test_invalid(self, timemark: object) -> None:
        with pytest.raises(TimemarkError):
            timemark_to_seconds(timemark)  # type: ignore[arg-type]


class TestSecondsToTimemark:
    """Tests for seconds_to_timemark."""

    def test_formats_with_milliseconds(self) -> None:
        assert seconds_to_timemark(3723.45) == "01:02:03.450"

    def test_hours_are_not_wrapped(self) -> None:
        assert seconds_to_timemark(432000) == "120:00:00.000"

    def test_negative_rejected(self) -> None:
        with pytest.raises(TimemarkError):
            seconds_to_timemark(-1)

    @pytest.mark.parametrize(
        "timemark", ["01:02:03.450", "00:00:00.000", "120:00:00", "00:00:59.9995"]
    )
    def test_round_trip_within_a_millisecond(self, timemark: str) -> None:
        seconds = timemark_to_seconds(timemark)
        rendered = seconds_to_timemark(seconds)
        assert timemark_to_seconds(rendered) == pytest.approx(seconds, abs=1e-3)


class TestFormatSeekValue:
    """Tests for format_seek_value."""

    def test_string_kept_verbatim(self) -> None:
        assert format_seek_value("00:01:30") == "00:01:30"

    def test_number_as_seconds(self) -> None:
        assert format_seek_value(12.5) == "12.5"

    def test_invalid_raises(self) -> None:
        with pytest.raises(TimemarkError):
            format_seek_value("soon")
