"""Tests for duration parsing, short-form classification and formatting."""

import pytest

from artistlink.domain.value_objects import (
    SHORT_FORM_MAX_SECONDS,
    DurationClassifier,
    classify,
    format_duration,
    parse_duration,
)


class TestParseDuration:
    """Test ISO-8601 duration parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("PT1H2M3S", 3723),
            ("PT4M13S", 253),
            ("PT45S", 45),
            ("PT1H", 3600),
            ("PT10M", 600),
            ("PT0S", 0),
        ],
    )
    def test_parses_time_designators(self, raw: str, expected: int) -> None:
        """Test hours, minutes and seconds groups (absent groups count as zero)."""
        assert parse_duration(raw) == expected

    @pytest.mark.parametrize("raw", ["", None, "garbage", "1:23"])
    def test_unparseable_input_is_zero(self, raw: str | None) -> None:
        """Test that unusable input yields 0 instead of raising."""
        assert parse_duration(raw) == 0


class TestClassify:
    """Test short-form classification."""

    def test_boundary_is_inclusive(self) -> None:
        """Test that exactly 60 seconds is still short-form."""
        assert SHORT_FORM_MAX_SECONDS == 60
        assert classify(60) is True
        assert classify(61) is False

    def test_zero_duration_is_short(self) -> None:
        """Test that a missing duration (0s) classifies as short."""
        assert classify(0) is True

    def test_custom_threshold(self) -> None:
        """Test classifier with a different short-form limit."""
        classifier = DurationClassifier(short_form_max_seconds=90)
        assert classifier.classify(90) is True
        assert classifier.classify(91) is False


class TestFormatDuration:
    """Test display formatting."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "0:00"),
            (5, "0:05"),
            (59, "0:59"),
            (253, "4:13"),
            (600, "10:00"),
            (3600, "1:00:00"),
            (3723, "1:02:03"),
        ],
    )
    def test_formats(self, seconds: int, expected: str) -> None:
        """Test M:SS below an hour and H:MM:SS above."""
        assert format_duration(seconds) == expected

    def test_negative_is_clamped(self) -> None:
        assert format_duration(-5) == "0:00"

    def test_classifier_delegates(self) -> None:
        """Test the injectable classifier wraps the module helpers."""
        classifier = DurationClassifier()
        seconds = classifier.parse("PT1M1S")
        assert seconds == 61
        assert classifier.format(seconds) == "1:01"
        assert classifier.classify(seconds) is False
