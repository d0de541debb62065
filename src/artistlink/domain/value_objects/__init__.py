"""Domain value objects."""

from artistlink.domain.value_objects.duration import (
    SHORT_FORM_MAX_SECONDS,
    DurationClassifier,
    classify,
    format_duration,
    parse_duration,
)

__all__ = [
    "SHORT_FORM_MAX_SECONDS",
    "DurationClassifier",
    "classify",
    "format_duration",
    "parse_duration",
]
