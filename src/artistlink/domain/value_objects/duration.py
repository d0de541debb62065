"""Duration parsing, short-form classification and display formatting.

Remote platforms report durations as ISO-8601 time designators
("PT1H2M3S"). We only ever need the time part: days/weeks never occur for
uploaded videos.
"""

import re

# Hey future me - unanchored search on purpose! "PT45S" and "P0DT45S"-style prefixes both match,
# and garbage simply yields no groups -> 0 seconds. Unparseable input is NOT an error here,
# a missing duration must never abort a sync.
_DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")

# Items at or below this length are short-form (Shorts, Reels). Inclusive boundary.
SHORT_FORM_MAX_SECONDS = 60


def parse_duration(raw: str | None) -> int:
    """Parse an ISO-8601 duration ("PT1H2M3S") into seconds.

    Absent groups count as zero; unparseable input returns 0.
    """
    if not raw:
        return 0

    match = _DURATION_PATTERN.search(raw)
    if match is None:
        return 0

    hours, minutes, seconds = (int(group) if group else 0 for group in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def classify(seconds: int) -> bool:
    """Return True when the duration counts as short-form content."""
    return seconds <= SHORT_FORM_MAX_SECONDS


def format_duration(seconds: int) -> str:
    """Format seconds as "H:MM:SS" (with hours) or "M:SS"."""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class DurationClassifier:
    """Bundle of the duration helpers, injectable into the reconciliation engine."""

    def __init__(self, short_form_max_seconds: int = SHORT_FORM_MAX_SECONDS) -> None:
        self.short_form_max_seconds = short_form_max_seconds

    def parse(self, raw: str | None) -> int:
        return parse_duration(raw)

    def classify(self, seconds: int) -> bool:
        return seconds <= self.short_form_max_seconds

    def format(self, seconds: int) -> str:
        return format_duration(seconds)
