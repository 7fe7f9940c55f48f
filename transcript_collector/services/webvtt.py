"""WebVTT caption parsing."""

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

# HH:MM:SS.mmm --> HH:MM:SS.mmm
TIMESTAMP_PATTERN = re.compile(
    r"^(\d{2}):(\d{2}):(\d{2})\.(\d{3})\s*-->\s*(\d{2}):(\d{2}):(\d{2})\.(\d{3})$"
)

# WEBVTT / Kind / Language
HEADER_LINES = 3


@dataclass
class CaptionSegment:
    """One caption cue."""

    start_time: timedelta
    end_time: timedelta
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": format_timestamp(self.start_time),
            "end_time": format_timestamp(self.end_time),
            "text": self.text,
        }


def _to_timedelta(hours: str, minutes: str, seconds: str, millis: str) -> timedelta:
    return timedelta(
        hours=int(hours),
        minutes=int(minutes),
        seconds=int(seconds),
        milliseconds=int(millis),
    )


def format_timestamp(value: timedelta) -> str:
    total_ms = round(value.total_seconds() * 1000)
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def parse_webvtt(content: str) -> list[CaptionSegment]:
    """Parse WebVTT captions into (start, end, text) segments.

    The header lines are skipped, as is anything that is not a cue timing
    line or the text following one. Multi-line cue text is joined with spaces;
    cues without text are dropped.
    """
    lines = content.split("\n")
    segments: list[CaptionSegment] = []

    i = HEADER_LINES
    while i < len(lines):
        match = TIMESTAMP_PATTERN.match(lines[i].strip())
        if not match:
            i += 1
            continue

        groups = match.groups()
        start_time = _to_timedelta(*groups[:4])
        end_time = _to_timedelta(*groups[4:])

        text_lines: list[str] = []
        j = i + 1
        while j < len(lines):
            text_line = lines[j].strip()
            if not text_line or TIMESTAMP_PATTERN.match(text_line):
                break
            text_lines.append(text_line)
            j += 1

        if text_lines:
            segments.append(CaptionSegment(start_time, end_time, " ".join(text_lines)))
        i = j

    return segments


def is_html_content(content: str) -> bool:
    """An HTML body instead of captions means the session cookies were rejected."""
    trimmed = content.lstrip()
    lowered = trimmed[:20].lower()
    return (
        lowered.startswith("<!doctype")
        or lowered.startswith("<html")
        or lowered.startswith("<?xml")
        or ("<html" in trimmed and "</html>" in trimmed)
    )
