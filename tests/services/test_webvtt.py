"""Tests for WebVTT caption parsing."""

from datetime import timedelta

from transcript_collector.services.webvtt import (
    CaptionSegment,
    format_timestamp,
    is_html_content,
    parse_webvtt,
)

SAMPLE_VTT = """WEBVTT
Kind: captions
Language: en

00:00:01.000 --> 00:00:04.500
Hello everyone

00:00:05.000 --> 00:00:07.250
Let's get
started

00:00:08.000 --> 00:00:09.000

01:02:03.004 --> 01:02:05.000
Wrapping up
"""


def test_parse_webvtt_segments():
    segments = parse_webvtt(SAMPLE_VTT)

    assert [s.text for s in segments] == ["Hello everyone", "Let's get started", "Wrapping up"]
    assert segments[0].start_time == timedelta(seconds=1)
    assert segments[0].end_time == timedelta(seconds=4, milliseconds=500)
    assert segments[2].start_time == timedelta(hours=1, minutes=2, seconds=3, milliseconds=4)


def test_parse_webvtt_handles_crlf():
    segments = parse_webvtt(SAMPLE_VTT.replace("\n", "\r\n"))
    assert len(segments) == 3


def test_parse_webvtt_empty():
    assert parse_webvtt("WEBVTT\nKind: captions\nLanguage: en\n") == []


def test_segment_to_dict():
    segment = CaptionSegment(timedelta(seconds=61, milliseconds=5), timedelta(minutes=2), "Hi")
    assert segment.to_dict() == {"start_time": "00:01:01.005", "end_time": "00:02:00.000", "text": "Hi"}


def test_format_timestamp():
    assert format_timestamp(timedelta(hours=10, milliseconds=1)) == "10:00:00.001"


def test_is_html_content():
    assert is_html_content("<!DOCTYPE html><html><body>Sign in</body></html>")
    assert is_html_content("  <html lang='en'>")
    assert is_html_content("preamble <html><body></body></html>")
    assert not is_html_content(SAMPLE_VTT)
