"""Unit tests for segment URL resolution."""

import pytest

from m3u8_dl.exceptions import MalformedBaseUrlError
from m3u8_dl.utils.path import (
    is_absolute_reference,
    resolve_segment_url,
    validate_base_url,
)

BASE = "https://cdn.example.com/show/index.m3u8"


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("seg0.ts", "https://cdn.example.com/show/seg0.ts"),
        ("https://other.example.com/x.ts", "https://other.example.com/x.ts"),
        ("http://other.example.com/x.ts", "http://other.example.com/x.ts"),
        ("HTTPS://other.example.com/x.ts", "HTTPS://other.example.com/x.ts"),
        ("hd/seg0.ts", "https://cdn.example.com/show/hd/seg0.ts"),
        ("/root/seg0.ts", "https://cdn.example.com/root/seg0.ts"),
        ("../other/seg0.ts", "https://cdn.example.com/other/seg0.ts"),
        ("//mirror.example.com/seg0.ts", "https://mirror.example.com/seg0.ts"),
        ("seg0.ts?token=abc", "https://cdn.example.com/show/seg0.ts?token=abc"),
        ("h", "https://cdn.example.com/show/h"),
        ("http", "https://cdn.example.com/show/http"),
        ("https.ts", "https://cdn.example.com/show/https.ts"),
    ],
)
def test_resolve_segment_url(reference, expected):
    assert resolve_segment_url(reference, BASE) == expected


def test_base_directory_without_trailing_file():
    assert (
        resolve_segment_url("a.ts", "https://cdn.example.com/show/")
        == "https://cdn.example.com/show/a.ts"
    )


def test_base_query_is_not_carried_over():
    base = "https://cdn.example.com/show/index.m3u8?sig=1"
    assert resolve_segment_url("a.ts", base) == "https://cdn.example.com/show/a.ts"


@pytest.mark.parametrize(
    "base",
    ["", "index.m3u8", "/show/index.m3u8", "ftp://cdn.example.com/a.m3u8", "https://"],
)
def test_malformed_base_url(base):
    with pytest.raises(MalformedBaseUrlError):
        resolve_segment_url("a.ts", base)


def test_validate_base_url_returns_url():
    assert validate_base_url(BASE) == BASE


def test_empty_reference_rejected():
    with pytest.raises(ValueError):
        resolve_segment_url("", BASE)


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("https://a/b.ts", True),
        ("http://a/b.ts", True),
        ("ftp://a/b.ts", False),
        ("b.ts", False),
        ("h", False),
        ("", False),
    ],
)
def test_is_absolute_reference(reference, expected):
    assert is_absolute_reference(reference) is expected
