"""
Utilities for handling file paths and resolving segment URLs.
"""

import re
from pathlib import Path
from urllib.parse import urljoin, urlsplit

from m3u8_dl.exceptions import MalformedBaseUrlError

ABSOLUTE_SCHEMES = ("http", "https")

# RFC 3986 scheme: ALPHA *( ALPHA / DIGIT / "+" / "-" / "." ) ":"
_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*):")


def validate_base_url(url: str) -> str:
    """Ensures a URL can serve as the base for relative segment references."""
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise MalformedBaseUrlError(f"Cannot parse URL '{url}': {e}") from e
    if parts.scheme.lower() not in ABSOLUTE_SCHEMES or not parts.netloc:
        raise MalformedBaseUrlError(
            f"'{url}' is not an absolute http(s) URL."
        )
    return url


def is_absolute_reference(reference: str) -> bool:
    """True if the reference starts with an http or https scheme."""
    match = _SCHEME_RE.match(reference)
    return bool(match) and match.group(1).lower() in ABSOLUTE_SCHEMES


def resolve_segment_url(reference: str, source_url: str) -> str:
    """
    Resolves a segment reference against the manifest URL it came from.

    Absolute references are returned unchanged; everything else is resolved
    relative to the manifest's directory following RFC 3986, e.g.
    `seg0.ts` against `https://cdn.example.com/show/index.m3u8` gives
    `https://cdn.example.com/show/seg0.ts`.
    """
    validate_base_url(source_url)
    if not reference:
        raise ValueError("Segment reference cannot be empty.")
    if is_absolute_reference(reference):
        return reference
    return urljoin(source_url, reference)


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)
