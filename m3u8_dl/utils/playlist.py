"""
Parser for HLS media playlists (the `#EXTM3U` / `.m3u8` format).

Only the subset needed to download a finished media playlist is honoured:

    #EXT-X-VERSION:<n>      must be 3
    #EXTINF:<duration>,...  announces that the next line is a segment reference
    #EXT-X-ENDLIST          ends the segment list; anything after it is ignored

Every other tag or comment line is passed over.
"""

import logging
import math
import re
from enum import Enum
from pathlib import Path

from m3u8_dl.exceptions import (
    MalformedTagError,
    UnreadableInputError,
    UnsupportedVersionError,
)
from m3u8_dl.models.playlist import Playlist, SegmentEntry

log = logging.getLogger(__name__)

SUPPORTED_VERSION = 3

VERSION_TAG = "#EXT-X-VERSION"
SEGMENT_INFO_TAG = "#EXTINF"
END_LIST_TAG = "#EXT-X-ENDLIST"

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


class LineKind(Enum):
    BLANK = "blank"
    VERSION = "version"
    SEGMENT_INFO = "segment_info"
    END_LIST = "end_list"
    OTHER_TAG = "other_tag"  # Unhandled tags and comments
    URI = "uri"


def _is_tag(line: str, tag: str) -> bool:
    return line == tag or line.startswith(tag + ":")


def classify_line(line: str) -> LineKind:
    """Classifies a single, already stripped, manifest line."""
    if not line:
        return LineKind.BLANK
    if not line.startswith("#"):
        return LineKind.URI
    if line == END_LIST_TAG:
        return LineKind.END_LIST
    if _is_tag(line, VERSION_TAG):
        return LineKind.VERSION
    if _is_tag(line, SEGMENT_INFO_TAG):
        return LineKind.SEGMENT_INFO
    return LineKind.OTHER_TAG


def _tag_payload(line: str, tag: str, line_number: int) -> str:
    """Returns the text after `<tag>:`, or raises if the separator is missing."""
    rest = line[len(tag) :]
    if not rest.startswith(":"):
        raise MalformedTagError(line, line_number)
    return rest[1:].strip()


def _parse_version(line: str, line_number: int) -> int:
    payload = _tag_payload(line, VERSION_TAG, line_number)
    try:
        version = int(payload)
    except ValueError as e:
        raise MalformedTagError(line, line_number) from e
    if version != SUPPORTED_VERSION:
        log.debug(f"Rejecting playlist with version {version}: '{line}'")
        raise UnsupportedVersionError(line, version)
    return version


def _parse_segment_info(line: str, line_number: int) -> tuple[float, str]:
    payload = _tag_payload(line, SEGMENT_INFO_TAG, line_number)
    duration_str, _, title = payload.partition(",")
    try:
        duration = float(duration_str.strip())
    except ValueError as e:
        raise MalformedTagError(line, line_number) from e
    if not math.isfinite(duration):
        raise MalformedTagError(line, line_number)
    return duration, title.strip()


def _decode(content: str | bytes) -> str:
    if isinstance(content, bytes):
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise UnreadableInputError(f"Playlist is not valid UTF-8: {e}") from e
    return content.removeprefix("\ufeff")


def parse_playlist(content: str | bytes) -> Playlist:
    """
    Parses manifest text into an ordered, validated Playlist.

    Counting and extraction happen in the same pass, so the number of entries
    always equals the number of `#EXTINF` tags whose reference line is present
    before `#EXT-X-ENDLIST`.

    Raises:
        UnsupportedVersionError: If `#EXT-X-VERSION` is anything but 3.
        MalformedTagError: If a known tag carries an unparsable payload.
        UnreadableInputError: If `content` is bytes that are not valid UTF-8.
    """
    text = _decode(content)

    version: int | None = None
    entries: list[SegmentEntry] = []
    pending: tuple[float, str] | None = None
    ended = False

    for line_number, raw_line in enumerate(_LINE_BREAK_RE.split(text), start=1):
        line = raw_line.strip()
        kind = classify_line(line)

        if kind is LineKind.END_LIST:
            ended = True
            break
        if kind is LineKind.VERSION:
            version = _parse_version(line, line_number)
        elif kind is LineKind.SEGMENT_INFO:
            if pending is not None:
                log.debug(f"Line {line_number}: previous #EXTINF had no reference.")
            pending = _parse_segment_info(line, line_number)
        elif kind is LineKind.BLANK:
            if pending is not None:
                log.debug(f"Line {line_number}: skipping #EXTINF with empty reference.")
            pending = None
        elif kind is LineKind.URI and pending is not None:
            duration, title = pending
            entries.append(SegmentEntry(uri=line, duration=duration, title=title))
            pending = None

    log.debug(f"Parsed playlist: {len(entries)} segments, version={version}")
    return Playlist(version=version, entries=tuple(entries), ended=ended)


def parse_playlist_file(path: Path) -> Playlist:
    """Reads a persisted manifest from disk and parses it."""
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        raise UnreadableInputError(f"Cannot read playlist file '{path}': {e}") from e
    return parse_playlist(content)
