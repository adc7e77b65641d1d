"""
Immutable containers for the result of parsing a media playlist.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SegmentEntry:
    """A single `#EXTINF` entry and the reference line that follows it."""

    uri: str
    duration: float
    title: str = ""


@dataclass(frozen=True)
class Playlist:
    """An ordered, validated view of a media playlist."""

    version: int | None = None
    entries: tuple[SegmentEntry, ...] = field(default_factory=tuple)
    ended: bool = False

    @property
    def segments(self) -> list[str]:
        """Segment references in playback order."""
        return [entry.uri for entry in self.entries]

    @property
    def total_duration(self) -> float:
        return sum(entry.duration for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)
