"""Property-based tests for the playlist parser."""

from hypothesis import given
from hypothesis import strategies as st

from m3u8_dl.utils.playlist import parse_playlist

BODY_LINES = st.sampled_from(
    [
        "#EXTINF:10,",
        "#EXTINF:4.5,title",
        "",
        "a.ts",
        "https://other.example.com/x.ts",
        "#EXT-X-ENDLIST",
    ]
)


def count_referenced_infos(lines: list[str]) -> int:
    """#EXTINF lines directly followed by a reference line, up to #EXT-X-ENDLIST."""
    if "#EXT-X-ENDLIST" in lines:
        lines = lines[: lines.index("#EXT-X-ENDLIST")]
    return sum(
        1
        for current, following in zip(lines, lines[1:])
        if current.startswith("#EXTINF") and following and not following.startswith("#")
    )


@given(st.lists(BODY_LINES, max_size=40))
def test_segment_count_matches_referenced_infos(body):
    lines = ["#EXTM3U", "#EXT-X-VERSION:3", *body]
    playlist = parse_playlist("\n".join(lines))

    assert len(playlist.segments) == len(playlist.entries)
    assert len(playlist.segments) == count_referenced_infos(lines)


@given(st.lists(BODY_LINES, max_size=40), st.sampled_from(["\n", "\r\n"]))
def test_parsing_twice_gives_the_same_segments(body, newline):
    text = newline.join(["#EXT-X-VERSION:3", *body])
    assert parse_playlist(text).segments == parse_playlist(text).segments


@given(st.lists(BODY_LINES, max_size=40))
def test_segments_are_never_blank_or_tags(body):
    for segment in parse_playlist("\n".join(body)).segments:
        assert segment
        assert not segment.startswith("#")
