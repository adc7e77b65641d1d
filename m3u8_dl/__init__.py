"""
m3u8-dl: download HLS playlists and their media segments.
"""

__version__ = "0.3.0"
