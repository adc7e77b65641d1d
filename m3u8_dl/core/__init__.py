"""
Core application engine for orchestrating the download process.

The `DownloadManager` creates jobs, parses their playlists and fetches every
segment in order, recording progress in the `JobStore`.
"""
