"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from m3u8_dl.models.job import Job, JobStatus
from m3u8_dl.models.playlist import Playlist
from m3u8_dl.models.stats import DownloadStats
from m3u8_dl.utils.formatting import format_duration, format_size, short_id
from m3u8_dl.utils.path import resolve_segment_url

STATUS_STYLES = {
    JobStatus.READY_TO_DOWNLOAD: "cyan",
    JobStatus.DOWNLOADING: "blue",
    JobStatus.DOWNLOADED: "green",
    JobStatus.FAILED: "red",
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "UnreadableSourceError": [
            "• Check that the URL opens in a browser or with curl.",
            "• The server may require cookies or a Referer header.",
            "• Retry transient failures with `--retries 3`.",
        ],
        "UnsupportedVersionError": [
            "• Only #EXT-X-VERSION:3 playlists are supported.",
        ],
        "MalformedTagError": [
            "• The playlist is not a valid HLS media playlist.",
            "• If the URL points to a master playlist, pick one variant URL.",
        ],
        "MalformedBaseUrlError": [
            "• Pass a full http:// or https:// URL.",
        ],
        "StorageWriteError": [
            "• Check free disk space and permissions of the output directory.",
            "• Choose another directory with `-o`.",
        ],
        "ConfigurationError": [
            "• Inspect the config with `m3u8-dl --show-config`.",
            "• Recreate it with `m3u8-dl init --force`.",
        ],
        "TimeoutError": [
            "• The server is slow to answer; raise `--timeout`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def build_jobs_table(jobs: list[Job]) -> Table:
    table = Table(box=box.SIMPLE_HEAVY, show_lines=False)
    table.add_column("Job", style="dim")
    table.add_column("Status")
    table.add_column("Segments", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Location / Error")

    for job in jobs:
        style = STATUS_STYLES[job.status]
        detail = (
            f"[red]{escape(job.failure_kind or '')}: "
            f"{escape(job.failure_reason or '')}[/red]"
            if job.status == JobStatus.FAILED
            else escape(job.storage_location)
        )
        table.add_row(
            short_id(job.id),
            f"[{style}]{job.status.value}[/{style}]",
            f"{job.downloaded_segments}/{job.total_segments} ({job.progress:.0%})",
            format_size(job.bytes_downloaded),
            detail,
        )
    return table


def print_summary_panel(
    stats: DownloadStats, jobs: list[Job], duration: float, console: Console
):
    """Prints the per-job table and the session summary."""
    if jobs:
        console.print(build_jobs_table(jobs))

    summary = Table.grid(padding=(0, 2))
    summary.add_column(style="bold cyan", justify="right")
    summary.add_column()
    summary.add_row("Downloaded:", f"[green]{stats.jobs_downloaded}[/green] jobs")
    summary.add_row("Failed:", f"[red]{stats.jobs_failed}[/red] jobs")
    summary.add_row("Segments:", str(stats.segments_downloaded))
    summary.add_row("Total Size:", format_size(stats.total_size_downloaded))
    summary.add_row("Duration:", format_duration(duration))
    if stats.peak_speed_bps > 0:
        summary.add_row("Peak Speed:", f"{format_size(stats.peak_speed_bps)}/s")

    border = "green" if stats.jobs_failed == 0 else "yellow"
    console.print(Panel(summary, title="Session Summary", border_style=border))


def print_playlist_table(
    playlist: Playlist, console: Console, base_url: str | None = None
):
    """Lists the segments of a parsed playlist."""
    table = Table(box=box.SIMPLE, show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Duration", justify="right")
    table.add_column("Reference")
    if base_url:
        table.add_column("Resolved URL", style="cyan")

    for index, entry in enumerate(playlist.entries):
        row = [str(index), f"{entry.duration:.3f}s", escape(entry.uri)]
        if base_url:
            row.append(escape(resolve_segment_url(entry.uri, base_url)))
        table.add_row(*row)

    console.print(table)
    version = playlist.version if playlist.version is not None else "not declared"
    console.print(
        f"[bold]Version:[/bold] {version}  "
        f"[bold]Segments:[/bold] {len(playlist)}  "
        f"[bold]Duration:[/bold] {format_duration(playlist.total_duration)}  "
        f"[bold]Complete:[/bold] {'yes' if playlist.ended else 'no'}"
    )
