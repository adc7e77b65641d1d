"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from contextlib import suppress
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from m3u8_dl import __version__
from m3u8_dl.core.download_manager import DownloadManager
from m3u8_dl.exceptions import M3u8DlError
from m3u8_dl.media.downloader import Downloader
from m3u8_dl.models.job import Job
from m3u8_dl.storage.config_manager import ConfigManager
from m3u8_dl.utils.path import is_absolute_reference, validate_base_url
from m3u8_dl.utils.playlist import parse_playlist, parse_playlist_file
from m3u8_dl.utils.structured_logger import create_structured_logger

from .formatters import (
    print_config,
    print_playlist_table,
    print_summary_panel,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("m3u8_dl")
logging.getLogger("m3u8_dl.events").setLevel("WARNING")

app = typer.Typer(
    name="m3u8-dl",
    help=(
        "Download HLS (.m3u8) playlists and all of their media segments. "
        "Use 'm3u8-dl <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "m3u8-dl"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v for job events, -vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """HLS playlist downloader"""
    if version:
        console.print(f"[bold]m3u8-dl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    if verbose >= 1:
        logging.getLogger("m3u8_dl.events").setLevel("INFO")
    if verbose >= 2:
        logging.getLogger("m3u8_dl").setLevel("DEBUG")
        logging.getLogger("m3u8_dl.events").setLevel("DEBUG")

    if show_config:
        config = ConfigManager(CONFIG_FILE).load_config()
        config_data = config.model_dump(exclude={"config_path", "source_urls"})
        print_config(CONFIG_FILE, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing config file."
    ),
):
    """Write a configuration file with the default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_new_config()
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command(name="download")
def download_command(
    urls: list[str] = typer.Argument(  # noqa: B008
        ..., help="One or more playlist (.m3u8) URLs."
    ),
    output_dir: str | None = typer.Option(
        None, "-o", "--output", help="Directory that receives one folder per job."
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Upper bound in seconds for each HTTP request."
    ),
    retries: int | None = typer.Option(
        None,
        "--retries",
        help="Attempts per request (1 disables retrying transient errors).",
    ),
    jobs: int | None = typer.Option(
        None, "-j", "--jobs", help="Number of playlists downloaded in parallel."
    ),
    log_dir: Path | None = typer.Option(  # noqa: B008
        None, "--log-dir", help="Also write job events as JSON lines to this folder."
    ),
):
    """Download playlists and their segments."""
    cli_options = {
        key: value
        for key, value in {
            "source_urls": list(dict.fromkeys(urls)),
            "output_dir": output_dir,
            "request_timeout": timeout,
            "max_attempts": retries,
            "max_concurrent_jobs": jobs,
        }.items()
        if value is not None
    }

    async def _download_async() -> list[Job]:
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        base_logger, job_logger = create_structured_logger(
            log_dir, enable_json=log_dir is not None
        )
        base_logger.set_session_context(output_dir=config.output_dir)

        finished: list[Job] = []
        start_time = time.monotonic()
        try:
            async with (
                DownloadManager(config, job_logger=job_logger) as manager,
                ProgressManager(console) as progress,
            ):
                job_ids = []
                for url in config.source_urls:
                    known_jobs = len(manager.store)
                    try:
                        job = await manager.create_job(url)
                    except M3u8DlError as e:
                        console.print(f"[red]✗ {escape(url)}:[/red] {escape(str(e))}")
                        # A registered job that failed is already counted
                        if len(manager.store) == known_jobs:
                            manager.stats.jobs_failed += 1
                        continue
                    progress.add_job(job)
                    manager.start_job(job.id)
                    job_ids.append(job.id)

                watcher = asyncio.create_task(progress.track(manager, job_ids))
                finished = await manager.wait_all()
                watcher.cancel()
                with suppress(asyncio.CancelledError):
                    await watcher
                progress.refresh(finished)

            print_summary_panel(
                manager.stats, finished, time.monotonic() - start_time, console
            )
        finally:
            base_logger.close()

        if manager.stats.jobs_failed:
            raise typer.Exit(code=1)
        return finished

    asyncio.run(_download_async())


@app.command(name="parse")
def parse_command(
    source: str = typer.Argument(..., help="A local .m3u8 file or a playlist URL."),
    base_url: str | None = typer.Option(
        None, "--base", help="URL to resolve relative segment references against."
    ),
):
    """Parse a playlist and list its segments without downloading them."""
    if is_absolute_reference(source):
        validate_base_url(source)

        async def _fetch() -> bytes:
            async with Downloader() as downloader:
                return await downloader.fetch_bytes(source)

        playlist = parse_playlist(asyncio.run(_fetch()))
        base_url = base_url or source
    else:
        playlist = parse_playlist_file(Path(source))

    if base_url:
        validate_base_url(base_url)
    print_playlist_table(playlist, console, base_url)
