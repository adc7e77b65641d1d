import pytest
from typer.testing import CliRunner

from m3u8_dl import __version__
from m3u8_dl.cli import app as cli_app
from m3u8_dl.exceptions import MalformedBaseUrlError, UnsupportedVersionError

from conftest import TWO_SEGMENT_MANIFEST, make_manifest

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config" / "config.ini"
    monkeypatch.setattr(cli_app, "CONFIG_FILE", path)
    return path


def test_version():
    result = runner.invoke(cli_app.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_parse_local_file(tmp_path):
    playlist = tmp_path / "index.m3u8"
    playlist.write_text(TWO_SEGMENT_MANIFEST)

    result = runner.invoke(
        cli_app.app,
        ["parse", str(playlist), "--base", "https://cdn.example.com/show/index.m3u8"],
    )

    assert result.exit_code == 0, result.output
    assert "Version: 3" in result.output
    assert "Segments: 2" in result.output
    assert "https://cdn.example.com/show/a.ts" in result.output


def test_parse_rejects_unsupported_version(tmp_path):
    playlist = tmp_path / "index.m3u8"
    playlist.write_text(make_manifest(2, version=4))

    result = runner.invoke(cli_app.app, ["parse", str(playlist)])

    assert result.exit_code != 0
    assert isinstance(result.exception, UnsupportedVersionError)


def test_parse_rejects_malformed_base(tmp_path):
    playlist = tmp_path / "index.m3u8"
    playlist.write_text(TWO_SEGMENT_MANIFEST)

    result = runner.invoke(cli_app.app, ["parse", str(playlist), "--base", "index.m3u8"])

    assert isinstance(result.exception, MalformedBaseUrlError)


def test_init_writes_config(config_file):
    result = runner.invoke(cli_app.app, ["init", "--force"])

    assert result.exit_code == 0, result.output
    assert config_file.is_file()
    assert "max_attempts = 1" in config_file.read_text()


def test_show_config(config_file):
    result = runner.invoke(cli_app.app, ["--show-config"])

    assert result.exit_code == 0, result.output
    assert "max_concurrent_jobs" in result.output
