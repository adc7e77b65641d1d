import json
import logging

from m3u8_dl.utils.structured_logger import create_structured_logger


def test_events_are_written_as_json_lines(tmp_path):
    base, job_logger = create_structured_logger(tmp_path / "logs", enable_json=True)
    base.set_session_context(output_dir="downloads")
    try:
        job_logger.job_created("job-1", "https://cdn.example.com/a.m3u8", 120)
        job_logger.playlist_unterminated("job-1", 4)
        job_logger.job_failed("job-1", "UnreadableSourceError", "HTTP 404", 2)
    finally:
        base.close()

    (log_file,) = (tmp_path / "logs").glob("m3u8_dl_*.jsonl")
    assert base.sink.path == log_file
    entries = [json.loads(line) for line in log_file.read_text().splitlines()]

    assert [entry["event"] for entry in entries] == [
        "job_created",
        "playlist_unterminated",
        "job_failed",
    ]
    assert entries[0]["manifest_bytes"] == 120
    assert entries[1]["level"] == "WARNING"
    assert entries[2]["level"] == "ERROR"
    assert entries[2]["downloaded_segments"] == 2
    assert all(entry["output_dir"] == "downloads" for entry in entries)


def test_events_after_close_are_dropped(tmp_path):
    base, job_logger = create_structured_logger(tmp_path, enable_json=True)
    base.close()
    job_logger.job_started("job-3", 2, 3)

    (log_file,) = tmp_path.glob("m3u8_dl_*.jsonl")
    assert log_file.read_text() == ""


def test_console_only_by_default(tmp_path, caplog):
    base, job_logger = create_structured_logger(tmp_path)
    with caplog.at_level(logging.INFO, logger="m3u8_dl.events"):
        job_logger.job_completed("job-2", 3, 2048, 1.5)
    base.close()

    assert base.sink is None
    assert list(tmp_path.iterdir()) == []
    assert "[job_completed]" in caplog.text
    assert "total_segments=3" in caplog.text
