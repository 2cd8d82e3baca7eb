import csv
import json
from pathlib import Path

from ModelMirror.frameworks_drivers.logging.csv_logger import get_csv_logger


def _rows(path: Path):
    with path.open(encoding="utf-8", newline="") as handle:
        return list(csv.DictReader(handle))


def test_rows_carry_bound_and_call_context(tmp_path: Path) -> None:
    logger = get_csv_logger("download/cli", log_dir=tmp_path, run_id="r1")
    logger.bound_context.update(repo="owner/repo")

    logger.info("file_fetched", path="m1/a.bin", size=3)
    logger.warning("status_store_unreadable")
    logger.close()

    assert logger.file_path == tmp_path / "download-cli_r1.csv"
    rows = _rows(logger.file_path)
    assert [row["level"] for row in rows] == ["INFO", "WARN"]
    assert json.loads(rows[0]["context"]) == {"path": "m1/a.bin", "repo": "owner/repo", "size": 3}
    assert json.loads(rows[1]["context"]) == {"repo": "owner/repo"}
    assert rows[0]["timestamp"].endswith("Z")


def test_min_level_filters_debug(tmp_path: Path) -> None:
    with get_csv_logger("walker", log_dir=tmp_path, run_id="r2") as logger:
        logger.debug("directory_listed", path="m1")
        logger.error("download_failed", error="boom")

    rows = _rows(logger.file_path)
    assert [row["message"] for row in rows] == ["download_failed"]


def test_exception_records_traceback(tmp_path: Path) -> None:
    logger = get_csv_logger("walker", log_dir=tmp_path, run_id="r3")
    try:
        raise OSError("disk full")
    except OSError:
        logger.exception("download_failed")
    logger.close()

    context = json.loads(_rows(logger.file_path)[0]["context"])
    assert "disk full" in context["traceback"]


def test_default_log_dir_comes_from_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MODELSCOPE_LOG_DIR", str(tmp_path / "env-logs"))

    logger = get_csv_logger("walker", run_id="r4")
    logger.info("download_session_started")
    logger.close()

    assert logger.file_path.parent == (tmp_path / "env-logs").resolve()
