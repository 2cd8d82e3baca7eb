from __future__ import annotations

import csv
import json
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, TextIO


LEVELS: Dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def _now_utc() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


@dataclass
class StructuredCsvLogger:
    """Append-only CSV event log, one file per component and run."""

    component: str
    log_dir: Path
    run_id: str
    min_level: str = "INFO"
    fieldnames: tuple[str, ...] = ("run_id", "timestamp", "level", "component", "message", "context")
    bound_context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        safe_component = self.component.replace("/", "-")
        self._file_path = self.log_dir / f"{safe_component}_{self.run_id}.csv"
        self._handle: Optional[TextIO] = None
        self._writer: Optional[csv.DictWriter[str]] = None

    @property
    def file_path(self) -> Path:
        return self._file_path

    def _ensure_writer(self) -> csv.DictWriter[str]:
        if self._writer is None:
            self._handle = self._file_path.open("a", newline="", encoding="utf-8")
            self._writer = csv.DictWriter(self._handle, fieldnames=self.fieldnames)
            if self._file_path.stat().st_size == 0:
                self._writer.writeheader()
        return self._writer

    def _serialize_context(self, context: Dict[str, Any] | None) -> str:
        merged = {**self.bound_context, **(context or {})}
        if not merged:
            return ""
        return json.dumps(merged, ensure_ascii=False, sort_keys=True, default=str)

    def _write(self, level: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        if LEVELS.get(level, 0) < LEVELS.get(self.min_level.upper(), 0):
            return
        writer = self._ensure_writer()
        writer.writerow(
            {
                "run_id": self.run_id,
                "timestamp": _now_utc(),
                "level": level,
                "component": self.component,
                "message": message,
                "context": self._serialize_context(context),
            }
        )
        if self._handle:
            self._handle.flush()

    def debug(self, message: str, **context: Any) -> None:
        self._write("DEBUG", message, context or None)

    def info(self, message: str, **context: Any) -> None:
        self._write("INFO", message, context or None)

    def warning(self, message: str, **context: Any) -> None:
        self._write("WARN", message, context or None)

    def error(self, message: str, **context: Any) -> None:
        self._write("ERROR", message, context or None)

    def exception(self, message: str, **context: Any) -> None:
        context.setdefault("traceback", traceback.format_exc())
        self._write("ERROR", message, context)

    def close(self) -> None:
        if self._handle:
            self._handle.close()
            self._handle = None
            self._writer = None

    def __enter__(self) -> "StructuredCsvLogger":
        return self

    def __exit__(self, *_exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:  # pragma: no cover - interpreter shutdown
        self.close()


def get_csv_logger(
    component: str,
    *,
    log_dir: Path | None = None,
    run_id: str | None = None,
    min_level: str = "INFO",
) -> StructuredCsvLogger:
    if log_dir is None:
        from ModelMirror.domain.path_config import MirrorConfig  # Imported lazily to avoid cycles

        log_dir = MirrorConfig.from_env().log_dir
    if run_id is None:
        run_id = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S-%f")
    return StructuredCsvLogger(component=component, log_dir=Path(log_dir), run_id=run_id, min_level=min_level)
