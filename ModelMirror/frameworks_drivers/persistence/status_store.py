from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ModelMirror.domain.entities import DownloadRecord
from ModelMirror.domain.ports import DurableMap
from ModelMirror.frameworks_drivers.logging.csv_logger import StructuredCsvLogger


DOWNLOADED_FILES_KEY = 'ModelDownloadManager.downloadedFiles'


def _encode_record(record: DownloadRecord) -> Dict[str, Any]:
    return {
        'relativePath': record.relative_path,
        'size': record.size,
        'revision': record.revision,
        'lastModified': record.last_modified.isoformat(),
    }


def _decode_record(key: str, raw: Dict[str, Any]) -> DownloadRecord:
    last_modified = datetime.fromisoformat(raw['lastModified'])
    if last_modified.tzinfo is None:
        last_modified = last_modified.replace(tzinfo=timezone.utc)
    return DownloadRecord(
        relative_path=raw.get('relativePath', key),
        size=int(raw['size']),
        revision=str(raw['revision']),
        last_modified=last_modified,
    )


class DownloadStatusStore:
    """Remembers which server paths were fetched, at what size and revision.

    Records are keyed by the server-relative path so they stay valid when the
    local destination moves. The whole mapping is stored as one JSON value
    under ``DOWNLOADED_FILES_KEY`` and rewritten on every ``record`` call.
    """

    def __init__(self, backend: DurableMap, *, logger: StructuredCsvLogger | None = None) -> None:
        self.backend = backend
        self.logger = logger
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        raw = self.backend.get(DOWNLOADED_FILES_KEY)
        if not raw:
            return {}
        try:
            mapping = json.loads(raw)
        except ValueError:
            mapping = None
        if not isinstance(mapping, dict):
            if self.logger:
                self.logger.warning('status_store_unreadable', key=DOWNLOADED_FILES_KEY)
            return {}
        return mapping

    def lookup(self, relative_path: str) -> Optional[DownloadRecord]:
        raw = self._load().get(relative_path)
        if not isinstance(raw, dict):
            return None
        try:
            return _decode_record(relative_path, raw)
        except (KeyError, TypeError, ValueError):
            if self.logger:
                self.logger.warning('status_record_unreadable', relative_path=relative_path)
            return None

    def record(self, relative_path: str, size: int, revision: str, now: datetime) -> None:
        record = DownloadRecord(relative_path=relative_path, size=size, revision=revision, last_modified=now)
        with self._lock:
            mapping = self._load()
            mapping[relative_path] = _encode_record(record)
            self.backend.set(DOWNLOADED_FILES_KEY, json.dumps(mapping, ensure_ascii=False, sort_keys=True))

    def all_records(self) -> Dict[str, DownloadRecord]:
        records: Dict[str, DownloadRecord] = {}
        for key, raw in self._load().items():
            if not isinstance(raw, dict):
                continue
            try:
                records[key] = _decode_record(key, raw)
            except (KeyError, TypeError, ValueError):
                continue
        return records
