from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from ModelMirror.domain.errors import DecodeError, LocalWriteError


class InMemoryDurableMap:
    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileDurableMap:
    """Named string values persisted together in one JSON settings file.

    Every ``set`` rewrites the whole file through a temporary sibling and
    ``os.replace`` so readers never observe a half-written document. A file
    that is not a JSON object raises ``DecodeError`` and is never rewritten,
    so keys this process does not own survive.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        try:
            raw = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise LocalWriteError(f'Cannot read {self.path}: {exc}', path=str(self.path)) from exc
        try:
            document = json.loads(raw)
        except ValueError as exc:
            raise DecodeError(f'Settings file {self.path} is not valid JSON: {exc}') from exc
        if not isinstance(document, dict):
            raise DecodeError(f'Settings file {self.path} does not hold a JSON object')
        return document

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            document = self._read_all()
            document[key] = value
            tmp = self.path.with_name(self.path.name + '.tmp')
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(document, ensure_ascii=False, indent=2, sort_keys=True), encoding='utf-8')
                os.replace(tmp, self.path)
            except OSError as exc:
                raise LocalWriteError(f'Cannot write {self.path}: {exc}', path=str(self.path)) from exc
