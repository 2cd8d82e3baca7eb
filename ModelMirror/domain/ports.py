from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Protocol

from ModelMirror.domain.entities import DownloadRecord, TreeEntry


class TreeClient(Protocol):
    def list_children(self, path: str, revision: str) -> List[TreeEntry]: ...


class FileFetcher(Protocol):
    def fetch(self, path: str, revision: str, destination: Path) -> int: ...


class StatusStore(Protocol):
    def lookup(self, relative_path: str) -> Optional[DownloadRecord]: ...

    def record(self, relative_path: str, size: int, revision: str, now: datetime) -> None: ...


class DurableMap(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...
