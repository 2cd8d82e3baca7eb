from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional


class EntryKind(str, Enum):
    FILE = 'blob'
    DIRECTORY = 'tree'


@dataclass(frozen=True)
class TreeEntry:
    kind: EntryKind
    name: str
    path: str
    size: int
    revision: str

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


@dataclass(frozen=True)
class DownloadRecord:
    """Last known state of a fetched file, keyed by its server-relative path."""

    relative_path: str
    size: int
    revision: str
    last_modified: datetime

    def matches(self, entry: TreeEntry) -> bool:
        return self.revision == entry.revision and self.size == entry.size


@dataclass
class ProgressState:
    total_estimate: int = 0
    completed_count: int = 0

    @property
    def fraction(self) -> float:
        return self.completed_count / max(self.total_estimate, 1)


@dataclass(frozen=True)
class DownloadRequest:
    model_id: str
    destination: Optional[Path] = None
    revision: str = ''


@dataclass
class DownloadSummary:
    destination: Path
    fetched: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    directories: List[Path] = field(default_factory=list)
    progress: ProgressState = field(default_factory=ProgressState)

    @property
    def matched(self) -> bool:
        return self.progress.total_estimate > 0
