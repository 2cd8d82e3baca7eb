from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from ModelMirror.domain.entities import DownloadRequest, DownloadSummary, ProgressState, TreeEntry
from ModelMirror.domain.errors import InvalidDestinationError, LocalWriteError
from ModelMirror.domain.path_config import default_documents_dir
from ModelMirror.domain.ports import FileFetcher, StatusStore, TreeClient
from ModelMirror.frameworks_drivers.logging.csv_logger import StructuredCsvLogger


ProgressCallback = Callable[[float], None]

_FORBIDDEN_NAMES = ('', '.', '..')


class SessionState(str, Enum):
    IDLE = 'idle'
    LISTING = 'listing'
    FILTERING = 'filtering'
    WALKING = 'walking'
    DONE = 'done'
    FAILED = 'failed'


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ignore_progress(_fraction: float) -> None:
    return None


def local_component(name: str) -> str:
    """Return ``name`` if it maps onto exactly one local path component."""
    if name in _FORBIDDEN_NAMES or '/' in name or '\\' in name or '\x00' in name:
        raise InvalidDestinationError(f'Remote entry name cannot be used as a local path component: {name!r}')
    return name


def ensure_directory(path: Path) -> None:
    if path.exists() and not path.is_dir():
        raise InvalidDestinationError(f'Destination exists and is not a directory: {path}')
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise LocalWriteError(f'Cannot create directory {path}: {exc}', path=str(path)) from exc


def select_model_entries(entries: List[TreeEntry], model_id: str) -> List[TreeEntry]:
    return [entry for entry in entries if entry.is_directory and entry.name == model_id]


class DownloadSession:
    """State of one ``download_model`` invocation.

    The walk is depth-first in listing order and driven by an explicit stack of
    listing iterators, so tree depth is bounded by memory rather than by the
    interpreter's recursion limit. Each listed directory adds its child count
    to ``progress.total_estimate`` at the moment it is listed; directory
    entries are counted but never completed, so the fraction reported while
    walking stays below 1.0 whenever the subtree contains directories.
    """

    def __init__(
        self,
        tree_client: TreeClient,
        fetcher: FileFetcher,
        status_store: StatusStore,
        *,
        revision: str = '',
        on_progress: ProgressCallback | None = None,
        logger: StructuredCsvLogger | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.tree_client = tree_client
        self.fetcher = fetcher
        self.status_store = status_store
        self.revision = revision
        self.on_progress = on_progress or _ignore_progress
        self.logger = logger
        self.clock = clock
        self.progress = ProgressState()
        self.state = SessionState.IDLE
        self._last_emitted: Optional[float] = None

    def _log(self, message: str, **context) -> None:
        if self.logger:
            self.logger.info(message, **context)

    def _emit(self, fraction: float) -> None:
        self._last_emitted = fraction
        self.on_progress(fraction)

    def _resolve_file(self, entry: TreeEntry, local_dir: Path, summary: DownloadSummary) -> None:
        destination = local_dir / local_component(entry.name)
        record = self.status_store.lookup(entry.path)
        if record is not None and record.matches(entry) and destination.is_file():
            summary.skipped.append(entry.path)
            self._log('file_skipped', path=entry.path, revision=entry.revision, size=entry.size)
        else:
            written = self.fetcher.fetch(entry.path, entry.revision, destination)
            self.status_store.record(entry.path, entry.size, entry.revision, self.clock())
            summary.fetched.append(entry.path)
            self._log('file_fetched', path=entry.path, revision=entry.revision, size=entry.size, written=written)
        self.progress.completed_count += 1
        self._emit(self.progress.fraction)

    def _walk(self, entries: List[TreeEntry], local_root: Path, summary: DownloadSummary) -> None:
        self.progress.total_estimate += len(entries)
        stack: List[Tuple[Iterator[TreeEntry], Path]] = [(iter(entries), local_root)]
        while stack:
            pending, local_dir = stack[-1]
            entry = next(pending, None)
            if entry is None:
                stack.pop()
                continue
            if not entry.is_directory:
                self._resolve_file(entry, local_dir, summary)
                continue
            subdir = local_dir / local_component(entry.name)
            ensure_directory(subdir)
            summary.directories.append(subdir)
            children = self.tree_client.list_children(entry.path, self.revision)
            self.progress.total_estimate += len(children)
            self._log('directory_listed', path=entry.path, children=len(children), depth=len(stack))
            stack.append((iter(children), subdir))

    def run(self, model_id: str, destination: Path) -> DownloadSummary:
        summary = DownloadSummary(destination=destination, progress=self.progress)
        self._log('download_session_started', model_id=model_id, destination=str(destination), revision=self.revision)
        try:
            ensure_directory(destination)

            self.state = SessionState.LISTING
            root_entries = self.tree_client.list_children('', self.revision)

            self.state = SessionState.FILTERING
            matched = select_model_entries(root_entries, model_id)
            self.progress.total_estimate = len(matched)
            self.progress.completed_count = 0
            if not matched:
                self._log('model_not_found', model_id=model_id, root_entries=len(root_entries))

            self.state = SessionState.WALKING
            self._walk(matched, destination, summary)
        except Exception:
            self.state = SessionState.FAILED
            raise

        if self._last_emitted != 1.0:
            self._emit(1.0)
        self.state = SessionState.DONE
        self._log(
            'download_session_completed',
            model_id=model_id,
            fetched=len(summary.fetched),
            skipped=len(summary.skipped),
            total_estimate=self.progress.total_estimate,
        )
        return summary


class ModelDownloadManager:
    """Mirrors one top-level model folder of a remote repository onto local storage."""

    def __init__(
        self,
        tree_client: TreeClient,
        fetcher: FileFetcher,
        status_store: StatusStore,
        *,
        default_root: Path | None = None,
        logger: StructuredCsvLogger | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.tree_client = tree_client
        self.fetcher = fetcher
        self.status_store = status_store
        self.default_root = default_root
        self.logger = logger
        self.clock = clock
        self.last_session: DownloadSession | None = None

    def download_model(
        self,
        model_id: str,
        destination: Path | None = None,
        on_progress: ProgressCallback | None = None,
        revision: str = '',
    ) -> DownloadSummary:
        root = Path(destination) if destination is not None else (self.default_root or default_documents_dir())
        session = DownloadSession(
            self.tree_client,
            self.fetcher,
            self.status_store,
            revision=revision,
            on_progress=on_progress,
            logger=self.logger,
            clock=self.clock,
        )
        self.last_session = session
        return session.run(model_id, root)

    def execute(self, request: DownloadRequest, on_progress: ProgressCallback | None = None) -> DownloadSummary:
        return self.download_model(
            request.model_id,
            destination=request.destination,
            on_progress=on_progress,
            revision=request.revision,
        )
