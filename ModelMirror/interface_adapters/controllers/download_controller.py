from __future__ import annotations

from typing import Dict, List, Optional

import requests

from ModelMirror.app.use_cases.model_download import ModelDownloadManager, ProgressCallback
from ModelMirror.domain.entities import DownloadRecord, DownloadRequest, DownloadSummary
from ModelMirror.domain.path_config import MirrorConfig
from ModelMirror.frameworks_drivers.http.file_fetcher import ModelScopeFileFetcher
from ModelMirror.frameworks_drivers.http.tree_client import ModelScopeTreeClient
from ModelMirror.frameworks_drivers.logging.csv_logger import StructuredCsvLogger
from ModelMirror.frameworks_drivers.persistence.durable_map import JsonFileDurableMap
from ModelMirror.frameworks_drivers.persistence.status_store import DownloadStatusStore


def build_status_store(config: MirrorConfig, logger: Optional[StructuredCsvLogger] = None) -> DownloadStatusStore:
    return DownloadStatusStore(JsonFileDurableMap(config.status_file), logger=logger)


def build_manager(
    repo_path: str,
    config: MirrorConfig,
    logger: Optional[StructuredCsvLogger] = None,
    session: Optional[requests.Session] = None,
) -> ModelDownloadManager:
    http = session or requests.Session()
    tree_client = ModelScopeTreeClient(repo_path, api_base=config.api_base, timeout=config.timeout, session=http)
    fetcher = ModelScopeFileFetcher(repo_path, api_base=config.api_base, timeout=config.timeout, session=http)
    return ModelDownloadManager(
        tree_client,
        fetcher,
        build_status_store(config, logger),
        default_root=config.download_root,
        logger=logger,
    )


def run_download(
    repo_path: str,
    request: DownloadRequest,
    config: MirrorConfig,
    on_progress: Optional[ProgressCallback] = None,
    logger: Optional[StructuredCsvLogger] = None,
) -> DownloadSummary:
    manager = build_manager(repo_path, config, logger)
    return manager.execute(request, on_progress)


def describe_summary(summary: DownloadSummary) -> List[str]:
    messages = [f'Destination: {summary.destination}']
    if not summary.matched:
        messages.append('No matching model folder found at the repository root.')
    messages.append(f'  Fetched: {len(summary.fetched)}')
    messages.append(f'  Skipped: {len(summary.skipped)}')
    messages.append(f'  Directories: {len(summary.directories)}')
    return messages


def describe_status(config: MirrorConfig) -> List[str]:
    records: Dict[str, DownloadRecord] = build_status_store(config).all_records()
    messages = [f'Status file: {config.status_file} ({len(records)} records)']
    for path in sorted(records):
        record = records[path]
        messages.append(f'  {path}  size={record.size} revision={record.revision} at={record.last_modified.isoformat()}')
    return messages
