from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_API_BASE = 'https://modelscope.cn/api/v1/models'
DEFAULT_TIMEOUT = 30.0


def default_documents_dir() -> Path:
    xdg = os.environ.get('XDG_DOCUMENTS_DIR')
    if xdg:
        return Path(xdg).expanduser()
    return Path.home() / 'Documents'


@dataclass(frozen=True)
class MirrorConfig:
    """Filesystem locations and endpoint settings derived from environment variables."""

    download_root: Path
    status_file: Path
    log_dir: Path
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT

    @staticmethod
    def _resolve_env(name: str, default: Path) -> Path:
        value = os.environ.get(name)
        if value:
            return Path(value).expanduser().resolve()
        return default.expanduser().resolve()

    @staticmethod
    def _resolve_timeout(name: str) -> float:
        value = os.environ.get(name)
        if not value:
            return DEFAULT_TIMEOUT
        try:
            timeout = float(value)
        except ValueError:
            return DEFAULT_TIMEOUT
        return timeout if timeout > 0 else DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls) -> 'MirrorConfig':
        state_root = Path.home() / '.cache' / 'modelmirror'
        download_root = cls._resolve_env('MODELSCOPE_DOWNLOAD_ROOT', default_documents_dir())
        status_file = cls._resolve_env('MODELSCOPE_STATUS_FILE', state_root / 'status.json')
        log_dir = cls._resolve_env('MODELSCOPE_LOG_DIR', state_root / 'logs')
        api_base = os.environ.get('MODELSCOPE_API_BASE') or DEFAULT_API_BASE
        return cls(
            download_root=download_root,
            status_file=status_file,
            log_dir=log_dir,
            api_base=api_base.rstrip('/'),
            timeout=cls._resolve_timeout('MODELSCOPE_HTTP_TIMEOUT'),
        )

    def with_overrides(self, **overrides) -> 'MirrorConfig':
        values = {
            'download_root': self.download_root,
            'status_file': self.status_file,
            'log_dir': self.log_dir,
            'api_base': self.api_base,
            'timeout': self.timeout,
        }
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in values:
                raise TypeError(f'Unknown config field: {key}')
            if key in ('download_root', 'status_file', 'log_dir'):
                value = Path(value).expanduser().resolve()
            elif key == 'api_base':
                value = str(value).rstrip('/')
            values[key] = value
        return MirrorConfig(**values)
