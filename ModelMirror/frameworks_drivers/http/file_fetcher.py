from __future__ import annotations

import os
import tempfile
from pathlib import Path

import requests

from ModelMirror.domain.errors import LocalWriteError, TransportError
from ModelMirror.domain.path_config import DEFAULT_API_BASE, DEFAULT_TIMEOUT


DEFAULT_REVISION = 'master'
CHUNK_SIZE = 1024 * 1024


def _discard(path: Path | None) -> None:
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError:
        pass


class ModelScopeFileFetcher:
    """Downloads a single repository file and atomically replaces the local copy."""

    def __init__(
        self,
        repo_path: str,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        self.repo_path = repo_path.strip('/')
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.chunk_size = chunk_size

    @property
    def content_url(self) -> str:
        return f'{self.api_base}/{self.repo_path}/repo'

    def fetch(self, path: str, revision: str, destination: Path) -> int:
        destination = Path(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LocalWriteError(f'Cannot create {destination.parent}: {exc}', path=str(destination.parent)) from exc

        url = self.content_url
        params = {'Revision': revision or DEFAULT_REVISION, 'FilePath': path}
        tmp: Path | None = None
        written = 0
        try:
            with self.session.get(url, params=params, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                # random hidden name; never collides with a remote "<name>.part" sibling
                with tempfile.NamedTemporaryFile(
                    'wb', dir=destination.parent, prefix=f'.{destination.name}.', suffix='.part', delete=False
                ) as handle:
                    tmp = Path(handle.name)
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if not chunk:
                            continue
                        handle.write(chunk)
                        written += len(chunk)
            os.chmod(tmp, 0o644)
            os.replace(tmp, destination)
        except requests.HTTPError as exc:
            _discard(tmp)
            status = exc.response.status_code if exc.response is not None else None
            raise TransportError(f'Fetching {path} failed: {exc}', url=url, status_code=status) from exc
        except requests.RequestException as exc:
            _discard(tmp)
            raise TransportError(f'Fetching {path} failed: {exc}', url=url) from exc
        except OSError as exc:
            _discard(tmp)
            raise LocalWriteError(f'Writing {destination} failed: {exc}', path=str(destination)) from exc
        return written
