from __future__ import annotations

from typing import Any, List, Optional

import requests

from ModelMirror.domain.entities import EntryKind, TreeEntry
from ModelMirror.domain.errors import DecodeError, TransportError
from ModelMirror.domain.path_config import DEFAULT_API_BASE, DEFAULT_TIMEOUT


SUCCESS_CODE = 200


def _parse_size(path: str, value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise DecodeError(f'Tree entry {path!r} has a non-integer Size: {value!r}')


def parse_entry(raw: Any) -> Optional[TreeEntry]:
    """Convert one item of ``Data.Files`` into a ``TreeEntry``.

    Items whose ``Type`` is neither ``tree`` nor ``blob`` yield ``None``.
    """
    if not isinstance(raw, dict):
        raise DecodeError(f'Expected an object for a tree entry, got {type(raw).__name__}')
    try:
        kind = EntryKind(raw.get('Type'))
    except ValueError:
        return None
    name = raw.get('Name')
    path = raw.get('Path')
    if not isinstance(name, str) or not isinstance(path, str):
        raise DecodeError(f'Tree entry is missing Name/Path: {raw!r}')
    size = _parse_size(path, raw.get('Size'))
    revision = raw.get('Revision') or ''
    return TreeEntry(kind=kind, name=name, path=path, size=size, revision=str(revision))


def parse_listing(payload: Any) -> List[TreeEntry]:
    if not isinstance(payload, dict):
        raise DecodeError('Listing payload is not a JSON object')
    code = payload.get('Code')
    if code is not None and code != SUCCESS_CODE:
        message = payload.get('Message') or 'no message'
        raise TransportError(f'Server reported code {code}: {message}', status_code=code)
    data = payload.get('Data')
    if not isinstance(data, dict):
        raise DecodeError('Listing payload has no Data object')
    files = data.get('Files')
    if not isinstance(files, list):
        raise DecodeError('Listing payload has no Files list')
    entries: List[TreeEntry] = []
    for raw in files:
        entry = parse_entry(raw)
        if entry is not None:
            entries.append(entry)
    return entries


class ModelScopeTreeClient:
    """Lists the children of a directory in a remote model repository."""

    def __init__(
        self,
        repo_path: str,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.repo_path = repo_path.strip('/')
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def listing_url(self) -> str:
        return f'{self.api_base}/{self.repo_path}/repo/files'

    def list_children(self, path: str = '', revision: str = '') -> List[TreeEntry]:
        url = self.listing_url
        params = {'Root': path, 'Revision': revision}
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise TransportError(f'Listing {path or "/"} failed: {exc}', url=url, status_code=status) from exc
        except requests.RequestException as exc:
            raise TransportError(f'Listing {path or "/"} failed: {exc}', url=url) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeError(f'Listing {path or "/"} returned a non-JSON body') from exc
        return parse_listing(payload)
