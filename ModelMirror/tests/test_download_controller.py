from pathlib import Path

from ModelMirror.domain.entities import DownloadRequest
from ModelMirror.domain.path_config import MirrorConfig
from ModelMirror.interface_adapters.controllers import download_controller


class FakeResponse:
    def __init__(self, payload=None, chunks=()):
        self.payload = payload
        self.chunks = chunks
        self.status_code = 200

    def __enter__(self):
        return self

    def __exit__(self, *_exc):
        return False

    def raise_for_status(self):
        return None

    def json(self):
        return self.payload

    def iter_content(self, chunk_size=None):
        yield from self.chunks


class FakeSession:
    def __init__(self, listings, contents):
        self.listings = listings
        self.contents = contents
        self.requests = []

    def get(self, url, params=None, timeout=None, stream=False):
        self.requests.append((url, dict(params or {})))
        if url.endswith("/repo/files"):
            return FakeResponse({"Code": 200, "Data": {"Files": self.listings[params["Root"]]}})
        return FakeResponse(chunks=[self.contents[params["FilePath"]]])


def _config(tmp_path: Path) -> MirrorConfig:
    return MirrorConfig(
        download_root=tmp_path / "docs",
        status_file=tmp_path / "status.json",
        log_dir=tmp_path / "logs",
        api_base="https://hub.example/api/v1/models",
        timeout=3,
    )


def test_manager_wires_http_and_status_file(tmp_path: Path) -> None:
    session = FakeSession(
        listings={
            "": [{"Type": "tree", "Name": "m1", "Path": "m1", "Size": 0, "Revision": ""}],
            "m1": [{"Type": "blob", "Name": "config.json", "Path": "m1/config.json", "Size": 2, "Revision": "r1"}],
        },
        contents={"m1/config.json": b"{}"},
    )
    config = _config(tmp_path)
    manager = download_controller.build_manager("owner/repo", config, session=session)

    summary = manager.execute(DownloadRequest(model_id="m1"))
    manager.execute(DownloadRequest(model_id="m1"))

    assert summary.destination == tmp_path / "docs"
    assert (tmp_path / "docs" / "m1" / "config.json").read_bytes() == b"{}"
    assert config.status_file.exists()
    fetches = [params for url, params in session.requests if not url.endswith("/repo/files")]
    assert fetches == [{"Revision": "r1", "FilePath": "m1/config.json"}]
    messages = download_controller.describe_summary(summary)
    assert "  Fetched: 1" in messages
    assert any("config.json" in line for line in download_controller.describe_status(config))


def test_part_suffixed_sibling_is_mirrored_and_kept(tmp_path: Path) -> None:
    session = FakeSession(
        listings={
            "": [{"Type": "tree", "Name": "m1", "Path": "m1", "Size": 0, "Revision": ""}],
            "m1": [
                {"Type": "blob", "Name": "x.part", "Path": "m1/x.part", "Size": 4, "Revision": "r1"},
                {"Type": "blob", "Name": "x", "Path": "m1/x", "Size": 1, "Revision": "r1"},
            ],
        },
        contents={"m1/x.part": b"part", "m1/x": b"x"},
    )
    manager = download_controller.build_manager("owner/repo", _config(tmp_path), session=session)

    manager.execute(DownloadRequest(model_id="m1"))
    session.requests.clear()
    second = manager.execute(DownloadRequest(model_id="m1"))

    model_dir = tmp_path / "docs" / "m1"
    assert sorted(path.name for path in model_dir.iterdir()) == ["x", "x.part"]
    assert (model_dir / "x.part").read_bytes() == b"part"
    assert second.fetched == []
    assert sorted(second.skipped) == ["m1/x", "m1/x.part"]
