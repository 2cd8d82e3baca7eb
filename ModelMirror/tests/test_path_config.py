from pathlib import Path

import pytest

from ModelMirror.domain import path_config
from ModelMirror.domain.path_config import DEFAULT_API_BASE, DEFAULT_TIMEOUT, MirrorConfig


ENV_NAMES = (
    "MODELSCOPE_DOWNLOAD_ROOT",
    "MODELSCOPE_STATUS_FILE",
    "MODELSCOPE_LOG_DIR",
    "MODELSCOPE_API_BASE",
    "MODELSCOPE_HTTP_TIMEOUT",
    "XDG_DOCUMENTS_DIR",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


def test_defaults_point_at_documents_and_cache(tmp_path: Path) -> None:
    config = MirrorConfig.from_env()
    home = (tmp_path / "home").resolve()

    assert config.download_root == home / "Documents"
    assert config.status_file == home / ".cache" / "modelmirror" / "status.json"
    assert config.log_dir == home / ".cache" / "modelmirror" / "logs"
    assert config.api_base == DEFAULT_API_BASE
    assert config.timeout == DEFAULT_TIMEOUT


def test_environment_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MODELSCOPE_DOWNLOAD_ROOT", str(tmp_path / "models"))
    monkeypatch.setenv("MODELSCOPE_STATUS_FILE", str(tmp_path / "status.json"))
    monkeypatch.setenv("MODELSCOPE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("MODELSCOPE_API_BASE", "https://mirror.example/api/")
    monkeypatch.setenv("MODELSCOPE_HTTP_TIMEOUT", "12.5")

    config = MirrorConfig.from_env()

    assert config.download_root == (tmp_path / "models").resolve()
    assert config.status_file == (tmp_path / "status.json").resolve()
    assert config.log_dir == (tmp_path / "logs").resolve()
    assert config.api_base == "https://mirror.example/api"
    assert config.timeout == 12.5


@pytest.mark.parametrize("raw", ["soon", "0", "-3"])
def test_invalid_timeout_falls_back(monkeypatch, raw) -> None:
    monkeypatch.setenv("MODELSCOPE_HTTP_TIMEOUT", raw)

    assert MirrorConfig.from_env().timeout == DEFAULT_TIMEOUT


def test_xdg_documents_dir_is_honoured(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_DOCUMENTS_DIR", str(tmp_path / "Docs"))

    assert path_config.default_documents_dir() == tmp_path / "Docs"


def test_with_overrides_skips_none_and_rejects_unknown(tmp_path: Path) -> None:
    config = MirrorConfig.from_env()

    updated = config.with_overrides(download_root=str(tmp_path / "dest"), api_base=None, timeout=3.0)

    assert updated.download_root == (tmp_path / "dest").resolve()
    assert updated.api_base == config.api_base
    assert updated.timeout == 3.0
    with pytest.raises(TypeError):
        config.with_overrides(colour="blue")
