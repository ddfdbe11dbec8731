from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from catalog_crawler.config import ConfigLocator, ConfigRepository, GlobalConfig
from catalog_crawler.config.models import RetryPolicy


def test_config_locator_uses_env_and_creates_directories(tmp_path: Path) -> None:
    locator = ConfigLocator(project_root=tmp_path / "ignored")

    assert locator.project_root == tmp_path.resolve()
    for path in (locator.data_dir, locator.outputs_dir, locator.logs_dir):
        assert path.exists()
    assert locator.global_config_path() == tmp_path.resolve() / "data" / "global_config.yaml"


def test_config_locator_falls_back_to_project_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CATALOG_CRAWLER_HOME")
    locator = ConfigLocator(project_root=tmp_path / "project")
    assert locator.outputs_dir == (tmp_path / "project" / "data" / "outputs").resolve()


def test_repository_creates_default_config(temp_config_repository: ConfigRepository) -> None:
    config = temp_config_repository.load_global_config()
    path = temp_config_repository.locator.global_config_path()

    assert config == GlobalConfig()
    assert path.exists()
    assert yaml.safe_load(path.read_text(encoding="utf-8"))["api"]["page_size"] == 50


def test_repository_global_roundtrip(temp_config_repository: ConfigRepository) -> None:
    config = GlobalConfig(retry=RetryPolicy(retry_client_errors=False), enable_progress_bar=False)
    temp_config_repository.save_global_config(config)

    fresh = ConfigRepository(temp_config_repository.locator)
    assert fresh.load_global_config() == config


def test_repository_load_file_accepts_json(tmp_path: Path, temp_config_repository: ConfigRepository) -> None:
    path = tmp_path / "override.json"
    path.write_text(json.dumps({"api": {"page_size": 10}}), encoding="utf-8")

    assert temp_config_repository.load_file(path).api.page_size == 10
    with pytest.raises(ValueError):
        temp_config_repository.load_file(tmp_path / "override.toml")
    with pytest.raises(FileNotFoundError):
        temp_config_repository.load_file(tmp_path / "missing.yaml")
