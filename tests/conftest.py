from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from fakes import FakeRepository, build_example_git_repo, example_repository


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    config_dir = tmp_path / "megethos-config"
    monkeypatch.setenv("MEGETHOS_CONFIG_DIR", str(config_dir))
    return config_dir


@pytest.fixture
def fake_repo() -> FakeRepository:
    return example_repository()


@pytest.fixture
def example_git_repo(tmp_path: Path) -> tuple[Path, dict[str, str]]:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = tmp_path / "repo"
    shas = build_example_git_repo(repo)
    return repo, shas
