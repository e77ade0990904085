"""Pytest configuration and shared fixtures."""

import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from depbot.models.domain import Session
from depbot.platform.mock import MockPlatform


def _git(*args: str, cwd: Path) -> None:
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """Empty directory acting as the mock platform endpoint."""
    root = tmp_path / "repos"
    root.mkdir()
    return root


@pytest.fixture
def make_repo(repo_root: Path) -> Callable[..., Path]:
    """Factory creating a committed git repository under ``repo_root``.

    Usage: ``make_repo("org/app", branch="develop", files={"a.json": "{}"})``
    """

    def _make_repo(name: str, branch: str = "main", files: dict[str, str] | None = None) -> Path:
        path = repo_root / name
        path.mkdir(parents=True)
        _git("init", "-q", cwd=path)
        _git("symbolic-ref", "HEAD", f"refs/heads/{branch}", cwd=path)
        _git("config", "user.email", "test@example.com", cwd=path)
        _git("config", "user.name", "Test User", cwd=path)
        _git("config", "commit.gpgsign", "false", cwd=path)

        for file_name, content in (files or {"README.md": "# Test Repository\n"}).items():
            file_path = path / file_name
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")

        _git("add", "-A", cwd=path)
        _git("commit", "-q", "-m", "Initial commit", cwd=path)
        return path

    return _make_repo


@pytest.fixture
def mock_platform(repo_root: Path) -> MockPlatform:
    """MockPlatform pointed at ``repo_root``."""
    platform = MockPlatform()
    platform.endpoint = str(repo_root)
    return platform


@pytest.fixture
def session(repo_root: Path) -> Session:
    """Session for a repository that does not need to exist on disk."""
    return Session(repository="org/app", default_branch="main", endpoint=str(repo_root))
