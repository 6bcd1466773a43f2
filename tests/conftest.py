"""
Shared fixtures for sync tests.

Provides real throwaway git repositories under tmp_path: a bare "primary"
remote, a working clone of it (the source), and a bare "mirror" remote.
Git runs with an isolated HOME and global config so the developer's own
settings never leak in.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from g2g.config.loader import KNOWN_KEYS

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(cwd: Path, *args: str) -> str:
    """Run git for test setup/inspection and return stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_count(repo: Path, ref: str = "HEAD") -> int:
    return int(git(repo, "rev-list", "--count", ref))


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    """Isolate git config and strip g2g keys from the environment."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(home / ".gitconfig"))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Author")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "author@example.com")
    for key in KNOWN_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    return home


@pytest.fixture
def primary_remote(tmp_path: Path) -> Path:
    """Bare repository acting as the primary (Gitea) remote."""
    remote = tmp_path / "primary.git"
    git(tmp_path, "init", "--bare", "-b", "main", str(remote))
    return remote


@pytest.fixture
def source_repo(tmp_path: Path, primary_remote: Path) -> Path:
    """Source working tree on 'main' with one pushed commit."""
    work = tmp_path / "project"
    git(tmp_path, "init", "-b", "main", str(work))
    git(work, "remote", "add", "origin", str(primary_remote))
    (work / "README.md").write_text("# project\n")
    git(work, "add", "-A")
    git(work, "commit", "-m", "initial")
    git(work, "push", "-u", "origin", "main")
    return work


@pytest.fixture
def mirror_remote(tmp_path: Path) -> Path:
    """Empty bare repository acting as the mirror (GitHub) remote."""
    remote = tmp_path / "mirror.git"
    git(tmp_path, "init", "--bare", "-b", "main", str(remote))
    return remote


@pytest.fixture
def mirror_dir(tmp_path: Path) -> Path:
    """Default mirror location for `source_repo`: ../project-github."""
    return tmp_path / "project-github"
