"""Shared fixtures for k-releaser tests."""

from __future__ import annotations

import shutil
import subprocess
from datetime import datetime
from pathlib import Path

import pytest

from k_releaser.vcs.git import Commit


def _commit(sha: str, message: str) -> Commit:
    return Commit(sha, message, "Test", "test@test.com", datetime(2024, 1, 1, 12, 0))


@pytest.fixture
def make_commit():
    """Factory for commits with fixed author and date."""
    return _commit


@pytest.fixture
def feat_commit() -> Commit:
    return _commit("feat123abcdef", "feat: add user authentication")


@pytest.fixture
def fix_commit() -> Commit:
    return _commit("fix456abcdef", "fix(core): handle empty config")


@pytest.fixture
def breaking_commit() -> Commit:
    return _commit(
        "brk789abcdef",
        "feat(api)!: drop v1 endpoints\n\nBREAKING CHANGE: /v1 is gone",
    )


@pytest.fixture
def sample_commits(
    feat_commit: Commit, fix_commit: Commit, breaking_commit: Commit
) -> list[Commit]:
    """A mixed history, newest first."""
    return [
        _commit("chore000aaaa", "chore: bump dev dependencies"),
        _commit("docs111bbbb", "docs: describe configuration"),
        breaking_commit,
        fix_commit,
        feat_commit,
        _commit("misc222cccc", "Merge branch 'main' into feature"),
    ]


def git(repo: Path, *args: str) -> str:
    """Run git in ``repo`` and return its stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(repo: Path, message: str, name: str = "file.txt") -> str:
    """Append to ``name``, commit it with ``message`` and return the new hash."""
    path = repo / name
    with path.open("a", encoding="utf-8") as f:
        f.write(message + "\n")
    git(repo, "add", name)
    git(repo, "commit", "--quiet", "--message", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def git_commit():
    """Helper that commits a change: ``git_commit(repo, message)``."""
    return commit_file


@pytest.fixture
def run_git():
    """Helper that runs git: ``run_git(repo, *args)``."""
    return git


@pytest.fixture
def git_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give git a fixed identity and keep user config out of the way."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@test.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@test.com")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(Path(__file__).parent / "fixtures" / "gitconfig"))


@pytest.fixture
def temp_git_repo(tmp_path: Path, git_env: None) -> Path:
    """An initialised git repository with one commit."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "--quiet")
    commit_file(repo, "chore: initial commit", name="README.md")
    return repo


@pytest.fixture
def temp_git_repo_with_pyproject(temp_git_repo: Path) -> Path:
    """A git repository with a committed pyproject.toml."""
    (temp_git_repo / "pyproject.toml").write_text(
        """\
[project]
name = "test-project"
version = "1.0.0"

[tool.k-releaser]
default_branch = "main"

[tool.k-releaser.version]
tag_template = "v{version}"
"""
    )
    git(temp_git_repo, "add", "pyproject.toml")
    git(temp_git_repo, "commit", "--quiet", "--message", "chore: add pyproject")
    return temp_git_repo
