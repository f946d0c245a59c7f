"""Shared fixtures: payloads and throwaway git repositories."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict

import pytest


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


GIT_IDENTITY = [
    "-c", "user.name=Shook Tests",
    "-c", "user.email=tests@example.com",
    "-c", "commit.gpgsign=false",
]


def git(cwd: Path, *args: str) -> str:
    """Run git in cwd and return stdout."""
    result = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(repo: Path, name: str, content: str, message: str) -> str:
    """Write a file, commit it and return the new HEAD."""
    (repo / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def upstream(tmp_path: Path) -> Path:
    """A non-bare upstream repository on branch main with one commit."""
    repo = tmp_path / "upstream" / "webapp"
    repo.mkdir(parents=True)
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    commit_file(repo, "README.md", "hello\n", "initial commit")
    return repo


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    root = tmp_path / "cache"
    root.mkdir()
    return root


@pytest.fixture
def gitlab_payload() -> Dict[str, Any]:
    return {
        "event_type": "merge_request",
        "project": {
            "path_with_namespace": "user/repo",
            "git_ssh_url": "git@example.com/user/repo.git",
            "git_http_url": "https://example.com/user/repo.git",
            "default_branch": "main",
        },
        "repository": {
            "url": "git@example.com/user/repo.git",
        },
        "object_attributes": {
            "action": "merge",
            "target_branch": "main",
            "source_branch": "staging",
            "state": "merged",
            "merge_status": "merged",
        },
    }


@pytest.fixture
def github_payload() -> Dict[str, Any]:
    return {
        "action": "closed",
        "repository": {
            "name": "test-repo",
            "full_name": "user/test-repo",
            "clone_url": "https://github.com/user/test-repo.git",
            "ssh_url": "git@github.com:user/test-repo.git",
            "default_branch": "main",
        },
        "pull_request": {
            "number": 123,
            "state": "closed",
            "title": "Test PR",
            "merged": True,
            "merged_at": "2023-01-01T00:00:00Z",
            "head": {"ref": "feature-branch", "sha": "abc123"},
            "base": {"ref": "main", "sha": "def456"},
        },
        "sender": {"login": "testuser"},
    }
