"""
Local working copies of deployed repositories.

Each repository lives in ``<cache_root>/<identifier>``. A missing directory is
cloned; an existing one is reset to HEAD, fetched and fast-forwarded to the
remote default branch. Anything that is not a fast-forward is refused.
"""
import os
import subprocess
from pathlib import Path
from typing import List, Optional

from ..exceptions import SyncError
from ..logger import logger
from ..webhook.models import UNDEFINED
from .models import SyncOutcome, SyncResult


REMOTE_NAME = "origin"
FALLBACK_BRANCH = "main"


class RepositorySync:
    """Clone-or-fast-forward protocol against a local cache directory."""

    def __init__(self, cache_root: str, git_timeout: Optional[int] = None):
        """
        Initialize repository sync.

        Args:
            cache_root: Directory holding one working copy per repository
            git_timeout: Timeout in seconds for each git invocation
        """
        self.cache_root = Path(cache_root)
        self.git_timeout = git_timeout

    def repo_path(self, identifier: str) -> Path:
        """Get local path of the working copy for a repository."""
        if (
            not identifier
            or identifier == UNDEFINED
            or identifier in (".", "..")
            or "/" in identifier
            or "\\" in identifier
            or identifier.startswith("-")
        ):
            raise SyncError(f"Invalid repository identifier: {identifier!r}")
        return self.cache_root / identifier

    def sync(self, identifier: str, url: str, branch: str = FALLBACK_BRANCH) -> SyncResult:
        """
        Bring the working copy in line with the remote default branch.

        Args:
            identifier: Repository name, used as the cache directory name
            url: URL to clone from when the working copy is absent
            branch: Remote default branch to fast-forward to

        Returns:
            Sync result with the path and what was done

        Raises:
            SyncError: If cloning fails or the branches have diverged
        """
        path = self.repo_path(identifier)
        if not branch or branch == UNDEFINED:
            branch = FALLBACK_BRANCH
        if branch.startswith("-"):
            raise SyncError(f"Invalid branch name for {identifier}: {branch!r}")

        if path.is_dir():
            outcome = self._refresh(path, branch)
        else:
            self._clone(url, path)
            outcome = SyncOutcome.CLONED

        head = self._git(["rev-parse", "HEAD"], cwd=path).strip()
        logger.info(f"Repository {identifier} {outcome.value} at {head[:7]}")
        return SyncResult(path=str(path), outcome=outcome, head=head)

    def _clone(self, url: str, path: Path):
        if not url or url == UNDEFINED:
            raise SyncError(f"No clone URL for {path.name}")
        if url.startswith("-"):
            raise SyncError(f"Invalid clone URL for {path.name}: {url!r}")

        self.cache_root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Cloning {url} into {path}")
        self._git(["clone", "--", url, path.name], cwd=self.cache_root)

    def _refresh(self, path: Path, branch: str) -> SyncOutcome:
        # Discard local drift before looking at the remote
        self._git(["reset", "--hard", "HEAD"], cwd=path)
        self._git(["fetch", REMOTE_NAME, branch], cwd=path)

        head = self._git(["rev-parse", "HEAD"], cwd=path).strip()
        fetched = self._git(["rev-parse", "FETCH_HEAD"], cwd=path).strip()

        if head == fetched or self._is_ancestor(path, fetched, head):
            logger.debug(f"{path.name} is up to date with {REMOTE_NAME}/{branch}")
            return SyncOutcome.UP_TO_DATE

        if self._is_ancestor(path, head, fetched):
            refname = f"refs/heads/{branch}"
            if self._run(["git", "rev-parse", "--verify", "--quiet", refname], cwd=path).returncode != 0:
                raise SyncError(f"Local branch {branch} not found in {path.name}")
            self._git(
                ["update-ref", "-m", "Fast-Forward", refname, fetched],
                cwd=path,
            )
            self._git(["checkout", "--force", branch], cwd=path)
            logger.debug(f"{path.name} fast-forwarded {head[:7]}..{fetched[:7]}")
            return SyncOutcome.FAST_FORWARD

        raise SyncError(
            f"Fast-forward only: {path.name} has diverged from {REMOTE_NAME}/{branch}"
        )

    def _is_ancestor(self, path: Path, ancestor: str, descendant: str) -> bool:
        cmd = ["git", "merge-base", "--is-ancestor", ancestor, descendant]
        result = self._run(cmd, cwd=path)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise SyncError("git merge-base failed", command=cmd, stderr=result.stderr)

    def _git(self, args: List[str], cwd: Path) -> str:
        """Run a git command and return its stdout, raising SyncError on failure."""
        cmd = ["git", *args]
        result = self._run(cmd, cwd=cwd)
        if result.returncode != 0:
            raise SyncError(
                f"git {args[0]} failed in {cwd}",
                command=cmd,
                stderr=result.stderr,
            )
        return result.stdout

    def _run(self, cmd: List[str], cwd: Path) -> subprocess.CompletedProcess:
        logger.debug(f"Git command: {' '.join(cmd)} (cwd={cwd})")
        try:
            return subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.git_timeout,
                # Never block on a credentials prompt
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            )
        except subprocess.TimeoutExpired:
            raise SyncError(
                f"git {cmd[1]} timed out after {self.git_timeout} seconds",
                command=cmd,
            )
        except OSError as e:
            raise SyncError(f"Failed to run git: {e}", command=cmd)
