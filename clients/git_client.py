#!/usr/bin/env python3
"""Local git client driven through the ``git`` executable.

Each operation runs ``git`` in the working copy and raises VcsCommandError
on a non-zero exit, carrying the command line and stderr for diagnosis.
"""

import logging
import subprocess
from typing import List, Optional

from configs.config import Config
from utils.errors import VcsCommandError

# Set up logging
logger = logging.getLogger(__name__)


class GitClient:
    """Thin wrapper over the git CLI for one working copy."""

    def __init__(
        self,
        repo_path: str,
        *,
        remote: Optional[str] = None,
        timeout_s: Optional[int] = None,
        debug: bool = False,
    ):
        """Initialize the git client.

        Args:
            repo_path: Local path to the working copy
            remote: Remote name (defaults to Config.GIT_REMOTE)
            timeout_s: Per-command timeout (defaults to Config.GIT_TIMEOUT_S)
            debug: Log failed commands and stderr
        """
        git_config = Config.get_git_config()
        self.repo_path = repo_path
        self.remote = remote or git_config["remote"]
        self.timeout_s = timeout_s or git_config["timeout_s"]
        self.debug = debug

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        cmd: List[str] = ["git", *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
            )
        except FileNotFoundError as e:
            raise VcsCommandError(f"git executable not found: {e}", code="NO_GIT", command=cmd)
        except subprocess.TimeoutExpired:
            raise VcsCommandError(
                f"Git command timed out after {self.timeout_s}s: {' '.join(cmd)}", code="TIMEOUT", command=cmd
            )

        if check and result.returncode != 0:
            stderr = (result.stderr or "").strip() or (result.stdout or "").strip()
            if self.debug:
                logger.debug(f"Git command failed: {' '.join(cmd)}")
                logger.debug(f"Error: {stderr}")
            raise VcsCommandError(f"Git command failed: git {' '.join(args)}: {stderr}", command=cmd, stderr=stderr)
        return result

    def branch_exists(self, name: str) -> bool:
        """True if ``name`` exists locally or as a remote-tracking branch."""
        for ref in (f"refs/heads/{name}", f"refs/remotes/{self.remote}/{name}"):
            if self._run("show-ref", "--verify", "--quiet", ref, check=False).returncode == 0:
                return True
        return False

    def checkout(self, branch: str) -> None:
        self._run("checkout", branch)

    def pull(self, branch: str) -> None:
        self._run("pull", self.remote, branch)

    def create_branch(self, name: str) -> None:
        """Create ``name`` from HEAD and switch to it."""
        self._run("checkout", "-b", name)

    def add_all(self) -> None:
        self._run("add", "-A")

    def has_changes(self) -> bool:
        return bool(self._run("status", "--porcelain").stdout.strip())

    def commit(self, message: str) -> None:
        self._run("commit", "-m", message)

    def push(self, branch: str, set_upstream: bool = False) -> None:
        if set_upstream:
            self._run("push", "--set-upstream", self.remote, branch)
        else:
            self._run("push", self.remote, branch)

    def push_head_to(self, branch: str) -> None:
        """Push the current HEAD to ``branch`` on the remote."""
        self._run("push", self.remote, f"HEAD:{branch}")

    def delete_branch(self, name: str, remote: bool = True) -> None:
        """Delete ``name`` locally and, if ``remote``, on the remote.

        Both deletions are attempted; a combined error is raised if any failed.
        Local deletion is forced because squash merges leave the branch
        unmerged in ancestry terms.
        """
        errors: List[str] = []
        try:
            self._run("branch", "-D", name)
        except VcsCommandError as e:
            errors.append(f"local: {e.stderr or e}")
        if remote:
            try:
                self._run("push", self.remote, "--delete", name)
            except VcsCommandError as e:
                errors.append(f"remote: {e.stderr or e}")
        if errors:
            raise VcsCommandError(f"Failed to delete branch {name}: {'; '.join(errors)}", code="DELETE_BRANCH")
