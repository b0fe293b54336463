"""Shared fixtures and fake collaborators for the activity agent tests."""

import random
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

from configs.run_config import RunConfig
from utils.run_models import MergeResult, PullRequestHandle

FIXED_NOW = datetime(2026, 10, 18, 12, 30, 0, tzinfo=timezone.utc)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


class CallLog:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []

    def record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def args_of(self, name: str) -> List[tuple]:
        return [args for n, args in self.calls if n == name]


class FakeGit:
    """In-memory git collaborator; ``fail_on`` maps a method to the error it raises."""

    def __init__(self, log: CallLog, branches=("main",), fail_on: Optional[Dict[str, Exception]] = None):
        self.log = log
        self.branches = set(branches)
        self.fail_on = fail_on or {}
        self.changes = True

    def _call(self, name: str, *args: Any) -> None:
        self.log.record(name, *args)
        if name in self.fail_on:
            raise self.fail_on[name]

    def branch_exists(self, name):
        return name in self.branches

    def checkout(self, branch):
        self._call("checkout", branch)

    def pull(self, branch):
        self._call("pull", branch)

    def create_branch(self, name):
        self._call("create_branch", name)
        self.branches.add(name)

    def add_all(self):
        self._call("add_all")

    def has_changes(self):
        return self.changes

    def commit(self, message):
        self._call("commit", message)

    def push(self, branch, set_upstream=False):
        self._call("push", branch, set_upstream)

    def push_head_to(self, branch):
        self._call("push_head_to", branch)

    def delete_branch(self, name, remote=True):
        self._call("delete_branch", name, remote)
        self.branches.discard(name)


class FakeGithub:
    def __init__(self, log: CallLog, fail_on: Optional[Dict[str, Exception]] = None, number: int = 42):
        self.log = log
        self.fail_on = fail_on or {}
        self.number = number

    def _call(self, name: str, *args: Any) -> None:
        self.log.record(name, *args)
        if name in self.fail_on:
            raise self.fail_on[name]

    def create_pull_request(self, owner, repo, title, head, base, body):
        self._call("create_pull_request", owner, repo, title, head, base, body)
        return PullRequestHandle(number=self.number, html_url=f"https://github.com/{owner}/{repo}/pull/{self.number}", head=head, base=base)

    def merge_pull_request(self, owner, repo, number, merge_method="squash", commit_title=None):
        self._call("merge_pull_request", owner, repo, number, merge_method, commit_title)
        return MergeResult(merged=True, sha="abc123", message="Pull Request successfully merged")

    def close(self):
        pass


class RecordingSleep:
    def __init__(self, log: CallLog, fail: Optional[Exception] = None):
        self.log = log
        self.fail = fail

    def __call__(self, seconds):
        self.log.record("sleep", seconds)
        if self.fail is not None:
            raise self.fail


@pytest.fixture
def call_log() -> CallLog:
    return CallLog()


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    """A directory that looks like a working copy to WorkingCopy."""
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    return root


@pytest.fixture
def make_config(repo_dir: Path):
    def _make(**overrides) -> RunConfig:
        data = {
            "username": "octocat",
            "repo": "octocat/sandbox",
            "repo_path": str(repo_dir),
            "cron_schedule": "0 */8 * * *",
            "min_files": 1,
            "max_files": 3,
            "min_lines": 1,
            "max_lines": 3,
            "debug": False,
        }
        data.update(overrides)
        return RunConfig(**data)

    return _make


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1337)


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=str(cwd), capture_output=True, text=True, check=True)
    return result.stdout


def configure_identity(cwd: Path) -> None:
    git(cwd, "config", "user.email", "bot@example.com")
    git(cwd, "config", "user.name", "Activity Bot")
