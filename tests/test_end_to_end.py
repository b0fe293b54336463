"""End-to-end run against real git with a local bare remote.

The hosting API is faked: "merging" squash-merges the head branch into the
primary branch through a separate clone and pushes it, which is what GitHub
does server side.
"""

import random
import subprocess
from pathlib import Path

import pytest

from agents.activity_agent import ActivityAgent
from clients.git_client import GitClient
from configs.run_config import RunConfig
from conftest import FIXED_NOW, configure_identity, git, requires_git
from utils.run_models import MergeResult, PullRequestHandle, Stage


class SquashMergingGithub:
    def __init__(self, merger: Path):
        self.merger = merger
        self.created = []
        self.merged = []

    def create_pull_request(self, owner, repo, title, head, base, body):
        self.created.append((head, base))
        return PullRequestHandle(number=len(self.created), html_url="", head=head, base=base)

    def merge_pull_request(self, owner, repo, number, merge_method="squash", commit_title=None):
        head, base = self.created[number - 1]
        git(self.merger, "fetch", "origin")
        git(self.merger, "checkout", "-B", base, f"origin/{base}")
        git(self.merger, "merge", "--squash", f"origin/{head}")
        git(self.merger, "commit", "-m", commit_title or f"Merge #{number}")
        git(self.merger, "push", "origin", base)
        self.merged.append(number)
        return MergeResult(merged=True, sha=None, message="merged")

    def close(self):
        pass


@pytest.fixture
def remote_setup(tmp_path: Path):
    remote = tmp_path / "remote.git"
    git(tmp_path, "init", "--bare", str(remote))
    git(remote, "symbolic-ref", "HEAD", "refs/heads/main")

    bootstrap = tmp_path / "bootstrap"
    git(tmp_path, "clone", str(remote), str(bootstrap))
    configure_identity(bootstrap)
    git(bootstrap, "symbolic-ref", "HEAD", "refs/heads/main")
    # no allow-listed text files: the repository starts "empty" for the agent
    (bootstrap / "LICENSE").write_text("MIT\n", encoding="utf-8")
    git(bootstrap, "add", "-A")
    git(bootstrap, "commit", "-m", "initial")
    git(bootstrap, "push", "origin", "main")

    work = tmp_path / "work"
    git(tmp_path, "clone", str(remote), str(work))
    configure_identity(work)
    merger = tmp_path / "merger"
    git(tmp_path, "clone", str(remote), str(merger))
    configure_identity(merger)
    return remote, work, merger


@requires_git
def test_empty_repository_seeds_merges_and_cleans_up(remote_setup):
    remote, work, merger = remote_setup
    config = RunConfig(
        username="octocat",
        repo="octocat/sandbox",
        repo_path=str(work),
        min_files=1,
        max_files=1,
        min_lines=1,
        max_lines=1,
    )
    github = SquashMergingGithub(merger)
    agent = ActivityAgent(
        config,
        GitClient(str(work)),
        github,
        rng=random.Random(2024),
        sleep=lambda seconds: None,
        now=lambda: FIXED_NOW,
    )

    outcome = agent.run_once()

    assert outcome.ok, outcome.describe()
    assert agent.state == Stage.IDLE
    assert outcome.files_changed == 1
    assert github.merged == [1]

    tree = git(remote, "ls-tree", "-r", "--name-only", "main").split()
    assert {"LICENSE", "README.md", "src/lib.py"} <= set(tree)

    branch = outcome.branch
    remote_ref = subprocess.run(
        ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], cwd=str(remote)
    )
    assert remote_ref.returncode != 0
    assert git(work, "rev-parse", "--abbrev-ref", "HEAD").strip() == "main"
    assert branch not in git(work, "branch", "--list")
    assert git(work, "rev-parse", "HEAD") == git(remote, "rev-parse", "main")
